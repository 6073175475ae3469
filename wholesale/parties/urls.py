from django.urls import path
from .views import (
    register,
    customer_me, customer_verification, customer_credit_applications,
    customer_list, customer_detail, customer_orders, customer_activity, customer_status_update,
    credit_application_list, credit_application_approve, credit_application_reject,
    supplier_list_create, supplier_detail,
)

urlpatterns = [
    path('auth/register/', register, name='register'),

    # Self-service endpoints
    path('customers/me/', customer_me, name='customer-me'),
    path('customers/me/verification/', customer_verification, name='customer-verification'),
    path('customers/me/credit-applications/', customer_credit_applications, name='customer-credit-applications'),

    # Admin customer endpoints
    path('customers/', customer_list, name='customer-list'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
    path('customers/<int:pk>/orders/', customer_orders, name='customer-orders'),
    path('customers/<int:pk>/activity/', customer_activity, name='customer-activity'),
    path('customers/<int:pk>/status/', customer_status_update, name='customer-status-update'),

    # Credit review endpoints
    path('credit-applications/', credit_application_list, name='credit-application-list'),
    path('credit-applications/<int:pk>/approve/', credit_application_approve, name='credit-application-approve'),
    path('credit-applications/<int:pk>/reject/', credit_application_reject, name='credit-application-reject'),

    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
]
