from django.urls import path
from .views import supplier_order_list_create, supplier_order_detail, supplier_order_receive

urlpatterns = [
    path('supplier-orders/', supplier_order_list_create, name='supplier-order-list-create'),
    path('supplier-orders/<int:pk>/', supplier_order_detail, name='supplier-order-detail'),
    path('supplier-orders/<int:pk>/receive/', supplier_order_receive, name='supplier-order-receive'),
]
