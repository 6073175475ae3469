from django.urls import path
from .views import product_bulk_pricing, bulk_pricing_detail

urlpatterns = [
    path('products/<int:pk>/bulk-pricing/', product_bulk_pricing, name='product-bulk-pricing'),
    path('bulk-pricing/<int:pk>/', bulk_pricing_detail, name='bulk-pricing-detail'),
]
