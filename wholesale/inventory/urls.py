from django.urls import path
from .views import product_stock_update, variant_stock_update, stock_adjustment_list, low_stock

urlpatterns = [
    path('products/<int:pk>/stock/', product_stock_update, name='product-stock-update'),
    path('variants/<int:pk>/stock/', variant_stock_update, name='variant-stock-update'),
    path('stock-adjustments/', stock_adjustment_list, name='stock-adjustment-list'),
    path('inventory/low-stock/', low_stock, name='inventory-low-stock'),
]
