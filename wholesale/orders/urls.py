from django.urls import path
from .views import (
    cart_detail, cart_items, cart_item_detail, cart_clear, cart_merge, cart_checkout,
    order_list_create, order_detail, order_cancel, order_status_update, order_payment_status_update,
)

urlpatterns = [
    # Cart endpoints
    path('cart/', cart_detail, name='cart-detail'),
    path('cart/items/', cart_items, name='cart-items'),
    path('cart/items/<int:item_id>/', cart_item_detail, name='cart-item-detail'),
    path('cart/clear/', cart_clear, name='cart-clear'),
    path('cart/merge/', cart_merge, name='cart-merge'),
    path('cart/checkout/', cart_checkout, name='cart-checkout'),

    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/cancel/', order_cancel, name='order-cancel'),
    path('orders/<int:pk>/status/', order_status_update, name='order-status-update'),
    path('orders/<int:pk>/payment-status/', order_payment_status_update, name='order-payment-status-update'),
]
