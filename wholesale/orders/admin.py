from django.contrib import admin
from .models import Cart, CartItem, Order, OrderItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ['product', 'variant', 'quantity']


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'session_key', 'created_at', 'updated_at']
    search_fields = ['customer__company_name', 'session_key']
    inlines = [CartItemInline]
    ordering = ['-updated_at']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product', 'variant', 'sku', 'quantity', 'unit_price', 'total_price']
    readonly_fields = ['sku', 'unit_price', 'total_price']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'status', 'payment_status', 'payment_method', 'total', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['order_number', 'customer__company_name', 'items__sku']
    readonly_fields = ['order_number', 'subtotal', 'tax', 'shipping', 'credit_used', 'total',
                       'created_at', 'updated_at', 'cancelled_at']
    inlines = [OrderItemInline]
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
