from django.contrib import admin
from .models import SupplierOrder, SupplierOrderItem


class SupplierOrderItemInline(admin.TabularInline):
    model = SupplierOrderItem
    extra = 0
    fields = ['product', 'variant', 'product_name', 'quantity', 'unit_price', 'total_price']
    readonly_fields = ['total_price']


@admin.register(SupplierOrder)
class SupplierOrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'supplier', 'status', 'total_amount', 'expected_delivery_date', 'delivered_at', 'created_at']
    list_filter = ['status', 'supplier', 'created_at']
    search_fields = ['order_number', 'supplier__name', 'notes']
    readonly_fields = ['order_number', 'total_amount', 'delivered_at', 'created_at', 'updated_at']
    inlines = [SupplierOrderItemInline]
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
