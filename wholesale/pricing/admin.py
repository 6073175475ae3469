from django.contrib import admin
from .models import BulkPricing


@admin.register(BulkPricing)
class BulkPricingAdmin(admin.ModelAdmin):
    list_display = ['product', 'min_quantity', 'price', 'updated_at']
    list_filter = ['product__category']
    search_fields = ['product__name', 'product__sku']
    ordering = ['product', 'min_quantity']
    readonly_fields = ['created_at', 'updated_at']
