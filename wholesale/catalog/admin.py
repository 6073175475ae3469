from django.contrib import admin
from wholesale.pricing.models import BulkPricing
from .models import Category, Collection, Product, ProductVariant


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'description']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Collection)
class CollectionAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'description']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ['name', 'sku', 'price', 'stock', 'attributes', 'is_active']


class BulkPricingInline(admin.TabularInline):
    model = BulkPricing
    extra = 0
    fields = ['min_quantity', 'price']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category', 'price', 'stock', 'status', 'is_featured', 'is_active', 'created_at']
    list_filter = ['status', 'is_active', 'is_featured', 'category', 'collection', 'created_at']
    search_fields = ['name', 'sku', 'description']
    ordering = ['name']
    inlines = [ProductVariantInline, BulkPricingInline]
    readonly_fields = ['created_at', 'updated_at']


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ['name', 'product', 'sku', 'price', 'stock', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'sku', 'product__name']
    ordering = ['product', 'name']
    readonly_fields = ['created_at', 'updated_at']
