from django.contrib import admin
from .models import Customer, BusinessDocument, CreditApplication, Supplier


class BusinessDocumentInline(admin.TabularInline):
    model = BusinessDocument
    extra = 0
    fields = ['document_type', 'file_name', 'file_url', 'uploaded_at']
    readonly_fields = ['uploaded_at']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'email', 'status', 'credit_status', 'available_credit', 'created_at']
    list_filter = ['status', 'credit_status', 'created_at']
    search_fields = ['company_name', 'contact_name', 'email', 'phone', 'tax_id']
    ordering = ['-created_at']
    inlines = [BusinessDocumentInline]
    readonly_fields = ['verified_at', 'credit_approved_at', 'created_at', 'updated_at']


@admin.register(CreditApplication)
class CreditApplicationAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'requested_amount', 'term', 'status', 'approved_amount', 'reviewed_by', 'created_at']
    list_filter = ['status', 'term', 'created_at']
    search_fields = ['customer__company_name', 'notes']
    readonly_fields = ['reviewed_at', 'created_at', 'updated_at']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_name', 'phone', 'email', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'contact_name', 'email']
    ordering = ['name']
