from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_adjust', 'Stock Adjustment'),
        ('stock_receive', 'Stock Received (Supplier)'),
        ('price_change', 'Price Change'),
        ('cart_add', 'Add to Cart'),
        ('cart_remove', 'Remove from Cart'),
        ('cart_update', 'Cart Update'),
        ('order_place', 'Order Placed'),
        ('order_cancel', 'Order Cancelled'),
        ('order_status', 'Order Status Changed'),
        ('payment_status', 'Payment Status Changed'),
        ('customer_verify', 'Customer Verification'),
        ('verification_submit', 'Verification Submitted'),
        ('credit_apply', 'Credit Application'),
        ('credit_approve', 'Credit Approved'),
        ('credit_reject', 'Credit Rejected'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, order number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., order number, customer id)")
    sku = models.CharField(max_length=1000, blank=True, null=True, help_text="SKU(s) if applicable (comma-separated)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_c2a1f0_idx'),
            models.Index(fields=['action'], name='audit_logs_action_4b7e21_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_9d3c55_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__e81b02_idx'),
        ]
