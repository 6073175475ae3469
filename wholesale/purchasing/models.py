from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from wholesale.catalog.models import Product, ProductVariant
from wholesale.parties.models import Supplier
from wholesale.core.models import User


class SupplierOrder(models.Model):
    """Purchase order placed with a supplier"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('ORDERED', 'Ordered'),
        ('SHIPPED', 'Shipped'),
        ('DELIVERED', 'Delivered'),
        ('CANCELLED', 'Cancelled'),
    ]

    order_number = models.CharField(max_length=100, unique=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    expected_delivery_date = models.DateField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='supplier_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    class Meta:
        db_table = 'supplier_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['supplier', 'status'], name='idx_suporder_supplier_status'),
        ]


class SupplierOrderItem(models.Model):
    """Supplier order line items"""
    order = models.ForeignKey(SupplierOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='supplier_order_items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.SET_NULL, null=True, blank=True, related_name='supplier_order_items')
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)

    def get_line_total(self):
        """Calculate line total"""
        return self.quantity * self.unit_price

    def save(self, *args, **kwargs):
        self.total_price = self.get_line_total()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'supplier_order_items'
        ordering = ['id']
