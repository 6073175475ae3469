from django.db import models
from wholesale.catalog.models import Product, ProductVariant


class StockAdjustment(models.Model):
    """Stock movement log for products and variants"""
    ADJUSTMENT_TYPE_CHOICES = [
        ('in', 'Stock In'),
        ('out', 'Stock Out'),
        ('set', 'Stock Set'),
    ]

    REASON_CHOICES = [
        ('sale', 'Sale'),
        ('cancellation', 'Order Cancellation'),
        ('supplier_receipt', 'Supplier Receipt'),
        ('damaged', 'Damaged'),
        ('found', 'Found'),
        ('correction', 'Correction'),
        ('other', 'Other'),
    ]

    adjustment_type = models.CharField(max_length=10, choices=ADJUSTMENT_TYPE_CHOICES)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='adjustments')
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, related_name='adjustments', null=True, blank=True)
    quantity = models.IntegerField()
    previous_stock = models.IntegerField(null=True, blank=True)
    new_stock = models.IntegerField(null=True, blank=True)
    reason = models.CharField(max_length=50, choices=REASON_CHOICES, default='correction')
    reference = models.CharField(max_length=100, blank=True)  # order / supplier order number
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_adjustments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        target = self.variant.sku if self.variant_id else self.product.sku
        return f"{self.adjustment_type} {self.quantity} x {target}"

    class Meta:
        db_table = 'stock_adjustments'
        ordering = ['-created_at']
