from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal


class BulkPricing(models.Model):
    """Quantity-based price tier for a product"""
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='bulk_pricing')
    min_quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name}: {self.min_quantity}+ @ {self.price}"

    class Meta:
        db_table = 'bulk_pricing'
        ordering = ['product', 'min_quantity']
        constraints = [
            models.UniqueConstraint(fields=['product', 'min_quantity'], name='unique_product_min_quantity'),
            models.CheckConstraint(condition=models.Q(min_quantity__gte=1), name='bulk_pricing_min_quantity_positive'),
        ]
