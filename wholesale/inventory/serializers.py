from rest_framework import serializers
from .models import StockAdjustment


class StockAdjustmentSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    variant_sku = serializers.CharField(source='variant.sku', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = StockAdjustment
        fields = [
            'id', 'adjustment_type', 'product', 'product_name', 'product_sku', 'variant', 'variant_sku',
            'quantity', 'previous_stock', 'new_stock', 'reason', 'reference', 'notes',
            'created_by', 'created_by_name', 'created_at',
        ]
        read_only_fields = fields


class StockSetSerializer(serializers.Serializer):
    """Payload of an absolute stock update; the value itself is checked by the stock service"""
    stock = serializers.JSONField()
    reason = serializers.ChoiceField(choices=StockAdjustment.REASON_CHOICES, default='correction')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
