from rest_framework import serializers
from .models import BulkPricing


class BulkPricingSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = BulkPricing
        fields = ['id', 'product', 'product_name', 'min_quantity', 'price', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']


class BulkPricingTierInputSerializer(serializers.Serializer):
    """Validates one tier of a tier payload"""
    min_quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class BulkPricingReplaceSerializer(serializers.Serializer):
    tiers = BulkPricingTierInputSerializer(many=True)

    def validate_tiers(self, value):
        quantities = [tier['min_quantity'] for tier in value]
        if len(quantities) != len(set(quantities)):
            raise serializers.ValidationError('Each tier must have a distinct min_quantity')
        return value


class PriceQuoteSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, default=1)
