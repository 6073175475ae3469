from rest_framework import serializers

from wholesale.catalog.models import Product, ProductVariant
from .models import SupplierOrder, SupplierOrderItem


class SupplierOrderItemSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False, allow_null=True)
    variant = serializers.PrimaryKeyRelatedField(queryset=ProductVariant.objects.all(), required=False, allow_null=True)
    product_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True, default=None)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)

    class Meta:
        model = SupplierOrderItem
        fields = ['id', 'product', 'product_sku', 'variant', 'product_name', 'quantity', 'unit_price', 'total_price', 'notes']
        read_only_fields = ['id', 'product_sku', 'total_price']

    def validate(self, attrs):
        if not attrs.get('product') and not attrs.get('variant') and not attrs.get('product_name'):
            raise serializers.ValidationError('Each item needs a product or a product_name.')
        return attrs


class SupplierOrderSerializer(serializers.ModelSerializer):
    items = SupplierOrderItemSerializer(many=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = SupplierOrder
        fields = [
            'id', 'order_number', 'supplier', 'supplier_name', 'status', 'total_amount',
            'expected_delivery_date', 'delivered_at', 'notes', 'items',
            'created_by', 'created_by_username', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'order_number', 'supplier_name', 'total_amount', 'delivered_at',
            'created_by', 'created_by_username', 'created_at', 'updated_at',
        ]

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Supplier order must contain at least one item.')
        return value

    def validate_status(self, value):
        if value == 'DELIVERED':
            raise serializers.ValidationError('Use the receive action to mark an order delivered.')
        return value
