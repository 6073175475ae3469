from rest_framework import serializers

from wholesale.catalog.models import Product, ProductVariant
from .models import CartItem, Order, OrderItem


class CartItemSerializer(serializers.ModelSerializer):
    """Cart line; unit/total price come from the quote passed in context"""
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    image_url = serializers.CharField(source='product.image_url', read_only=True)
    variant_name = serializers.CharField(source='variant.name', read_only=True, default=None)
    variant_sku = serializers.CharField(source='variant.sku', read_only=True, default=None)
    available_stock = serializers.SerializerMethodField()
    unit_price = serializers.SerializerMethodField()
    total_price = serializers.SerializerMethodField()
    tier_min_quantity = serializers.SerializerMethodField()

    class Meta:
        model = CartItem
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'image_url', 'variant', 'variant_name',
            'variant_sku', 'quantity', 'available_stock', 'unit_price', 'total_price', 'tier_min_quantity',
        ]

    def _quote(self, obj):
        return self.context.get('quotes', {}).get(obj.id, {})

    def get_available_stock(self, obj):
        return obj.variant.stock if obj.variant_id else obj.product.stock

    def get_unit_price(self, obj):
        price = self._quote(obj).get('unit_price')
        return str(price) if price is not None else None

    def get_total_price(self, obj):
        price = self._quote(obj).get('total_price')
        return str(price) if price is not None else None

    def get_tier_min_quantity(self, obj):
        return self._quote(obj).get('tier_min_quantity')


class CartItemInputSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source='product')
    variant_id = serializers.PrimaryKeyRelatedField(
        queryset=ProductVariant.objects.all(), source='variant', required=False, allow_null=True
    )
    quantity = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):
        variant = attrs.get('variant')
        if variant is not None and variant.product_id != attrs['product'].id:
            raise serializers.ValidationError({'variant_id': 'Variant does not belong to this product.'})
        return attrs


class CartItemUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class OrderLineInputSerializer(CartItemInputSerializer):
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    use_credit = serializers.BooleanField(default=False)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, required=False)
    shipping_address = serializers.JSONField(required=False, default=dict)
    billing_address = serializers.JSONField(required=False, default=dict)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_shipping_address(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Address must be an object.')
        return value

    def validate_billing_address(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Address must be an object.')
        return value


class OrderCreateSerializer(CheckoutSerializer):
    items = OrderLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Order must contain at least one item.')
        return value


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'variant', 'product_name', 'variant_name', 'sku',
            'quantity', 'unit_price', 'total_price',
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='customer.company_name', read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'company_name', 'status', 'payment_status',
            'payment_method', 'total', 'credit_used', 'item_count', 'created_at',
        ]
        read_only_fields = fields

    def get_item_count(self, obj):
        return sum(item.quantity for item in obj.items.all())


class OrderSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='customer.company_name', read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    amount_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'company_name', 'status', 'payment_status',
            'payment_method', 'subtotal', 'tax', 'shipping', 'credit_used', 'total', 'amount_due',
            'shipping_address', 'billing_address', 'notes', 'items', 'created_by', 'created_by_username',
            'created_at', 'updated_at', 'cancelled_at',
        ]
        read_only_fields = fields


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class PaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES)


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
