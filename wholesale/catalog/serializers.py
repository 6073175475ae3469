from rest_framework import serializers
from wholesale.pricing.serializers import BulkPricingSerializer
from .models import Category, Collection, Product, ProductVariant


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'is_active', 'product_count', 'created_at', 'updated_at']


class CollectionSerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Collection
        fields = ['id', 'name', 'description', 'image_url', 'is_active', 'product_count', 'created_at', 'updated_at']


class ProductVariantSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    stock = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'name', 'sku', 'price', 'stock', 'attributes', 'image_url', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']

    def validate_attributes(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('attributes must be an object')
        return value


class VariantSyncItemSerializer(ProductVariantSerializer):
    id = serializers.IntegerField(required=False)

    class Meta(ProductVariantSerializer.Meta):
        pass


class ProductListSerializer(serializers.ModelSerializer):
    """Light representation used by list endpoints"""
    category_name = serializers.CharField(source='category.name', read_only=True)
    collection_name = serializers.CharField(source='collection.name', read_only=True, default=None)
    variant_count = serializers.IntegerField(read_only=True, required=False)
    has_bulk_pricing = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku', 'price', 'stock', 'min_order', 'image_url', 'status',
            'is_featured', 'is_active', 'tags', 'category', 'category_name',
            'collection', 'collection_name', 'variant_count', 'has_bulk_pricing', 'created_at',
        ]

    def get_has_bulk_pricing(self, obj):
        # Uses prefetched tiers when the view prefetches them
        return len(obj.bulk_pricing.all()) > 0


class ProductSerializer(serializers.ModelSerializer):
    """Full product representation with variants and bulk tiers"""
    variants = ProductVariantSerializer(many=True, read_only=True)
    bulk_pricing = serializers.SerializerMethodField()
    category_name = serializers.CharField(source='category.name', read_only=True)
    collection_name = serializers.CharField(source='collection.name', read_only=True, default=None)
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku', 'description', 'category', 'category_name', 'collection',
            'collection_name', 'tags', 'price', 'stock', 'min_order', 'image_url', 'status',
            'is_featured', 'is_active', 'variants', 'bulk_pricing', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_bulk_pricing(self, obj):
        tiers = sorted(obj.bulk_pricing.all(), key=lambda tier: tier.min_quantity)
        return BulkPricingSerializer(tiers, many=True).data

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError('tags must be a list of strings')
        return [tag.strip() for tag in value if tag.strip()]

    def validate_sku(self, value):
        if not value:
            return value
        queryset = Product.objects.filter(sku=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A product with this SKU already exists')
        return value

    def validate_min_order(self, value):
        if value < 1:
            raise serializers.ValidationError('min_order must be at least 1')
        return value

    def create(self, validated_data):
        from .utils import generate_unique_sku
        if not validated_data.get('sku'):
            validated_data['sku'] = generate_unique_sku(validated_data.get('name'))
        return super().create(validated_data)

    def update(self, instance, validated_data):
        if 'sku' in validated_data and not validated_data['sku']:
            validated_data.pop('sku')
        return super().update(instance, validated_data)
