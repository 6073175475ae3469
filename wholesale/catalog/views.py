import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated, IsAdminUser
from django.core.cache import cache
from django.db import transaction
from django.db.models import Count, Q, Prefetch, ProtectedError
from django.shortcuts import get_object_or_404

from wholesale.core.cache_utils import (
    make_cache_key, PRODUCTS_LIST_PREFIX, PRODUCTS_LIST_CACHE_TTL,
    CATEGORIES_PREFIX, CATEGORIES_CACHE_TTL,
)
from wholesale.core.permissions import IsAdminOrReadOnly
from wholesale.core.utils import api_response, api_error, create_audit_log, paginate_queryset
from wholesale.pricing.models import BulkPricing
from wholesale.pricing.serializers import PriceQuoteSerializer, BulkPricingSerializer
from wholesale.pricing.services import resolve_unit_price
from .filters import ProductFilter
from .models import Category, Collection, Product, ProductVariant
from .serializers import (
    CategorySerializer, CollectionSerializer, ProductSerializer, ProductListSerializer,
    ProductVariantSerializer, VariantSyncItemSerializer,
)
from . import services

logger = logging.getLogger(__name__)

RELATED_PRODUCTS_LIMIT = 4
HOMEPAGE_LIMIT = 8


def is_admin(request):
    return bool(request.user and request.user.is_authenticated and request.user.is_staff)


def storefront_products():
    """Products visible to customers"""
    return Product.objects.filter(is_active=True, status='PUBLISHED')


def product_queryset(request):
    """Product queryset for the caller: admins see everything"""
    queryset = Product.objects.all() if is_admin(request) else storefront_products()
    return queryset.select_related('category', 'collection').prefetch_related(
        Prefetch('bulk_pricing', queryset=BulkPricing.objects.order_by('min_quantity'))
    )


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def category_list_create(request):
    """List categories with product counts or create a new category"""
    if request.method == 'GET':
        cache_key = make_cache_key(CATEGORIES_PREFIX, admin=is_admin(request))
        cached = cache.get(cache_key)
        if cached is not None:
            return api_response(cached)

        categories = Category.objects.all()
        if is_admin(request):
            categories = categories.annotate(product_count=Count('products'))
        else:
            categories = categories.filter(is_active=True).annotate(
                product_count=Count('products', filter=Q(products__is_active=True, products__status='PUBLISHED'))
            )
        data = CategorySerializer(categories, many=True).data
        cache.set(cache_key, data, CATEGORIES_CACHE_TTL)
        return api_response(data)
    else:  # POST
        serializer = CategorySerializer(data=request.data)
        if serializer.is_valid():
            category = serializer.save()
            create_audit_log(request=request, action='create', model_name='Category',
                             object_id=category.id, object_name=category.name)
            return api_response(serializer.data, 'Category created', status.HTTP_201_CREATED)
        return api_error('Invalid category', data=serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        return api_response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return api_response(serializer.data, 'Category updated')
        return api_error('Invalid category', data=serializer.errors)
    else:  # DELETE
        if category.products.exists():
            return api_error('Category still has products', status.HTTP_409_CONFLICT)
        create_audit_log(request=request, action='delete', model_name='Category',
                         object_id=category.id, object_name=category.name)
        category.delete()
        return api_response(None, 'Category deleted')


# Collection views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def collection_list_create(request):
    """List collections (active only for customers) or create one"""
    if request.method == 'GET':
        collections = Collection.objects.all()
        if not is_admin(request) or request.query_params.get('active') == 'true':
            collections = collections.filter(is_active=True)
        collections = collections.annotate(
            product_count=Count('products', filter=Q(products__is_active=True, products__status='PUBLISHED'))
        )
        return api_response(CollectionSerializer(collections, many=True).data)
    else:  # POST
        serializer = CollectionSerializer(data=request.data)
        if serializer.is_valid():
            collection = serializer.save()
            create_audit_log(request=request, action='create', model_name='Collection',
                             object_id=collection.id, object_name=collection.name)
            return api_response(serializer.data, 'Collection created', status.HTTP_201_CREATED)
        return api_error('Invalid collection', data=serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def collection_detail(request, pk):
    """Retrieve, update or delete a collection"""
    collection = get_object_or_404(Collection, pk=pk)
    if request.method == 'GET':
        if not collection.is_active and not is_admin(request):
            return api_error('Collection not found', status.HTTP_404_NOT_FOUND)
        return api_response(CollectionSerializer(collection).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CollectionSerializer(collection, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return api_response(serializer.data, 'Collection updated')
        return api_error('Invalid collection', data=serializer.errors)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Collection',
                         object_id=collection.id, object_name=collection.name)
        collection.delete()
        return api_response(None, 'Collection deleted')


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def collection_products(request, pk):
    """List a collection's products or add a product to it"""
    collection = get_object_or_404(Collection, pk=pk)
    if request.method == 'GET':
        products = product_queryset(request).filter(collection=collection)
        return api_response(paginate_queryset(request, products, ProductListSerializer))

    product_id = request.data.get('product_id') or request.data.get('product')
    if not product_id:
        return api_error('product_id is required')
    product = get_object_or_404(Product, pk=product_id)
    product.collection = collection
    product.save(update_fields=['collection', 'updated_at'])
    return api_response(ProductListSerializer(product).data, 'Product added to collection')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def collection_product_remove(request, pk, product_id):
    """Remove a product from a collection"""
    product = get_object_or_404(Product, pk=product_id, collection_id=pk)
    product.collection = None
    product.save(update_fields=['collection', 'updated_at'])
    return api_response(None, 'Product removed from collection')


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def product_list_create(request):
    """List products with filters/sorting/pagination or create a new product

    Query params: search, category, collection, featured, min_price, max_price,
    in_stock, sort (price_asc|price_desc|name_asc|name_desc|newest), page, limit.
    Customer-facing results are cached per query string.
    """
    if request.method == 'GET':
        admin = is_admin(request)
        cache_key = None
        if not admin:
            cache_key = make_cache_key(PRODUCTS_LIST_PREFIX, sorted(request.query_params.lists()))
            cached = cache.get(cache_key)
            if cached is not None:
                return api_response(cached)

        queryset = product_queryset(request).annotate(variant_count=Count('variants', distinct=True))
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return api_error('Invalid filters', data=filterset.errors)
        data = paginate_queryset(request, filterset.qs, ProductListSerializer)

        if cache_key:
            cache.set(cache_key, data, PRODUCTS_LIST_CACHE_TTL)
        return api_response(data)
    else:  # POST
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='Product', object_id=product.id,
                object_name=product.name, object_reference=product.sku, sku=product.sku,
                changes={'price': str(product.price), 'stock': product.stock}
            )
            logger.info(f"Product created: {product.sku}")
            return api_response(ProductSerializer(product).data, 'Product created', status.HTTP_201_CREATED)
        return api_error('Invalid product', data=serializer.errors)


@api_view(['GET'])
@permission_classes([AllowAny])
def featured_products(request):
    """Featured products for the storefront"""
    products = storefront_products().filter(is_featured=True).select_related('category', 'collection') \
        .prefetch_related('bulk_pricing').order_by('-updated_at')[:HOMEPAGE_LIMIT]
    return api_response(ProductListSerializer(products, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def new_arrivals(request):
    """Most recently added products"""
    products = storefront_products().select_related('category', 'collection') \
        .prefetch_related('bulk_pricing').order_by('-created_at')[:HOMEPAGE_LIMIT]
    return api_response(ProductListSerializer(products, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def related_products(request, pk):
    """Other products from the same category"""
    product = get_object_or_404(storefront_products(), pk=pk)
    products = storefront_products().filter(category_id=product.category_id).exclude(pk=product.pk) \
        .select_related('category', 'collection').prefetch_related('bulk_pricing')[:RELATED_PRODUCTS_LIMIT]
    return api_response(ProductListSerializer(products, many=True).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(product_queryset(request).prefetch_related('variants'), pk=pk)

    if request.method == 'GET':
        data = ProductSerializer(product).data
        if not is_admin(request):
            data['variants'] = [v for v in data['variants'] if v['is_active']]
        return api_response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            tracked = ('name', 'sku', 'price', 'status', 'is_active', 'min_order')
            old_data = {k: str(getattr(product, k)) for k in tracked}
            serializer.save()
            if product.variants.exists():
                # stock of a product with variants follows its variants
                product.stock = services.refresh_product_stock(product.id)
            new_data = {k: str(getattr(product, k)) for k in tracked}
            changes = {k: {'old': old_data[k], 'new': new_data[k]} for k in tracked if old_data[k] != new_data[k]}
            if changes:
                create_audit_log(
                    request=request, action='price_change' if 'price' in changes else 'update',
                    model_name='Product', object_id=product.id, object_name=product.name,
                    object_reference=product.sku, sku=product.sku, changes=changes
                )
            return api_response(serializer.data, 'Product updated')
        return api_error('Invalid product', data=serializer.errors)
    else:  # DELETE
        product_id, product_name, product_sku = product.id, product.name, product.sku
        try:
            product.delete()
        except ProtectedError:
            return api_error('Product has orders and cannot be deleted; archive it instead', status.HTTP_409_CONFLICT)
        create_audit_log(
            request=request, action='delete', model_name='Product', object_id=product_id,
            object_name=product_name, object_reference=product_sku, sku=product_sku,
        )
        return api_response(None, 'Product deleted')


@api_view(['GET'])
@permission_classes([AllowAny])
def product_price(request, pk):
    """Unit and total price of a product at a quantity (?quantity=N)"""
    product = get_object_or_404(product_queryset(request), pk=pk)
    serializer = PriceQuoteSerializer(data=request.query_params)
    if not serializer.is_valid():
        return api_error('Invalid quantity', data=serializer.errors)
    quantity = serializer.validated_data['quantity']

    variant = None
    variant_id = request.query_params.get('variant')
    if variant_id:
        variant = get_object_or_404(ProductVariant, pk=variant_id, product=product)

    unit_price, tier = resolve_unit_price(product, variant, quantity, tiers=list(product.bulk_pricing.all()))
    return api_response({
        'product_id': product.id,
        'variant_id': variant.id if variant else None,
        'quantity': quantity,
        'base_price': str(variant.price if variant else product.price),
        'unit_price': str(unit_price),
        'total_price': str(unit_price * quantity),
        'tier': BulkPricingSerializer(tier).data if tier else None,
    })


# Variant views
@api_view(['GET', 'POST', 'PUT'])
@permission_classes([IsAdminOrReadOnly])
def product_variants(request, pk):
    """List variants, create one (POST) or replace the whole set (PUT)"""
    product = get_object_or_404(product_queryset(request), pk=pk)

    if request.method == 'GET':
        variants = services.get_variants_for_product(product.id)
        if not is_admin(request):
            variants = [v for v in variants if v.is_active]
        return api_response(ProductVariantSerializer(variants, many=True).data)
    elif request.method == 'POST':
        serializer = ProductVariantSerializer(data=request.data)
        if not serializer.is_valid():
            return api_error('Invalid variant', data=serializer.errors)
        variant = services.create_variant(product, serializer.validated_data)
        create_audit_log(request=request, action='create', model_name='ProductVariant',
                         object_id=variant.id, object_name=variant.name, sku=variant.sku,
                         object_reference=product.sku)
        return api_response(ProductVariantSerializer(variant).data, 'Variant created', status.HTTP_201_CREATED)
    else:  # PUT
        items = request.data.get('variants') if isinstance(request.data, dict) else request.data
        serializer = VariantSyncItemSerializer(data=items or [], many=True)
        if not serializer.is_valid():
            return api_error('Invalid variants', data=serializer.errors)
        variants = services.sync_product_variants(product, serializer.validated_data)
        create_audit_log(request=request, action='update', model_name='ProductVariant',
                         object_id=product.id, object_name=product.name, object_reference=product.sku,
                         changes={'variant_skus': [v.sku for v in variants]})
        return api_response(ProductVariantSerializer(variants, many=True).data, 'Variants updated')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def variant_detail(request, pk):
    """Retrieve, update or delete a product variant"""
    variant = services.get_variant(pk)
    if variant is None or (not is_admin(request) and not variant.is_active):
        return api_error('Variant not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return api_response(ProductVariantSerializer(variant).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductVariantSerializer(variant, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return api_error('Invalid variant', data=serializer.errors)
        with transaction.atomic():
            services.update_variant(variant, serializer.validated_data)
        return api_response(ProductVariantSerializer(variant).data, 'Variant updated')
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='ProductVariant',
                         object_id=variant.id, object_name=variant.name, sku=variant.sku)
        services.delete_variant(variant)
        return api_response(None, 'Variant deleted')
