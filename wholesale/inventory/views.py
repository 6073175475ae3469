import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from django.conf import settings
from django.shortcuts import get_object_or_404

from wholesale.catalog.models import Product, ProductVariant
from wholesale.core.utils import api_response, api_error, create_audit_log, paginate_queryset
from wholesale.reports.services import low_stock_report
from .models import StockAdjustment
from .serializers import StockAdjustmentSerializer, StockSetSerializer
from . import services

logger = logging.getLogger(__name__)


def _set_stock(request, product, variant=None):
    serializer = StockSetSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid stock update', data=serializer.errors)
    data = serializer.validated_data
    adjustment = services.set_stock(
        product, data['stock'], variant=variant, user=request.user,
        reason=data['reason'], notes=data['notes'],
    )
    target = variant or product
    create_audit_log(
        request=request, action='stock_adjust', model_name=type(target).__name__,
        object_id=target.id, object_name=str(target), sku=target.sku,
        changes={'stock': {'old': adjustment.previous_stock, 'new': adjustment.new_stock}, 'reason': data['reason']}
    )
    return api_response({
        'product_id': product.id,
        'variant_id': variant.id if variant else None,
        'previous_stock': adjustment.previous_stock,
        'stock': adjustment.new_stock,
        'adjustment_id': adjustment.id,
    }, 'Stock updated')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def product_stock_update(request, pk):
    """Set the absolute stock of a product"""
    product = get_object_or_404(Product, pk=pk)
    return _set_stock(request, product)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def variant_stock_update(request, pk):
    """Set the absolute stock of a variant"""
    variant = get_object_or_404(ProductVariant.objects.select_related('product'), pk=pk)
    return _set_stock(request, variant.product, variant)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def stock_adjustment_list(request):
    """List stock movements, filterable by product, variant, reason and type"""
    queryset = StockAdjustment.objects.select_related('product', 'variant', 'created_by')

    product_id = request.query_params.get('product')
    if product_id:
        queryset = queryset.filter(product_id=product_id)
    variant_id = request.query_params.get('variant')
    if variant_id:
        queryset = queryset.filter(variant_id=variant_id)
    reason = request.query_params.get('reason')
    if reason:
        queryset = queryset.filter(reason=reason)
    adjustment_type = request.query_params.get('type')
    if adjustment_type:
        queryset = queryset.filter(adjustment_type=adjustment_type)

    return api_response(paginate_queryset(request, queryset.order_by('-created_at', '-id'), StockAdjustmentSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def low_stock(request):
    """Products and variants at or below the low-stock threshold"""
    try:
        threshold = int(request.query_params.get('threshold', settings.WHOLESALE_LOW_STOCK_THRESHOLD))
    except (TypeError, ValueError):
        return api_error('threshold must be an integer')
    return api_response(low_stock_report(threshold))
