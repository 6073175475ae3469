import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from django.shortcuts import get_object_or_404

from wholesale.catalog.models import Product
from wholesale.core.utils import api_response, api_error, create_audit_log
from .models import BulkPricing
from .serializers import (
    BulkPricingSerializer, BulkPricingTierInputSerializer, BulkPricingReplaceSerializer,
)
from . import services

logger = logging.getLogger(__name__)


@api_view(['GET', 'PUT', 'POST'])
@permission_classes([AllowAny])
def product_bulk_pricing(request, pk):
    """List a product's tiers, replace them all (PUT) or add one (POST)"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        tiers = services.get_tiers_for_product(product.id)
        return api_response(BulkPricingSerializer(tiers, many=True).data)

    if not (request.user and request.user.is_authenticated and request.user.is_staff):
        return api_error('Admin access required', status.HTTP_403_FORBIDDEN)

    if request.method == 'PUT':
        payload = request.data if isinstance(request.data, dict) else {'tiers': request.data}
        serializer = BulkPricingReplaceSerializer(data=payload)
        if not serializer.is_valid():
            return api_error('Invalid bulk pricing tiers', data=serializer.errors)
        tiers = services.replace_product_tiers(product, serializer.validated_data['tiers'])
        create_audit_log(
            request=request, action='price_change', model_name='BulkPricing',
            object_id=product.id, object_name=product.name, sku=product.sku,
            changes={'tiers': [{'min_quantity': t.min_quantity, 'price': str(t.price)} for t in tiers]}
        )
        return api_response(BulkPricingSerializer(tiers, many=True).data, 'Bulk pricing updated')

    # POST
    serializer = BulkPricingTierInputSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid bulk pricing tier', data=serializer.errors)
    tier = services.add_tier(product, **serializer.validated_data)
    create_audit_log(
        request=request, action='price_change', model_name='BulkPricing',
        object_id=tier.id, object_name=product.name, sku=product.sku,
        changes={'min_quantity': tier.min_quantity, 'price': str(tier.price)}
    )
    return api_response(BulkPricingSerializer(tier).data, 'Bulk pricing tier added', status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def bulk_pricing_detail(request, pk):
    """Retrieve, update or delete a bulk pricing tier"""
    tier = get_object_or_404(BulkPricing.objects.select_related('product'), pk=pk)

    if request.method == 'GET':
        return api_response(BulkPricingSerializer(tier).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BulkPricingTierInputSerializer(data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return api_error('Invalid bulk pricing tier', data=serializer.errors)
        old = {'min_quantity': tier.min_quantity, 'price': str(tier.price)}
        services.update_tier(tier, **serializer.validated_data)
        create_audit_log(
            request=request, action='price_change', model_name='BulkPricing',
            object_id=tier.id, object_name=tier.product.name, sku=tier.product.sku,
            changes={'old': old, 'new': {'min_quantity': tier.min_quantity, 'price': str(tier.price)}}
        )
        return api_response(BulkPricingSerializer(tier).data, 'Bulk pricing tier updated')
    else:  # DELETE
        create_audit_log(
            request=request, action='delete', model_name='BulkPricing',
            object_id=tier.id, object_name=tier.product.name, sku=tier.product.sku
        )
        services.delete_tier(tier)
        return api_response(None, 'Bulk pricing tier deleted')
