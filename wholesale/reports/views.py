import logging
from datetime import datetime

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from django.conf import settings

from wholesale.core.utils import api_response, api_error
from . import services

logger = logging.getLogger(__name__)


def _parse_date(value):
    if not value:
        return None
    return datetime.strptime(value, '%Y-%m-%d').date()


def _date_range(request):
    return (
        _parse_date(request.query_params.get('date_from')),
        _parse_date(request.query_params.get('date_to')),
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def low_stock_report(request):
    """Products and variants at or below the low-stock threshold"""
    try:
        threshold = int(request.query_params.get('threshold', settings.WHOLESALE_LOW_STOCK_THRESHOLD))
    except (TypeError, ValueError):
        return api_error('threshold must be an integer')
    return api_response(services.low_stock_report(threshold))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def inventory_valuation(request):
    """Inventory value at list price with category breakdown"""
    return api_response(services.inventory_valuation())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def inventory_turnover(request):
    """Top sellers and turnover rate over a date range (default last 30 days)"""
    try:
        date_from, date_to = _date_range(request)
    except ValueError:
        return api_error('Dates must use YYYY-MM-DD')
    if date_from and date_to and date_from > date_to:
        return api_error('date_from must be before date_to')
    return api_response(services.inventory_turnover(date_from, date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def sales_summary(request):
    """Order counts and revenue"""
    try:
        date_from, date_to = _date_range(request)
    except ValueError:
        return api_error('Dates must use YYYY-MM-DD')
    return api_response(services.sales_summary(date_from, date_to))
