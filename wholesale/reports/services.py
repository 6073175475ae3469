"""
Inventory and sales reports
"""
import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Exists, OuterRef, Prefetch, Sum
from django.utils import timezone

from wholesale.catalog.models import Product, ProductVariant
from wholesale.core.cache_utils import cached_query, REPORTS_PREFIX, REPORTS_CACHE_TTL
from wholesale.orders.models import Order, OrderItem

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 10
DEFAULT_TURNOVER_DAYS = 30
TWO_PLACES = Decimal('0.01')


def money(value):
    return str(Decimal(value or 0).quantize(TWO_PLACES))


def low_stock_report(threshold=None):
    """
    Products and variants with stock at or below threshold, grouped per product.

    A product is listed when its own stock is low (products without active
    variants) or when at least one of its active variants is low.
    """
    if threshold is None:
        threshold = settings.WHOLESALE_LOW_STOCK_THRESHOLD

    low_variants = ProductVariant.objects.filter(is_active=True, stock__lte=threshold).order_by('stock', 'id')
    products_with_low_variants = Product.objects.filter(
        is_active=True, variants__in=low_variants
    ).distinct().prefetch_related(Prefetch('variants', queryset=low_variants, to_attr='low_variants'))
    active_variants = ProductVariant.objects.filter(product=OuterRef('pk'), is_active=True)
    simple_low = Product.objects.filter(
        ~Exists(active_variants), is_active=True, stock__lte=threshold
    ).prefetch_related(
        Prefetch('variants', queryset=low_variants, to_attr='low_variants')
    )

    grouped = OrderedDict()
    for product in list(simple_low.select_related('category')) + list(products_with_low_variants.select_related('category')):
        if product.id in grouped:
            continue
        grouped[product.id] = {
            'product_id': product.id,
            'name': product.name,
            'sku': product.sku,
            'category': product.category.name,
            'stock': product.stock,
            'variants': [
                {'variant_id': v.id, 'name': v.display_name(), 'sku': v.sku, 'stock': v.stock}
                for v in product.low_variants
            ],
        }

    items = sorted(grouped.values(), key=lambda item: (item['stock'], item['product_id']))
    return {
        'threshold': threshold,
        'count': len(items),
        'variant_count': sum(len(item['variants']) for item in items),
        'items': items,
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix=REPORTS_PREFIX)
def inventory_valuation():
    """
    Stock value at list price, with a per-category breakdown.

    Products with variants are valued from their variants; other products
    from their own price and stock.
    """
    products = Product.objects.filter(is_active=True).select_related('category').prefetch_related('variants')

    total_value = Decimal('0.00')
    total_units = 0
    categories = OrderedDict()
    for product in products:
        variants = [v for v in product.variants.all() if v.is_active]
        if variants:
            value = sum((v.price * v.stock for v in variants), Decimal('0.00'))
            units = sum(v.stock for v in variants)
        else:
            value = product.price * product.stock
            units = product.stock

        total_value += value
        total_units += units
        bucket = categories.setdefault(product.category_id, {
            'category_id': product.category_id,
            'category': product.category.name,
            'product_count': 0,
            'total_units': 0,
            'total_value': Decimal('0.00'),
        })
        bucket['product_count'] += 1
        bucket['total_units'] += units
        bucket['total_value'] += value

    breakdown = sorted(categories.values(), key=lambda c: c['total_value'], reverse=True)
    for bucket in breakdown:
        bucket['total_value'] = money(bucket['total_value'])

    return {
        'total_value': money(total_value),
        'product_count': len(products),
        'total_units': total_units,
        'categories': breakdown,
    }


def inventory_turnover(date_from=None, date_to=None):
    """
    Units sold per product over fulfilled orders in a date range.

    Returns the top sellers with turnover_rate = units sold / current stock
    (the units sold themselves when stock is zero).
    """
    today = timezone.now().date()
    date_to = date_to or today
    date_from = date_from or (date_to - timedelta(days=DEFAULT_TURNOVER_DAYS))

    sold = OrderItem.objects.filter(
        order__status__in=Order.FULFILLED_STATUSES,
        order__created_at__date__gte=date_from,
        order__created_at__date__lte=date_to,
    ).values('product_id').annotate(
        units_sold=Sum('quantity'),
        order_count=Count('order', distinct=True),
        revenue=Sum('total_price'),
    ).order_by('-units_sold', 'product_id')[:TOP_PRODUCTS_LIMIT]

    sold = list(sold)
    products = Product.objects.in_bulk([row['product_id'] for row in sold])
    items = []
    for row in sold:
        product = products.get(row['product_id'])
        if product is None:
            continue
        units_sold = row['units_sold'] or 0
        if product.stock:
            rate = (Decimal(units_sold) / Decimal(product.stock)).quantize(TWO_PLACES)
        else:
            rate = Decimal(units_sold).quantize(TWO_PLACES)
        items.append({
            'product_id': product.id,
            'name': product.name,
            'sku': product.sku,
            'units_sold': units_sold,
            'order_count': row['order_count'],
            'revenue': money(row['revenue']),
            'current_stock': product.stock,
            'turnover_rate': str(rate),
        })

    return {
        'date_from': date_from.isoformat(),
        'date_to': date_to.isoformat(),
        'items': items,
    }


def _summary_figures(count, revenue):
    count = count or 0
    revenue = revenue or Decimal('0.00')
    return {
        'order_count': count,
        'revenue': money(revenue),
        'average_order_value': money(revenue / count) if count else money(0),
    }


def sales_summary(date_from=None, date_to=None):
    """
    Order count, revenue and average order value per status.

    `fulfilled` totals PROCESSING, SHIPPED and DELIVERED orders; `order_count`
    counts every order in the range.
    """
    orders = Order.objects.all()
    if date_from:
        orders = orders.filter(created_at__date__gte=date_from)
    if date_to:
        orders = orders.filter(created_at__date__lte=date_to)

    by_status = {
        row['status']: _summary_figures(row['count'], row['revenue'])
        for row in orders.values('status').annotate(count=Count('id'), revenue=Sum('total')).order_by('status')
    }
    fulfilled = orders.filter(status__in=Order.FULFILLED_STATUSES).aggregate(
        count=Count('id'), revenue=Sum('total')
    )
    return {
        'order_count': sum(figures['order_count'] for figures in by_status.values()),
        'fulfilled': _summary_figures(fulfilled['count'], fulfilled['revenue']),
        'by_status': by_status,
    }
