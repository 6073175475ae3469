"""
Stock accounting for products and variants

A line is a dict with `product`, optional `variant` and `quantity`. Products
with variants keep an aggregate stock on the product row equal to the sum of
their variants' stock; variant writes recompute it.
"""
import logging
from collections import OrderedDict

from django.db import transaction
from django.db.models import F

from wholesale.catalog.models import Product, ProductVariant
from wholesale.catalog.services import refresh_product_stock
from wholesale.core.cache_signals import invalidate_products_cache_manual
from wholesale.core.exceptions import InsufficientStockError, InvalidOperationError
from .models import StockAdjustment

logger = logging.getLogger(__name__)


def line_name(product, variant=None):
    """Display name of a line: 'Product' or 'Product (attr values)'"""
    if variant is not None:
        return variant.display_name()
    return product.name


def merge_lines(lines):
    """Combine lines that target the same product/variant"""
    merged = OrderedDict()
    for line in lines:
        variant = line.get('variant')
        key = (line['product'].pk, variant.pk if variant is not None else None)
        if key in merged:
            merged[key]['quantity'] += int(line['quantity'])
        else:
            merged[key] = {'product': line['product'], 'variant': variant, 'quantity': int(line['quantity'])}
    return list(merged.values())


def validate_stock_availability(lines):
    """
    Return the lines whose requested quantity exceeds current stock.

    Each shortfall is {product_id, variant_id, name, available, requested}.
    An empty list means every line can be fulfilled.
    """
    lines = merge_lines(lines)
    product_ids = {line['product'].pk for line in lines}
    variant_ids = {line['variant'].pk for line in lines if line['variant'] is not None}
    product_stock = dict(Product.objects.filter(pk__in=product_ids).values_list('id', 'stock'))
    variant_stock = dict(ProductVariant.objects.filter(pk__in=variant_ids).values_list('id', 'stock'))

    shortfalls = []
    for line in lines:
        product, variant, requested = line['product'], line['variant'], line['quantity']
        if variant is not None:
            available = variant_stock.get(variant.pk, 0)
        else:
            available = product_stock.get(product.pk, 0)
        if available < requested:
            shortfalls.append({
                'product_id': product.pk,
                'variant_id': variant.pk if variant is not None else None,
                'name': line_name(product, variant),
                'available': available,
                'requested': requested,
            })
    return shortfalls


def _record(product, variant, adjustment_type, quantity, new_stock, reason, reference='', user=None, notes=''):
    if adjustment_type == 'out':
        previous = new_stock + quantity
    elif adjustment_type == 'in':
        previous = new_stock - quantity
    else:
        previous = None
    return StockAdjustment.objects.create(
        product=product,
        variant=variant,
        adjustment_type=adjustment_type,
        quantity=quantity,
        previous_stock=previous,
        new_stock=new_stock,
        reason=reason,
        reference=reference,
        notes=notes,
        created_by=user if user is not None and user.is_authenticated else None,
    )


@transaction.atomic
def decrement_stock(lines, reference='', user=None, reason='sale'):
    """
    Remove ordered quantities from stock.

    Variant lines decrement the variant (refusing to go negative) and then
    recompute the product aggregate. Plain lines decrement the product,
    refusing to go negative. Any shortfall raises InsufficientStockError and
    the whole decrement rolls back.
    """
    lines = merge_lines(lines)
    shortfalls = []

    for line in lines:
        product, variant, quantity = line['product'], line['variant'], line['quantity']
        if quantity < 1:
            raise InvalidOperationError('Quantity must be at least 1')

        if variant is not None:
            updated = ProductVariant.objects.filter(pk=variant.pk, stock__gte=quantity).update(
                stock=F('stock') - quantity
            )
            if not updated:
                shortfalls.append(_shortfall(product, variant, quantity))
                continue
            refresh_product_stock(product.pk)
            new_stock = ProductVariant.objects.values_list('stock', flat=True).get(pk=variant.pk)
        else:
            updated = Product.objects.filter(pk=product.pk, stock__gte=quantity).update(
                stock=F('stock') - quantity
            )
            if not updated:
                shortfalls.append(_shortfall(product, None, quantity))
                continue
            new_stock = Product.objects.values_list('stock', flat=True).get(pk=product.pk)

        _record(product, variant, 'out', quantity, new_stock, reason, reference, user)

    if shortfalls:
        logger.warning(f"Insufficient stock for {reference or 'request'}: {shortfalls}")
        raise InsufficientStockError(shortfalls)

    invalidate_products_cache_manual()
    logger.info(f"Stock decremented for {reference or 'request'}: {len(lines)} line(s)")


def _shortfall(product, variant, requested):
    if variant is not None:
        available = ProductVariant.objects.values_list('stock', flat=True).get(pk=variant.pk)
    else:
        available = Product.objects.values_list('stock', flat=True).get(pk=product.pk)
    return {
        'product_id': product.pk,
        'variant_id': variant.pk if variant is not None else None,
        'name': line_name(product, variant),
        'available': available,
        'requested': requested,
    }


@transaction.atomic
def restock(lines, reference='', user=None, reason='cancellation'):
    """Put quantities back into stock (order cancellation, supplier receipt)"""
    lines = merge_lines(lines)
    for line in lines:
        product, variant, quantity = line['product'], line['variant'], line['quantity']
        if variant is not None:
            ProductVariant.objects.filter(pk=variant.pk).update(stock=F('stock') + quantity)
            refresh_product_stock(product.pk)
            new_stock = ProductVariant.objects.values_list('stock', flat=True).get(pk=variant.pk)
        else:
            Product.objects.filter(pk=product.pk).update(stock=F('stock') + quantity)
            new_stock = Product.objects.values_list('stock', flat=True).get(pk=product.pk)
        _record(product, variant, 'in', quantity, new_stock, reason, reference, user)

    invalidate_products_cache_manual()
    logger.info(f"Restocked {len(lines)} line(s) for {reference or 'request'}")


def parse_stock_value(value):
    """Validate an absolute stock value: a non-negative integer"""
    if isinstance(value, bool):
        raise InvalidOperationError('Stock must be an integer')
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().lstrip('-').isdigit():
        number = int(value.strip())
    else:
        raise InvalidOperationError('Stock must be an integer')
    if number < 0:
        raise InvalidOperationError('Stock cannot be negative')
    return number


@transaction.atomic
def set_stock(product, value, variant=None, user=None, reason='correction', notes=''):
    """
    Set an absolute stock value on a product or variant.

    Setting a variant recomputes the product aggregate. A product with
    variants has no stock of its own to set.
    """
    value = parse_stock_value(value)

    if variant is not None:
        variant = ProductVariant.objects.select_for_update().get(pk=variant.pk)
        previous = variant.stock
        variant.stock = value
        variant.save(update_fields=['stock', 'updated_at'])
        refresh_product_stock(product.pk)
    else:
        if ProductVariant.objects.filter(product_id=product.pk).exists():
            raise InvalidOperationError('Stock of a product with variants is set per variant')
        product = Product.objects.select_for_update().get(pk=product.pk)
        previous = product.stock
        product.stock = value
        product.save(update_fields=['stock', 'updated_at'])

    adjustment = StockAdjustment.objects.create(
        product=product,
        variant=variant,
        adjustment_type='set',
        quantity=value - previous,
        previous_stock=previous,
        new_stock=value,
        reason=reason,
        notes=notes,
        created_by=user if user is not None and user.is_authenticated else None,
    )
    logger.info(
        f"Stock set for {variant.sku if variant else product.sku}: {previous} -> {value} ({reason})"
    )
    return adjustment
