"""
Supplier purchase orders and goods receipt
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from wholesale.core.exceptions import InvalidOperationError
from wholesale.core.utils import generate_reference
from wholesale.inventory.services import restock
from .models import SupplierOrder, SupplierOrderItem

logger = logging.getLogger(__name__)


def _create_items(order, items):
    for item in items:
        product = item.get('product')
        variant = item.get('variant')
        if variant is not None and product is None:
            product = variant.product
        if variant is not None and variant.product_id != product.id:
            raise InvalidOperationError('Variant does not belong to the given product')
        name = item.get('product_name') or (variant.display_name() if variant else product.name if product else '')
        if not name:
            raise InvalidOperationError('Each item needs a product or a product_name')
        SupplierOrderItem.objects.create(
            order=order,
            product=product,
            variant=variant,
            product_name=name,
            quantity=item['quantity'],
            unit_price=item['unit_price'],
            notes=item.get('notes', ''),
        )


def _refresh_total(order):
    # aggregate, not order.items.all(): the caller may hold a stale prefetch
    order.total_amount = order.items.aggregate(total=Sum('total_price'))['total'] or Decimal('0.00')
    order.save(update_fields=['total_amount', 'updated_at'])


@transaction.atomic
def create_supplier_order(supplier, items, user=None, **fields):
    if not items:
        raise InvalidOperationError('Supplier order must contain at least one item')
    order = SupplierOrder.objects.create(
        order_number=generate_reference('SO'),
        supplier=supplier,
        created_by=user if user is not None and user.is_authenticated else None,
        **fields,
    )
    _create_items(order, items)
    _refresh_total(order)
    logger.info(f"Supplier order {order.order_number} created for {supplier.name}: total {order.total_amount}")
    return order


@transaction.atomic
def update_supplier_order(order, items=None, **fields):
    """Update header fields; a given item list replaces the existing items"""
    if order.status in ('DELIVERED', 'CANCELLED'):
        raise InvalidOperationError(f'Supplier order is {order.status.lower()} and cannot be changed')
    if fields.get('status') == 'DELIVERED':
        raise InvalidOperationError('Use the receive action to mark an order delivered')
    for field, value in fields.items():
        setattr(order, field, value)
    order.save()
    if items is not None:
        if not items:
            raise InvalidOperationError('Supplier order must contain at least one item')
        order.items.all().delete()
        _create_items(order, items)
    _refresh_total(order)
    return order


def delete_supplier_order(order):
    if order.status != 'PENDING':
        raise InvalidOperationError('Only pending supplier orders can be deleted')
    logger.info(f"Supplier order {order.order_number} deleted")
    order.delete()


@transaction.atomic
def receive_supplier_order(order, user=None):
    """
    Mark an order delivered and put its quantities into stock.

    Items without a linked product are recorded but not stocked. An order can
    be received only once.
    """
    order = SupplierOrder.objects.select_for_update().get(pk=order.pk)
    if order.status == 'DELIVERED':
        raise InvalidOperationError('Supplier order has already been received')
    if order.status == 'CANCELLED':
        raise InvalidOperationError('Cancelled supplier orders cannot be received')

    lines = [
        {'product': item.product, 'variant': item.variant, 'quantity': item.quantity}
        for item in order.items.select_related('product', 'variant')
        if item.product is not None
    ]
    if lines:
        restock(lines, reference=order.order_number, user=user, reason='supplier_receipt')

    order.status = 'DELIVERED'
    order.delivered_at = timezone.now()
    order.save(update_fields=['status', 'delivered_at', 'updated_at'])
    received_units = sum(line['quantity'] for line in lines)
    logger.info(f"Supplier order {order.order_number} received: {received_units} unit(s) restocked")
    return order, received_units
