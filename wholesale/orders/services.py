"""
Cart management, order quoting, placement and cancellation
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from wholesale.core.utils import generate_reference
from wholesale.core.exceptions import CustomerNotVerifiedError, InsufficientStockError, InvalidOperationError
from wholesale.inventory.services import decrement_stock, restock, validate_stock_availability, line_name
from wholesale.parties.models import Customer
from wholesale.parties.services import credit_is_usable
from wholesale.pricing.services import resolve_unit_price, get_tiers_for_product
from .models import Cart, CartItem, Order, OrderItem

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def quantize(value):
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# Cart operations

def get_cart(customer=None, session_key=None, create=True):
    """
    Cart of a customer, or the guest cart of a session key.

    Returns None when nothing identifies the cart, or when it does not exist
    and create is False.
    """
    if customer is not None:
        if create:
            cart, _ = Cart.objects.get_or_create(customer=customer)
            return cart
        return Cart.objects.filter(customer=customer).first()
    if session_key:
        if create:
            cart, _ = Cart.objects.get_or_create(session_key=session_key, defaults={'customer': None})
            return cart
        return Cart.objects.filter(session_key=session_key, customer__isnull=True).first()
    return None


def _check_line_target(product, variant):
    if variant is not None and variant.product_id != product.id:
        raise InvalidOperationError('Variant does not belong to this product')
    if not product.is_purchasable:
        raise InvalidOperationError(f'{product.name} is not available for purchase')
    if variant is not None and not variant.is_active:
        raise InvalidOperationError(f'{variant.display_name()} is not available for purchase')
    # products with variants are sold per variant only
    if variant is None and product.variants.exists():
        raise InvalidOperationError(f'Choose a variant of {product.name}')


@transaction.atomic
def add_to_cart(cart, product, quantity, variant=None):
    """Add a line, or increase the quantity of the matching line"""
    quantity = int(quantity)
    if quantity < 1:
        raise InvalidOperationError('Quantity must be at least 1')
    _check_line_target(product, variant)

    item = CartItem.objects.select_for_update().filter(cart=cart, product=product, variant=variant).first()
    if item is not None:
        item.quantity = F('quantity') + quantity
        item.save(update_fields=['quantity', 'updated_at'])
        item.refresh_from_db()
    else:
        item = CartItem.objects.create(cart=cart, product=product, variant=variant, quantity=quantity)
    cart.save(update_fields=['updated_at'])
    return item


def update_cart_item(item, quantity):
    quantity = int(quantity)
    if quantity < 1:
        raise InvalidOperationError('Quantity must be at least 1')
    item.quantity = quantity
    item.save(update_fields=['quantity', 'updated_at'])
    return item


def remove_cart_item(item):
    item.delete()


def clear_cart(cart):
    cart.items.all().delete()


@transaction.atomic
def merge_guest_cart(customer, session_key):
    """Move the lines of a guest cart into the customer's cart and drop the guest cart"""
    guest = get_cart(session_key=session_key, create=False)
    cart = get_cart(customer=customer)
    if guest is None or guest.pk == cart.pk:
        return cart, 0

    merged = 0
    for item in guest.items.select_related('product', 'variant'):
        existing = CartItem.objects.filter(cart=cart, product=item.product, variant=item.variant).first()
        if existing is not None:
            existing.quantity += item.quantity
            existing.save(update_fields=['quantity', 'updated_at'])
        else:
            CartItem.objects.create(cart=cart, product=item.product, variant=item.variant, quantity=item.quantity)
        merged += 1
    guest.delete()
    logger.info(f"Merged guest cart {session_key} into cart of customer {customer.id}: {merged} line(s)")
    return cart, merged


def cart_lines(cart):
    return [
        {'product': item.product, 'variant': item.variant, 'quantity': item.quantity, 'item_id': item.id}
        for item in cart.items.select_related('product', 'variant').order_by('id')
    ]


# Quoting

def quote_lines(lines):
    """
    Price each line at its quantity.

    Returns (priced_lines, subtotal). Each priced line carries unit_price,
    total_price and the applied tier's min_quantity (or None).
    """
    tiers_by_product = {}
    priced = []
    subtotal = Decimal('0.00')
    for line in lines:
        product, variant, quantity = line['product'], line.get('variant'), int(line['quantity'])
        if product.id not in tiers_by_product:
            tiers_by_product[product.id] = get_tiers_for_product(product.id)
        unit_price, tier = resolve_unit_price(product, variant, quantity, tiers_by_product[product.id])
        total_price = quantize(unit_price * quantity)
        subtotal += total_price
        priced.append(dict(
            line,
            variant=variant,
            quantity=quantity,
            name=line_name(product, variant),
            unit_price=quantize(unit_price),
            total_price=total_price,
            tier_min_quantity=tier.min_quantity if tier else None,
        ))
    return priced, quantize(subtotal)


def compute_totals(subtotal, use_credit=False, available_credit=Decimal('0.00')):
    """
    Order totals for a subtotal.

    Tax is a flat rate on the subtotal; shipping is a flat fee, waived when the
    subtotal exceeds the free-shipping threshold. Credit covers at most the
    total.
    """
    subtotal = quantize(subtotal)
    tax = quantize(subtotal * Decimal(str(settings.WHOLESALE_TAX_RATE)))
    if subtotal > Decimal(str(settings.WHOLESALE_FREE_SHIPPING_THRESHOLD)) or subtotal == 0:
        shipping = Decimal('0.00')
    else:
        shipping = quantize(Decimal(str(settings.WHOLESALE_SHIPPING_FEE)))
    total = subtotal + tax + shipping
    credit_used = Decimal('0.00')
    if use_credit:
        credit_used = quantize(min(total, Decimal(available_credit)))
    return {
        'subtotal': subtotal,
        'tax': tax,
        'shipping': shipping,
        'credit_used': credit_used,
        'total': quantize(total),
        'amount_due': quantize(total - credit_used),
    }


# Orders

def validate_order_lines(lines):
    if not lines:
        raise InvalidOperationError('Order must contain at least one item')
    for line in lines:
        product, variant, quantity = line['product'], line.get('variant'), int(line['quantity'])
        _check_line_target(product, variant)
        if quantity < 1:
            raise InvalidOperationError('Quantity must be at least 1')
        if quantity < product.min_order:
            raise InvalidOperationError(
                f'Minimum order quantity for {product.name} is {product.min_order}'
            )


@transaction.atomic
def place_order(customer, lines, user=None, use_credit=False, payment_method=None,
                shipping_address=None, billing_address=None, notes=''):
    """
    Create an order from lines in one transaction.

    Lines are dicts with product, optional variant and quantity. Stock is
    validated and decremented; credit, when requested, is taken from the
    customer's available credit. Any failure rolls everything back.
    """
    if not customer.is_verified:
        raise CustomerNotVerifiedError()
    validate_order_lines(lines)

    shortfalls = validate_stock_availability(lines)
    if shortfalls:
        logger.warning(f"Order rejected for customer {customer.id}: insufficient stock {shortfalls}")
        raise InsufficientStockError(shortfalls)

    priced, subtotal = quote_lines(lines)
    customer = Customer.objects.select_for_update().get(pk=customer.pk)
    if use_credit and not credit_is_usable(customer):
        raise InvalidOperationError('No approved trade credit available')
    totals = compute_totals(subtotal, use_credit, customer.available_credit)

    if payment_method is None:
        payment_method = 'CREDIT' if totals['credit_used'] > 0 else 'INVOICE'

    order = Order.objects.create(
        order_number=generate_reference('ORD'),
        customer=customer,
        payment_method=payment_method,
        subtotal=totals['subtotal'],
        tax=totals['tax'],
        shipping=totals['shipping'],
        credit_used=totals['credit_used'],
        total=totals['total'],
        shipping_address=shipping_address or {},
        billing_address=billing_address or {},
        notes=notes or '',
        created_by=user if user is not None and user.is_authenticated else None,
    )
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product=line['product'],
            variant=line['variant'],
            product_name=line['product'].name,
            variant_name=line['variant'].name if line['variant'] is not None else '',
            sku=line['variant'].sku if line['variant'] is not None else line['product'].sku,
            quantity=line['quantity'],
            unit_price=line['unit_price'],
            total_price=line['total_price'],
        )
        for line in priced
    ])

    decrement_stock(lines, reference=order.order_number, user=user)

    if totals['credit_used'] > 0:
        customer.available_credit = F('available_credit') - totals['credit_used']
        customer.save(update_fields=['available_credit', 'updated_at'])

    if totals['credit_used'] >= totals['total']:
        order.payment_status = 'PAID'
        order.save(update_fields=['payment_status'])

    logger.info(
        f"Order {order.order_number} placed by customer {customer.id}: "
        f"{len(priced)} line(s), total {order.total}, credit {order.credit_used}"
    )
    return order


def order_lines(order):
    return [
        {'product': item.product, 'variant': item.variant, 'quantity': item.quantity}
        for item in order.items.select_related('product', 'variant')
    ]


@transaction.atomic
def cancel_order(order, user=None, reason=''):
    """Cancel a pending or processing order, restock its items and refund credit"""
    order = Order.objects.select_for_update().get(pk=order.pk)
    if order.status not in Order.CANCELLABLE_STATUSES:
        raise InvalidOperationError(f'Order cannot be cancelled in status {order.status}')

    restock(order_lines(order), reference=order.order_number, user=user, reason='cancellation')
    if order.credit_used > 0:
        Customer.objects.filter(pk=order.customer_id).update(
            available_credit=F('available_credit') + order.credit_used
        )
        if order.payment_status == 'PAID':
            order.payment_status = 'REFUNDED'

    order.status = 'CANCELLED'
    order.cancelled_at = timezone.now()
    if reason:
        order.notes = f"{order.notes}\nCancelled: {reason}".strip()
    order.save(update_fields=['status', 'payment_status', 'cancelled_at', 'notes', 'updated_at'])
    logger.info(f"Order {order.order_number} cancelled; refunded credit {order.credit_used}")
    return order


def update_order_status(order, new_status, user=None):
    """Admin status change; CANCELLED is routed through cancel_order"""
    valid = {choice for choice, _ in Order.STATUS_CHOICES}
    if new_status not in valid:
        raise InvalidOperationError(f"Invalid status. Must be one of: {', '.join(sorted(valid))}")
    if order.status == 'CANCELLED':
        raise InvalidOperationError('Cancelled orders cannot change status')
    previous = order.status
    if new_status == 'CANCELLED':
        cancel_order(order, user=user)
        order.refresh_from_db()
        return previous
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Order {order.order_number} status {previous} -> {new_status}")
    return previous


def update_payment_status(order, new_status):
    valid = {choice for choice, _ in Order.PAYMENT_STATUS_CHOICES}
    if new_status not in valid:
        raise InvalidOperationError(f"Invalid payment status. Must be one of: {', '.join(sorted(valid))}")
    previous = order.payment_status
    order.payment_status = new_status
    order.save(update_fields=['payment_status', 'updated_at'])
    logger.info(f"Order {order.order_number} payment status {previous} -> {new_status}")
    return previous
