"""
Bulk pricing tier management and quantity-based price resolution
"""
import logging
from decimal import Decimal

from django.db import transaction

from wholesale.catalog.models import Product
from wholesale.core.cache_signals import invalidate_products_cache_manual
from wholesale.core.exceptions import InvalidOperationError
from .models import BulkPricing

logger = logging.getLogger(__name__)


def get_tiers_for_product(product_id):
    """Return the tiers of a product ordered by min_quantity ascending"""
    return list(BulkPricing.objects.filter(product_id=product_id).order_by('min_quantity'))


def select_tier(tiers, quantity):
    """
    Pick the tier with the highest min_quantity that does not exceed quantity.

    `tiers` may be in any order. Returns None when no tier applies.
    """
    best = None
    for tier in tiers:
        if tier.min_quantity <= quantity and (best is None or tier.min_quantity > best.min_quantity):
            best = tier
    return best


def _validate_tier_payload(tiers):
    seen = set()
    for tier in tiers:
        min_quantity = int(tier['min_quantity'])
        if min_quantity < 1:
            raise InvalidOperationError('min_quantity must be at least 1')
        if Decimal(str(tier['price'])) < 0:
            raise InvalidOperationError('price must not be negative')
        if min_quantity in seen:
            raise InvalidOperationError(f'Duplicate tier for min_quantity {min_quantity}')
        seen.add(min_quantity)


@transaction.atomic
def replace_product_tiers(product, tiers):
    """Delete every tier of the product and create the given ones"""
    _validate_tier_payload(tiers)
    BulkPricing.objects.filter(product=product).delete()
    created = BulkPricing.objects.bulk_create([
        BulkPricing(product=product, min_quantity=int(t['min_quantity']), price=Decimal(str(t['price'])))
        for t in sorted(tiers, key=lambda t: int(t['min_quantity']))
    ])
    logger.info(f"Replaced bulk pricing for product {product.id}: {len(created)} tiers")
    # bulk_create skips post_save, so catalog caches are cleared here
    invalidate_products_cache_manual()
    return get_tiers_for_product(product.id)


def add_tier(product, min_quantity, price):
    """Add a single tier; a tier with the same min_quantity must not exist"""
    _validate_tier_payload([{'min_quantity': min_quantity, 'price': price}])
    if BulkPricing.objects.filter(product=product, min_quantity=min_quantity).exists():
        raise InvalidOperationError(f'A tier with minimum quantity {min_quantity} already exists for this product')
    tier = BulkPricing.objects.create(product=product, min_quantity=int(min_quantity), price=Decimal(str(price)))
    logger.info(f"Added bulk tier {tier.min_quantity}+ @ {tier.price} to product {product.id}")
    return tier


def update_tier(tier, min_quantity=None, price=None):
    """Update a tier's threshold and/or price"""
    if min_quantity is not None:
        min_quantity = int(min_quantity)
        if min_quantity < 1:
            raise InvalidOperationError('min_quantity must be at least 1')
        clash = BulkPricing.objects.filter(
            product_id=tier.product_id, min_quantity=min_quantity
        ).exclude(pk=tier.pk).exists()
        if clash:
            raise InvalidOperationError(f'A tier with minimum quantity {min_quantity} already exists for this product')
        tier.min_quantity = min_quantity
    if price is not None:
        price = Decimal(str(price))
        if price < 0:
            raise InvalidOperationError('price must not be negative')
        tier.price = price
    tier.save()
    return tier


def delete_tier(tier):
    tier.delete()


def get_price_for_quantity(product_id, quantity):
    """
    Unit price of a product at the given quantity.

    Returns the price of the applicable tier, the base price when no tier
    applies, or None when the product does not exist.
    """
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        return None
    tier = select_tier(get_tiers_for_product(product_id), quantity)
    return tier.price if tier else product.price


def resolve_unit_price(product, variant, quantity, tiers=None):
    """
    Unit price used for a cart or order line.

    A variant always uses its own price; otherwise the bulk tier for the
    quantity applies, falling back to the product price.
    Returns (unit_price, tier).
    """
    if variant is not None:
        return variant.price, None
    if tiers is None:
        tiers = get_tiers_for_product(product.id)
    tier = select_tier(tiers, quantity)
    if tier is not None:
        return tier.price, tier
    return product.price, None
