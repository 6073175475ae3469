"""
Product variant operations

A product with variants carries an aggregate stock equal to the sum of its
variants' stock; every variant write refreshes it.
"""
import logging

from django.db import transaction
from django.db.models import Sum

from wholesale.core.exceptions import InvalidOperationError
from .models import Product, ProductVariant
from .utils import generate_unique_variant_sku

logger = logging.getLogger(__name__)

VARIANT_FIELDS = ('name', 'sku', 'price', 'stock', 'attributes', 'image_url', 'is_active')


def get_variants_for_product(product_id):
    """Variants of a product in creation order"""
    return list(ProductVariant.objects.filter(product_id=product_id).order_by('created_at', 'id'))


def get_variant(variant_id):
    return ProductVariant.objects.select_related('product').filter(pk=variant_id).first()


def refresh_product_stock(product_id):
    """Set the product's stock to the sum of its variants' stock and return it"""
    total = ProductVariant.objects.filter(product_id=product_id).aggregate(total=Sum('stock'))['total'] or 0
    Product.objects.filter(pk=product_id).update(stock=total)
    return total


def _check_sku_free(sku, exclude_pk=None):
    queryset = ProductVariant.objects.filter(sku=sku)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise InvalidOperationError(f'Variant SKU {sku} is already in use')


def _create_variant(product, data):
    values = {field: data[field] for field in VARIANT_FIELDS if field in data}
    if not values.get('sku'):
        values['sku'] = generate_unique_variant_sku(product)
    else:
        _check_sku_free(values['sku'])
    if values.get('price') is None:
        values['price'] = product.price
    variant = ProductVariant.objects.create(product=product, **values)
    logger.info(f"Created variant {variant.sku} for product {product.id}")
    return variant


def _update_variant(variant, data):
    if data.get('sku') and data['sku'] != variant.sku:
        _check_sku_free(data['sku'], exclude_pk=variant.pk)
    for field in VARIANT_FIELDS:
        if field in data:
            setattr(variant, field, data[field])
    variant.save()
    return variant


@transaction.atomic
def create_variant(product, data):
    variant = _create_variant(product, data)
    refresh_product_stock(product.id)
    return variant


@transaction.atomic
def update_variant(variant, data):
    variant = _update_variant(variant, data)
    if 'stock' in data:
        refresh_product_stock(variant.product_id)
    return variant


@transaction.atomic
def delete_variant(variant):
    logger.info(f"Deleting variant {variant.sku} of product {variant.product_id}")
    product_id = variant.product_id
    variant.delete()
    refresh_product_stock(product_id)


def _check_payload_skus(product, variants_data, existing):
    """Reject SKUs repeated within the payload or owned by other products' variants"""
    final_skus = []
    for item in variants_data:
        sku = item.get('sku')
        if not sku and item.get('id'):
            sku = existing[int(item['id'])].sku
        if sku:
            final_skus.append(sku)

    seen = set()
    for sku in final_skus:
        if sku in seen:
            raise InvalidOperationError(f'Variant SKU {sku} appears more than once')
        seen.add(sku)

    taken = ProductVariant.objects.filter(sku__in=final_skus).exclude(product=product) \
        .values_list('sku', flat=True).first()
    if taken:
        raise InvalidOperationError(f'Variant SKU {taken} is already in use')


@transaction.atomic
def sync_product_variants(product, variants_data):
    """
    Make the product's variant set match variants_data.

    Existing variants missing from the payload are deleted, entries carrying
    an `id` update that variant, entries without one are created. SKUs may
    move between variants of the product within one payload.
    """
    existing = {v.id: v for v in ProductVariant.objects.select_for_update().filter(product=product)}
    incoming_ids = {int(item['id']) for item in variants_data if item.get('id')}

    unknown = incoming_ids - set(existing)
    if unknown:
        raise InvalidOperationError(f"Variants {sorted(unknown)} do not belong to this product")

    _check_payload_skus(product, variants_data, existing)

    removed = [pk for pk in existing if pk not in incoming_ids]
    if removed:
        ProductVariant.objects.filter(pk__in=removed).delete()

    # park renamed SKUs so that swaps do not trip the unique constraint
    renamed = [
        int(item['id']) for item in variants_data
        if item.get('id') and item.get('sku') and item['sku'] != existing[int(item['id'])].sku
    ]
    for pk in renamed:
        ProductVariant.objects.filter(pk=pk).update(sku=f'~sync-{pk}')

    result = []
    for item in variants_data:
        if item.get('id'):
            result.append(_update_variant(existing[int(item['id'])], item))
        else:
            result.append(_create_variant(product, item))

    refresh_product_stock(product.id)
    logger.info(
        f"Synced variants for product {product.id}: {len(result)} kept/created, {len(removed)} removed"
    )
    return result
