"""
Utility functions for catalog operations
"""
from django.utils import timezone
import uuid
from wholesale.catalog.models import Product, ProductVariant


def generate_unique_sku(base_name=None, model=Product):
    """Generate a unique SKU for a product or variant"""
    prefix = base_name[:4].upper().replace(' ', '') if base_name else 'PRD'
    timestamp = timezone.now().strftime('%Y%m%d')
    unique_id = str(uuid.uuid4())[:8].upper()
    sku = f"{prefix}-{timestamp}-{unique_id}"

    # Ensure uniqueness
    while model.objects.filter(sku=sku).exists():
        unique_id = str(uuid.uuid4())[:8].upper()
        sku = f"{prefix}-{timestamp}-{unique_id}"

    return sku


def generate_unique_variant_sku(product):
    """Generate a SKU for a new variant based on its product SKU"""
    return generate_unique_sku(product.sku or product.name, model=ProductVariant)
