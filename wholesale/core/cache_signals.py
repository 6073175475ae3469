"""
Cache invalidation signals
Automatically invalidate cache when catalog data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_cache_pattern, PRODUCTS_LIST_PREFIX, CATEGORIES_PREFIX, REPORTS_PREFIX,
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

CATALOG_MODELS = {'Product', 'ProductVariant', 'Category', 'Collection', 'BulkPricing'}
REPORT_MODELS = CATALOG_MODELS | {'Order', 'OrderItem', 'StockAdjustment'}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (seeding) to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


# --- Manual Invalidation Helpers ---

def invalidate_products_cache_manual():
    """Manually invalidate storefront product, category and report caches"""
    invalidate_cache_pattern(PRODUCTS_LIST_PREFIX)
    invalidate_cache_pattern(CATEGORIES_PREFIX)
    invalidate_cache_pattern(REPORTS_PREFIX)
    logger.info("Invalidated products cache (Manual/Signal)")


def invalidate_reports_cache_manual():
    """Manually invalidate reports cache"""
    invalidate_cache_pattern(REPORTS_PREFIX)
    logger.debug("Invalidated reports cache (Manual/Signal)")


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_catalog_cache(sender, instance, **kwargs):
    """Invalidate storefront caches when catalog rows change"""
    if is_suspended():
        return
    model_name = sender.__name__
    if model_name in CATALOG_MODELS:
        invalidate_products_cache_manual()
    elif model_name in REPORT_MODELS:
        invalidate_reports_cache_manual()
