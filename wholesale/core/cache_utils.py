"""
Caching utilities for storefront queries
Uses Redis (django-redis) in production, any Django cache backend otherwise
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
CATEGORIES_CACHE_TTL = 300  # 5 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes

# Cache key prefixes
PRODUCTS_LIST_PREFIX = 'products_list'
CATEGORIES_PREFIX = 'categories_list'
REPORTS_PREFIX = 'reports'


def _version_key(prefix):
    return f"{prefix}:version"


def get_cache_version(prefix):
    """Current generation number for a key family"""
    version = cache.get(_version_key(prefix))
    if version is None:
        version = 1
        cache.set(_version_key(prefix), version, None)
    return version


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:v{get_cache_version(prefix)}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="products_list")
        def get_expensive_data(filters):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def stale_keys_pattern(prefix):
    """Redis glob matching versioned keys of a family but not its version counter"""
    return f"*{prefix}:v[0-9]*"


def _uses_redis():
    backend = settings.CACHES.get('default', {}).get('BACKEND', '')
    return backend.startswith('django_redis')


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys of a key family

    Bumps the family version so stale entries are never read again, then
    deletes the old keys through Redis SCAN when the Redis backend is active.
    """
    try:
        cache.incr(_version_key(pattern))
    except ValueError:
        cache.set(_version_key(pattern), 2, None)

    if not _uses_redis():
        logger.debug(f"Cache version bumped for pattern: {pattern}")
        return

    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=stale_keys_pattern(pattern), count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Cache invalidation requested for pattern: {pattern} - Deleted {len(keys)} keys")
        else:
            logger.info(f"Cache invalidation requested for pattern: {pattern} - No keys found")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
