"""Redis access for cart."""
from storefront.db import get_redis, StorageKeys, TTL

__all__ = ["get_redis", "StorageKeys", "TTL"]
