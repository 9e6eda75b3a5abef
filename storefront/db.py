"""
Session storage on Upstash Redis.

Per storefront session the client keeps the active remote cart id, the
local cart blob used while the commerce backend is unreachable, the chosen
region id and the customer auth token.
"""

import os
from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """Shared async Upstash client, built from the REST url/token env vars on first use."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    url = os.environ.get("UPSTASH_REDIS_REST_URL", "")
    token = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")
    if not (url and token):
        raise ValueError("Session storage needs UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN")
    _redis_client = AsyncRedis(url=url, token=token)
    return _redis_client


class StorageKeys:
    """Key prefixes for per-session client state."""

    CART_ID = "storefront:cart_id:"  # storefront:cart_id:{session_id}
    LOCAL_CART = "storefront:local_cart:"  # storefront:local_cart:{session_id}
    REGION_ID = "storefront:region_id:"  # storefront:region_id:{session_id}
    AUTH_TOKEN = "storefront:auth_token:"  # storefront:auth_token:{session_id}

    @staticmethod
    def cart_id_key(session_id: str) -> str:
        return f"{StorageKeys.CART_ID}{session_id}"

    @staticmethod
    def local_cart_key(session_id: str) -> str:
        return f"{StorageKeys.LOCAL_CART}{session_id}"

    @staticmethod
    def region_id_key(session_id: str) -> str:
        return f"{StorageKeys.REGION_ID}{session_id}"

    @staticmethod
    def auth_token_key(session_id: str) -> str:
        return f"{StorageKeys.AUTH_TOKEN}{session_id}"


class TTL:
    """Expiry per key family, in seconds."""

    CART_ID = 2592000  # 30 days
    LOCAL_CART = 2592000  # 30 days
    REGION_ID = 31536000  # 365 days
    AUTH_TOKEN = 604800  # 7 days
