"""
Store Settings Cache

Process-wide cache of the configurable store settings served by the
backend. Populated on the first successful fetch and never invalidated
automatically; tests reset it with reset_store_settings_cache().
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from storefront.errors import CommerceError
from storefront.logging import get_logger
from storefront.services.money import divide, to_decimal

logger = get_logger(__name__)

# Backend values at or above this are cents (6900), below are francs (69)
CENTS_CUTOFF = Decimal("1000")


class StoreSettings(BaseModel):
    free_shipping_threshold: Decimal

    @field_validator("free_shipping_threshold", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


_cached_settings: Optional[StoreSettings] = None


def _normalize_threshold(raw, default: Decimal) -> Decimal:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return default
    value = to_decimal(raw)
    return divide(value, 100) if value >= CENTS_CUTOFF else value


async def get_store_settings(client, default_threshold: Decimal) -> StoreSettings:
    """
    Get store settings, fetching them from the backend on first use.

    Args:
        client: CommerceClient
        default_threshold: Free shipping threshold used when the backend is unavailable

    Returns:
        Cached settings, or defaults (not cached) when the fetch fails
    """
    global _cached_settings

    if _cached_settings is not None:
        return _cached_settings

    try:
        data = await client.get_store_settings()
    except CommerceError as e:
        logger.warning(f"Store settings unavailable, using defaults: {e}")
        return StoreSettings(free_shipping_threshold=default_threshold)

    threshold = _normalize_threshold(data.get("free_shipping_threshold"), default_threshold)
    _cached_settings = StoreSettings(free_shipping_threshold=threshold)
    logger.info("Store settings loaded: free shipping from %s", threshold)
    return _cached_settings


def cached_store_settings() -> Optional[StoreSettings]:
    """Settings from the last successful fetch, without any network call."""
    return _cached_settings


def reset_store_settings_cache() -> None:
    """Drop cached settings."""
    global _cached_settings
    _cached_settings = None
