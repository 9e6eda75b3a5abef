"""
Region Resolver

Picks the active currency/tax region of a storefront session. When the
backend cannot be reached the reserved fallback region is used, which
keeps the cart layer in local mode.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel

from storefront.db import get_redis, StorageKeys, TTL
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import format_money

logger = get_logger(__name__)

FALLBACK_REGION_ID = "reg_fallback"


class Region(BaseModel):
    """Currency/tax scope that prices and carts are bound to."""
    id: str
    name: str = ""
    currency_code: str
    countries: Optional[List[dict[str, Any]]] = None
    tax_rate: Optional[Decimal] = None

    class Config:
        extra = "ignore"

    @property
    def is_fallback(self) -> bool:
        return self.id == FALLBACK_REGION_ID


FALLBACK_REGION = Region(
    id=FALLBACK_REGION_ID,
    name="Schweiz",
    currency_code="chf",
    tax_rate=Decimal("8.1"),
)


def is_fallback(region: Optional[Region]) -> bool:
    """True when there is no region or it is the no-backend sentinel."""
    return region is None or region.is_fallback


class RegionResolver:
    """Resolves, persists and formats prices for the active region."""

    def __init__(self, client, session_id: str, primary_currency: str = "chf", redis_client: Any = None):
        self.client = client
        self.session_id = session_id
        self.primary_currency = primary_currency.lower()
        self._redis = redis_client
        self.region: Optional[Region] = None
        self.regions: List[Region] = []
        self.loading = True

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    async def _saved_region_id(self) -> Optional[str]:
        try:
            return await self.redis.get(StorageKeys.region_id_key(self.session_id)) or None
        except Exception as e:
            logger.warning(f"Failed to read saved region: {e}")
            return None

    def _select(self, regions: List[Region], saved_id: Optional[str]) -> Region:
        """
        Choose the active region.

        Priority:
        1. Region saved by an explicit user choice
        2. Region in the store's primary currency
        3. First region returned
        4. Fallback region (empty list)
        """
        if saved_id:
            saved = next((r for r in regions if r.id == saved_id), None)
            if saved:
                return saved
        primary = next((r for r in regions if r.currency_code.lower() == self.primary_currency), None)
        if primary:
            return primary
        if regions:
            return regions[0]
        return FALLBACK_REGION

    async def resolve(self) -> Region:
        """Fetch regions and select the active one. Never raises."""
        try:
            raw_regions = await self.client.list_regions()
            self.regions = [Region.model_validate(r) for r in raw_regions]
        except Exception as e:
            logger.warning(f"Region list unavailable, using fallback region: {e}")
            self.regions = []
            self.region = FALLBACK_REGION
        else:
            self.region = self._select(self.regions, await self._saved_region_id())
        finally:
            self.loading = False

        logger.info("Active region %s (%s)", sanitize_id_for_logging(self.region.id), self.region.currency_code)
        return self.region

    async def set_region(self, region: Region) -> None:
        """Make region active and remember the choice for later sessions."""
        self.region = region
        try:
            await self.redis.set(StorageKeys.region_id_key(self.session_id), region.id, ex=TTL.REGION_ID)
        except Exception as e:
            logger.warning(f"Failed to persist region choice: {e}")

    def format_price(self, amount) -> str:
        currency = self.region.currency_code if self.region else "CHF"
        return format_money(amount, currency)
