"""Local cart persistence, used when the commerce backend is unreachable."""
import json
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import add, included_tax, multiply, round_money, subtract
from .models import Cart, LOCAL_CART_ID
from .storage import get_redis, StorageKeys, TTL

logger = get_logger(__name__)


def empty_local_cart() -> Cart:
    """Empty cart shape returned when nothing usable is stored."""
    return Cart(id=LOCAL_CART_ID)


def recalc_local_cart(cart: Cart, tax_rate: Decimal) -> Cart:
    """
    Recompute totals of a local cart.

    Prices are tax-inclusive: the tax line only reports the portion already
    contained in the subtotal and is never added to the total.
    """
    subtotal = round_money(sum((multiply(item.unit_price, item.quantity) for item in cart.items), Decimal("0")))
    return cart.model_copy(
        update={
            "subtotal": subtotal,
            "item_total": subtotal,
            "tax_total": included_tax(subtotal, tax_rate),
            "total": round_money(subtract(add(subtotal, cart.shipping_total), cart.discount_total)),
        }
    )


class LocalCartStore:
    """Reads and writes the local cart blob of one storefront session."""

    def __init__(self, session_id: str, redis_client: Any = None):
        self.session_id = session_id
        self._redis = redis_client

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    @property
    def key(self) -> str:
        return StorageKeys.local_cart_key(self.session_id)

    async def load(self) -> Cart:
        """Load the stored cart; absent or corrupt data yields an empty cart."""
        try:
            data: Optional[str] = await self.redis.get(self.key)
        except Exception as e:
            logger.warning(f"Failed to read local cart for session {sanitize_id_for_logging(self.session_id)}: {e}")
            return empty_local_cart()

        if not data:
            return empty_local_cart()

        try:
            return Cart.from_dict(json.loads(data))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            # Corrupted data - clear it and start over
            logger.warning(f"Corrupted local cart for session {sanitize_id_for_logging(self.session_id)}: {e}")
            await self.clear()
            return empty_local_cart()

    async def save(self, cart: Cart) -> bool:
        """Persist the cart. Storage failures are logged, never raised."""
        try:
            await self.redis.set(self.key, json.dumps(cart.to_dict()), ex=TTL.LOCAL_CART)
            return True
        except Exception as e:
            logger.warning(f"Failed to save local cart: {e}")
            return False

    async def clear(self) -> None:
        try:
            await self.redis.delete(self.key)
        except Exception as e:
            logger.warning(f"Failed to clear local cart: {e}")
