"""
Stale payment session recovery.

The backend refuses to re-initialize payment on a cart whose previous
payment session is stuck (e.g. an abandoned redirect-based payment). Such a
cart is replaced: a new cart is created in the same region, email,
addresses, line items and the shipping selection are replayed onto it, and
the new cart becomes the active one. The old cart is abandoned.
"""
from typing import Any, Awaitable, Callable, Mapping, Optional

from storefront.commerce.constants import STALE_PAYMENT_SIGNATURES
from storefront.errors import CommerceError
from storefront.logging import get_logger, sanitize_id_for_logging
from .models import Cart, PaymentCollection

logger = get_logger(__name__)


def is_stale_payment_error(err: BaseException) -> bool:
    """Check if a backend error is caused by stale / locked payment sessions."""
    message = getattr(err, "message", None) or str(err) or ""
    return any(signature in message for signature in STALE_PAYMENT_SIGNATURES)


def _session_secret(collection: Optional[PaymentCollection], provider_id: str) -> Optional[str]:
    if collection is None or not collection.payment_sessions:
        return None
    sessions = collection.payment_sessions
    # No session for provider: the first one wins, whatever its provider
    session = next((s for s in sessions if s.provider_id == provider_id), None) or sessions[0]
    return session.client_secret


def extract_client_secret(cart: Optional[Cart], provider_id: str) -> Optional[str]:
    """Client secret of the cart's session for provider, else of any session."""
    if cart is None:
        return None
    return _session_secret(cart.payment_collection, provider_id)


def initiated_client_secret(collection: Optional[Mapping[str, Any]], provider_id: str) -> Optional[str]:
    """Client secret from a freshly initiated payment collection response."""
    if not collection:
        return None
    return _session_secret(PaymentCollection.model_validate(collection), provider_id)


class CartRecovery:
    """Builds a replacement cart from a cart with stale payment state."""

    def __init__(self, client, persist_cart_id: Callable[[str], Awaitable[None]]):
        self.client = client
        self._persist_cart_id = persist_cart_id

    async def replace_cart(
        self,
        old_cart: Cart,
        *,
        skip_line_id: Optional[str] = None,
        quantity_overrides: Optional[Mapping[str, int]] = None,
    ) -> Cart:
        """
        Create a fresh cart carrying over the contents of old_cart.

        Args:
            old_cart: Cart whose payment sessions cannot be replaced
            skip_line_id: Line item left out of the new cart (pending removal)
            quantity_overrides: New quantities by line item id (pending update)

        Returns:
            The fully populated replacement cart

        Raises:
            CommerceError: cart creation, replay or the final read failed (nothing persisted)
        """
        overrides = quantity_overrides or {}
        logger.info(
            "Replacing cart %s with a fresh copy (stale payment recovery)",
            sanitize_id_for_logging(old_cart.id),
        )

        fresh_id = Cart.from_response(await self.client.create_cart(old_cart.region_id)).id

        if old_cart.email:
            await self.client.update_cart(fresh_id, {"email": old_cart.email})

        addresses: dict[str, Any] = {}
        if old_cart.shipping_address:
            addresses["shipping_address"] = old_cart.shipping_address
        if old_cart.billing_address:
            addresses["billing_address"] = old_cart.billing_address
        if addresses:
            await self.client.update_cart(fresh_id, addresses)

        for item in old_cart.items:
            if item.id == skip_line_id:
                continue
            variant_id = item.resolved_variant_id
            if not variant_id:
                continue
            quantity = overrides.get(item.id, item.quantity)
            try:
                await self.client.create_line_item(fresh_id, variant_id, quantity)
            except CommerceError as e:
                logger.warning(f"Could not re-add item during recovery: {item.title}: {e}")

        option_id = old_cart.shipping_methods[0].shipping_option_id if old_cart.shipping_methods else None
        if option_id:
            await self.client.add_shipping_method(fresh_id, option_id)

        populated = Cart.from_response(await self.client.retrieve_cart(fresh_id))
        # Switch the active cart only once the replacement is readable
        await self._persist_cart_id(populated.id)
        logger.info(
            "Cart %s replaced by %s with %d item(s)",
            sanitize_id_for_logging(old_cart.id),
            sanitize_id_for_logging(populated.id),
            len(populated.items),
        )
        return populated
