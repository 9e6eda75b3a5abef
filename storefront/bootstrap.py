"""
Storefront session wiring.

Builds the commerce client, region resolver, cart manager and auth session
for one session id and runs the startup sequence a storefront page load
goes through.
"""
from typing import Any, Optional

from storefront.auth.session import AuthSession
from storefront.cart.service import CartManager
from storefront.commerce.client import CommerceClient
from storefront.config import StorefrontConfig
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.notifications import CartNotifier
from storefront.services.regions import Region, RegionResolver
from storefront.services.store_settings import get_store_settings

logger = get_logger(__name__)


class StorefrontSession:
    """All client-side commerce state of one storefront session."""

    def __init__(
        self,
        session_id: str,
        config: Optional[StorefrontConfig] = None,
        client: Optional[CommerceClient] = None,
        redis_client: Any = None,
        notifier: Optional[CartNotifier] = None,
    ):
        self.session_id = session_id
        self.config = config or StorefrontConfig.from_env()
        self.client = client or CommerceClient(
            self.config.backend_url,
            publishable_key=self.config.publishable_key,
            timeout=self.config.timeout,
        )
        self.notifier = notifier or CartNotifier()
        self.regions = RegionResolver(
            self.client,
            session_id,
            primary_currency=self.config.store_currency,
            redis_client=redis_client,
        )
        self.cart = CartManager(
            self.client,
            session_id,
            config=self.config,
            redis_client=redis_client,
            notifier=self.notifier,
        )
        self.auth = AuthSession(
            self.client,
            self.cart,
            session_id,
            redis_client=redis_client,
            notifier=self.notifier,
        )

    async def start(self) -> "StorefrontSession":
        """Restore sign-in, warm store settings, pick the region and load the cart."""
        await self.auth.restore()
        await get_store_settings(self.client, self.config.free_shipping_threshold)
        region = await self.regions.resolve()
        await self.cart.initialize(region)
        logger.info(
            "Session %s started in %s mode",
            sanitize_id_for_logging(self.session_id),
            self.cart.state.value,
        )
        return self

    async def change_region(self, region: Region) -> None:
        """Switch region; the cart is re-initialized for it."""
        await self.regions.set_region(region)
        await self.cart.initialize(region)

    async def aclose(self) -> None:
        await self.client.aclose()
