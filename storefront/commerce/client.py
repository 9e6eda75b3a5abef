"""Commerce Client - Medusa v2 Store API over httpx.

Thin async wrapper around the store endpoints the cart layer consumes.
Every method returns the decoded JSON body; errors are raised as
CommerceAPIError (backend answered with an error status) or
CommerceUnavailableError (backend unreachable).
"""

from typing import Any, Optional

import httpx

from storefront.commerce.constants import AUTH_ACTOR, AUTH_PROVIDER, CART_FIELDS
from storefront.errors import CommerceAPIError, CommerceUnavailableError
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


class CommerceClient:
    """Client for the commerce backend's Store API."""

    def __init__(
        self,
        base_url: str,
        publishable_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.publishable_key = publishable_key
        self.timeout = timeout
        self._transport = transport
        self._auth_token: Optional[str] = None

        # HTTP client (lazy init)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                transport=self._transport,
            )
        return self._http_client

    def set_auth_token(self, token: Optional[str]) -> None:
        """Attach (or drop, with None) the customer JWT sent on every request."""
        self._auth_token = token

    @property
    def is_authenticated(self) -> bool:
        return self._auth_token is not None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.publishable_key:
            headers["x-publishable-api-key"] = self.publishable_key
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        client = await self._get_http_client()
        try:
            response = await client.request(method, path, params=params, json=json, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            backend_message = _error_message(e.response)
            logger.warning("Commerce API %s %s failed (%s): %s", method, path, status, backend_message)
            raise CommerceAPIError(
                backend_message or f"Commerce API error (HTTP {status})",
                status_code=status,
                backend_message=backend_message,
            ) from e
        except httpx.RequestError as e:
            logger.warning("Commerce API %s %s unreachable: %s", method, path, e)
            raise CommerceUnavailableError(f"Failed to connect to commerce backend: {e!s}") from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise CommerceAPIError("Invalid JSON in commerce response", status_code=response.status_code) from e
        return data if isinstance(data, dict) else {}

    # ==================== Regions ====================

    async def list_regions(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/store/regions")
        return data.get("regions") or []

    # ==================== Carts ====================

    async def retrieve_cart(self, cart_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/store/carts/{cart_id}", params={"fields": CART_FIELDS})
        return data.get("cart") or {}

    async def create_cart(self, region_id: Optional[str]) -> dict[str, Any]:
        payload = {"region_id": region_id} if region_id else {}
        data = await self._request("POST", "/store/carts", json=payload)
        cart = data.get("cart") or {}
        logger.info("Created cart %s", sanitize_id_for_logging(cart.get("id")))
        return cart

    async def update_cart(self, cart_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", f"/store/carts/{cart_id}", json=fields)
        return data.get("cart") or {}

    async def create_line_item(self, cart_id: str, variant_id: str, quantity: int) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"/store/carts/{cart_id}/line-items",
            json={"variant_id": variant_id, "quantity": quantity},
        )
        return data.get("cart") or {}

    async def update_line_item(self, cart_id: str, line_item_id: str, quantity: int) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"/store/carts/{cart_id}/line-items/{line_item_id}",
            json={"quantity": quantity},
        )
        return data.get("cart") or {}

    async def delete_line_item(self, cart_id: str, line_item_id: str) -> dict[str, Any]:
        """Delete a line item. The response does not carry the expanded cart."""
        return await self._request("DELETE", f"/store/carts/{cart_id}/line-items/{line_item_id}")

    async def complete_cart(self, cart_id: str) -> dict[str, Any]:
        """Returns {"type": "cart", "error": ...} or {"type": "order", "order": ...}."""
        return await self._request("POST", f"/store/carts/{cart_id}/complete")

    # ==================== Fulfillment ====================

    async def list_shipping_options(self, cart_id: str) -> list[dict[str, Any]]:
        data = await self._request("GET", "/store/shipping-options", params={"cart_id": cart_id})
        return data.get("shipping_options") or []

    async def add_shipping_method(self, cart_id: str, option_id: str) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"/store/carts/{cart_id}/shipping-methods",
            json={"option_id": option_id},
        )
        return data.get("cart") or {}

    # ==================== Promotions ====================

    async def add_promotions(self, cart_id: str, codes: list[str]) -> dict[str, Any]:
        return await self._request("POST", f"/store/carts/{cart_id}/promotions", json={"promo_codes": codes})

    async def remove_promotions(self, cart_id: str, codes: list[str]) -> dict[str, Any]:
        return await self._request("DELETE", f"/store/carts/{cart_id}/promotions", json={"promo_codes": codes})

    # ==================== Payments ====================

    async def initiate_payment_session(
        self,
        cart_id: str,
        provider_id: str,
        payment_collection_id: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Initiate a payment session for a cart.

        Creates the cart's payment collection first when it has none, then
        asks the backend to (re)initialize a session for the provider.

        Returns:
            The updated payment collection
        """
        collection_id = payment_collection_id
        if not collection_id:
            created = await self._request("POST", "/store/payment-collections", json={"cart_id": cart_id})
            collection_id = (created.get("payment_collection") or {}).get("id")
            if not collection_id:
                raise CommerceAPIError("Payment collection could not be created")

        payload: dict[str, Any] = {"provider_id": provider_id}
        if data:
            payload["data"] = data
        result = await self._request(
            "POST",
            f"/store/payment-collections/{collection_id}/payment-sessions",
            json=payload,
        )
        return result.get("payment_collection") or {}

    # ==================== Auth / Customers ====================

    async def login(self, email: str, password: str) -> str:
        data = await self._request(
            "POST",
            f"/auth/{AUTH_ACTOR}/{AUTH_PROVIDER}",
            json={"email": email, "password": password},
        )
        token = data.get("token")
        if not token:
            raise CommerceAPIError("Authentication token missing in response")
        return token

    async def register(self, email: str, password: str) -> str:
        data = await self._request(
            "POST",
            f"/auth/{AUTH_ACTOR}/{AUTH_PROVIDER}/register",
            json={"email": email, "password": password},
        )
        token = data.get("token")
        if not token:
            raise CommerceAPIError("Registration token missing in response")
        return token

    async def logout(self) -> None:
        await self._request("DELETE", "/auth/session")

    async def retrieve_customer(self) -> dict[str, Any]:
        data = await self._request("GET", "/store/customers/me")
        return data.get("customer") or {}

    async def create_customer(self, fields: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", "/store/customers", json=fields)
        return data.get("customer") or {}

    # ==================== Store settings ====================

    async def get_store_settings(self) -> dict[str, Any]:
        return await self._request("GET", "/store/settings")

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def _error_message(response: httpx.Response) -> Optional[str]:
    """Extract the backend's message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message:
            return message
    return None
