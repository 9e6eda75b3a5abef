"""
Cart manager.

Owns the active cart of one storefront session and keeps it in sync with the
commerce backend. A session runs in one of two modes:

- remote: the cart lives on the backend, its id is persisted per session
- local: the backend is unreachable (or the region is the fallback region),
  the cart lives in the persisted local cart blob

Mutations of a remote cart that fail because of a stale payment session are
repaired by replacing the cart (see recovery.py). While a replacement is in
flight every other mutating call is rejected.
"""
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import ValidationError

from storefront.commerce.constants import CompletionType
from storefront.config import StorefrontConfig
from storefront.errors import (
    CartRecoveryInProgressError,
    CartUnavailableError,
    CheckoutError,
    CommerceAPIError,
    CommerceError,
    ERROR_ADD_ITEM_FAILED,
    ERROR_BACKEND_UNAVAILABLE,
    ERROR_CART_RECOVERING,
    ERROR_CHECKOUT_BACKEND_REQUIRED,
    ERROR_CHECKOUT_FAILED,
    ERROR_CHECKOUT_UNEXPECTED,
    ERROR_ITEM_NOT_FOUND,
    ERROR_NO_CART,
    ERROR_PAYMENT_BACKEND_REQUIRED,
    ERROR_PROMO_ALREADY_APPLIED,
    ERROR_PROMO_BACKEND_REQUIRED,
    ERROR_PROMO_FAILED,
    ERROR_PROMO_INVALID,
    ERROR_PROMO_REMOVE_FAILED,
    ERROR_REMOVE_ITEM_FAILED,
    ERROR_SHIPPING_METHOD_FAILED,
    ERROR_UPDATE_CART_FAILED,
    ERROR_UPDATE_ITEM_FAILED,
)
from storefront.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from storefront.services.money import multiply, round_money
from storefront.services.notifications import CartNotifier
from storefront.services.regions import Region, is_fallback
from storefront.services.store_settings import cached_store_settings
from .local_store import LocalCartStore, recalc_local_cart
from .models import (
    Cart,
    CartActionResult,
    CartState,
    LineItem,
    LineItemOrigin,
    LocalProduct,
    LOCAL_ITEM_PREFIX,
    LOCAL_VARIANT_PREFIX,
    ProductRef,
    ShippingMethod,
    ShippingOption,
    VariantRef,
)
from .recovery import CartRecovery, extract_client_secret, initiated_client_secret, is_stale_payment_error
from .storage import get_redis, StorageKeys, TTL

logger = get_logger(__name__)

LOCAL_STANDARD_OPTION_ID = "local_standard"
LOCAL_EXPRESS_OPTION_ID = "local_express"
LOCAL_STANDARD_OPTION_NAME = "Swiss Post Standard (3-5 Werktage)"
LOCAL_EXPRESS_OPTION_NAME = "Swiss Post Express (1-2 Werktage)"
DEFAULT_VARIANT_TITLE = "Standard"


class CartManager:
    """
    Manages the cart of one storefront session.

    Features:
    - Resumes the persisted remote cart, creates one when needed
    - Falls back to a persisted local cart without a reachable backend
    - Transparent stale payment session recovery
    - Local shipping calculation with free shipping threshold
    - Promo codes, payment session setup and checkout (remote only)
    """

    def __init__(
        self,
        client,
        session_id: str,
        config: Optional[StorefrontConfig] = None,
        redis_client: Any = None,
        notifier: Optional[CartNotifier] = None,
    ):
        self.client = client
        self.session_id = session_id
        self.config = config or StorefrontConfig()
        self.notifier = notifier or CartNotifier()
        self._redis = redis_client  # Lazy initialization
        self.local_store = LocalCartStore(session_id, redis_client)
        self.recovery = CartRecovery(client, self._save_cart_id)

        self.cart: Optional[Cart] = None
        self.region: Optional[Region] = None
        self.loading = True
        self.is_cart_open = False

        self._connected = False
        self._authenticated = False
        self._initialized = False
        self._recovering = False

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    # ==================== State ====================

    @property
    def state(self) -> CartState:
        if self._recovering:
            return CartState.RECOVERING
        if not self._initialized:
            return CartState.UNINITIALIZED
        if not self._connected:
            return CartState.LOCAL
        if self._authenticated:
            return CartState.REMOTE_AUTHENTICATED
        return CartState.REMOTE_GUEST

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_recovering(self) -> bool:
        return self._recovering

    @property
    def is_local_mode(self) -> bool:
        """True when cart changes must not go to the backend."""
        cart = self.cart
        return not self._connected or cart is None or cart.is_local or cart.all_items_local

    @property
    def item_count(self) -> int:
        return self.cart.item_count if self.cart else 0

    @property
    def free_shipping_threshold(self) -> Decimal:
        settings = cached_store_settings()
        if settings is not None:
            return settings.free_shipping_threshold
        return self.config.free_shipping_threshold

    def set_cart_open(self, is_open: bool) -> None:
        self.is_cart_open = is_open

    def set_authenticated(self, authenticated: bool) -> None:
        """Record whether requests now run on behalf of a signed-in customer."""
        self._authenticated = authenticated

    @asynccontextmanager
    async def _recovery_guard(self):
        self._recovering = True
        try:
            yield
        finally:
            self._recovering = False

    # ==================== Persisted cart id ====================

    async def _load_cart_id(self) -> Optional[str]:
        try:
            return await self.redis.get(StorageKeys.cart_id_key(self.session_id)) or None
        except Exception as e:
            logger.warning(f"Failed to read cart id: {e}")
            return None

    async def _save_cart_id(self, cart_id: str) -> None:
        try:
            await self.redis.set(StorageKeys.cart_id_key(self.session_id), cart_id, ex=TTL.CART_ID)
        except Exception as e:
            logger.warning(f"Failed to persist cart id: {e}")

    async def _clear_cart_id(self) -> None:
        try:
            await self.redis.delete(StorageKeys.cart_id_key(self.session_id))
        except Exception as e:
            logger.warning(f"Failed to clear cart id: {e}")

    # ==================== Initialization ====================

    async def initialize(self, region: Optional[Region]) -> Cart:
        """Bind the manager to region and load or create its cart."""
        self.region = region
        self.loading = True
        try:
            return await self.get_or_create_cart()
        finally:
            self.loading = False
            self._initialized = True

    async def get_or_create_cart(self) -> Cart:
        """
        Get the active cart, creating a remote one when possible.

        Priority:
        1. Persisted remote cart (unless gone or already completed)
        2. New remote cart for the active region
        3. Local cart (fallback region or backend unavailable)
        """
        if not is_fallback(self.region):
            try:
                cart = await self._resume_remote_cart() or await self._create_remote_cart()
            except CommerceError as e:
                logger.error(f"Commerce backend not available, using local cart: {e}")
            else:
                self.cart = cart
                self._connected = True
                return cart

        self.cart = await self.local_store.load()
        self._connected = False
        return self.cart

    async def _resume_remote_cart(self) -> Optional[Cart]:
        saved_id = await self._load_cart_id()
        if not saved_id:
            return None
        try:
            existing = Cart.from_response(await self.client.retrieve_cart(saved_id))
        except CommerceAPIError as e:
            logger.info(f"Discarding persisted cart {sanitize_id_for_logging(saved_id)}: {e}")
            await self._clear_cart_id()
            return None
        if existing.completed_at is not None:
            logger.info(f"Discarding completed cart {sanitize_id_for_logging(saved_id)}")
            await self._clear_cart_id()
            return None
        return existing

    async def _create_remote_cart(self) -> Cart:
        cart = Cart.from_response(await self.client.create_cart(self.region.id if self.region else None))
        await self._save_cart_id(cart.id)
        return cart

    async def refresh_cart(self) -> Optional[Cart]:
        """Re-read the persisted remote cart. Failures are logged only."""
        if not self._connected:
            return self.cart
        cart_id = await self._load_cart_id()
        if not cart_id:
            return self.cart
        try:
            self.cart = Cart.from_response(await self.client.retrieve_cart(cart_id))
        except CommerceError as e:
            logger.warning(f"Failed to refresh cart {sanitize_id_for_logging(cart_id)}: {e}")
        return self.cart

    async def reset(self) -> None:
        """Forget the cart of this session (persisted id, local blob, memory)."""
        await self._clear_cart_id()
        await self.local_store.clear()
        self.cart = None

    # ==================== Failure helpers ====================

    def _mutation_failed(self, message: str, err: BaseException) -> CartActionResult:
        logger.error(f"{message} ({type(err).__name__}: {err})")
        self.notifier.cart_error(message, getattr(err, "backend_message", None))
        return CartActionResult.failed(message)

    def _item_added(self, cart: Cart, variant_id: str) -> None:
        added = cart.find_item_by_variant(variant_id)
        self.notifier.item_added(added.title if added else None)
        self.is_cart_open = True

    # ==================== Line items ====================

    async def add_item(self, variant_id: str, quantity: int = 1) -> CartActionResult:
        """Add a backend variant to the remote cart."""
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        if not self._connected:
            return CartActionResult.failed(ERROR_BACKEND_UNAVAILABLE)

        cart = self.cart
        if cart is None or cart.is_local:
            cart = await self.get_or_create_cart()
        if cart.is_local:
            return CartActionResult.failed(ERROR_BACKEND_UNAVAILABLE)

        try:
            updated = Cart.from_response(await self.client.create_line_item(cart.id, variant_id, quantity))
        except CommerceError as e:
            if not is_stale_payment_error(e):
                return self._mutation_failed(ERROR_ADD_ITEM_FAILED, e)
            logger.warning(f"Stale payment session on cart {sanitize_id_for_logging(cart.id)}, replacing cart")
            try:
                async with self._recovery_guard():
                    fresh = await self.recovery.replace_cart(cart)
                    self.cart = fresh
                    updated = Cart.from_response(await self.client.create_line_item(fresh.id, variant_id, quantity))
            except CommerceError as retry_err:
                return self._mutation_failed(ERROR_ADD_ITEM_FAILED, retry_err)

        self.cart = updated
        self._item_added(updated, variant_id)
        return CartActionResult.ok()

    async def add_local_item(self, product: LocalProduct, quantity: int = 1) -> Cart:
        """
        Add a catalog product to the local cart.

        Repeated adds of the same product increase the quantity of its
        single line item.

        Raises:
            ValueError: quantity below 1
            CartUnavailableError: the session runs against a remote cart
            CartRecoveryInProgressError: a cart replacement is in flight
        """
        if quantity < 1:
            raise ValueError("quantity must be a positive integer")
        if self._recovering:
            raise CartRecoveryInProgressError()
        if self._connected and self.cart is not None and not self.cart.is_local:
            raise CartUnavailableError("Local items cannot be added to a backend cart")

        current = self.cart if self.cart is not None else await self.local_store.load()
        item_id = f"{LOCAL_ITEM_PREFIX}{product.id}"
        existing = current.find_item(item_id)

        if existing:
            new_quantity = existing.quantity + quantity
            items = [
                item.model_copy(update={"quantity": new_quantity, "total": multiply(item.unit_price, new_quantity)})
                if item.id == item_id else item
                for item in current.items
            ]
        else:
            item = LineItem(
                id=item_id,
                title=product.name,
                subtitle=product.subtitle,
                thumbnail=product.image,
                quantity=quantity,
                unit_price=product.price,
                total=multiply(product.price, quantity),
                variant=VariantRef(
                    id=f"{LOCAL_VARIANT_PREFIX}{product.id}",
                    title=product.sizes[0] if product.sizes else DEFAULT_VARIANT_TITLE,
                    product=ProductRef(handle=product.id, thumbnail=product.image),
                ),
                origin=LineItemOrigin.LOCAL,
            )
            items = [*current.items, item]

        updated = recalc_local_cart(current.model_copy(update={"items": items}), self.config.tax_rate)
        await self.local_store.save(updated)
        self.cart = updated
        self.notifier.item_added(product.name)
        self.is_cart_open = True
        return updated

    async def update_item(self, line_item_id: str, quantity: int) -> CartActionResult:
        """
        Change the quantity of a line item.

        Raises:
            ValueError: quantity below 1 (use remove_item instead)
        """
        if quantity < 1:
            raise ValueError("quantity must be a positive integer")
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        cart = self.cart
        if cart is None:
            return CartActionResult.failed(ERROR_NO_CART)

        if not self._connected or cart.is_local:
            if cart.find_item(line_item_id) is None:
                return CartActionResult.failed(ERROR_ITEM_NOT_FOUND)
            items = [
                item.model_copy(update={"quantity": quantity, "total": multiply(item.unit_price, quantity)})
                if item.id == line_item_id else item
                for item in cart.items
            ]
            await self._save_local(cart.model_copy(update={"items": items}))
            return CartActionResult.ok()

        try:
            self.cart = Cart.from_response(await self.client.update_line_item(cart.id, line_item_id, quantity))
            return CartActionResult.ok()
        except CommerceError as e:
            if not is_stale_payment_error(e):
                return self._mutation_failed(ERROR_UPDATE_ITEM_FAILED, e)
            logger.warning(f"Stale payment session on cart {sanitize_id_for_logging(cart.id)}, rebuilding with new quantity")

        try:
            async with self._recovery_guard():
                self.cart = await self.recovery.replace_cart(cart, quantity_overrides={line_item_id: quantity})
        except CommerceError as e:
            return self._mutation_failed(ERROR_UPDATE_ITEM_FAILED, e)
        return CartActionResult.ok()

    async def remove_item(self, line_item_id: str) -> CartActionResult:
        """Remove a line item from the cart."""
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        cart = self.cart
        if cart is None:
            return CartActionResult.failed(ERROR_NO_CART)
        removed = cart.find_item(line_item_id)
        if removed is None:
            return CartActionResult.failed(ERROR_ITEM_NOT_FOUND)

        if not self._connected or cart.is_local:
            items = [item for item in cart.items if item.id != line_item_id]
            await self._save_local(cart.model_copy(update={"items": items}))
            self.notifier.item_removed(removed.title)
            return CartActionResult.ok()

        try:
            await self.client.delete_line_item(cart.id, line_item_id)
            # Delete responses do not carry the expanded cart
            self.cart = Cart.from_response(await self.client.retrieve_cart(cart.id))
            self.notifier.item_removed(removed.title)
            return CartActionResult.ok()
        except CommerceError as e:
            if not is_stale_payment_error(e):
                return self._mutation_failed(ERROR_REMOVE_ITEM_FAILED, e)
            logger.warning(f"Stale payment session on cart {sanitize_id_for_logging(cart.id)}, rebuilding without item")

        try:
            async with self._recovery_guard():
                self.cart = await self.recovery.replace_cart(cart, skip_line_id=line_item_id)
        except CommerceError as e:
            return self._mutation_failed(ERROR_REMOVE_ITEM_FAILED, e)
        self.notifier.item_removed(removed.title)
        return CartActionResult.ok()

    async def _save_local(self, cart: Cart) -> Cart:
        updated = recalc_local_cart(cart, self.config.tax_rate)
        await self.local_store.save(updated)
        self.cart = updated
        return updated

    # ==================== Cart fields ====================

    async def update_cart(self, fields: dict[str, Any]) -> CartActionResult:
        """Merge fields (email, addresses, ...) into the cart."""
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        cart = self.cart
        if cart is None:
            return CartActionResult.failed(ERROR_NO_CART)

        if self.is_local_mode:
            try:
                merged = Cart.from_dict({**cart.to_dict(), **fields})
            except ValidationError as e:
                logger.warning(f"Rejected local cart update: {e.error_count()} invalid field(s)")
                return CartActionResult.failed(ERROR_UPDATE_CART_FAILED)
            await self.local_store.save(merged)
            self.cart = merged
            return CartActionResult.ok()

        try:
            self.cart = Cart.from_response(await self.client.update_cart(cart.id, fields))
        except CommerceError as e:
            return self._mutation_failed(ERROR_UPDATE_CART_FAILED, e)
        return CartActionResult.ok()

    async def set_cart_email(self, email: str) -> CartActionResult:
        return await self.update_cart({"email": email})

    async def set_shipping_address(self, address: dict[str, Any]) -> CartActionResult:
        """Set the shipping address; billing uses the same address."""
        return await self.update_cart({"shipping_address": address, "billing_address": address})

    # ==================== Shipping ====================

    def _fallback_shipping_options(self) -> List[ShippingOption]:
        return [
            ShippingOption(
                id=LOCAL_STANDARD_OPTION_ID,
                name=LOCAL_STANDARD_OPTION_NAME,
                amount=self.config.standard_shipping_amount,
            ),
            ShippingOption(
                id=LOCAL_EXPRESS_OPTION_ID,
                name=LOCAL_EXPRESS_OPTION_NAME,
                amount=self.config.express_shipping_amount,
            ),
        ]

    async def list_shipping_options(self) -> List[ShippingOption]:
        """Shipping options for the cart; fixed local tiers without a backend."""
        if self.is_local_mode:
            return self._fallback_shipping_options()
        try:
            raw_options = await self.client.list_shipping_options(self.cart.id)
            return [_normalize_shipping_option(opt) for opt in raw_options]
        except (CommerceError, ValidationError, KeyError) as e:
            logger.error(f"Failed to fetch shipping options: {e}")
            return self._fallback_shipping_options()

    def _local_shipping_amount(self, cart: Cart, option_id: str) -> Decimal:
        is_express = option_id == LOCAL_EXPRESS_OPTION_ID
        base = self.config.express_shipping_amount if is_express else self.config.standard_shipping_amount
        subtotal = round_money(sum((multiply(item.unit_price, item.quantity) for item in cart.items), Decimal("0")))
        # Express never ships free
        if not is_express and subtotal >= self.free_shipping_threshold:
            return Decimal("0.00")
        return base

    async def add_shipping_method(self, option_id: str) -> CartActionResult:
        """Select a shipping option for the cart."""
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        cart = self.cart
        if cart is None:
            return CartActionResult.failed(ERROR_NO_CART)

        if self.is_local_mode:
            amount = self._local_shipping_amount(cart, option_id)
            method = ShippingMethod(
                id=option_id,
                name="Express" if option_id == LOCAL_EXPRESS_OPTION_ID else "Standard",
                amount=amount,
            )
            await self._save_local(cart.model_copy(update={"shipping_total": amount, "shipping_methods": [method]}))
            return CartActionResult.ok()

        try:
            self.cart = Cart.from_response(await self.client.add_shipping_method(cart.id, option_id))
        except CommerceError as e:
            return self._mutation_failed(ERROR_SHIPPING_METHOD_FAILED, e)
        return CartActionResult.ok()

    # ==================== Promotions ====================

    def _promo_target(self) -> Optional[Cart]:
        cart = self.cart
        if cart is None or not self._connected or cart.is_local:
            return None
        return cart

    async def _merge_promotion_response(self, data: dict[str, Any]) -> None:
        if data.get("cart"):
            self.cart = Cart.from_response(data["cart"])
        else:
            await self.refresh_cart()

    async def apply_promo_code(self, code: str) -> CartActionResult:
        """Apply a promotion code. Failures are returned, never raised."""
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        cart = self._promo_target()
        if cart is None:
            return CartActionResult.failed(ERROR_PROMO_BACKEND_REQUIRED)
        if code in cart.promo_codes:
            return CartActionResult.failed(ERROR_PROMO_ALREADY_APPLIED)

        try:
            await self._merge_promotion_response(await self.client.add_promotions(cart.id, [code]))
        except CommerceAPIError as e:
            logger.warning(f"Promo code {sanitize_string_for_logging(code)} rejected: {e}")
            return CartActionResult.failed(e.backend_message or ERROR_PROMO_INVALID)
        except CommerceError as e:
            logger.warning(f"Promo code {sanitize_string_for_logging(code)} could not be applied: {e}")
            return CartActionResult.failed(ERROR_PROMO_FAILED)
        return CartActionResult.ok()

    async def remove_promo_code(self, code: str) -> CartActionResult:
        if self._recovering:
            return CartActionResult.failed(ERROR_CART_RECOVERING)
        cart = self._promo_target()
        if cart is None:
            return CartActionResult.failed(ERROR_PROMO_BACKEND_REQUIRED)

        try:
            await self._merge_promotion_response(await self.client.remove_promotions(cart.id, [code]))
        except CommerceError as e:
            logger.warning(f"Promo code {sanitize_string_for_logging(code)} could not be removed: {e}")
            await self.refresh_cart()
            return CartActionResult.failed(e.backend_message or ERROR_PROMO_REMOVE_FAILED)
        return CartActionResult.ok()

    # ==================== Payment ====================

    def _require_remote_cart(self, local_message: str) -> Cart:
        if self._recovering:
            raise CartRecoveryInProgressError()
        if self.cart is None:
            raise CartUnavailableError(ERROR_NO_CART)
        if self.is_local_mode:
            raise CartUnavailableError(local_message)
        return self.cart

    async def initialize_payment_session(self, provider_id: Optional[str] = None) -> Optional[str]:
        """
        Prepare the cart for payment.

        Args:
            provider_id: Payment provider, defaults to the configured provider

        Returns:
            Client secret of the provider session, None when the provider has none

        Raises:
            CartUnavailableError: no cart, or the cart is local
            CartRecoveryInProgressError: a cart replacement is in flight
            CommerceError: backend failure other than a stale payment session
        """
        cart = self._require_remote_cart(ERROR_PAYMENT_BACKEND_REQUIRED)
        provider = provider_id or self.config.payment_provider

        try:
            fresh = Cart.from_response(await self.client.retrieve_cart(cart.id))
            self.cart = fresh
            try:
                collection = await self.client.initiate_payment_session(
                    fresh.id, provider, _collection_id(fresh)
                )
            except CommerceError as e:
                if not is_stale_payment_error(e):
                    raise
                logger.warning("Could not reinitialize payment session, checking for existing session")
                existing_secret = extract_client_secret(fresh, provider)
                if existing_secret:
                    logger.info("Reusing existing payment session client secret")
                    return existing_secret

                async with self._recovery_guard():
                    replacement = await self.recovery.replace_cart(fresh)
                    self.cart = replacement
                    collection = await self.client.initiate_payment_session(
                        replacement.id, provider, _collection_id(replacement)
                    )

            self.cart = Cart.from_response(await self.client.retrieve_cart(self.cart.id))
        except CommerceError as e:
            logger.error(f"Failed to initialize payment session: {e}")
            raise

        return initiated_client_secret(collection, provider) or extract_client_secret(self.cart, provider)

    async def complete_cart(self) -> dict[str, Any]:
        """
        Place the order.

        Returns:
            {"type": "order", "order": {...}}

        Raises:
            CartUnavailableError: no cart, or the cart is local
            CheckoutError: the backend refused completion (message shown as-is)
            CommerceError: backend failure
        """
        cart = self._require_remote_cart(ERROR_CHECKOUT_BACKEND_REQUIRED)

        try:
            result = await self.client.complete_cart(cart.id)
        except CommerceError as e:
            logger.error(f"Failed to complete cart {sanitize_id_for_logging(cart.id)}: {e}")
            raise

        if result.get("type") == CompletionType.CART.value:
            error = result.get("error")
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning(f"Cart completion refused: {message}")
            raise CheckoutError(message or ERROR_CHECKOUT_FAILED)

        order = result.get("order")
        if order:
            await self._clear_cart_id()
            await self.local_store.clear()
            self.cart = None
            logger.info(f"Order placed for cart {sanitize_id_for_logging(cart.id)}")
            self.notifier.order_placed()
            return {"type": CompletionType.ORDER.value, "order": order}

        raise CheckoutError(ERROR_CHECKOUT_UNEXPECTED)

    # ==================== Customer ====================

    async def transfer_to_customer(self) -> bool:
        """
        Link the persisted guest cart to the signed-in customer.

        An authenticated no-op update is enough for the backend to attach
        the cart. Failures are logged; the cart stays usable as guest cart.
        """
        cart_id = await self._load_cart_id()
        if not cart_id:
            return False
        try:
            await self.client.update_cart(cart_id, {})
        except CommerceError as e:
            logger.error(f"Cart transfer failed: {e}")
            return False
        await self.refresh_cart()
        self._authenticated = True
        return True


def _collection_id(cart: Cart) -> Optional[str]:
    return cart.payment_collection.id if cart.payment_collection else None


def _normalize_shipping_option(raw: dict[str, Any]) -> ShippingOption:
    calculated = raw.get("calculated_price") or {}
    amount = calculated.get("calculated_amount")
    if amount is None:
        amount = raw.get("amount")
    return ShippingOption(
        id=raw["id"],
        name=raw.get("name") or "",
        amount=amount if amount is not None else 0,
        is_tax_inclusive=raw.get("is_tax_inclusive"),
        calculated_price=raw.get("calculated_price"),
    )
