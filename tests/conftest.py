"""Pytest configuration and fixtures"""
import copy
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from storefront.cart.service import CartManager  # noqa: E402
from storefront.config import StorefrontConfig  # noqa: E402
from storefront.errors import CommerceAPIError, CommerceUnavailableError  # noqa: E402
from storefront.services.notifications import CartNotifier  # noqa: E402
from storefront.services.regions import FALLBACK_REGION, Region  # noqa: E402
from storefront.services.store_settings import reset_store_settings_cache  # noqa: E402

STALE_MESSAGE = "Could not delete all payment sessions"
SESSION_ID = "sess-123"


class FakeRedis:
    """In-memory stand-in for the async Upstash client."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def get(self, key: str):
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None):
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, key: str):
        self._check()
        existed = key in self.data
        self.data.pop(key, None)
        self.ttls.pop(key, None)
        return int(existed)


class RecordingNotifier(CartNotifier):
    """Notifier that keeps every emitted notification."""

    def __init__(self):
        self.events: List[tuple] = []

    def emit(self, level: str, message: str, description: Optional[str] = None) -> None:
        self.events.append((level, message, description))

    @property
    def levels(self) -> List[str]:
        return [level for level, _, _ in self.events]


class FakeCommerce:
    """
    In-memory commerce backend exposing the CommerceClient method surface.

    Carts listed in stale_cart_ids reject line item and payment changes the
    way the real backend does when a payment session is stuck.
    """

    def __init__(self):
        self.regions: List[Dict[str, Any]] = [
            {"id": "reg_eu", "name": "Europe", "currency_code": "eur"},
            {"id": "reg_ch", "name": "Schweiz", "currency_code": "chf"},
        ]
        self.variants: Dict[str, Dict[str, Any]] = {
            "variant_tee": {"title": "Performance Tee", "price": 49.9},
            "variant_short": {"title": "Training Shorts", "price": 59.0},
            "variant_hoodie": {"title": "Merino Hoodie", "price": 129.0},
        }
        self.promotions: Dict[str, float] = {"WELCOME10": 10.0}
        self.shipping_options: List[Dict[str, Any]] = [
            {"id": "so_standard", "name": "Standard", "amount": 7.9},
            {
                "id": "so_express",
                "name": "Express",
                "amount": 99,
                "calculated_price": {"calculated_amount": 14.9, "currency_code": "chf"},
            },
        ]
        self.settings: Dict[str, Any] = {"free_shipping_threshold": 69}
        self.carts: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.stale_cart_ids: set = set()
        self.unavailable = False
        self.complete_response: Optional[Dict[str, Any]] = None
        self.auth_token: Optional[str] = None
        self.calls: List[tuple] = []
        self._seq = 0

    # ---- helpers ----

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}_{self._seq:04d}"

    def _call(self, name: str, *args):
        self.calls.append((name, args))
        if self.unavailable:
            raise CommerceUnavailableError("Failed to connect to commerce backend: connection refused")

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def _cart(self, cart_id: str) -> Dict[str, Any]:
        if cart_id not in self.carts:
            raise CommerceAPIError(
                f"Cart id {cart_id} not found", status_code=404, backend_message=f"Cart id {cart_id} not found"
            )
        return self.carts[cart_id]

    def _check_stale(self, cart_id: str):
        if cart_id in self.stale_cart_ids:
            raise CommerceAPIError(STALE_MESSAGE, status_code=400, backend_message=STALE_MESSAGE)

    def _view(self, cart: Dict[str, Any]) -> Dict[str, Any]:
        view = copy.deepcopy(cart)
        subtotal = Decimal("0")
        for item in view["items"]:
            item["total"] = float(Decimal(str(item["unit_price"])) * item["quantity"])
            subtotal += Decimal(str(item["unit_price"])) * item["quantity"]
        shipping = sum((Decimal(str(m["amount"])) for m in view["shipping_methods"]), Decimal("0"))
        discount = sum((Decimal(str(self.promotions[p["code"]])) for p in view["promotions"]), Decimal("0"))
        view["subtotal"] = float(subtotal)
        view["item_total"] = float(subtotal)
        view["shipping_total"] = float(shipping)
        view["discount_total"] = float(discount)
        view["tax_total"] = 0
        view["total"] = float(subtotal + shipping - discount)
        return view

    def seed_cart(self, region_id: str = "reg_ch", **fields) -> Dict[str, Any]:
        """Create a cart directly in the backend state."""
        cart_id = self._next("cart")
        self.carts[cart_id] = {
            "id": cart_id,
            "region_id": region_id,
            "email": None,
            "shipping_address": None,
            "billing_address": None,
            "items": [],
            "shipping_methods": [],
            "promotions": [],
            "payment_collection": None,
            "completed_at": None,
            "customer_id": None,
            **fields,
        }
        return self.carts[cart_id]

    def seed_item(self, cart_id: str, variant_id: str, quantity: int) -> str:
        variant = self.variants[variant_id]
        line_id = self._next("item")
        self.carts[cart_id]["items"].append({
            "id": line_id,
            "title": variant["title"],
            "quantity": quantity,
            "unit_price": variant["price"],
            "variant_id": variant_id,
            "variant": {"id": variant_id, "title": "M", "product": {"handle": variant_id.replace("variant_", "")}},
        })
        return line_id

    def seed_session(self, cart_id: str, provider_id: str, client_secret: Optional[str]):
        data = {"client_secret": client_secret} if client_secret else {}
        self.carts[cart_id]["payment_collection"] = {
            "id": self._next("paycol"),
            "payment_sessions": [{"id": self._next("payses"), "provider_id": provider_id, "data": data}],
        }

    # ---- client surface ----

    def set_auth_token(self, token: Optional[str]) -> None:
        self.auth_token = token

    @property
    def is_authenticated(self) -> bool:
        return self.auth_token is not None

    async def list_regions(self):
        self._call("list_regions")
        return copy.deepcopy(self.regions)

    async def retrieve_cart(self, cart_id: str):
        self._call("retrieve_cart", cart_id)
        return self._view(self._cart(cart_id))

    async def create_cart(self, region_id: Optional[str]):
        self._call("create_cart", region_id)
        return self._view(self.seed_cart(region_id=region_id))

    async def update_cart(self, cart_id: str, fields: Dict[str, Any]):
        self._call("update_cart", cart_id, fields)
        cart = self._cart(cart_id)
        cart.update(copy.deepcopy(fields))
        if self.auth_token:
            cart["customer_id"] = self.auth_token.replace("tok_", "cus_")
        return self._view(cart)

    async def create_line_item(self, cart_id: str, variant_id: str, quantity: int):
        self._call("create_line_item", cart_id, variant_id, quantity)
        self._cart(cart_id)
        self._check_stale(cart_id)
        if variant_id not in self.variants:
            raise CommerceAPIError("Variant not found", status_code=404, backend_message="Variant not found")
        existing = next((i for i in self.carts[cart_id]["items"] if i["variant_id"] == variant_id), None)
        if existing:
            existing["quantity"] += quantity
        else:
            self.seed_item(cart_id, variant_id, quantity)
        return self._view(self.carts[cart_id])

    async def update_line_item(self, cart_id: str, line_item_id: str, quantity: int):
        self._call("update_line_item", cart_id, line_item_id, quantity)
        cart = self._cart(cart_id)
        self._check_stale(cart_id)
        for item in cart["items"]:
            if item["id"] == line_item_id:
                item["quantity"] = quantity
        return self._view(cart)

    async def delete_line_item(self, cart_id: str, line_item_id: str):
        self._call("delete_line_item", cart_id, line_item_id)
        cart = self._cart(cart_id)
        self._check_stale(cart_id)
        cart["items"] = [i for i in cart["items"] if i["id"] != line_item_id]
        return {"id": line_item_id, "object": "line-item", "deleted": True}

    async def complete_cart(self, cart_id: str):
        self._call("complete_cart", cart_id)
        cart = self._cart(cart_id)
        if self.complete_response is not None:
            return copy.deepcopy(self.complete_response)
        cart["completed_at"] = "2026-01-01T00:00:00Z"
        return {"type": "order", "order": {"id": self._next("order"), "total": self._view(cart)["total"]}}

    async def list_shipping_options(self, cart_id: str):
        self._call("list_shipping_options", cart_id)
        self._cart(cart_id)
        return copy.deepcopy(self.shipping_options)

    async def add_shipping_method(self, cart_id: str, option_id: str):
        self._call("add_shipping_method", cart_id, option_id)
        cart = self._cart(cart_id)
        option = next((o for o in self.shipping_options if o["id"] == option_id), None)
        if option is None:
            raise CommerceAPIError("Shipping option not found", status_code=400, backend_message="Shipping option not found")
        amount = (option.get("calculated_price") or {}).get("calculated_amount", option.get("amount"))
        cart["shipping_methods"] = [
            {"id": self._next("sm"), "name": option["name"], "amount": amount, "shipping_option_id": option_id}
        ]
        return self._view(cart)

    async def add_promotions(self, cart_id: str, codes: List[str]):
        self._call("add_promotions", cart_id, codes)
        cart = self._cart(cart_id)
        for code in codes:
            if code not in self.promotions:
                raise CommerceAPIError(
                    f"The promotion code {code} is invalid",
                    status_code=400,
                    backend_message=f"The promotion code {code} is invalid",
                )
            cart["promotions"].append({"id": f"promo_{code.lower()}", "code": code})
        return {"cart": self._view(cart)}

    async def remove_promotions(self, cart_id: str, codes: List[str]):
        self._call("remove_promotions", cart_id, codes)
        cart = self._cart(cart_id)
        cart["promotions"] = [p for p in cart["promotions"] if p["code"] not in codes]
        return {"cart": self._view(cart)}

    async def initiate_payment_session(
        self,
        cart_id: str,
        provider_id: str,
        payment_collection_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        self._call("initiate_payment_session", cart_id, provider_id, payment_collection_id)
        cart = self._cart(cart_id)
        self._check_stale(cart_id)
        collection = cart["payment_collection"] or {"id": self._next("paycol"), "payment_sessions": []}
        session_data = {"client_secret": f"pi_secret_{cart_id}"} if provider_id == "pp_stripe_stripe" else {}
        collection["payment_sessions"] = [
            {"id": self._next("payses"), "provider_id": provider_id, "data": session_data}
        ]
        cart["payment_collection"] = collection
        return copy.deepcopy(collection)

    async def register(self, email: str, password: str):
        self._call("register", email)
        if email in self.customers:
            raise CommerceAPIError("Identity with email already exists", status_code=401,
                                   backend_message="Identity with email already exists")
        self.customers[email] = {"password": password, "customer": None}
        return f"reg_{email}"

    async def login(self, email: str, password: str):
        self._call("login", email)
        account = self.customers.get(email)
        if not account or account["password"] != password:
            raise CommerceAPIError("Invalid email or password", status_code=401,
                                   backend_message="Invalid email or password")
        return f"tok_{email}"

    async def logout(self):
        self._call("logout")
        self.auth_token = None

    async def retrieve_customer(self):
        self._call("retrieve_customer")
        if not self.auth_token:
            raise CommerceAPIError("Unauthorized", status_code=401, backend_message="Unauthorized")
        email = self.auth_token.replace("tok_", "", 1)
        customer = (self.customers.get(email) or {}).get("customer")
        if not customer:
            raise CommerceAPIError("Customer not found", status_code=404, backend_message="Customer not found")
        return copy.deepcopy(customer)

    async def create_customer(self, fields: Dict[str, Any]):
        self._call("create_customer", fields)
        account = self.customers[fields["email"]]
        if account["customer"]:
            raise CommerceAPIError("Customer already exists", status_code=400,
                                   backend_message="Customer already exists")
        account["customer"] = {"id": self._next("cus"), **fields}
        return copy.deepcopy(account["customer"])

    async def get_store_settings(self):
        self._call("get_store_settings")
        return dict(self.settings)

    async def aclose(self):
        self._call("aclose")


@pytest.fixture(autouse=True)
def _reset_store_settings():
    reset_store_settings_cache()
    yield
    reset_store_settings_cache()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def commerce():
    return FakeCommerce()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def config():
    return StorefrontConfig(backend_url="http://medusa.test", publishable_key="pk_test")


@pytest.fixture
def swiss_region():
    return Region(id="reg_ch", name="Schweiz", currency_code="chf")


@pytest.fixture
def fallback_region():
    return FALLBACK_REGION


@pytest.fixture
def manager(commerce, fake_redis, notifier, config):
    """Cart manager wired to the in-memory backend and storage."""
    return CartManager(commerce, SESSION_ID, config=config, redis_client=fake_redis, notifier=notifier)
