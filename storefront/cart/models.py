"""Cart models with Decimal-based pricing."""
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from storefront.errors import CommerceAPIError
from storefront.services.money import to_decimal

LOCAL_CART_ID = "local"
LOCAL_ITEM_PREFIX = "local_"
LOCAL_VARIANT_PREFIX = "local_variant_"


class LineItemOrigin(str, Enum):
    """Where a line item lives: only in client storage, or on the backend."""
    LOCAL = "local"
    REMOTE = "remote"


class CartState(str, Enum):
    """
    Cart manager lifecycle.

    Flow:
        uninitialized -> local | remote-guest -> remote-authenticated
        any remote state -> recovering -> previous state

    - local: no reachable backend or fallback region, cart lives in storage
    - remote-guest: anonymous backend cart
    - remote-authenticated: backend cart linked to a signed-in customer
    - recovering: stale payment session repair in flight
    """
    UNINITIALIZED = "uninitialized"
    LOCAL = "local"
    REMOTE_GUEST = "remote-guest"
    REMOTE_AUTHENTICATED = "remote-authenticated"
    RECOVERING = "recovering"


class ProductRef(BaseModel):
    handle: Optional[str] = None
    thumbnail: Optional[str] = None

    class Config:
        extra = "ignore"


class VariantRef(BaseModel):
    id: str
    title: Optional[str] = None
    product: Optional[ProductRef] = None

    class Config:
        extra = "ignore"


class LineItem(BaseModel):
    """Single line in the cart."""
    id: str
    title: str = ""
    subtitle: Optional[str] = None
    thumbnail: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total: Decimal = Decimal("0")
    variant_id: Optional[str] = None
    variant: Optional[VariantRef] = None
    origin: LineItemOrigin = LineItemOrigin.REMOTE

    class Config:
        extra = "ignore"

    @field_validator("unit_price", "total", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)

    @property
    def resolved_variant_id(self) -> Optional[str]:
        """Variant to re-add when the item is replayed onto another cart."""
        if self.variant_id:
            return self.variant_id
        return self.variant.id if self.variant else None

    @property
    def is_local(self) -> bool:
        return self.origin == LineItemOrigin.LOCAL


class ShippingMethod(BaseModel):
    id: str
    name: Optional[str] = None
    amount: Decimal = Decimal("0")
    shipping_option_id: Optional[str] = None

    class Config:
        extra = "ignore"

    @field_validator("amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


class ShippingOption(BaseModel):
    """Selectable shipping option with its normalized price."""
    id: str
    name: str
    amount: Decimal
    is_tax_inclusive: Optional[bool] = None
    calculated_price: Optional[dict[str, Any]] = None

    @field_validator("amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


class Promotion(BaseModel):
    code: str
    id: Optional[str] = None

    class Config:
        extra = "ignore"


class PaymentSession(BaseModel):
    id: Optional[str] = None
    provider_id: Optional[str] = None
    data: dict[str, Any] = {}

    class Config:
        extra = "ignore"

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, v):
        return v or {}

    @property
    def client_secret(self) -> Optional[str]:
        return self.data.get("client_secret") or None


class PaymentCollection(BaseModel):
    id: Optional[str] = None
    payment_sessions: List[PaymentSession] = []

    class Config:
        extra = "ignore"

    @field_validator("payment_sessions", mode="before")
    @classmethod
    def default_sessions(cls, v):
        return v or []


class Cart(BaseModel):
    """Shopping cart, either a backend cart or the local fallback cart."""
    id: str
    items: List[LineItem] = []
    subtotal: Decimal = Decimal("0")
    item_total: Decimal = Decimal("0")
    shipping_total: Decimal = Decimal("0")
    discount_total: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    region_id: Optional[str] = None
    email: Optional[str] = None
    shipping_address: Optional[dict[str, Any]] = None
    billing_address: Optional[dict[str, Any]] = None
    shipping_methods: List[ShippingMethod] = []
    payment_collection: Optional[PaymentCollection] = None
    promotions: List[Promotion] = []
    completed_at: Optional[str] = None

    class Config:
        extra = "ignore"

    @field_validator(
        "subtotal", "item_total", "shipping_total", "discount_total", "tax_total", "total",
        mode="before",
    )
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)

    @field_validator("items", "shipping_methods", "promotions", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []

    @property
    def is_local(self) -> bool:
        return self.id == LOCAL_CART_ID

    @property
    def all_items_local(self) -> bool:
        """True when the cart has items and none of them exists on the backend."""
        return bool(self.items) and all(item.is_local for item in self.items)

    @property
    def item_count(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self.items)

    @property
    def promo_codes(self) -> List[str]:
        return [promo.code for promo in self.promotions]

    def find_item(self, line_item_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.id == line_item_id), None)

    def find_item_by_variant(self, variant_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.resolved_variant_id == variant_id), None)

    def to_dict(self) -> dict:
        """Convert to a JSON-safe dictionary for storage."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        return cls.model_validate(data)

    @classmethod
    def from_response(cls, data: dict) -> "Cart":
        """Parse a cart returned by the backend; malformed carts are API errors."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise CommerceAPIError(f"Malformed cart in commerce response: {e.error_count()} error(s)") from e


class LocalProduct(BaseModel):
    """Catalog product as the storefront knows it without a backend."""
    id: str
    name: str
    subtitle: Optional[str] = None
    price: Decimal
    image: Optional[str] = None
    sizes: List[str] = []

    class Config:
        extra = "ignore"

    @field_validator("price", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


class CartActionResult(BaseModel):
    """Outcome of a cart operation whose failure is rendered inline."""
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "CartActionResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "CartActionResult":
        return cls(success=False, error=error)
