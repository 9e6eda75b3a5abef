"""Commerce backend constants, enums, and field sets."""
from enum import Enum


class PaymentProvider(str, Enum):
    """Payment providers registered on the commerce backend."""
    STRIPE = "pp_stripe_stripe"
    SYSTEM_DEFAULT = "pp_system_default"


class CompletionType(str, Enum):
    """
    Discriminator of the cart completion response.

    - cart: completion failed validation, the cart is still open
    - order: completion succeeded, an order was placed
    """
    CART = "cart"
    ORDER = "order"


# Relationship fields requested on every cart retrieve so thumbnails,
# variant info, product handles and payment state are always present.
CART_FIELDS = "+items,+items.variant,+items.variant.product,+shipping_methods,+payment_collection"

# Auth actor/provider pair used for customer accounts
AUTH_ACTOR = "customer"
AUTH_PROVIDER = "emailpass"

# Substrings the backend uses when a cart's payment sessions cannot be replaced
STALE_PAYMENT_SIGNATURES = ("delete all payment sessions", "payment_sessions")
