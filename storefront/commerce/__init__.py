"""Commerce backend package: Store API client and constants."""
from .client import CommerceClient
from .constants import CART_FIELDS, CompletionType, PaymentProvider

__all__ = [
    "CommerceClient",
    "CART_FIELDS",
    "CompletionType",
    "PaymentProvider",
]
