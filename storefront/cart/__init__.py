"""Cart package: models, local storage, recovery and manager."""
from .models import Cart, CartActionResult, CartState, LineItem, LineItemOrigin, LocalProduct, ShippingOption
from .service import CartManager

__all__ = [
    "Cart",
    "CartActionResult",
    "CartState",
    "LineItem",
    "LineItemOrigin",
    "LocalProduct",
    "ShippingOption",
    "CartManager",
]
