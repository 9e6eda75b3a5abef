"""
Storefront Cart Layer

Client-side cart synchronization for a Medusa v2 storefront:
- commerce: Store API client
- cart: cart manager, local cart, stale payment recovery
- auth: customer session and guest cart transfer
- services: regions, store settings, notifications, money

Note: Imports are lazy so that importing a submodule does not pull in
the whole package.
"""

__all__ = [
    "CartManager",
    "CommerceClient",
    "StorefrontConfig",
    "StorefrontSession",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "CartManager":
        from storefront.cart.service import CartManager
        return CartManager
    if name == "CommerceClient":
        from storefront.commerce.client import CommerceClient
        return CommerceClient
    if name == "StorefrontConfig":
        from storefront.config import StorefrontConfig
        return StorefrontConfig
    if name == "StorefrontSession":
        from storefront.bootstrap import StorefrontSession
        return StorefrontSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
