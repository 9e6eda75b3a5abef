"""Storefront configuration loaded from environment variables."""
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

from storefront.commerce.constants import PaymentProvider
from storefront.logging import get_logger
from storefront.services.money import to_decimal

logger = get_logger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:9000"
DEFAULT_STORE_CURRENCY = "chf"

# Swiss MWST, prices are shown tax-inclusive
DEFAULT_TAX_RATE = Decimal("0.081")
DEFAULT_FREE_SHIPPING_THRESHOLD = Decimal("69")
DEFAULT_STANDARD_SHIPPING = Decimal("7.90")
DEFAULT_EXPRESS_SHIPPING = Decimal("14.90")
DEFAULT_TIMEOUT = 10.0


@dataclass
class StorefrontConfig:
    """Runtime settings for the commerce client and cart manager."""
    backend_url: str = DEFAULT_BACKEND_URL
    publishable_key: Optional[str] = None
    stripe_publishable_key: Optional[str] = None
    default_payment_provider: Optional[str] = None
    store_currency: str = DEFAULT_STORE_CURRENCY
    tax_rate: Decimal = DEFAULT_TAX_RATE
    free_shipping_threshold: Decimal = DEFAULT_FREE_SHIPPING_THRESHOLD
    standard_shipping_amount: Decimal = DEFAULT_STANDARD_SHIPPING
    express_shipping_amount: Decimal = DEFAULT_EXPRESS_SHIPPING
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        self.backend_url = self.backend_url.rstrip("/")
        self.store_currency = self.store_currency.lower()
        self.tax_rate = to_decimal(self.tax_rate)
        self.free_shipping_threshold = to_decimal(self.free_shipping_threshold)
        self.standard_shipping_amount = to_decimal(self.standard_shipping_amount)
        self.express_shipping_amount = to_decimal(self.express_shipping_amount)

    @property
    def payment_provider(self) -> str:
        """
        Provider used when the caller does not pick one.

        Priority:
        1. DEFAULT_PAYMENT_PROVIDER
        2. Stripe, when a Stripe publishable key is configured
        3. Medusa system default provider
        """
        if self.default_payment_provider:
            return self.default_payment_provider
        if self.stripe_publishable_key:
            return PaymentProvider.STRIPE.value
        return PaymentProvider.SYSTEM_DEFAULT.value

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "StorefrontConfig":
        """Build config from the environment (and a local .env file if present)."""
        if dotenv:
            load_dotenv(override=False)

        timeout_raw = os.environ.get("COMMERCE_TIMEOUT", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            logger.warning(f"Invalid COMMERCE_TIMEOUT={timeout_raw!r}, using {DEFAULT_TIMEOUT}")
            timeout = DEFAULT_TIMEOUT

        return cls(
            backend_url=os.environ.get("MEDUSA_BACKEND_URL", DEFAULT_BACKEND_URL),
            publishable_key=os.environ.get("MEDUSA_PUBLISHABLE_KEY") or None,
            stripe_publishable_key=os.environ.get("STRIPE_PUBLISHABLE_KEY") or None,
            default_payment_provider=os.environ.get("DEFAULT_PAYMENT_PROVIDER") or None,
            store_currency=os.environ.get("STORE_CURRENCY", DEFAULT_STORE_CURRENCY),
            tax_rate=_env_decimal("TAX_RATE", DEFAULT_TAX_RATE),
            free_shipping_threshold=_env_decimal("FREE_SHIPPING_THRESHOLD", DEFAULT_FREE_SHIPPING_THRESHOLD),
            standard_shipping_amount=_env_decimal("LOCAL_STANDARD_SHIPPING", DEFAULT_STANDARD_SHIPPING),
            express_shipping_amount=_env_decimal("LOCAL_EXPRESS_SHIPPING", DEFAULT_EXPRESS_SHIPPING),
            timeout=timeout,
        )


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name)
    if not raw:
        return default
    value = to_decimal(raw)
    if value == 0 and raw.strip() not in ("0", "0.0", "0.00"):
        logger.warning(f"Invalid {name}={raw!r}, using {default}")
        return default
    return value
