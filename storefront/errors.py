"""
Common Errors

Exception taxonomy for the cart layer plus the user-facing messages the
storefront renders inline (German, as shown in the shop).
"""
from typing import Optional

# Cart errors
ERROR_NO_CART = "Kein Warenkorb vorhanden."
ERROR_CART_RECOVERING = "Der Warenkorb wird gerade wiederhergestellt. Bitte versuche es gleich noch einmal."
ERROR_BACKEND_UNAVAILABLE = "Keine Verbindung zum Shop-Backend."
ERROR_ITEM_NOT_FOUND = "Artikel nicht im Warenkorb."
ERROR_ADD_ITEM_FAILED = "Artikel konnte nicht hinzugefügt werden."
ERROR_UPDATE_ITEM_FAILED = "Menge konnte nicht geändert werden."
ERROR_REMOVE_ITEM_FAILED = "Artikel konnte nicht entfernt werden."
ERROR_UPDATE_CART_FAILED = "Warenkorb konnte nicht aktualisiert werden."
ERROR_SHIPPING_METHOD_FAILED = "Versandart konnte nicht gespeichert werden."

# Promo errors
ERROR_PROMO_BACKEND_REQUIRED = "Gutscheincode kann nur mit aktivem Backend eingelöst werden."
ERROR_PROMO_ALREADY_APPLIED = "Dieser Gutscheincode ist bereits eingelöst."
ERROR_PROMO_INVALID = "Ungültiger Gutscheincode."
ERROR_PROMO_FAILED = "Gutscheincode konnte nicht angewendet werden."
ERROR_PROMO_REMOVE_FAILED = "Gutscheincode konnte nicht entfernt werden."

# Checkout errors
ERROR_PAYMENT_BACKEND_REQUIRED = "Zahlung kann nicht vorbereitet werden – keine Verbindung zum Backend."
ERROR_CHECKOUT_BACKEND_REQUIRED = (
    "Bestellung kann nicht abgeschlossen werden – keine Verbindung zum Backend. "
    "Bitte stelle sicher, dass das Shop-Backend erreichbar ist und versuche es erneut."
)
ERROR_CHECKOUT_FAILED = "Die Bestellung konnte nicht abgeschlossen werden. Bitte prüfe deine Angaben."
ERROR_CHECKOUT_UNEXPECTED = "Unerwartete Antwort vom Server beim Abschliessen der Bestellung."

# Auth errors
ERROR_LOGIN_FAILED = "Anmeldung fehlgeschlagen"
ERROR_REGISTER_FAILED = "Registrierung fehlgeschlagen"


class StorefrontError(Exception):
    """Base class for all storefront errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CommerceError(StorefrontError):
    """A call to the commerce backend failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        backend_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        # Message text sent by the backend itself, if any
        self.backend_message = backend_message


class CommerceAPIError(CommerceError):
    """The backend answered with an error status."""


class CommerceUnavailableError(CommerceError):
    """The backend could not be reached (connect/read failure, timeout)."""


class CartUnavailableError(StorefrontError):
    """No cart exists, or the cart is local and the operation needs the backend."""


class CheckoutError(StorefrontError):
    """Cart completion failed; the message is shown to the customer as-is."""


class CartRecoveryInProgressError(StorefrontError):
    """A mutating call arrived while the cart was being replaced."""

    def __init__(self, message: str = ERROR_CART_RECOVERING):
        super().__init__(message)
