"""
Storefront Notifications

Toast-style messages the cart and auth layers emit. The base class only logs;
a UI integration subclasses CartNotifier and overrides `emit`.
"""
from typing import Optional

from storefront.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ITEM_TITLE = "Artikel"
STORE_NAME = "Fauna Athletics"


class CartNotifier:
    """Notification sink for cart, checkout and account events."""

    def emit(self, level: str, message: str, description: Optional[str] = None) -> None:
        """Deliver one notification. Levels: info, success, error."""
        log = logger.error if level == "error" else logger.info
        if description:
            log("[%s] %s - %s", level, message, description)
        else:
            log("[%s] %s", level, message)

    # ==================== Cart ====================

    def item_added(self, product_name: Optional[str]) -> None:
        self.emit("success", "In den Warenkorb gelegt", product_name or DEFAULT_ITEM_TITLE)

    def item_removed(self, product_name: Optional[str]) -> None:
        self.emit("info", "Artikel entfernt", product_name or DEFAULT_ITEM_TITLE)

    def cart_error(self, message: str, description: Optional[str] = None) -> None:
        self.emit("error", message, description)

    # ==================== Account ====================

    def welcome(self, name: str) -> None:
        self.emit("success", f"Willkommen zurück, {name}!", "Schön, dass du wieder da bist.")

    def welcome_new(self, name: str) -> None:
        self.emit("success", f"Willkommen bei {STORE_NAME}, {name}!", "Dein Konto wurde erfolgreich erstellt.")

    def goodbye(self, name: str) -> None:
        self.emit("info", f"Bis bald, {name}!", "Du wurdest erfolgreich abgemeldet.")

    # ==================== Order ====================

    def order_placed(self) -> None:
        self.emit("success", "Bestellung aufgegeben!", "Vielen Dank für deinen Einkauf.")
