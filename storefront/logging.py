"""
Logging setup for the storefront package.

    from storefront.logging import get_logger
    logger = get_logger(__name__)

The root handler is installed once, on first import. LOG_LEVEL picks the
level; STOREFRONT_ENV=production switches to the compact line format.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Medusa ids carry a type prefix ("cart_", "item_"), keep enough to stay useful
ID_LOG_LENGTH = 16
TEXT_LOG_LENGTH = 50

# Every commerce call goes through httpx; its per-request INFO lines are noise
NOISY_LOGGERS = ("httpx", "httpcore", "httpcore.http11", "httpcore.connection")


def _level_from_env() -> int:
    return getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)


def _install_root_handler() -> None:
    root = logging.getLogger()
    if root.handlers:
        # Host application already configured logging
        return

    level = _level_from_env()
    production = os.environ.get("STOREFRONT_ENV", "").lower() == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if production else LOG_FORMAT))

    root.setLevel(level)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_install_root_handler()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a storefront module (pass __name__)."""
    return logging.getLogger(name)


def _strip_control_chars(value: str) -> str:
    # Log injection (CWE-117): keep every record on one line
    return value.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t").replace("\x00", "")


def sanitize_id_for_logging(id_value: str | None) -> str:
    """Cart, line item or session id shortened to ID_LOG_LENGTH; "N/A" when empty."""
    if not id_value:
        return "N/A"
    return _strip_control_chars(str(id_value))[:ID_LOG_LENGTH]


def sanitize_string_for_logging(value: str | None, max_length: int = TEXT_LOG_LENGTH) -> str:
    """
    Customer-supplied text (promo codes, emails) made safe for a log line.

    Longer values are cut to max_length and marked with "...".
    """
    if not value:
        return "N/A"
    safe_value = _strip_control_chars(str(value))
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
