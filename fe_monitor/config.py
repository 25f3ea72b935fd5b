"""Centralized configuration with env var overrides.

All tunables live here. Override any via environment variables or a .env file
in the project root. Required values are checked once at startup by
check_or_exit(); importing this module never fails.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")

log = logging.getLogger(__name__)


def parse_sku_list(raw: str | None) -> list[str]:
    """Split a comma-separated SKU list, preserving order.

    Blank entries are dropped and duplicates keep their first position.
    """
    skus: list[str] = []
    for part in (raw or "").split(","):
        sku = part.strip()
        if sku and sku not in skus:
            skus.append(sku)
    return skus


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ── Inventory API ──
SKU_LIST = parse_sku_list(os.environ.get("SKU_LIST"))
CHECK_INTERVAL_SEC = max(int(os.environ.get("CHECK_INTERVAL_SEC", 30)), 1)
LOCALE = os.environ.get("LOCALE", "en-us").strip() or "en-us"
API_BASE_URL = "https://api.store.nvidia.com/partner/v1/feinventory"
API_TIMEOUT = float(os.environ.get("API_TIMEOUT", 30))
MARKETPLACE_URL = "https://marketplace.nvidia.com/{locale}/consumer/graphics-cards/"

# ── Telegram ──
TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN", "")
CHAT_ID = os.environ.get("CHAT_ID", "").strip() or None
SEND_TIMEOUT = 15.0  # seconds to wait for a send handed to the bot loop

# ── Notification policy ──
# Off: every tick that sees stock sends an alert. On: only the first one after
# the SKU was out of stock, missing, or never checked.
EDGE_TRIGGERED_ALERTS = _parse_bool(os.environ.get("EDGE_TRIGGERED_ALERTS"))

# ── Web ──
PORT = int(os.environ.get("PORT", 3000))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def validate() -> list[str]:
    """Return a list of fatal configuration problems (empty if OK)."""
    problems = []
    if not TELEGRAM_TOKEN:
        problems.append("TELEGRAM_TOKEN not specified in .env")
    if not SKU_LIST:
        problems.append("SKU_LIST not specified in .env or empty")
    if not CHAT_ID:
        log.warning("CHAT_ID not specified in .env; notifications will only be logged")
    return problems


def check_or_exit() -> None:
    """Log every configuration problem and exit non-zero if there are any."""
    problems = validate()
    for problem in problems:
        log.error(f"Config error: {problem}")
    if problems:
        raise SystemExit(1)
