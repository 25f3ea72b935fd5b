"""Classification of inventory API responses into check outcomes.

The NVIDIA partner inventory endpoint answers with a payload shaped like:

    {
        "success": true,
        "listMap": [
            {"is_active": "true", "price": "1999", "fe_sku": "...", ...}
        ]
    }

Every check for one SKU ends in exactly one Outcome:

    available    first item's is_active is the string "true" (price attached)
    unavailable  any other is_active value (price attached)
    not_found    listMap is null: the SKU itself is stale or invalid
    error        transport failure, success flag false, or malformed listMap

Outcomes are immutable. A new check always produces a fresh object that
replaces the previous one in the ledger.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Union

AVAILABLE = "available"
UNAVAILABLE = "unavailable"
NOT_FOUND = "not_found"
ERROR = "error"

SUCCESS_FALSE_DETAIL = "API returned success: false"
EMPTY_LIST_DETAIL = "listMap is empty or not an array"
BAD_ITEM_DETAIL = "listMap item is not an object"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Available:
    price: str | None
    observed_at: datetime = field(default_factory=_now)
    kind: ClassVar[str] = AVAILABLE


@dataclass(frozen=True)
class Unavailable:
    price: str | None
    observed_at: datetime = field(default_factory=_now)
    kind: ClassVar[str] = UNAVAILABLE


@dataclass(frozen=True)
class NotFound:
    observed_at: datetime = field(default_factory=_now)
    kind: ClassVar[str] = NOT_FOUND


@dataclass(frozen=True)
class CheckError:
    detail: str
    observed_at: datetime = field(default_factory=_now)
    kind: ClassVar[str] = ERROR


Outcome = Union[Available, Unavailable, NotFound, CheckError]


def _price(item: dict) -> str | None:
    price = item.get("price")
    return None if price is None else str(price)


def classify_response(payload: Any, observed_at: datetime | None = None) -> Outcome:
    """Classify a decoded API payload. Pure: no I/O, no logging.

    Rules are applied in order; the first match wins.
    """
    at = observed_at or _now()

    if not isinstance(payload, dict) or not payload.get("success"):
        return CheckError(SUCCESS_FALSE_DETAIL, observed_at=at)

    # Explicit null means the API no longer knows the SKU. A missing key is
    # a malformed payload, not a stale SKU.
    if "listMap" in payload and payload["listMap"] is None:
        return NotFound(observed_at=at)

    items = payload.get("listMap")
    if not isinstance(items, list) or not items:
        return CheckError(EMPTY_LIST_DETAIL, observed_at=at)

    item = items[0]
    if not isinstance(item, dict):
        return CheckError(BAD_ITEM_DETAIL, observed_at=at)

    if item.get("is_active") == "true":
        return Available(_price(item), observed_at=at)
    return Unavailable(_price(item), observed_at=at)


def classify_failure(exc: BaseException, observed_at: datetime | None = None) -> CheckError:
    """Turn a transport-level failure (network, timeout, HTTP status) into an error outcome."""
    detail = str(exc).strip() or type(exc).__name__
    return CheckError(detail, observed_at=observed_at or _now())
