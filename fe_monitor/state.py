"""In-memory status tracking.

StatusLedger keeps the latest check outcome per SKU. Nothing is persisted:
a restart begins with an empty ledger ("never checked" for every SKU).

Access rules:
  - The poll scheduler thread is the only writer (record).
  - Bot handlers and web routes only read (get / snapshot).
  - Outcomes are frozen, and record() swaps the whole object, so a reader
    sees either the previous or the new outcome, never a mix of the two.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .classifier import Outcome
from .gate import NotificationGate

log = logging.getLogger(__name__)


class StatusLedger:
    """Latest outcome per configured SKU, in configured order."""

    def __init__(self, skus: list[str]):
        self._skus = list(skus)
        self._records: dict[str, Outcome] = {}
        self._lock = threading.Lock()

    @property
    def skus(self) -> list[str]:
        return list(self._skus)

    def record(self, sku: str, outcome: Outcome) -> None:
        """Replace the stored outcome for sku. Never merges with the old one."""
        with self._lock:
            self._records[sku] = outcome

    def get(self, sku: str) -> Outcome | None:
        """Current outcome for sku, or None if it was never checked."""
        with self._lock:
            return self._records.get(sku)

    def snapshot(self) -> list[tuple[str, Outcome | None]]:
        """(sku, outcome) for every configured SKU, in configured order."""
        with self._lock:
            return [(sku, self._records.get(sku)) for sku in self._skus]

    def is_empty(self) -> bool:
        with self._lock:
            return not self._records


@dataclass
class MonitorState:
    """Everything the scheduler, bot and web app share.

    Created once at startup and passed by reference.
    """

    skus: list[str]
    locale: str
    ledger: StatusLedger | None = None
    gate: NotificationGate = field(default_factory=NotificationGate)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.skus:
            raise ValueError("MonitorState needs at least one SKU")
        if self.ledger is None:
            self.ledger = StatusLedger(self.skus)
