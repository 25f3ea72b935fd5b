"""Round-robin poll loop over the configured SKUs.

One SKU per tick, strictly sequential, so the inventory API sees at most one
request per interval no matter how many SKUs are tracked.

A tick:
  1. fetch and classify the SKU under the cursor
  2. replace its ledger record
  3. send a notification if the gate allows it
  4. advance the cursor, wrapping after the last SKU
then the loop waits one interval and repeats. A failed check is already an
error outcome by step 1, and anything unexpected is logged; neither stops
the loop.

Thread model:
  - 1 long-lived thread on a dedicated executor, started from the web app's
    lifespan. It is the only ledger writer and the only notification sender.
  - The inter-tick wait is an Event.wait, so stop_scheduler() is observed
    immediately instead of after a full interval.
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from .classifier import AVAILABLE, Outcome
from .config import CHECK_INTERVAL_SEC, EDGE_TRIGGERED_ALERTS
from .http_client import HttpClient
from .inventory import fetch_and_classify
from .notifications import TelegramNotifier, format_alert
from .state import MonitorState

log = logging.getLogger(__name__)

_shutdown = threading.Event()
_scheduler_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="poller")

CheckFn = Callable[[HttpClient, str, str], Outcome]


class PollScheduler:
    def __init__(
        self,
        state: MonitorState,
        client: HttpClient,
        notifier: TelegramNotifier,
        interval: int = CHECK_INTERVAL_SEC,
        check_fn: CheckFn = fetch_and_classify,
        edge_triggered: bool = EDGE_TRIGGERED_ALERTS,
    ):
        self.state = state
        self.client = client
        self.notifier = notifier
        self.interval = interval
        self.check_fn = check_fn
        self.edge_triggered = edge_triggered
        self.cursor = 0
        self.ticks = 0

    @property
    def current_sku(self) -> str:
        return self.state.skus[self.cursor]

    def should_notify(self, outcome: Outcome, previous: Outcome | None) -> bool:
        """Gate decision, plus the optional edge-triggered policy for stock alerts."""
        if not self.state.gate.allows(outcome):
            return False
        if (
            self.edge_triggered
            and outcome.kind == AVAILABLE
            and previous is not None
            and previous.kind == AVAILABLE
        ):
            return False
        return True

    def _dispatch(self, sku: str, outcome: Outcome, previous: Outcome | None) -> None:
        if not self.should_notify(outcome, previous):
            return
        text = format_alert(sku, outcome, self.state.locale)
        if text is None:
            return
        try:
            if not self.notifier.send(text):
                log.warning(f"Notification for {sku} ({outcome.kind}) was not delivered")
        except Exception:
            log.exception(f"Notification for {sku} failed")

    def tick(self) -> Outcome | None:
        """Check the SKU under the cursor, then advance the cursor.

        The cursor moves even if something in the check blows up, so a
        single broken SKU can't pin the loop.
        """
        sku = self.current_sku
        try:
            previous = self.state.ledger.get(sku)
            outcome = self.check_fn(self.client, sku, self.state.locale)
            self.state.ledger.record(sku, outcome)
            log.info(f"Checked {sku}: {outcome.kind}")
            self._dispatch(sku, outcome, previous)
            return outcome
        finally:
            self.cursor = (self.cursor + 1) % len(self.state.skus)
            self.ticks += 1

    def run(self, shutdown: threading.Event = _shutdown) -> None:
        """Tick forever, waiting one interval after each tick, until shutdown is set."""
        log.info(
            f"Scheduler: polling {len(self.state.skus)} SKU(s) "
            f"every {self.interval}s (locale={self.state.locale})"
        )
        while not shutdown.is_set():
            try:
                self.tick()
            except Exception:
                log.exception("Scheduler: tick error")
            if shutdown.wait(self.interval):
                break
        log.info("Scheduler: stopped")


async def start_scheduler(scheduler: PollScheduler) -> asyncio.Future:
    """Launch the poll loop on its dedicated thread. Returns the future handle."""
    _shutdown.clear()
    loop = asyncio.get_running_loop()
    return loop.run_in_executor(_scheduler_pool, scheduler.run, _shutdown)


def stop_scheduler():
    """Signal the poll loop to stop after the current tick."""
    log.info("Scheduler: stopping...")
    _shutdown.set()
