"""Tests for the round-robin poll scheduler."""

import asyncio
import threading
import time
from collections import Counter

import pytest

from fe_monitor.classifier import Available, CheckError, Unavailable
from fe_monitor.inventory import fetch_and_classify
from fe_monitor.scheduler import PollScheduler, _shutdown, start_scheduler, stop_scheduler
from fe_monitor.state import MonitorState


@pytest.fixture(autouse=True)
def reset_shutdown():
    """Ensure clean shutdown state for each test."""
    _shutdown.clear()
    yield
    _shutdown.set()


class FakeNotifier:
    def __init__(self, ok=True, raises=None):
        self.sent = []
        self.ok = ok
        self.raises = raises

    def send(self, text):
        self.sent.append(text)
        if self.raises:
            raise self.raises
        return self.ok


class FakeClient:
    """Stands in for HttpClient: returns queued payloads or raises queued exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get_json(self, url, params=None):
        self.calls.append(params)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        return response


def _item(is_active, price="1999"):
    return {"success": True, "listMap": [{"is_active": is_active, "price": price}]}


def _scheduler(skus, client, notifier=None, **kwargs):
    state = MonitorState(skus=skus, locale="en-us")
    return PollScheduler(state, client, notifier or FakeNotifier(), interval=1, **kwargs)


def _recording_check(log):
    def check(client, sku, locale):
        log.append(sku)
        return Unavailable("1")
    return check


# ── Cursor / round robin ──

@pytest.mark.parametrize("n", [1, 2, 3, 5])
@pytest.mark.parametrize("k", [0, 1, 4, 7, 12])
def test_cursor_advances_k_mod_n(n, k):
    checked = []
    skus = [f"SKU{i}" for i in range(n)]
    scheduler = _scheduler(skus, client=None, check_fn=_recording_check(checked))

    for _ in range(k):
        scheduler.tick()

    assert scheduler.cursor == k % n
    counts = Counter(checked)
    for sku in skus:
        assert counts[sku] >= k // n


def test_round_robin_order_wraps():
    checked = []
    scheduler = _scheduler(["A", "B", "C"], client=None, check_fn=_recording_check(checked))
    for _ in range(7):
        scheduler.tick()
    assert checked == ["A", "B", "C", "A", "B", "C", "A"]


def test_single_sku_checked_every_tick():
    checked = []
    scheduler = _scheduler(["A100"], client=None, check_fn=_recording_check(checked))
    for _ in range(3):
        scheduler.tick()
    assert checked == ["A100", "A100", "A100"]
    assert scheduler.cursor == 0


def test_fetch_uses_sku_and_locale():
    client = FakeClient(_item("false"))
    scheduler = _scheduler(["A100"], client)
    scheduler.tick()
    assert client.calls == [{"skus": "A100", "locale": "en-us"}]


# ── End-to-end ticks ──

def test_null_list_records_not_found_and_alerts():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient({"success": True, "listMap": None}), notifier)

    scheduler.tick()

    assert scheduler.state.ledger.get("A100").kind == "not_found"
    assert len(notifier.sent) == 1
    assert "SKU not found" in notifier.sent[0]
    assert "A100" in notifier.sent[0]


def test_not_found_silent_when_errors_disabled():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient({"success": True, "listMap": None}), notifier)
    scheduler.state.gate.toggle_errors()

    scheduler.tick()

    assert scheduler.state.ledger.get("A100").kind == "not_found"
    assert notifier.sent == []


def test_in_stock_records_price_and_alerts_once():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient(_item("true", "1999")), notifier)

    scheduler.tick()

    outcome = scheduler.state.ledger.get("A100")
    assert outcome.kind == "available"
    assert outcome.price == "1999"
    assert len(notifier.sent) == 1
    msg = notifier.sent[0]
    assert "A100" in msg
    assert "en\\-us" in msg
    assert "1999" in msg


def test_in_stock_recorded_even_when_stock_alerts_off():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient(_item("true")), notifier)
    scheduler.state.gate.toggle_stock()

    scheduler.tick()

    assert scheduler.state.ledger.get("A100").kind == "available"
    assert notifier.sent == []


def test_consecutive_in_stock_ticks_alert_every_time():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient(_item("true"), _item("true")), notifier)

    scheduler.tick()
    scheduler.tick()

    assert len(notifier.sent) == 2


def test_out_of_stock_never_alerts():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient(_item("false")), notifier)
    scheduler.tick()
    assert scheduler.state.ledger.get("A100").kind == "unavailable"
    assert notifier.sent == []


def test_timeout_records_error_and_moves_on():
    notifier = FakeNotifier()
    client = FakeClient(TimeoutError("Operation timed out"), _item("false"))
    scheduler = _scheduler(["A100", "B200"], client, notifier)

    scheduler.tick()
    outcome = scheduler.state.ledger.get("A100")
    assert outcome.kind == "error"
    assert outcome.detail
    assert scheduler.current_sku == "B200"

    scheduler.tick()
    assert scheduler.state.ledger.get("B200").kind == "unavailable"
    assert len(notifier.sent) == 1
    assert "SKU check error" in notifier.sent[0]


def test_success_false_alerts_as_error():
    notifier = FakeNotifier()
    scheduler = _scheduler(["A100"], FakeClient({"success": False}), notifier)
    scheduler.tick()
    assert scheduler.state.ledger.get("A100").detail == "API returned success: false"
    assert len(notifier.sent) == 1


# ── Edge-triggered policy ──

def test_edge_triggered_alerts_only_on_transition():
    notifier = FakeNotifier()
    client = FakeClient(_item("true"), _item("true"), _item("false"), _item("true"))
    scheduler = _scheduler(["A100"], client, notifier, edge_triggered=True)

    for _ in range(4):
        scheduler.tick()

    assert len(notifier.sent) == 2


def test_edge_triggered_first_sighting_alerts():
    scheduler = _scheduler(["A100"], client=None, edge_triggered=True)
    assert scheduler.should_notify(Available("1"), None)
    assert scheduler.should_notify(Available("1"), CheckError("x"))
    assert not scheduler.should_notify(Available("1"), Available("1"))


# ── Failures don't stop anything ──

def test_failed_send_keeps_ledger_and_cursor():
    scheduler = _scheduler(["A100", "B200"], FakeClient(_item("true")), FakeNotifier(ok=False))
    scheduler.tick()
    assert scheduler.state.ledger.get("A100").kind == "available"
    assert scheduler.current_sku == "B200"


def test_raising_notifier_is_contained():
    notifier = FakeNotifier(raises=RuntimeError("telegram down"))
    scheduler = _scheduler(["A100"], FakeClient(_item("true")), notifier)
    outcome = scheduler.tick()
    assert outcome.kind == "available"
    assert scheduler.state.ledger.get("A100") is outcome


def test_unexpected_check_error_still_advances_cursor():
    def broken(client, sku, locale):
        raise RuntimeError("bug")

    scheduler = _scheduler(["A", "B"], client=None, check_fn=broken)
    with pytest.raises(RuntimeError):
        scheduler.tick()
    assert scheduler.cursor == 1
    assert scheduler.ticks == 1


def test_errors_dont_crash_loop():
    """Tick errors should be logged, not end run()."""
    shutdown = threading.Event()
    calls = []

    def flaky(client, sku, locale):
        calls.append(sku)
        if len(calls) >= 4:
            shutdown.set()
        if len(calls) <= 2:
            raise RuntimeError("simulated failure")
        return Unavailable("1")

    scheduler = _scheduler(["A", "B"], client=None, check_fn=flaky)
    scheduler.interval = 0
    scheduler.run(shutdown)

    assert calls == ["A", "B", "A", "B"]


def test_shutdown_stops_loop_promptly():
    """Shutdown event should stop the loop without waiting out the interval."""
    checked = []
    scheduler = _scheduler(["A100"], client=None, check_fn=_recording_check(checked))
    scheduler.interval = 3600

    t = threading.Thread(target=scheduler.run, args=(_shutdown,))
    t.start()
    time.sleep(0.1)
    _shutdown.set()
    t.join(timeout=3)

    assert not t.is_alive(), "Loop didn't stop within 3 seconds"
    assert checked == ["A100"]


def test_start_and_stop_scheduler():
    checked = []
    scheduler = _scheduler(["A100"], client=None, check_fn=_recording_check(checked))
    scheduler.interval = 3600

    async def scenario():
        task = await start_scheduler(scheduler)
        await asyncio.sleep(0.2)
        stop_scheduler()
        await asyncio.wait_for(task, timeout=3)

    asyncio.run(scenario())
    assert checked == ["A100"]


def test_default_check_fn_is_fetch_and_classify():
    scheduler = _scheduler(["A100"], client=None)
    assert scheduler.check_fn is fetch_and_classify
