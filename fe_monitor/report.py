"""Status report for the /status bot command.

Produces a MarkdownV2 text block: an uptime line, then one line per SKU in
configured order. Until the first check lands, the SKU lines are replaced
by a single "Collecting data..." line.
"""

from datetime import datetime, timezone

from .classifier import AVAILABLE, ERROR, NOT_FOUND, Outcome
from .helpers import format_duration, relative_time, uptime_seconds
from .notifications import md


def format_sku_status(sku: str, outcome: Outcome | None, now: datetime | None = None) -> str:
    """One SKU line (two for errors: the detail goes on an indented line)."""
    name = md(sku)
    if outcome is None:
        return f"{name}: no data"

    ago = md(relative_time(outcome.observed_at, now))
    if outcome.kind == ERROR:
        return f"{name}: ❌ Error \\({ago}\\)\n   {md(outcome.detail)}"
    if outcome.kind == NOT_FOUND:
        return f"{name}: ⚠️ SKU not found \\({ago}\\)"
    price = f" {md(outcome.price)}" if outcome.price is not None else ""
    if outcome.kind == AVAILABLE:
        return f"{name}: ✅ In stock{price} \\({ago}\\)"
    return f"{name}: ❌ Out of stock{price} \\({ago}\\)"


def format_status(
    snapshot: list[tuple[str, Outcome | None]],
    started_at: datetime,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    text = f"Server uptime: {md(format_duration(uptime_seconds(started_at, now)))}\n"

    if not snapshot or all(outcome is None for _, outcome in snapshot):
        return text + "Collecting data\\.\\.\\."

    lines = [format_sku_status(sku, outcome, now) for sku, outcome in snapshot]
    return text + "\n".join(lines)
