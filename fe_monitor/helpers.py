"""Shared time formatting used by the status report and the web app."""

from datetime import datetime, timezone


def _utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def relative_time(dt: datetime | None, now: datetime | None = None) -> str:
    """Convert a timestamp to a short "N sec ago" style phrase."""
    if dt is None:
        return "never"
    now = now or datetime.now(timezone.utc)
    seconds = int((_utc(now) - _utc(dt)).total_seconds())
    if seconds < 0:
        seconds = 0
    if seconds < 60:
        return f"{seconds} sec ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as the two largest units, e.g. "2h 5m" or "42s"."""
    seconds = max(int(seconds), 0)
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def uptime_seconds(started_at: datetime, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    return max(int((_utc(now) - _utc(started_at)).total_seconds()), 0)
