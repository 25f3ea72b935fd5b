"""Notification switches controlled from the bot.

Two independent toggles, both on by default and kept for the process
lifetime only. The scheduler reads them; only bot commands flip them.
"""

import threading

from .classifier import AVAILABLE, ERROR, NOT_FOUND, Outcome


class NotificationGate:
    def __init__(self, stock: bool = True, errors: bool = True):
        self._stock = stock
        self._errors = errors
        self._lock = threading.Lock()

    def toggle_stock(self) -> bool:
        """Flip stock notifications. Returns the new state."""
        with self._lock:
            self._stock = not self._stock
            return self._stock

    def toggle_errors(self) -> bool:
        """Flip error/SKU problem notifications. Returns the new state."""
        with self._lock:
            self._errors = not self._errors
            return self._errors

    def should_notify_stock(self) -> bool:
        return self._stock

    def should_notify_errors(self) -> bool:
        return self._errors

    def allows(self, outcome: Outcome) -> bool:
        """Whether this outcome kind should produce an outbound message.

        Out-of-stock results never notify.
        """
        if outcome.kind == AVAILABLE:
            return self._stock
        if outcome.kind in (NOT_FOUND, ERROR):
            return self._errors
        return False
