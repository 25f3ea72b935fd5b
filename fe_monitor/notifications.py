"""Telegram notifications for stock alerts and SKU problems.

All messages are MarkdownV2; every dynamic value goes through
escape_markdown(version=2) before interpolation.

TelegramNotifier.send() is called from the scheduler thread. The actual
Bot.send_message coroutine runs on the bot application's event loop, so
the notifier hands it over with run_coroutine_threadsafe and waits for the
result. A failed send is logged and reported as False; it never raises.
"""

import asyncio
import concurrent.futures
import logging

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.helpers import escape_markdown

from .classifier import AVAILABLE, ERROR, NOT_FOUND, Outcome
from .config import MARKETPLACE_URL, SEND_TIMEOUT

log = logging.getLogger(__name__)


def md(value) -> str:
    """Escape any value for MarkdownV2."""
    return escape_markdown(str(value), version=2)


def marketplace_url(locale: str) -> str:
    return MARKETPLACE_URL.format(locale=locale)


def format_stock_message(sku: str, price: str | None, locale: str) -> str:
    return (
        "✅ IN STOCK\\! \n"
        f"SKU: {md(sku)}\n"
        f"Locale: {md(locale)}\n"
        f"Price: {md(price if price is not None else 'unknown')}\n"
        f"Link: {md(marketplace_url(locale))}"
    )


def format_not_found_message(sku: str, locale: str) -> str:
    return (
        "⚠️ *SKU not found*\n"
        f"*{md(sku)}* is no longer valid\\.\n"
        f"Locale: {md(locale)}\n"
        f"{md('Please check the current SKU and update SKU_LIST variable in .env')}"
    )


def format_error_message(sku: str, detail: str, locale: str) -> str:
    return (
        "⚠️ *SKU check error*\n"
        f"*{md(sku)}*: {md(detail)}\n"
        f"Locale: {md(locale)}\n"
        "Please check the SKU and API response\\."
    )


def format_alert(sku: str, outcome: Outcome, locale: str) -> str | None:
    """Message for an outcome, or None for kinds that never notify (out of stock)."""
    if outcome.kind == AVAILABLE:
        return format_stock_message(sku, outcome.price, locale)
    if outcome.kind == NOT_FOUND:
        return format_not_found_message(sku, locale)
    if outcome.kind == ERROR:
        return format_error_message(sku, outcome.detail, locale)
    return None


class TelegramNotifier:
    """Sends MarkdownV2 messages to a single chat.

    With no chat_id the message is only logged. loop is the event loop the
    bot lives on; without one, sends run in a private asyncio.run().
    """

    def __init__(
        self,
        bot: Bot | None,
        chat_id: str | None,
        loop: asyncio.AbstractEventLoop | None = None,
        timeout: float = SEND_TIMEOUT,
    ):
        self._bot = bot
        self.chat_id = chat_id
        self._loop = loop
        self.timeout = timeout

    @property
    def active(self) -> bool:
        return bool(self._bot and self.chat_id)

    async def send_async(self, text: str) -> bool:
        if not self.active:
            log.info(f"Message (CHAT_ID not specified): {text}")
            return True
        try:
            await self._bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN_V2,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except TelegramError as e:
            log.error(f"Error sending message to Telegram: {e}")
            return False
        log.info(f"Sent Telegram message to {self.chat_id}")
        return True

    def send(self, text: str) -> bool:
        """Blocking send for code running outside the bot's event loop."""
        if not self.active or self._loop is None:
            return asyncio.run(self.send_async(text))

        future = asyncio.run_coroutine_threadsafe(self.send_async(text), self._loop)
        try:
            return future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            log.error(f"Telegram send timed out after {self.timeout}s")
            return False
