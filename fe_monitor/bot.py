"""Telegram command interface.

Commands:
- /start, /help    : usage text
- /toggle_stock    : flip stock notifications, reply with the new state
- /toggle_errors   : flip error/SKU problem notifications, reply with the new state
- /status          : uptime plus the last check result of every SKU (MarkdownV2)

The shared MonitorState lives in application.bot_data["state"]. Handlers
only read the ledger and flip the gate; they never start checks.
"""

import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from .report import format_status
from .state import MonitorState

log = logging.getLogger(__name__)

USAGE = (
    "NVIDIA Founders Edition monitoring started\n"
    "Commands: /status /toggle_stock /toggle_errors"
)


def _state(context: ContextTypes.DEFAULT_TYPE) -> MonitorState:
    return context.bot_data["state"]


def _enabled(flag: bool) -> str:
    return "enabled" if flag else "disabled"


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(USAGE)


async def toggle_stock(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    enabled = _state(context).gate.toggle_stock()
    log.info(f"Stock notifications {_enabled(enabled)} by chat {update.effective_chat.id}")
    await update.effective_message.reply_text(f"Stock notifications {_enabled(enabled)}")


async def toggle_errors(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    enabled = _state(context).gate.toggle_errors()
    log.info(f"Error notifications {_enabled(enabled)} by chat {update.effective_chat.id}")
    await update.effective_message.reply_text(
        f"Error/SKU problem notifications {_enabled(enabled)}"
    )


async def status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    state = _state(context)
    text = format_status(state.ledger.snapshot(), state.started_at)
    await update.effective_message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)


def build_application(token: str, state: MonitorState) -> Application:
    """Create the bot application with all command handlers registered."""
    application = ApplicationBuilder().token(token).build()
    application.bot_data["state"] = state

    application.add_handler(CommandHandler(["start", "help"], start))
    application.add_handler(CommandHandler("toggle_stock", toggle_stock))
    application.add_handler(CommandHandler("toggle_errors", toggle_errors))
    application.add_handler(CommandHandler("status", status))
    return application


async def start_bot(application: Application) -> None:
    """Start receiving commands inside an already running event loop."""
    await application.initialize()
    await application.start()
    await application.updater.start_polling(drop_pending_updates=True)
    log.info("Telegram bot started")


async def stop_bot(application: Application) -> None:
    if application.updater and application.updater.running:
        await application.updater.stop()
    if application.running:
        await application.stop()
    await application.shutdown()
    log.info("Telegram bot stopped")
