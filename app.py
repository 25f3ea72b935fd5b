"""FastAPI web process for the NVIDIA Founders Edition stock monitor.

Routes:
  GET /        -- liveness text for the hosting platform's keep-alive pings
  GET /health  -- JSON health check

The lifespan starts the Telegram bot (command polling) and the SKU poll
loop, and stops both on shutdown.

NOTE: The status ledger and notification toggles live in memory.
The app must run as a single worker process (no multi-worker deployment).
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

import fe_monitor.config as config
from fe_monitor.bot import build_application, start_bot, stop_bot
from fe_monitor.helpers import format_duration, uptime_seconds
from fe_monitor.http_client import HttpClient
from fe_monitor.notifications import TelegramNotifier
from fe_monitor.scheduler import PollScheduler, start_scheduler, stop_scheduler
from fe_monitor.state import MonitorState

# ──────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler()],
)
# httpx logs every getUpdates long-poll at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
log = logging.getLogger(__name__)

STARTED_AT = datetime.now(timezone.utc)

COMMAND_HINT = "/status /toggle_stock /toggle_errors"
SHUTDOWN_TIMEOUT = config.API_TIMEOUT + config.SEND_TIMEOUT + 5


def _check_single_worker():
    """Exit if multi-worker deployment detected. Each worker would run its own
    poll loop and bot, doubling API traffic and alerts."""
    workers = os.environ.get("WEB_CONCURRENCY")
    if workers and workers.isdigit() and int(workers) > 1:
        log.error(
            "WEB_CONCURRENCY=%s detected; this app MUST run with a single worker. "
            "The poll loop and Telegram bot are per-process.", workers
        )
        raise SystemExit(1)


@asynccontextmanager
async def lifespan(app):
    _check_single_worker()
    config.check_or_exit()

    state = MonitorState(skus=config.SKU_LIST, locale=config.LOCALE, started_at=STARTED_AT)
    application = build_application(config.TELEGRAM_TOKEN, state)
    await start_bot(application)

    notifier = TelegramNotifier(application.bot, config.CHAT_ID, loop=asyncio.get_running_loop())
    client = HttpClient()
    scheduler = PollScheduler(state, client, notifier)
    poll_task = await start_scheduler(scheduler)
    yield

    stop_scheduler()
    try:
        await asyncio.wait_for(poll_task, timeout=SHUTDOWN_TIMEOUT)
    except TimeoutError:
        log.warning(f"Poll loop did not stop within {SHUTDOWN_TIMEOUT}s")
    except Exception:
        log.exception("Poll loop error during shutdown")
    finally:
        client.close()
        await stop_bot(application)


app = FastAPI(
    title="NVIDIA FE Monitor",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


@app.get("/", response_class=PlainTextResponse)
def alive():
    uptime = format_duration(uptime_seconds(STARTED_AT))
    return f"NVIDIA FE monitor alive | uptime {uptime} | {COMMAND_HINT}"


@app.get("/health")
def health():
    return {
        "status": "ok",
        "uptime_seconds": uptime_seconds(STARTED_AT),
        "skus": len(config.SKU_LIST),
    }


def main():
    config.check_or_exit()
    log.info(f"Web server running on port {config.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT, workers=1)


if __name__ == "__main__":
    main()
