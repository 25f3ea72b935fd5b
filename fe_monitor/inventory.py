"""Fetch-and-classify step for a single SKU.

Never raises: anything that goes wrong while talking to the API becomes an
error outcome, so one bad check can't take down the poll loop.
"""

import logging

from .classifier import ERROR, Outcome, classify_failure, classify_response
from .config import API_BASE_URL
from .http_client import HttpClient

log = logging.getLogger(__name__)


def fetch_inventory(client: HttpClient, sku: str, locale: str):
    """Raw decoded payload for one SKU. Transport and HTTP errors propagate."""
    return client.get_json(API_BASE_URL, params={"skus": sku, "locale": locale})


def fetch_and_classify(client: HttpClient, sku: str, locale: str) -> Outcome:
    """Check one SKU and return its outcome."""
    try:
        payload = fetch_inventory(client, sku, locale)
    except Exception as e:
        outcome = classify_failure(e)
        log.error(f"Error checking {sku}: {type(e).__name__}: {outcome.detail}")
        return outcome

    outcome = classify_response(payload)
    if outcome.kind == ERROR:
        log.error(f"Error checking {sku}: {outcome.detail}")
    return outcome
