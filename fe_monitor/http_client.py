"""HTTP client for the NVIDIA partner inventory API.

Uses curl_cffi with Chrome TLS fingerprint impersonation and a fixed header
set copied from the browser request made by the public notify page, so the
API sees the same thing a browser would send. One request per call: no
retries, no backoff. The poll loop's next tick is the retry.
"""

import json
import logging
import os
import ssl
from dataclasses import dataclass
from typing import Any

from curl_cffi.requests import Response, Session

from .config import API_TIMEOUT

log = logging.getLogger(__name__)

IMPERSONATE = "chrome"

API_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9,ru;q=0.8",
    "Origin": "https://notify-fe.plen.io",
    "Referer": "https://notify-fe.plen.io/",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "cross-site",
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"
    ),
}


class InventoryAPIError(Exception):
    """The API answered, but not with a usable JSON body (HTTP status or decode failure)."""


def _find_ca_bundle() -> str | None:
    """Find system CA certificate bundle for SSL verification."""
    env_path = os.environ.get("CURL_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if env_path and os.path.isfile(env_path):
        return env_path
    system_ca = ssl.get_default_verify_paths().cafile
    if system_ca and os.path.isfile(system_ca):
        return system_ca
    return None


@dataclass
class FetchResult:
    """Raw response from one request."""
    content: bytes
    status_code: int
    url: str


class HttpClient:
    """Synchronous client; the poll loop runs in its own thread.

    Not thread-safe (curl_cffi Session isn't). One instance per scheduler.
    """

    def __init__(self, timeout: float = API_TIMEOUT, impersonate: str = IMPERSONATE):
        self.timeout = timeout
        self.impersonate = impersonate
        ca_bundle = _find_ca_bundle()
        self._session = Session(verify=ca_bundle) if ca_bundle else Session()

    def fetch(self, url: str, params: dict | None = None) -> FetchResult:
        """GET url with the browser header set. Transport errors propagate."""
        response: Response = self._session.get(
            url,
            params=params,
            headers=API_HEADERS,
            timeout=self.timeout,
            impersonate=self.impersonate,
            allow_redirects=True,
        )
        return FetchResult(
            content=response.content,
            status_code=response.status_code,
            url=str(response.url),
        )

    def get_json(self, url: str, params: dict | None = None) -> Any:
        """GET url and decode the JSON body.

        Raises InventoryAPIError on a non-2xx status or an undecodable body.
        """
        result = self.fetch(url, params=params)
        if not 200 <= result.status_code < 300:
            raise InventoryAPIError(f"Request failed with status code {result.status_code}")
        try:
            return json.loads(result.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InventoryAPIError(f"Invalid JSON in response: {e}") from e

    def close(self):
        """Close the session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
