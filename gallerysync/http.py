"""Shared HTTP plumbing: session setup, retry with backoff, per-host throttling."""

from __future__ import annotations

import random
import threading
import time
from urllib.parse import urlparse

import requests
from loguru import logger

from gallerysync.config import DOWNLOAD_RETRIES, REQUEST_TIMEOUT, USER_AGENT

RETRY_HTTP_STATUS = {429, 500, 502, 503, 504}


class RetryableHTTPError(Exception):
    pass


class HostRateLimiter:
    """Enforces a minimum interval between requests to the same host."""

    def __init__(self, min_interval: float = 0.0) -> None:
        self.min_interval = min_interval
        self._last: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, url: str) -> None:
        if self.min_interval <= 0:
            return
        host = urlparse(url).hostname or ""
        with self._lock:
            now = time.monotonic()
            ready_at = self._last.get(host, 0.0) + self.min_interval
            delay = max(0.0, ready_at - now)
            self._last[host] = now + delay
        if delay:
            time.sleep(delay)


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    retries: int = DOWNLOAD_RETRIES,
    timeout: int = REQUEST_TIMEOUT,
    limiter: HostRateLimiter | None = None,
    **kwargs,
) -> requests.Response:
    """
    Issue a request, retrying network errors and 429/5xx responses with
    exponential backoff. The final failure is raised to the caller.
    """
    for attempt in range(retries + 1):
        try:
            if limiter is not None:
                limiter.wait(url)
            resp = session.request(method=method, url=url, timeout=timeout, **kwargs)
            if resp.status_code in RETRY_HTTP_STATUS:
                status = resp.status_code
                resp.close()
                raise RetryableHTTPError(f"Retryable HTTP status: {status}")
            return resp
        except (requests.RequestException, RetryableHTTPError) as e:
            if attempt >= retries:
                raise
            wait = min(20.0, 1.25 * (2**attempt) + random.uniform(0.1, 0.45))
            logger.debug(f"{method} {url} failed ({e}); retry {attempt + 1}/{retries} in {wait:.1f}s")
            time.sleep(wait)
    raise RuntimeError("unreachable")
