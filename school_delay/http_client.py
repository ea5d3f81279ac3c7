from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Optional

import httpx

from .logging import get_logger

logger = get_logger(__name__)


DEFAULT_USER_AGENT = "SchoolDelayPredictor/1.0 (+https://github.com/school-delay)"


class HttpFetcher:
    """HTTP client wrapper with retry and exponential backoff.

    Both transport errors and non-2xx responses are retried; the last error is
    raised once ``max_attempts`` is exhausted.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        max_attempts: int = 3,
        backoff_factor: float = 1.0,
        sleep=time.sleep,
    ) -> None:
        self.client = client or httpx.Client(
            timeout=10.0,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            follow_redirects=True,
        )
        self.max_attempts = max_attempts
        self.backoff_factor = backoff_factor
        self._sleep = sleep

    def fetch(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers: Dict[str, str] = {"User-Agent": DEFAULT_USER_AGENT}
        if extra_headers:
            headers.update(extra_headers)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.info("http.fetch", url=url, attempt=attempt)
                response = self.client.get(url, headers=headers, params=params)
                response.raise_for_status()
                return response
            except httpx.HTTPError as exc:
                last_error = exc
                logger.warning("http.fetch.retry", url=url, attempt=attempt, error=str(exc))
                if attempt == self.max_attempts:
                    raise
                self._sleep(self.backoff_factor * 2 ** (attempt - 1))
        if last_error:
            raise last_error
        raise RuntimeError("Unexpected fetch state")

    def fetch_json(self, url: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = self.fetch(url, params=params, extra_headers={"Accept": "application/geo+json"})
        return response.json()

    def fetch_text(self, url: str) -> str:
        return self.fetch(url).text
