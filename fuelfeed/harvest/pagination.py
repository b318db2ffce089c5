"""Cursor pagination over the retrying HTTP client."""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable, Mapping, Union

from fuelfeed.common.errors import PaginationLimitError, RequestCancelledError, UpstreamSchemaError
from fuelfeed.common.http import HttpClient
from fuelfeed.common.logging import log_event
from fuelfeed.common.ratelimit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

HeaderSource = Union[Mapping[str, str], Callable[[], Mapping[str, str]], None]


class PaginatedFetcher:
    """
    Accumulate every row behind a cursor-linked endpoint.

    Pages are requested strictly in sequence because each page's URL comes from
    the previous response. With a rate limiter attached, every HTTP attempt
    (client retries included) takes a slot first; a denied acquire waits out
    the window and then sends the same request.
    """

    def __init__(
        self,
        client: HttpClient,
        *,
        rows_key: str = "results",
        next_key: str | None = "next",
        max_pages: int = 500,
        rate_limiter: FixedWindowRateLimiter | None = None,
        rate_limit_key: str | None = None,
        sleep_fn: Callable[[float], None] | None = None,
        provider: str | None = None,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if rate_limiter is not None and not rate_limit_key:
            raise ValueError("rate_limit_key is required with a rate limiter")
        self.client = client
        self.rows_key = rows_key
        self.next_key = next_key
        self.max_pages = max_pages
        self.rate_limiter = rate_limiter
        self.rate_limit_key = rate_limit_key
        self.provider = provider
        self._sleep = sleep_fn or self._cancellable_sleep

    def _cancellable_sleep(self, seconds: float) -> None:
        if self.client.cancel_event.wait(seconds):
            raise RequestCancelledError("Pagination cancelled while waiting for rate window")

    def _acquire(self, url: str) -> None:
        if self.rate_limiter is None:
            return
        while True:
            decision = self.rate_limiter.try_acquire(self.rate_limit_key)
            if decision.allowed:
                return
            log_event(
                logger,
                f"rate window exhausted before {url}",
                provider=self.provider,
                event="RATE_LIMIT_WAIT",
                status="waiting",
                wait_ms=int(decision.reset_in_s * 1000),
            )
            self._sleep(decision.reset_in_s)

    @staticmethod
    def _resolve_headers(headers: HeaderSource) -> dict[str, str] | None:
        if headers is None:
            return None
        if callable(headers):
            return dict(headers())
        return dict(headers)

    def _page_rows(self, payload: Any, url: str, rows_key: str) -> list[dict]:
        if not isinstance(payload, dict):
            raise UpstreamSchemaError(f"Expected a JSON object from {url}")
        rows = payload.get(rows_key)
        if not isinstance(rows, list):
            raise UpstreamSchemaError(f"Missing list '{rows_key}' in response from {url}")
        return rows

    def fetch_all(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: HeaderSource = None,
        rows_key: str | None = None,
    ) -> list[dict]:
        key = rows_key or self.rows_key
        rows: list[dict] = []
        next_url: str | None = url
        page_params: dict[str, Any] | None = dict(params) if params else None
        pages = 0
        started = time.monotonic()

        while next_url:
            if pages >= self.max_pages:
                raise PaginationLimitError(f"Exceeded {self.max_pages} pages fetching {url}")
            payload = self.client.get_json(
                next_url,
                params=page_params,
                headers=self._resolve_headers(headers),
                before_attempt=functools.partial(self._acquire, next_url),
            )
            page = self._page_rows(payload, next_url, key)
            rows.extend(item for item in page if isinstance(item, dict))
            pages += 1

            # Cursor URLs already carry the query string.
            page_params = None
            next_url = payload.get(self.next_key) if self.next_key else None
            if next_url is not None and not isinstance(next_url, str):
                raise UpstreamSchemaError(f"Cursor '{self.next_key}' is not a URL in response from {url}")

        log_event(
            logger,
            f"fetched {pages} pages from {url}",
            provider=self.provider,
            event="PAGES_FETCHED",
            status="ok",
            rows_out=len(rows),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return rows
