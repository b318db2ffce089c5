"""HTTP client with bounded retries, timeouts, and cancellable backoff."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from email.utils import parsedate_to_datetime
from types import TracebackType
from typing import Any, Callable

import requests
from tenacity import RetryCallState, RetryError, retry, retry_if_exception_type, stop_after_attempt

from fuelfeed.common.backoff import BackoffPolicy
from fuelfeed.common.constants import USER_AGENT
from fuelfeed.common.errors import (
    RateLimitExceeded,
    RequestCancelledError,
    RequestTimeoutError,
    TransientNetworkError,
    UpstreamHttpError,
    UpstreamSchemaError,
)
from fuelfeed.common.logging import log_event

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS = (TransientNetworkError, RateLimitExceeded)


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 15.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        return max(float(text), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = now or datetime.now(tz=timezone.utc)
    return max((when - current).total_seconds(), 0.0)


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        backoff: BackoffPolicy | None = None,
        cancel_event: threading.Event | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.backoff = backoff or BackoffPolicy()
        self.cancel_event = cancel_event or threading.Event()
        self.user_agent = user_agent
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": self.user_agent, "Accept": "application/json"}
        if headers:
            out.update(headers)
        return out

    def _sleep(self, seconds: float) -> None:
        if self.cancel_event.wait(seconds):
            raise RequestCancelledError("Request cancelled while waiting to retry")

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        hint = getattr(exc, "retry_after_s", None)
        return self.backoff.delay(retry_state.attempt_number - 1, hint=hint)

    def _raise_for_status_or_retry(self, response: requests.Response, url: str) -> None:
        status = response.status_code
        if status == 429:
            retry_after_s = parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitExceeded(f"Rate limited by upstream: {url}", retry_after_s=retry_after_s)
        if status == 408:
            raise RequestTimeoutError(f"Upstream request timeout (408): {url}")
        if status >= 500:
            raise TransientNetworkError(f"Retryable HTTP status {status}: {url}")
        if status >= 400:
            raise UpstreamHttpError(f"HTTP status {status}: {url}", status_code=status)

    def _request_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
        timeout: TimeoutConfig,
    ) -> Any:
        if self.cancel_event.is_set():
            raise RequestCancelledError(f"Request cancelled before sending: {url}")

        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=self._headers(headers),
                timeout=(timeout.connect, timeout.read),
            )
        except requests.Timeout as exc:
            raise RequestTimeoutError(f"Timed out requesting {url}", cause=exc) from exc
        except requests.RequestException as exc:
            raise TransientNetworkError(f"Transport failure requesting {url}: {exc}", cause=exc) from exc

        self._raise_for_status_or_retry(response, url)

        try:
            return response.json(parse_float=Decimal)
        except ValueError as exc:
            raise UpstreamSchemaError(f"Invalid JSON payload from {url}") from exc

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        before_attempt: Callable[[], None] | None = None,
    ) -> Any:
        """
        GET ``url`` and decode its JSON body, retrying transient failures.

        ``before_attempt`` runs ahead of every attempt, retries included, so a
        caller-side quota is charged once per request actually sent.
        """
        req_timeout = timeout or self.timeout

        def _log_attempt(retry_state: RetryCallState) -> None:
            log_event(
                logger,
                f"GET {url}",
                event="HTTP_ATTEMPT",
                attempt=retry_state.attempt_number,
                wait_ms=int(retry_state.idle_for * 1000),
            )

        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            sleep=self._sleep,
            before=_log_attempt,
        )
        def _wrapped() -> Any:
            if before_attempt is not None:
                before_attempt()
            return self._request_json(url, params=params, headers=headers, timeout=req_timeout)

        try:
            return _wrapped()
        except RetryError as exc:
            last = exc.last_attempt.exception()
            log_event(
                logger,
                f"retries exhausted for {url}",
                level=logging.WARNING,
                event="HTTP_EXHAUSTED",
                status="error",
                attempt=exc.last_attempt.attempt_number,
                error_code=getattr(last, "error_code", None),
            )
            raise TransientNetworkError(
                f"GET {url} failed after {self.retry.max_attempts} attempts: {last}",
                cause=last,
            ) from last
