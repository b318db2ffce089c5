"""Ingestion service: cached, fail-soft access to the merged station dataset."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from fuelfeed.common.backoff import BackoffPolicy
from fuelfeed.common.cache import TtlCache
from fuelfeed.common.config_loader import ServiceSettings
from fuelfeed.common.constants import DATASET_CACHE_KEY, PROVIDER_CACHE_PREFIX
from fuelfeed.common.errors import DataUnavailableError
from fuelfeed.common.http import HttpClient, RetryConfig, TimeoutConfig
from fuelfeed.common.logging import log_event
from fuelfeed.common.models import Station
from fuelfeed.common.ratelimit import FixedWindowRateLimiter
from fuelfeed.common.time_utils import utc_timestamp_iso
from fuelfeed.harvest.baserow_harvest import BaserowProvider
from fuelfeed.harvest.fairfuel_harvest import FairFuelProvider
from fuelfeed.harvest.pagination import PaginatedFetcher
from fuelfeed.harvest.runner import CycleReport, Provider, run_provider_cycles
from fuelfeed.pipeline.merge import combine_provider_results, merge
from fuelfeed.pipeline.normalise import normalise_rows

logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleOutcome:
    state: ServiceState
    served_stale: bool
    providers_ok: tuple[str, ...]
    providers_failed: tuple[str, ...]
    providers_substituted: tuple[str, ...]
    station_count: int
    finished_at: str


def provider_cache_key(name: str) -> str:
    return f"{PROVIDER_CACHE_PREFIX}{name}"


class IngestionService:
    """
    The one entry point consumers call for station data.

    A live cached dataset is returned as-is. Otherwise one refresh runs every
    provider concurrently (fetch, normalise, merge), and concurrent callers
    that missed the cache wait for that refresh instead of starting their own.
    When every provider fails the last dataset is served even if expired; only
    when nothing was ever ingested does ``get_stations`` raise
    ``DataUnavailableError``.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        cache: TtlCache,
        settings: ServiceSettings,
        *,
        client: HttpClient | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.providers = list(providers)
        self.cache = cache
        self.settings = settings
        self.client = client
        self.cancel_event = cancel_event or threading.Event()
        self._state = ServiceState.IDLE
        self._state_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._generation = 0
        self._last_outcome: CycleOutcome | None = None
        self._last_stations: tuple[Station, ...] | None = None
        self._last_error: DataUnavailableError | None = None

    @property
    def state(self) -> ServiceState:
        with self._state_lock:
            return self._state

    @property
    def last_outcome(self) -> CycleOutcome | None:
        return self._last_outcome

    @property
    def served_stale(self) -> bool:
        return self._last_outcome is not None and self._last_outcome.served_stale

    def _transition(self, state: ServiceState) -> None:
        with self._state_lock:
            previous, self._state = self._state, state
        log_event(
            logger,
            f"state {previous.value} -> {state.value}",
            level=logging.DEBUG,
            event="STATE",
            status=state.value,
        )

    def get_stations(self, force_refresh: bool = False) -> list[Station]:
        generation = self._generation
        if not force_refresh:
            cached = self.cache.get(DATASET_CACHE_KEY)
            if cached is not None:
                log_event(logger, "dataset cache hit", event="CACHE_HIT", rows_out=len(cached))
                return list(cached)
            log_event(logger, "dataset cache miss", event="CACHE_MISS")

        with self._refresh_lock:
            if self._generation != generation:
                # Another caller refreshed while this one waited.
                return self._reuse_last_cycle()
            try:
                stations = self._refresh()
                self._last_stations = tuple(stations)
                self._last_error = None
                return stations
            except DataUnavailableError as exc:
                self._last_stations = None
                self._last_error = exc
                raise
            finally:
                self._generation += 1

    def _reuse_last_cycle(self) -> list[Station]:
        if self._last_stations is not None:
            return list(self._last_stations)
        raise DataUnavailableError(str(self._last_error)) from self._last_error

    def _provider_cycle(self, provider: Provider, ingested_at: str) -> tuple[Station, ...]:
        rows = provider.fetch_rows()
        batch = normalise_rows(rows, self.settings.default_region, ingested_at)
        stations = tuple(merge(batch.stations, batch.prices))
        log_event(
            logger,
            "provider normalised",
            provider=provider.name,
            event="NORMALISED",
            status="ok" if not batch.dropped else "partial",
            rows_in=len(rows),
            rows_out=len(stations),
        )
        self.cache.set(provider_cache_key(provider.name), stations, self.settings.cache.ttl_s)
        return stations

    def _refresh(self) -> list[Station]:
        self._transition(ServiceState.FETCHING)
        started = time.monotonic()
        self.cache.prune()
        ingested_at = utc_timestamp_iso()
        try:
            report = run_provider_cycles(
                self.providers,
                lambda provider: self._provider_cycle(provider, ingested_at),
            )

            results: dict[str, Sequence[Station]] = dict(report.results)
            substituted: list[str] = []
            for name in report.failures:
                stale = self.cache.get_stale(provider_cache_key(name))
                if stale is not None:
                    results[name] = stale
                    substituted.append(name)
                    log_event(
                        logger,
                        "substituted stale provider data",
                        level=logging.WARNING,
                        provider=name,
                        event="PROVIDER_STALE",
                        status="stale",
                        rows_out=len(stale),
                    )

            if report.results:
                stations = combine_provider_results(results, self.settings.provider_priority)
                self.cache.set(DATASET_CACHE_KEY, tuple(stations), self.settings.cache.ttl_s)
                self._finish(ServiceState.SUCCEEDED, False, report, substituted, len(stations), started)
                return stations

            stale_dataset = self.cache.get_stale(DATASET_CACHE_KEY)
            if stale_dataset is not None:
                self._finish(ServiceState.FAILED, True, report, substituted, len(stale_dataset), started)
                log_event(
                    logger,
                    "all providers failed; serving stale dataset",
                    level=logging.WARNING,
                    event="STALE_FALLBACK",
                    status="stale",
                    rows_out=len(stale_dataset),
                )
                return list(stale_dataset)

            self._finish(ServiceState.FAILED, False, report, substituted, 0, started)
            last_failure = list(report.failures.values())[-1] if report.failures else None
            log_event(
                logger,
                "no station data available",
                level=logging.ERROR,
                event="DATA_UNAVAILABLE",
                status="error",
                error_code=DataUnavailableError.error_code,
            )
            raise DataUnavailableError("Station data is temporarily unavailable") from last_failure
        finally:
            self._transition(ServiceState.IDLE)

    def _finish(
        self,
        state: ServiceState,
        served_stale: bool,
        report: CycleReport,
        substituted: list[str],
        station_count: int,
        started: float,
    ) -> None:
        self._transition(state)
        self._last_outcome = CycleOutcome(
            state=state,
            served_stale=served_stale,
            providers_ok=tuple(report.results),
            providers_failed=tuple(report.failures),
            providers_substituted=tuple(substituted),
            station_count=station_count,
            finished_at=utc_timestamp_iso(),
        )
        log_event(
            logger,
            "ingestion cycle finished",
            event="CYCLE_DONE",
            status=state.value,
            rows_out=station_count,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def close(self) -> None:
        self.cancel_event.set()
        if self.client is not None:
            self.client.close()

    def __enter__(self) -> "IngestionService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_ingestion_service(settings: ServiceSettings) -> IngestionService:
    """Build the service and everything it owns from validated settings."""
    cancel_event = threading.Event()
    client = HttpClient(
        timeout=TimeoutConfig(
            connect=settings.http.connect_timeout_s,
            read=settings.http.read_timeout_s,
        ),
        retry=RetryConfig(max_attempts=settings.http.max_attempts),
        backoff=BackoffPolicy(base_s=settings.http.backoff_base_s, max_s=settings.http.backoff_max_s),
        cancel_event=cancel_event,
        user_agent=settings.http.user_agent,
    )
    cache = TtlCache(
        max_entries=settings.cache.max_entries,
        stale_retention_s=settings.cache.stale_retention_s,
    )

    providers: list[Provider] = []
    if settings.baserow.enabled:
        providers.append(
            BaserowProvider(
                settings.baserow,
                PaginatedFetcher(client, max_pages=settings.max_pages, provider=BaserowProvider.name),
            )
        )
    if settings.fairfuel.enabled:
        limiter = FixedWindowRateLimiter(
            settings.fairfuel.rate_limit_max_requests,
            settings.fairfuel.rate_limit_window_s,
        )
        providers.append(
            FairFuelProvider(
                settings.fairfuel,
                PaginatedFetcher(
                    client,
                    next_key=None,
                    max_pages=settings.max_pages,
                    rate_limiter=limiter,
                    rate_limit_key=settings.fairfuel.consumer_id or FairFuelProvider.name,
                    provider=FairFuelProvider.name,
                ),
            )
        )

    log_event(
        logger,
        f"ingestion service ready with providers: {', '.join(p.name for p in providers) or 'none'}",
        event="SERVICE_READY",
        status="ok",
    )
    return IngestionService(providers, cache, settings, client=client, cancel_event=cancel_event)
