"""Provider cycle orchestration with fail-soft semantics."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Generic, Protocol, Sequence, TypeVar

from fuelfeed.common.logging import log_event
from fuelfeed.common.models import ProviderRow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Provider(Protocol):
    name: str

    def fetch_rows(self) -> list[ProviderRow]:
        ...


@dataclass
class CycleReport(Generic[T]):
    results: dict[str, T] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return not self.results and bool(self.failures)


def run_provider_cycles(
    providers: Sequence[Provider],
    cycle_fn: Callable[[Provider], T],
) -> CycleReport[T]:
    """
    Run ``cycle_fn`` once per provider, concurrently.

    A provider that raises is recorded under ``failures`` and does not cancel
    the others. The caller decides what an all-failed report means.
    """
    report: CycleReport[T] = CycleReport()
    if not providers:
        return report

    def _timed(provider: Provider) -> T:
        started = time.monotonic()
        log_event(logger, "provider cycle start", provider=provider.name, event="CYCLE_START", status="ok")
        result = cycle_fn(provider)
        log_event(
            logger,
            "provider cycle end",
            provider=provider.name,
            event="CYCLE_END",
            status="ok",
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return result

    with ThreadPoolExecutor(max_workers=len(providers), thread_name_prefix="fuelfeed-provider") as pool:
        futures = {provider.name: pool.submit(_timed, provider) for provider in providers}
        for name, future in futures.items():
            try:
                report.results[name] = future.result()
            except Exception as exc:
                report.failures[name] = exc
                log_event(
                    logger,
                    f"provider cycle failed: {exc}",
                    level=logging.WARNING,
                    provider=name,
                    event="CYCLE_FAIL",
                    status="error",
                    error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                )
    return report
