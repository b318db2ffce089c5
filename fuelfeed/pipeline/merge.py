"""Join fuel prices onto their owning stations."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from typing import Iterable, Mapping, Sequence

from fuelfeed.common.logging import log_event
from fuelfeed.common.models import FuelPrice, Station

logger = logging.getLogger(__name__)


def _dedupe_prices(prices: Iterable[FuelPrice]) -> tuple[FuelPrice, ...]:
    latest: dict[str, FuelPrice] = {}
    for price in prices:
        current = latest.get(price.id)
        if current is None or price.last_updated > current.last_updated:
            latest[price.id] = price
    return tuple(
        sorted(
            latest.values(),
            key=lambda price: (price.price_per_litre_cents, price.fuel_code),
        )
    )


def merge(stations: Sequence[Station], prices: Iterable[FuelPrice]) -> list[Station]:
    """
    Attach each station's prices, returning new Station values.

    Prices whose ``station_id`` matches no station in the batch are dropped.
    When a station id repeats, the first occurrence is kept.
    """
    unique: dict[str, Station] = {}
    duplicates = 0
    for station in stations:
        if station.id in unique:
            duplicates += 1
            continue
        unique[station.id] = station

    by_station: dict[str, list[FuelPrice]] = defaultdict(list)
    dangling = 0
    for price in prices:
        if price.station_id not in unique:
            dangling += 1
            log_event(
                logger,
                f"dropped price {price.id}: station {price.station_id} not in batch",
                level=logging.WARNING,
                provider=price.price_source,
                event="PRICE_DANGLING",
                status="warning",
            )
            continue
        by_station[price.station_id].append(price)

    if duplicates:
        log_event(
            logger,
            f"dropped {duplicates} duplicate station rows",
            level=logging.WARNING,
            event="STATION_DUPLICATE",
            status="warning",
            rows_in=len(stations),
            rows_out=len(unique),
        )

    merged = [
        dataclasses.replace(station, fuel_prices=_dedupe_prices(by_station.get(station_id, ())))
        for station_id, station in unique.items()
    ]
    log_event(
        logger,
        "merged stations and prices",
        event="MERGE",
        rows_in=len(stations),
        rows_out=len(merged),
        status="ok" if not dangling else "partial",
    )
    return merged


def combine_provider_results(
    results: Mapping[str, Sequence[Station]],
    priority: Sequence[str],
) -> list[Station]:
    """
    Union per-provider datasets without reconciling identities across them.

    Providers are taken in ``priority`` order (unlisted ones last, by name);
    when two providers emit the same station id the earlier provider wins.
    """
    rank = {name: idx for idx, name in enumerate(priority)}
    ordered = sorted(results, key=lambda name: (rank.get(name, len(rank)), name))

    combined: dict[str, Station] = {}
    for name in ordered:
        for station in results[name]:
            if station.id in combined:
                log_event(
                    logger,
                    f"station {station.id} from {name} shadowed by {combined[station.id].source}",
                    level=logging.DEBUG,
                    provider=name,
                    event="STATION_SHADOWED",
                )
                continue
            combined[station.id] = station
    return list(combined.values())
