"""Station JSON and flat price CSV export."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from fuelfeed.common.fs import write_csv, write_json
from fuelfeed.common.models import Station

PRICE_HEADERS = [
    "station_id",
    "station_name",
    "brand",
    "suburb",
    "region",
    "postcode",
    "fuel_type",
    "fuel_code",
    "price_per_litre_cents",
    "trend",
    "last_updated",
    "price_source",
]


def _price_rows(stations: Sequence[Station]) -> list[dict]:
    rows = []
    for station in stations:
        for price in station.fuel_prices:
            rows.append(
                {
                    "station_id": station.id,
                    "station_name": station.name,
                    "brand": station.brand,
                    "suburb": station.suburb,
                    "region": station.region,
                    "postcode": station.postcode,
                    "fuel_type": price.fuel_type.value,
                    "fuel_code": price.fuel_code,
                    "price_per_litre_cents": price.price_per_litre_cents,
                    "trend": price.trend.value,
                    "last_updated": price.last_updated,
                    "price_source": price.price_source,
                }
            )
    return rows


def write_stations_json(path: Path, stations: Sequence[Station]) -> Path:
    ordered = sorted(stations, key=lambda station: (station.source, station.id))
    write_json(path, {"count": len(ordered), "stations": [station.to_dict() for station in ordered]})
    return path


def write_prices_csv(path: Path, stations: Sequence[Station]) -> Path:
    ordered = sorted(stations, key=lambda station: (station.source, station.id))
    write_csv(path, PRICE_HEADERS, _price_rows(ordered))
    return path
