"""Normalise tagged provider rows into canonical stations and fuel prices."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from fuelfeed.common.address import clean_segment, normalise_postcode, normalise_suburb, parse_address
from fuelfeed.common.brands import normalise_brand
from fuelfeed.common.constants import AUSTRALIAN_STATES, UNKNOWN_STATION_NAME
from fuelfeed.common.errors import NormalizationWarning
from fuelfeed.common.ids import fuel_price_id
from fuelfeed.common.logging import log_event
from fuelfeed.common.money import to_decimal
from fuelfeed.common.models import (
    FuelPrice,
    FuelType,
    PriceRow,
    PriceTrend,
    ProviderRow,
    Station,
    StationCategory,
    StationRow,
)
from fuelfeed.common.time_utils import normalise_timestamp

logger = logging.getLogger(__name__)

FUEL_TYPE_CODES = {
    "U91": FuelType.UNLEADED,
    "ULP": FuelType.UNLEADED,
    "UNLEADED": FuelType.UNLEADED,
    "P95": FuelType.UNLEADED_95,
    "UNLEADED95": FuelType.UNLEADED_95,
    "UNLEADED 95": FuelType.UNLEADED_95,
    "P98": FuelType.PREMIUM_UNLEADED,
    "PREMIUM": FuelType.PREMIUM_UNLEADED,
    "PREMIUM UNLEADED": FuelType.PREMIUM_UNLEADED,
    "PREMIUMUNLEADED": FuelType.PREMIUM_UNLEADED,
    "DSL": FuelType.DIESEL,
    "PDSL": FuelType.DIESEL,
    "B20": FuelType.DIESEL,
    "LNG": FuelType.DIESEL,
    "CNG": FuelType.DIESEL,
    "DIESEL": FuelType.DIESEL,
    "E10": FuelType.E10,
    "E85": FuelType.E85,
    "LPG": FuelType.LPG,
    # Baserow single-select option ids.
    "3812408": FuelType.UNLEADED,
    "3812409": FuelType.PREMIUM_UNLEADED,
    "3812410": FuelType.DIESEL,
    "3812411": FuelType.LPG,
    "3812412": FuelType.UNLEADED_95,
}

PRICE_TRENDS = {
    "INCREASING": PriceTrend.INCREASING,
    "STABLE": PriceTrend.STABLE,
    "DECREASING": PriceTrend.DECREASING,
    "3812413": PriceTrend.INCREASING,
    "3812414": PriceTrend.STABLE,
    "3812415": PriceTrend.DECREASING,
}

_CATEGORIES = {category.value: category for category in StationCategory}


@dataclass
class NormalisedBatch:
    stations: list[Station] = field(default_factory=list)
    prices: list[FuelPrice] = field(default_factory=list)
    dropped: int = 0


def _option_key(value: object) -> str | None:
    # Baserow single-select fields arrive as {"id": ..., "value": ...}.
    if isinstance(value, dict):
        value = value.get("value") if value.get("value") not in (None, "") else value.get("id")
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text.upper() if text else None


def fuel_code_of(value: object) -> str | None:
    key = _option_key(value)
    return key.replace(" ", "") if key else None


def map_fuel_type(code: object) -> FuelType:
    key = _option_key(code)
    if key is None:
        return FuelType.UNKNOWN
    return FUEL_TYPE_CODES.get(key, FuelType.UNKNOWN)


def map_trend(value: object) -> PriceTrend:
    key = _option_key(value)
    if key is None:
        return PriceTrend.STABLE
    return PRICE_TRENDS.get(key, PriceTrend.STABLE)


def parse_price_cents(value: object) -> int | None:
    """
    Whole cents per litre, or None when the value is not a usable price.

    Integers and integral decimals pass through exactly. Fractional amounts
    and binary floats are rejected; unit conversion belongs to the provider
    that knows the upstream unit.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        cents = value
    else:
        amount = to_decimal(value)
        if amount is None or amount != amount.to_integral_value():
            return None
        cents = int(amount)
    if cents <= 0:
        return None
    return cents


def parse_coordinate(value: object, limit: float) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or abs(number) > limit:
        return 0.0
    return number


def _station_id(value: str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalise_station(row: StationRow, default_region: str, ingested_at: str) -> Station:
    station_id = _station_id(row.station_id)
    if station_id is None:
        raise NormalizationWarning("station row has no id")

    name = clean_segment(row.name)
    address = clean_segment(row.address)
    if name is None and address is None:
        raise NormalizationWarning(f"station {station_id} has neither name nor address")

    parsed = parse_address(address, default_region)
    region = parsed.region
    row_region = (clean_segment(row.region) or "").upper()
    if not parsed.has_state and row_region in AUSTRALIAN_STATES:
        region = row_region
    category = _CATEGORIES.get((row.category or "").strip().lower(), StationCategory.PETROL_STATION)

    return Station(
        id=station_id,
        name=name or UNKNOWN_STATION_NAME,
        brand=normalise_brand(row.brand),
        address=parsed.street or address or "",
        suburb=normalise_suburb(parsed.suburb or row.suburb) or "",
        region=region,
        postcode=parsed.postcode or normalise_postcode(row.postcode) or "",
        latitude=parse_coordinate(row.latitude, 90.0),
        longitude=parse_coordinate(row.longitude, 180.0),
        phone_number=clean_segment(row.phone_number),
        category=category,
        fuel_prices=(),
        last_updated=normalise_timestamp(row.updated_at, ingested_at),
        source=row.source,
    )


def normalise_price(row: PriceRow, ingested_at: str) -> FuelPrice:
    station_id = _station_id(row.station_id)
    if station_id is None:
        raise NormalizationWarning("price row is not linked to a station")

    fuel_code = fuel_code_of(row.fuel_code)
    if fuel_code is None:
        raise NormalizationWarning(f"price for station {station_id} has no fuel type")

    cents = parse_price_cents(row.price)
    if cents is None:
        raise NormalizationWarning(f"price for station {station_id} is not a whole-cent amount: {row.price!r}")

    return FuelPrice(
        id=fuel_price_id(station_id, fuel_code),
        station_id=station_id,
        fuel_type=map_fuel_type(row.fuel_code),
        fuel_code=fuel_code,
        price_per_litre_cents=cents,
        trend=map_trend(row.trend),
        last_updated=normalise_timestamp(row.updated_at, ingested_at),
        price_source=clean_segment(row.price_source) or row.source,
    )


def normalise_row(row: ProviderRow, default_region: str, ingested_at: str) -> Station | FuelPrice | None:
    """Normalise one row; a malformed row is dropped with a warning, never raised."""
    try:
        if isinstance(row, StationRow):
            return normalise_station(row, default_region, ingested_at)
        if isinstance(row, PriceRow):
            return normalise_price(row, ingested_at)
        raise NormalizationWarning(f"unsupported row type {type(row).__name__}")
    except NormalizationWarning as exc:
        log_event(
            logger,
            f"dropped row: {exc}",
            level=logging.WARNING,
            provider=getattr(row, "source", None),
            event="ROW_DROPPED",
            status="warning",
            error_code=exc.error_code,
        )
        return None


def normalise_rows(rows: Iterable[ProviderRow], default_region: str, ingested_at: str) -> NormalisedBatch:
    batch = NormalisedBatch()
    for row in rows:
        normalised = normalise_row(row, default_region, ingested_at)
        if isinstance(normalised, Station):
            batch.stations.append(normalised)
        elif isinstance(normalised, FuelPrice):
            batch.prices.append(normalised)
        else:
            batch.dropped += 1
    return batch
