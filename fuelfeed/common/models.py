"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class FuelType(str, Enum):
    UNLEADED = "Unleaded"
    UNLEADED_95 = "Unleaded95"
    PREMIUM_UNLEADED = "PremiumUnleaded"
    DIESEL = "Diesel"
    E10 = "E10"
    E85 = "E85"
    LPG = "LPG"
    UNKNOWN = "Unknown"


class PriceTrend(str, Enum):
    INCREASING = "Increasing"
    STABLE = "Stable"
    DECREASING = "Decreasing"


class StationCategory(str, Enum):
    PETROL_STATION = "petrol-stations"
    TRUCK_STOP = "truck-stop"
    SERVICE_STATION = "service-station"


@dataclass(frozen=True)
class StationRow:
    """A provider station record converted at the ingestion boundary."""

    source: str
    station_id: str | None
    name: str | None = None
    brand: str | None = None
    address: str | None = None
    suburb: str | None = None
    region: str | None = None
    postcode: str | None = None
    latitude: object = None
    longitude: object = None
    phone_number: str | None = None
    category: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class PriceRow:
    """A provider price record linked to exactly one station."""

    source: str
    station_id: str | None
    fuel_code: object = None
    price: object = None
    trend: object = None
    price_source: str | None = None
    updated_at: str | None = None


ProviderRow = Union[StationRow, PriceRow]


@dataclass(frozen=True)
class FuelPrice:
    id: str
    station_id: str
    fuel_type: FuelType
    fuel_code: str
    price_per_litre_cents: int
    trend: PriceTrend
    last_updated: str
    price_source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "stationId": self.station_id,
            "fuelType": self.fuel_type.value,
            "fuelCode": self.fuel_code,
            "pricePerLiterCents": self.price_per_litre_cents,
            "trend": self.trend.value,
            "lastUpdated": self.last_updated,
            "priceSource": self.price_source,
        }


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    brand: str
    address: str
    suburb: str
    region: str
    postcode: str
    latitude: float = 0.0
    longitude: float = 0.0
    phone_number: str | None = None
    category: StationCategory = StationCategory.PETROL_STATION
    fuel_prices: tuple[FuelPrice, ...] = field(default_factory=tuple)
    last_updated: str = ""
    source: str = ""

    @property
    def has_coordinates(self) -> bool:
        return not (self.latitude == 0.0 and self.longitude == 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "address": self.address,
            "suburb": self.suburb,
            "region": self.region,
            "postcode": self.postcode,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "phoneNumber": self.phone_number,
            "category": self.category.value,
            "fuelPrices": [price.to_dict() for price in self.fuel_prices],
            "lastUpdated": self.last_updated,
            "source": self.source,
        }
