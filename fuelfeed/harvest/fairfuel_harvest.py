"""Price snapshot harvest from the Victorian Fair Fuel open data API."""

from __future__ import annotations

import logging
from typing import Any

from fuelfeed.common.config_loader import FairFuelSettings
from fuelfeed.common.errors import IngestionError
from fuelfeed.common.ids import generate_transaction_id
from fuelfeed.common.logging import log_event
from fuelfeed.common.money import round_cents, to_decimal
from fuelfeed.common.models import PriceRow, ProviderRow, StationRow
from fuelfeed.harvest.pagination import PaginatedFetcher

logger = logging.getLogger(__name__)

PROVIDER_NAME = "fairfuel"
PRICE_SOURCE = "FairFuel Open Data API (24h delay)"


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def price_cents_from_fairfuel(value: Any) -> object:
    # Prices are published in cents with a tenths digit, e.g. 189.9.
    amount = to_decimal(value)
    if amount is None:
        return value
    return round_cents(amount)


def _location(station: dict) -> dict:
    location = station.get("location")
    return location if isinstance(location, dict) else {}


def rows_from_price_detail(detail: dict, brands: dict[str, str] | None = None) -> list[ProviderRow]:
    """Flatten one ``fuelPriceDetails`` entry into a station row and its price rows."""
    station = detail.get("fuelStation")
    if not isinstance(station, dict):
        return []

    station_id = _text(station.get("id"))
    brand_id = _text(station.get("brandId"))
    brand = (brands or {}).get(brand_id, brand_id) if brand_id else None
    location = _location(station)
    updated_at = _text(detail.get("updatedAt"))

    rows: list[ProviderRow] = [
        StationRow(
            source=PROVIDER_NAME,
            station_id=station_id,
            name=_text(station.get("name")),
            brand=brand,
            address=_text(station.get("address")),
            latitude=location.get("latitude"),
            longitude=location.get("longitude"),
            phone_number=_text(station.get("contactPhone")),
            updated_at=updated_at,
        )
    ]

    prices = detail.get("fuelPrices")
    for item in prices if isinstance(prices, list) else []:
        if not isinstance(item, dict) or item.get("isAvailable") is False:
            continue
        rows.append(
            PriceRow(
                source=PROVIDER_NAME,
                station_id=station_id,
                fuel_code=item.get("fuelType"),
                price=price_cents_from_fairfuel(item.get("price")),
                price_source=PRICE_SOURCE,
                updated_at=_text(item.get("updatedAt")) or updated_at,
            )
        )
    return rows


class FairFuelProvider:
    """
    Single-snapshot provider with a hard request quota.

    Every request goes through the shared fixed-window limiter keyed by the
    consumer id and carries a fresh transaction id.
    """

    name = PROVIDER_NAME

    def __init__(self, settings: FairFuelSettings, fetcher: PaginatedFetcher) -> None:
        self.settings = settings
        self.fetcher = fetcher

    def _url(self, path: str) -> str:
        return f"{self.settings.api_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        return {
            "x-consumer-id": self.settings.consumer_id or "",
            "x-transactionid": generate_transaction_id(),
        }

    def _brand_names(self) -> dict[str, str]:
        if not self.settings.resolve_brands:
            return {}
        try:
            rows = self.fetcher.fetch_all(
                self._url("fuel/reference-data/brands"),
                headers=self._headers,
                rows_key="brands",
            )
        except IngestionError as exc:
            # Raw brand ids still alias to Independent or a title-cased id.
            log_event(
                logger,
                f"brand lookup failed: {exc}",
                level=logging.WARNING,
                provider=self.name,
                event="BRAND_LOOKUP_FAILED",
                status="warning",
                error_code=exc.error_code,
            )
            return {}
        return {
            str(row["id"]): str(row["name"])
            for row in rows
            if row.get("id") is not None and row.get("name")
        }

    def fetch_rows(self) -> list[ProviderRow]:
        if not self.settings.consumer_id:
            raise IngestionError("fairfuel consumer id is not configured")

        details = self.fetcher.fetch_all(
            self._url("fuel/prices"),
            headers=self._headers,
            rows_key="fuelPriceDetails",
        )
        brands = self._brand_names()

        rows: list[ProviderRow] = []
        for detail in details:
            rows.extend(rows_from_price_detail(detail, brands))

        log_event(
            logger,
            "fairfuel snapshot fetched",
            provider=self.name,
            event="PROVIDER_ROWS",
            status="ok",
            rows_in=len(details),
            rows_out=len(rows),
        )
        return rows
