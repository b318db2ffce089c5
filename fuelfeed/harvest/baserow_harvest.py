"""Station and price harvest from the Baserow tables."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from fuelfeed.common.config_loader import BaserowSettings
from fuelfeed.common.logging import log_event
from fuelfeed.common.money import round_cents, to_decimal
from fuelfeed.common.models import PriceRow, ProviderRow, StationRow
from fuelfeed.harvest.pagination import PaginatedFetcher

logger = logging.getLogger(__name__)

PROVIDER_NAME = "baserow"
# "Price Per Liter" amounts at or below this are dollars; above it, cents.
DOLLAR_PRICE_CEILING = Decimal(10)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, dict):
        return _text(value.get("value"))
    text = str(value).strip()
    return text or None


def _brand(value: Any) -> str | None:
    # Link-row and multiple-select fields arrive as lists of {"id", "value"}.
    if isinstance(value, list):
        names = [name for name in (_text(item) for item in value) if name]
        return " ".join(names) or None
    return _text(value)


def _link_ids(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    ids: list[str] = []
    for item in items:
        raw = item.get("id") if isinstance(item, dict) else item
        if raw is None or isinstance(raw, bool):
            continue
        text = str(raw).strip()
        if text:
            ids.append(text)
    return ids


def station_row_from_baserow(raw: dict) -> StationRow:
    return StationRow(
        source=PROVIDER_NAME,
        station_id=_text(raw.get("id")),
        name=_text(raw.get("Station Name")),
        brand=_brand(raw.get("brand")),
        address=_text(raw.get("Address")) or _text(raw.get("Location Details")),
        suburb=_text(raw.get("City")),
        region=_text(raw.get("Region")),
        postcode=_text(raw.get("Postal Code")),
        latitude=raw.get("Latitude"),
        longitude=raw.get("Longitude"),
        phone_number=_text(raw.get("Phone Number")),
        category=_text(raw.get("Category")),
        updated_at=_text(raw.get("Last Updated")),
    )


def price_cents_from_baserow(value: Any) -> object:
    """
    Whole cents for a ``Price Per Liter`` value.

    The field is edited by hand and holds dollars (``"1.899"``) on most rows
    and cents (``1899``) on older ones. Values that are not a positive amount
    are returned unchanged for the normaliser to reject and log.
    """
    amount = to_decimal(value)
    if amount is None or amount <= 0:
        return value
    if amount <= DOLLAR_PRICE_CEILING:
        amount = amount * 100
    return round_cents(amount)


def price_rows_from_baserow(raw: dict) -> list[PriceRow]:
    """One PriceRow per station linked through ``Petrol Station``."""
    station_ids = _link_ids(raw.get("Petrol Station"))
    if not station_ids:
        # Kept so the normaliser logs and counts the drop.
        station_ids = [None]
    return [
        PriceRow(
            source=PROVIDER_NAME,
            station_id=station_id,
            fuel_code=raw.get("Fuel Type"),
            price=price_cents_from_baserow(raw.get("Price Per Liter")),
            trend=raw.get("Price Trend"),
            price_source=_text(raw.get("Price Source")),
            updated_at=_text(raw.get("Last Updated")),
        )
        for station_id in station_ids
    ]


class BaserowProvider:
    name = PROVIDER_NAME

    def __init__(self, settings: BaserowSettings, fetcher: PaginatedFetcher) -> None:
        self.settings = settings
        self.fetcher = fetcher

    def _table_url(self, table_id: int) -> str:
        return f"{self.settings.api_url.rstrip('/')}/database/rows/table/{table_id}/"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.token:
            headers["Authorization"] = f"Token {self.settings.token}"
        return headers

    def _fetch_table(self, table_id: int) -> list[dict]:
        return self.fetcher.fetch_all(
            self._table_url(table_id),
            params={"user_field_names": "true", "size": self.settings.page_size},
            headers=self._headers(),
        )

    def fetch_rows(self) -> list[ProviderRow]:
        station_raw = self._fetch_table(self.settings.stations_table_id)
        price_raw = self._fetch_table(self.settings.prices_table_id)

        rows: list[ProviderRow] = [station_row_from_baserow(raw) for raw in station_raw]
        for raw in price_raw:
            rows.extend(price_rows_from_baserow(raw))

        log_event(
            logger,
            "baserow tables fetched",
            provider=self.name,
            event="PROVIDER_ROWS",
            status="ok",
            rows_in=len(station_raw) + len(price_raw),
            rows_out=len(rows),
        )
        return rows
