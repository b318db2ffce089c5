from __future__ import annotations

from decimal import Decimal

import pytest

from fuelfeed.common.config_loader import BaserowSettings, FairFuelSettings
from fuelfeed.common.errors import IngestionError, UpstreamHttpError
from fuelfeed.common.models import PriceRow, StationRow
from fuelfeed.harvest.baserow_harvest import (
    BaserowProvider,
    price_cents_from_baserow,
    price_rows_from_baserow,
    station_row_from_baserow,
)
from fuelfeed.harvest.fairfuel_harvest import (
    PRICE_SOURCE,
    FairFuelProvider,
    price_cents_from_fairfuel,
    rows_from_price_detail,
)


class RecordingFetcher:
    def __init__(self, responses: dict[str, list[dict] | Exception]):
        self.responses = responses
        self.calls: list[dict] = []

    def fetch_all(self, url, *, params=None, headers=None, rows_key=None):
        resolved = headers() if callable(headers) else headers
        self.calls.append({"url": url, "params": params, "headers": resolved, "rows_key": rows_key})
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def test_station_row_from_baserow_fields():
    row = station_row_from_baserow(
        {
            "id": 1,
            "Station Name": " Preston BP ",
            "Address": "12 High St, Preston VIC 3072",
            "City": "Preston",
            "Region": "VIC",
            "Postal Code": "3072",
            "Latitude": "-37.74",
            "Longitude": "145.00",
            "Category": {"id": 1, "value": "petrol-stations"},
            "brand": [{"id": 7, "value": "BP AUSTRALIA"}],
        }
    )

    assert row == StationRow(
        source="baserow",
        station_id="1",
        name="Preston BP",
        brand="BP AUSTRALIA",
        address="12 High St, Preston VIC 3072",
        suburb="Preston",
        region="VIC",
        postcode="3072",
        latitude="-37.74",
        longitude="145.00",
        category="petrol-stations",
    )


def test_station_address_falls_back_to_location_details():
    row = station_row_from_baserow({"id": 2, "Location Details": "5 Low Rd, 3056"})
    assert row.address == "5 Low Rd, 3056"


def test_price_row_fans_out_per_linked_station():
    rows = price_rows_from_baserow(
        {
            "id": 10,
            "Petrol Station": [{"id": 1, "value": "Preston BP"}, 2],
            "Fuel Type": {"id": 3812408, "value": "Unleaded"},
            "Price Per Liter": "1.899",
            "Price Trend": {"id": 3812414, "value": "Stable"},
            "Last Updated": "2026-02-01T00:00:00Z",
        }
    )

    assert [row.station_id for row in rows] == ["1", "2"]
    assert all(row.price == 190 for row in rows)
    assert all(isinstance(row, PriceRow) for row in rows)


def test_unlinked_price_row_is_kept_for_the_normaliser_to_drop():
    rows = price_rows_from_baserow({"id": 11, "Fuel Type": "U91", "Price Per Liter": 1899})
    assert len(rows) == 1
    assert rows[0].station_id is None


def test_baserow_provider_requests_both_tables():
    settings = BaserowSettings(api_url="https://api.baserow.test/api/", token="secret", page_size=50)
    fetcher = RecordingFetcher(
        {
            "https://api.baserow.test/api/database/rows/table/623329/": [{"id": 1, "Station Name": "A"}],
            "https://api.baserow.test/api/database/rows/table/623330/": [
                {"id": 5, "Petrol Station": [1], "Fuel Type": "U91", "Price Per Liter": 1899}
            ],
        }
    )

    rows = BaserowProvider(settings, fetcher).fetch_rows()

    assert [type(row) for row in rows] == [StationRow, PriceRow]
    first = fetcher.calls[0]
    assert first["params"] == {"user_field_names": "true", "size": 50}
    assert first["headers"]["Authorization"] == "Token secret"


def test_baserow_provider_propagates_fetch_failure():
    settings = BaserowSettings(api_url="https://api.baserow.test/api")
    fetcher = RecordingFetcher(
        {"https://api.baserow.test/api/database/rows/table/623329/": UpstreamHttpError("401", status_code=401)}
    )
    with pytest.raises(UpstreamHttpError):
        BaserowProvider(settings, fetcher).fetch_rows()


DETAIL = {
    "fuelStation": {
        "id": "f3a1",
        "name": "Ampol Foodary Preston",
        "brandId": "b-9",
        "address": "300 Gilbert Rd, Preston VIC 3072",
        "contactPhone": "03 9000 0000",
        "location": {"latitude": Decimal("-37.75"), "longitude": Decimal("144.99")},
    },
    "fuelPrices": [
        {"fuelType": "U91", "price": Decimal("189.9"), "isAvailable": True, "updatedAt": "2026-02-01T01:00:00Z"},
        {"fuelType": "DSL", "price": Decimal("199.9"), "isAvailable": False, "updatedAt": "2026-02-01T01:00:00Z"},
        {"fuelType": "LPG", "price": 99, "isAvailable": True},
    ],
    "updatedAt": "2026-02-01T02:00:00Z",
}


def test_rows_from_price_detail_flattens_and_skips_unavailable():
    rows = rows_from_price_detail(DETAIL, {"b-9": "EG Ampol"})

    station, *prices = rows
    assert isinstance(station, StationRow)
    assert station.station_id == "f3a1"
    assert station.brand == "EG Ampol"
    assert station.phone_number == "03 9000 0000"
    assert station.latitude == Decimal("-37.75")
    assert [price.fuel_code for price in prices] == ["U91", "LPG"]
    assert [price.price for price in prices] == [190, 99]
    assert all(price.price_source == PRICE_SOURCE for price in prices)
    assert prices[1].updated_at == "2026-02-01T02:00:00Z"


def test_rows_from_price_detail_without_station_is_empty():
    assert rows_from_price_detail({"fuelPrices": []}) == []


def test_unresolved_brand_id_passes_through():
    rows = rows_from_price_detail(DETAIL, {})
    assert rows[0].brand == "b-9"


def test_fairfuel_provider_sends_identity_headers_and_resolves_brands():
    settings = FairFuelSettings(enabled=True, api_url="https://fuel.test/v1", consumer_id="consumer-1")
    fetcher = RecordingFetcher(
        {
            "https://fuel.test/v1/fuel/prices": [DETAIL],
            "https://fuel.test/v1/fuel/reference-data/brands": [{"id": "b-9", "name": "Ampol"}],
        }
    )

    rows = FairFuelProvider(settings, fetcher).fetch_rows()

    assert rows[0].brand == "Ampol"
    prices_call, brands_call = fetcher.calls
    assert prices_call["rows_key"] == "fuelPriceDetails"
    assert brands_call["rows_key"] == "brands"
    assert prices_call["headers"]["x-consumer-id"] == "consumer-1"
    assert prices_call["headers"]["x-transactionid"] != brands_call["headers"]["x-transactionid"]


def test_fairfuel_brand_lookup_failure_is_soft():
    settings = FairFuelSettings(enabled=True, api_url="https://fuel.test/v1", consumer_id="consumer-1")
    fetcher = RecordingFetcher(
        {
            "https://fuel.test/v1/fuel/prices": [DETAIL],
            "https://fuel.test/v1/fuel/reference-data/brands": UpstreamHttpError("404", status_code=404),
        }
    )

    rows = FairFuelProvider(settings, fetcher).fetch_rows()
    assert rows[0].brand == "b-9"


def test_fairfuel_without_consumer_id_fails_cycle():
    fetcher = RecordingFetcher({})
    with pytest.raises(IngestionError):
        FairFuelProvider(FairFuelSettings(enabled=True), fetcher).fetch_rows()
    assert fetcher.calls == []


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1.899", 190),
        (Decimal("2.05"), 205),
        (1899, 1899),
        ("189.9", 190),
        ("10", 1000),
        ("0", "0"),
        ("n/a", "n/a"),
        (1.899, 1.899),
        (None, None),
    ],
)
def test_baserow_price_converts_dollars_to_cents(raw, expected):
    assert price_cents_from_baserow(raw) == expected


def test_fairfuel_price_rounds_tenths_of_a_cent():
    assert price_cents_from_fairfuel(Decimal("189.9")) == 190
    assert price_cents_from_fairfuel(Decimal("189.4")) == 189
    assert price_cents_from_fairfuel(205) == 205
    assert price_cents_from_fairfuel(None) is None
