import csv
import json
from pathlib import Path

from fuelfeed.common.models import FuelPrice, FuelType, PriceTrend, Station
from fuelfeed.pipeline.export import PRICE_HEADERS, write_prices_csv, write_stations_json


def _station(station_id: str, source: str, prices: tuple[FuelPrice, ...] = ()) -> Station:
    return Station(
        id=station_id,
        name=f"Station {station_id}",
        brand="Ampol",
        address="2 High St",
        suburb="Ballarat",
        region="VIC",
        postcode="3350",
        fuel_prices=prices,
        source=source,
    )


def _price(station_id: str) -> FuelPrice:
    return FuelPrice(
        id=f"{station_id}-DSL",
        station_id=station_id,
        fuel_type=FuelType.DIESEL,
        fuel_code="DSL",
        price_per_litre_cents=2015,
        trend=PriceTrend.DECREASING,
        last_updated="2026-03-01T08:00:00+00:00",
        price_source="test",
    )


def test_write_stations_json_orders_by_source_then_id(tmp_path: Path):
    stations = [_station("b", "fairfuel"), _station("z", "baserow"), _station("a", "baserow")]
    path = write_stations_json(tmp_path / "out" / "stations.json", stations)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["count"] == 3
    assert [(s["source"], s["id"]) for s in payload["stations"]] == [
        ("baserow", "a"),
        ("baserow", "z"),
        ("fairfuel", "b"),
    ]
    assert payload["stations"][0]["fuelPrices"] == []


def test_write_prices_csv_has_one_row_per_price(tmp_path: Path):
    stations = [_station("7", "baserow", (_price("7"),)), _station("8", "baserow")]
    path = write_prices_csv(tmp_path / "prices.csv", stations)

    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        rows = list(reader)

    assert reader.fieldnames == PRICE_HEADERS
    assert len(rows) == 1
    assert rows[0]["station_id"] == "7"
    assert rows[0]["fuel_type"] == "Diesel"
    assert rows[0]["price_per_litre_cents"] == "2015"
    assert rows[0]["trend"] == "Decreasing"
