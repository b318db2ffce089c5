import json
from pathlib import Path

import pytest

from fuelfeed import cli
from fuelfeed.common.cache import TtlCache
from fuelfeed.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from fuelfeed.common.errors import TransientNetworkError
from fuelfeed.common.models import PriceRow, StationRow
from fuelfeed.pipeline.service import IngestionService

REPO_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


class FakeProvider:
    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.fail = fail

    def fetch_rows(self):
        if self.fail:
            raise TransientNetworkError("down")
        return [
            StationRow(source=self.name, station_id="1", name="Preston", address="12 High St, Preston VIC 3072"),
            PriceRow(source=self.name, station_id="1", fuel_code="U91", price=1899),
        ]


def _patch_service(monkeypatch, providers):
    def factory(settings):
        return IngestionService(providers, TtlCache(), settings)

    monkeypatch.setattr(cli, "create_ingestion_service", factory)


def _args(tmp_path: Path, command: str = "stations"):
    return cli.parse_args(
        [
            command,
            "--config-dir",
            str(REPO_CONFIG_DIR),
            "--data-dir",
            str(tmp_path / "data"),
            "--run-id",
            "run-test",
        ]
    )


@pytest.mark.integration
def test_cli_stations_writes_outputs(monkeypatch, tmp_path: Path):
    _patch_service(monkeypatch, [FakeProvider("baserow")])

    exit_code = cli.run_command(_args(tmp_path))

    out_dir = tmp_path / "data" / "out"
    assert exit_code == EXIT_SUCCESS
    payload = json.loads((out_dir / "stations.json").read_text(encoding="utf-8"))
    assert payload["count"] == 1
    assert payload["stations"][0]["fuelPrices"][0]["pricePerLiterCents"] == 1899
    lines = (out_dir / "prices.csv").read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("station_id,")
    assert len(lines) == 2
    assert (tmp_path / "data" / "logs" / "run-test.jsonl").exists()


@pytest.mark.integration
def test_cli_stations_partial_when_a_provider_fails(monkeypatch, tmp_path: Path):
    _patch_service(monkeypatch, [FakeProvider("baserow"), FakeProvider("fairfuel", fail=True)])
    assert cli.run_command(_args(tmp_path)) == EXIT_PARTIAL


@pytest.mark.integration
def test_cli_stations_hard_fail_without_data(monkeypatch, tmp_path: Path):
    _patch_service(monkeypatch, [FakeProvider("baserow", fail=True)])
    assert cli.run_command(_args(tmp_path)) == EXIT_HARD_FAIL
    assert not (tmp_path / "data" / "out" / "stations.json").exists()


@pytest.mark.integration
def test_cli_check_config(tmp_path: Path):
    assert cli.run_command(_args(tmp_path, "check-config")) == EXIT_SUCCESS


@pytest.mark.integration
def test_main_maps_config_errors_to_hard_fail(tmp_path: Path):
    assert cli.main(["check-config", "--config-dir", str(tmp_path / "missing"), "--data-dir", str(tmp_path)]) == EXIT_HARD_FAIL
