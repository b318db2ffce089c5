"""CLI entrypoint for the fuel station ingestion pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from fuelfeed.common.config_loader import ServiceSettings, load_settings
from fuelfeed.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from fuelfeed.common.errors import DataUnavailableError, PipelineError
from fuelfeed.common.ids import generate_run_id
from fuelfeed.common.logging import build_logger, log_event
from fuelfeed.pipeline.export import write_prices_csv, write_stations_json
from fuelfeed.pipeline.service import create_ingestion_service

COMMANDS = ("stations", "check-config")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--force-refresh", action="store_true")
    return parser.parse_args(argv)


def run_stations(settings: ServiceSettings, data_dir: Path, force_refresh: bool, logger: logging.Logger) -> int:
    with create_ingestion_service(settings) as service:
        try:
            stations = service.get_stations(force_refresh=force_refresh)
        except DataUnavailableError as exc:
            log_event(
                logger,
                str(exc),
                level=logging.ERROR,
                event="STATIONS_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return EXIT_HARD_FAIL

        out_dir = data_dir / "out"
        write_stations_json(out_dir / "stations.json", stations)
        write_prices_csv(out_dir / "prices.csv", stations)

        outcome = service.last_outcome
        partial = outcome is not None and (outcome.served_stale or bool(outcome.providers_failed))
        log_event(
            logger,
            f"wrote {len(stations)} stations to {out_dir}",
            event="STATIONS_WRITTEN",
            status="partial" if partial else "ok",
            rows_out=len(stations),
        )
        return EXIT_PARTIAL if partial else EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(
        run_id,
        level=args.log_level or "INFO",
        log_path=data_dir / "logs" / f"{run_id}.jsonl",
    )
    settings = load_settings(config_dir, overlay_config_dir=overlay_config_dir)
    if args.log_level is None:
        logger.setLevel(settings.log_level)

    if args.command == "check-config":
        enabled = [name for name in settings.provider_priority if getattr(settings, name).enabled]
        log_event(
            logger,
            f"config ok; enabled providers: {', '.join(enabled) or 'none'}",
            event="CONFIG_OK",
            status="ok",
        )
        return EXIT_SUCCESS

    return run_stations(settings, data_dir, args.force_refresh, logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        log_event(
            logging.getLogger("fuelfeed"),
            str(exc),
            level=logging.ERROR,
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    except Exception:
        logging.getLogger("fuelfeed").exception("unexpected failure", extra={"error_code": "UNEXPECTED_ERROR"})
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
