"""Identifier helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def generate_transaction_id() -> str:
    return str(uuid.uuid4())


def fuel_price_id(station_id: str, fuel_code: str) -> str:
    return f"{station_id}-{fuel_code}"
