"""UTC-focused helpers for timestamps."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_timestamp_iso() -> str:
    return utc_now().isoformat(timespec="milliseconds")


def normalise_timestamp(value: object, default: str) -> str:
    """Return ``value`` as an ISO-8601 string, or ``default`` when unparseable."""
    if not isinstance(value, str) or not value.strip():
        return default
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()
