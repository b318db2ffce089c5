"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from fuelfeed.common.constants import AUSTRALIAN_STATES, PROVIDERS
from fuelfeed.common.errors import ConfigError

_TOP_KEYS = {"service", "http", "cache", "providers", "logging"}
_SERVICE_KEYS = {"default_region", "provider_priority", "max_pages"}
_HTTP_KEYS = {
    "user_agent",
    "connect_timeout_seconds",
    "read_timeout_seconds",
    "max_attempts",
    "backoff_base_seconds",
    "backoff_max_seconds",
}
_CACHE_REQUIRED = {"ttl_seconds"}
_CACHE_KEYS = _CACHE_REQUIRED | {"max_entries", "stale_retention_seconds"}
_BASEROW_REQUIRED = {"enabled", "api_url", "stations_table_id", "prices_table_id"}
_BASEROW_KEYS = _BASEROW_REQUIRED | {"token", "page_size"}
_FAIRFUEL_REQUIRED = {"enabled", "api_url", "rate_limit"}
_FAIRFUEL_KEYS = _FAIRFUEL_REQUIRED | {"consumer_id", "resolve_brands"}
_RATE_LIMIT_KEYS = {"max_requests", "window_seconds"}
_LOGGING_KEYS = {"level"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "WARNING", "ERROR"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_positive(value: object, ctx: str, *, integer: bool = False) -> None:
    kinds = (int,) if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds) or value <= 0:
        kind = "integer" if integer else "number"
        raise ConfigError(f"{ctx} must be a positive {kind}")


def _section(cfg: dict, name: str, required: set[str], known: set[str], allow_unknown: bool) -> dict:
    section = _assert_mapping(cfg[name], name)
    _assert_required_keys(section, required, name)
    _assert_no_unknown_keys(section, known, name, allow_unknown)
    return section


def validate_service_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "fuelfeed config")
    _assert_required_keys(cfg, _TOP_KEYS, "fuelfeed config")
    _assert_no_unknown_keys(cfg, _TOP_KEYS, "fuelfeed config", allow_unknown)

    service = _section(cfg, "service", _SERVICE_KEYS, _SERVICE_KEYS, allow_unknown)
    if str(service["default_region"]).upper() not in AUSTRALIAN_STATES:
        raise ConfigError(f"service.default_region must be one of {', '.join(AUSTRALIAN_STATES)}")
    priority = service["provider_priority"]
    if not isinstance(priority, list) or not priority:
        raise ConfigError("service.provider_priority must be a non-empty list")
    unknown_providers = set(priority) - set(PROVIDERS)
    if unknown_providers:
        raise ConfigError(f"Unknown providers in service.provider_priority: {', '.join(sorted(unknown_providers))}")
    _assert_positive(service["max_pages"], "service.max_pages", integer=True)

    http = _section(cfg, "http", _HTTP_KEYS, _HTTP_KEYS, allow_unknown)
    for key in ("connect_timeout_seconds", "read_timeout_seconds", "backoff_base_seconds", "backoff_max_seconds"):
        _assert_positive(http[key], f"http.{key}")
    _assert_positive(http["max_attempts"], "http.max_attempts", integer=True)

    cache = _section(cfg, "cache", _CACHE_REQUIRED, _CACHE_KEYS, allow_unknown)
    _assert_positive(cache["ttl_seconds"], "cache.ttl_seconds")
    if cache.get("max_entries") is not None:
        _assert_positive(cache["max_entries"], "cache.max_entries", integer=True)
    if cache.get("stale_retention_seconds") is not None:
        _assert_positive(cache["stale_retention_seconds"], "cache.stale_retention_seconds")

    providers = _section(cfg, "providers", set(), set(PROVIDERS), allow_unknown)
    if "baserow" in providers:
        baserow = _assert_mapping(providers["baserow"], "providers.baserow")
        _assert_required_keys(baserow, _BASEROW_REQUIRED, "providers.baserow")
        _assert_no_unknown_keys(baserow, _BASEROW_KEYS, "providers.baserow", allow_unknown)
        if baserow.get("page_size") is not None:
            _assert_positive(baserow["page_size"], "providers.baserow.page_size", integer=True)
    if "fairfuel" in providers:
        fairfuel = _assert_mapping(providers["fairfuel"], "providers.fairfuel")
        _assert_required_keys(fairfuel, _FAIRFUEL_REQUIRED, "providers.fairfuel")
        _assert_no_unknown_keys(fairfuel, _FAIRFUEL_KEYS, "providers.fairfuel", allow_unknown)
        rate_limit = _assert_mapping(fairfuel["rate_limit"], "providers.fairfuel.rate_limit")
        _assert_required_keys(rate_limit, _RATE_LIMIT_KEYS, "providers.fairfuel.rate_limit")
        _assert_no_unknown_keys(rate_limit, _RATE_LIMIT_KEYS, "providers.fairfuel.rate_limit", allow_unknown)
        _assert_positive(rate_limit["max_requests"], "providers.fairfuel.rate_limit.max_requests", integer=True)
        _assert_positive(rate_limit["window_seconds"], "providers.fairfuel.rate_limit.window_seconds")

    logging_cfg = _section(cfg, "logging", _LOGGING_KEYS, _LOGGING_KEYS, allow_unknown)
    if str(logging_cfg["level"]).upper() not in _LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}")

    return cfg
