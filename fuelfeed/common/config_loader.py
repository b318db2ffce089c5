"""Configuration loading and validation."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from fuelfeed.common.constants import DEFAULT_REGION, PROVIDERS, USER_AGENT
from fuelfeed.common.errors import ConfigError
from fuelfeed.common.fs import read_yaml
from fuelfeed.common.schema import validate_service_config

CONFIG_FILENAME = "fuelfeed.yml"
ENV_OVERRIDES = {
    "BASEROW_API_TOKEN": ("providers", "baserow", "token"),
    "FAIRFUEL_CONSUMER_ID": ("providers", "fairfuel", "consumer_id"),
}


@dataclass(frozen=True)
class HttpSettings:
    user_agent: str = USER_AGENT
    connect_timeout_s: float = 10.0
    read_timeout_s: float = 15.0
    max_attempts: int = 3
    backoff_base_s: float = 1.0
    backoff_max_s: float = 30.0


@dataclass(frozen=True)
class CacheSettings:
    ttl_s: float = 300.0
    max_entries: int | None = 64
    stale_retention_s: float | None = None


@dataclass(frozen=True)
class BaserowSettings:
    enabled: bool = True
    api_url: str = "https://api.baserow.io/api"
    token: str | None = None
    stations_table_id: int = 623329
    prices_table_id: int = 623330
    page_size: int = 200


@dataclass(frozen=True)
class FairFuelSettings:
    enabled: bool = False
    api_url: str = "https://api.fuel.service.vic.gov.au/open-data/v1"
    consumer_id: str | None = None
    resolve_brands: bool = True
    rate_limit_max_requests: int = 10
    rate_limit_window_s: float = 60.0


@dataclass(frozen=True)
class ServiceSettings:
    baserow: BaserowSettings = field(default_factory=BaserowSettings)
    fairfuel: FairFuelSettings = field(default_factory=FairFuelSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    default_region: str = DEFAULT_REGION
    provider_priority: tuple[str, ...] = PROVIDERS
    max_pages: int = 500
    log_level: str = "INFO"


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def _apply_env_overrides(cfg: dict, env: Mapping[str, str]) -> dict:
    out = copy.deepcopy(cfg)
    for var, path in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        node: Any = out
        for key in path[:-1]:
            node = node.get(key) if isinstance(node, dict) else None
        # Secrets only fill providers that are configured in the file.
        if isinstance(node, dict):
            node[path[-1]] = value
    return out


def settings_from_config(cfg: dict) -> ServiceSettings:
    service = cfg["service"]
    http = cfg["http"]
    cache = cfg["cache"]
    providers = cfg["providers"]

    baserow_cfg = providers.get("baserow")
    baserow = BaserowSettings(enabled=False)
    if baserow_cfg is not None:
        baserow = BaserowSettings(
            enabled=bool(baserow_cfg["enabled"]),
            api_url=str(baserow_cfg["api_url"]),
            token=baserow_cfg.get("token") or None,
            stations_table_id=int(baserow_cfg["stations_table_id"]),
            prices_table_id=int(baserow_cfg["prices_table_id"]),
            page_size=int(baserow_cfg.get("page_size") or 200),
        )

    fairfuel_cfg = providers.get("fairfuel")
    fairfuel = FairFuelSettings(enabled=False)
    if fairfuel_cfg is not None:
        consumer_id = fairfuel_cfg.get("consumer_id")
        fairfuel = FairFuelSettings(
            enabled=bool(fairfuel_cfg["enabled"]),
            api_url=str(fairfuel_cfg["api_url"]),
            consumer_id=str(consumer_id) if consumer_id else None,
            resolve_brands=bool(fairfuel_cfg.get("resolve_brands", True)),
            rate_limit_max_requests=int(fairfuel_cfg["rate_limit"]["max_requests"]),
            rate_limit_window_s=float(fairfuel_cfg["rate_limit"]["window_seconds"]),
        )

    stale_retention = cache.get("stale_retention_seconds")
    max_entries = cache.get("max_entries")
    return ServiceSettings(
        baserow=baserow,
        fairfuel=fairfuel,
        http=HttpSettings(
            user_agent=str(http["user_agent"]),
            connect_timeout_s=float(http["connect_timeout_seconds"]),
            read_timeout_s=float(http["read_timeout_seconds"]),
            max_attempts=int(http["max_attempts"]),
            backoff_base_s=float(http["backoff_base_seconds"]),
            backoff_max_s=float(http["backoff_max_seconds"]),
        ),
        cache=CacheSettings(
            ttl_s=float(cache["ttl_seconds"]),
            max_entries=int(max_entries) if max_entries is not None else None,
            stale_retention_s=float(stale_retention) if stale_retention is not None else None,
        ),
        default_region=str(service["default_region"]).upper(),
        provider_priority=tuple(service["provider_priority"]),
        max_pages=int(service["max_pages"]),
        log_level=str(cfg["logging"]["level"]).upper(),
    )


def load_settings(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ServiceSettings:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    if not isinstance(cfg, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping")
    cfg = _apply_env_overrides(cfg, os.environ if env is None else env)
    validated = validate_service_config(cfg, allow_unknown=allow_unknown)
    return settings_from_config(validated)
