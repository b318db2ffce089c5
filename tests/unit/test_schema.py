import copy

import pytest

from fuelfeed.common.errors import ConfigError
from fuelfeed.common.schema import validate_service_config

VALID = {
    "service": {"default_region": "VIC", "provider_priority": ["baserow"], "max_pages": 10},
    "http": {
        "user_agent": "ua",
        "connect_timeout_seconds": 1,
        "read_timeout_seconds": 1,
        "max_attempts": 3,
        "backoff_base_seconds": 1,
        "backoff_max_seconds": 30,
    },
    "cache": {"ttl_seconds": 60, "max_entries": None, "stale_retention_seconds": None},
    "providers": {
        "baserow": {"enabled": True, "api_url": "https://x", "stations_table_id": 1, "prices_table_id": 2},
    },
    "logging": {"level": "INFO"},
}


def _with(path: list[str], value):
    cfg = copy.deepcopy(VALID)
    node = cfg
    for key in path[:-1]:
        node = node[key]
    node[path[-1]] = value
    return cfg


def test_valid_config_passes():
    assert validate_service_config(copy.deepcopy(VALID)) == VALID


def test_missing_top_level_key():
    cfg = copy.deepcopy(VALID)
    del cfg["cache"]
    with pytest.raises(ConfigError, match="Missing keys"):
        validate_service_config(cfg)


def test_unknown_key_rejected_unless_allowed():
    cfg = _with(["http", "proxy"], "http://proxy")
    with pytest.raises(ConfigError, match="Unknown keys"):
        validate_service_config(cfg)
    assert validate_service_config(cfg, allow_unknown=True)


@pytest.mark.parametrize(
    "path,value",
    [
        (["service", "default_region"], "XX"),
        (["service", "provider_priority"], []),
        (["service", "provider_priority"], ["nrma"]),
        (["service", "max_pages"], 0),
        (["http", "max_attempts"], 1.5),
        (["http", "read_timeout_seconds"], -1),
        (["cache", "ttl_seconds"], True),
        (["cache", "max_entries"], 0),
        (["logging", "level"], "LOUD"),
        (["providers", "baserow", "page_size"], "big"),
    ],
)
def test_invalid_values_rejected(path, value):
    with pytest.raises(ConfigError):
        validate_service_config(_with(path, value))


def test_fairfuel_requires_rate_limit():
    cfg = _with(["providers", "fairfuel"], {"enabled": True, "api_url": "https://y"})
    with pytest.raises(ConfigError, match="rate_limit"):
        validate_service_config(cfg)


def test_non_mapping_config_rejected():
    with pytest.raises(ConfigError):
        validate_service_config(["a"])
