"""Application constants."""

USER_AGENT = "fuelfeed/1.0 (+station-price-ingest)"
AUSTRALIAN_STATES = ("VIC", "NSW", "QLD", "SA", "WA", "TAS", "ACT", "NT")
DEFAULT_REGION = "VIC"
PROVIDERS = ("baserow", "fairfuel")
DATASET_CACHE_KEY = "stations:dataset"
PROVIDER_CACHE_PREFIX = "stations:provider:"
UNKNOWN_STATION_NAME = "Unknown Station"
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "provider",
    "event",
    "status",
    "attempt",
    "wait_ms",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
