"""Application constants."""

USER_AGENT = "geofill/0.3 (+batch geocoding; contact: configured-email)"
DEFAULT_CONFIG_PATH = "config/geocoder.yml"
COMMANDS = ("stats", "enrich")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "event",
    "state",
    "batch",
    "record_id",
    "attempt",
    "processed",
    "total",
    "successful",
    "duration_ms",
    "error_code",
    "message",
)
