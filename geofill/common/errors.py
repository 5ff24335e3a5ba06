"""Domain errors and failure typing."""


class GeofillError(Exception):
    """Base class for geofill failures."""

    error_code = "GEOFILL_ERROR"


class ConfigError(GeofillError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class DataError(GeofillError):
    """Raised when the input record file cannot be interpreted."""

    error_code = "DATA_ERROR"


class EngineError(GeofillError):
    """Raised for programmer errors inside the enrichment engine."""

    error_code = "ENGINE_ERROR"


class OracleError(GeofillError):
    """Base class for failures reported by a coordinate oracle."""

    error_code = "ORACLE_ERROR"


class TransientOracleError(OracleError):
    """Failures expected to clear up when the request is repeated."""


class RateLimitedError(TransientOracleError):
    error_code = "RATE_LIMITED"


class ServerFaultError(TransientOracleError):
    error_code = "SERVER_FAULT"


class ClientFaultError(OracleError):
    error_code = "CLIENT_FAULT"


class MalformedResponseError(OracleError):
    error_code = "MALFORMED"
