"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from geofill.common.errors import ConfigError

SECTION_KEYS = {
    "oracle": {"provider", "endpoint", "model", "api_key_env", "temperature", "region", "timeout"},
    "retry": {"max_retries", "base_delay_ms"},
    "batching": {"batch_size", "inter_batch_delay_ms"},
    "validation": {"bbox_wgs84"},
    "fields": {"id", "name", "addresses", "address_text", "latlng"},
}
BBOX_KEYS = {"min_lat", "max_lat", "min_lon", "max_lon"}
SUPPORTED_PROVIDERS = ("gemini",)


def _assert_mapping(obj, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


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


def _assert_number(value, ctx: str, *, minimum: float | None = None, integer: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx} must be a number")
    if integer and not isinstance(value, int):
        raise ConfigError(f"{ctx} must be an integer")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{ctx} must be >= {minimum}")


def validate_geocoder_config(cfg, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "geocoder config")
    _assert_required_keys(cfg, set(SECTION_KEYS), "geocoder config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "geocoder config", allow_unknown)

    for section, keys in SECTION_KEYS.items():
        _assert_mapping(cfg[section], section)
        _assert_required_keys(cfg[section], keys, section)
        _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    oracle = cfg["oracle"]
    if oracle["provider"] not in SUPPORTED_PROVIDERS:
        raise ConfigError(f"Unsupported oracle provider: {oracle['provider']}")
    _assert_mapping(oracle["timeout"], "oracle.timeout")
    _assert_required_keys(oracle["timeout"], {"connect", "read"}, "oracle.timeout")
    _assert_number(oracle["timeout"]["connect"], "oracle.timeout.connect", minimum=0)
    _assert_number(oracle["timeout"]["read"], "oracle.timeout.read", minimum=0)
    _assert_number(oracle["temperature"], "oracle.temperature", minimum=0)

    _assert_number(cfg["retry"]["max_retries"], "retry.max_retries", minimum=0, integer=True)
    _assert_number(cfg["retry"]["base_delay_ms"], "retry.base_delay_ms", minimum=0)
    _assert_number(cfg["batching"]["batch_size"], "batching.batch_size", minimum=1, integer=True)
    _assert_number(cfg["batching"]["inter_batch_delay_ms"], "batching.inter_batch_delay_ms", minimum=0)

    bbox = cfg["validation"]["bbox_wgs84"]
    _assert_mapping(bbox, "validation.bbox_wgs84")
    _assert_required_keys(bbox, BBOX_KEYS, "validation.bbox_wgs84")
    for key in sorted(BBOX_KEYS):
        _assert_number(bbox[key], f"validation.bbox_wgs84.{key}")
    if bbox["min_lat"] >= bbox["max_lat"] or bbox["min_lon"] >= bbox["max_lon"]:
        raise ConfigError("validation.bbox_wgs84 min values must be below max values")

    return cfg
