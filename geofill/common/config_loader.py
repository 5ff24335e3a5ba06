"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from geofill.common.errors import ConfigError
from geofill.common.fs import read_yaml
from geofill.common.models import BoundingBox
from geofill.common.schema import BBOX_KEYS, SECTION_KEYS, validate_geocoder_config


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 60.0


@dataclass(frozen=True)
class OracleConfig:
    provider: str = "gemini"
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "API_KEY"
    temperature: float = 0.1
    region: str = "Hong Kong"
    timeout: TimeoutConfig = TimeoutConfig()


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 2
    base_delay: float = 1.0


@dataclass(frozen=True)
class BatchConfig:
    batch_size: int = 5
    inter_batch_delay: float = 0.5


@dataclass(frozen=True)
class FieldMapping:
    id: str = "PHFNo"
    name: str = "PHFName"
    addresses: str = "Address"
    address_text: str = "Address"
    latlng: str = "LatLng"


@dataclass(frozen=True)
class EngineConfig:
    oracle: OracleConfig
    retry: RetryConfig
    batching: BatchConfig
    bbox: BoundingBox
    fields: FieldMapping


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
    return _deep_merge(base, overlay)


def build_engine_config(cfg: dict) -> EngineConfig:
    oracle = cfg["oracle"]
    return EngineConfig(
        oracle=OracleConfig(
            provider=oracle["provider"],
            endpoint=str(oracle["endpoint"]).rstrip("/"),
            model=oracle["model"],
            api_key_env=oracle["api_key_env"],
            temperature=float(oracle["temperature"]),
            region=oracle["region"],
            timeout=TimeoutConfig(
                connect=float(oracle["timeout"]["connect"]),
                read=float(oracle["timeout"]["read"]),
            ),
        ),
        retry=RetryConfig(
            max_retries=int(cfg["retry"]["max_retries"]),
            base_delay=cfg["retry"]["base_delay_ms"] / 1000.0,
        ),
        batching=BatchConfig(
            batch_size=int(cfg["batching"]["batch_size"]),
            inter_batch_delay=cfg["batching"]["inter_batch_delay_ms"] / 1000.0,
        ),
        bbox=BoundingBox(**{key: float(cfg["validation"]["bbox_wgs84"][key]) for key in BBOX_KEYS}),
        fields=FieldMapping(**{key: str(cfg["fields"][key]) for key in SECTION_KEYS["fields"]}),
    )


def load_config(
    config_path: Path,
    *,
    allow_unknown: bool = False,
    overlay_path: Path | None = None,
) -> EngineConfig:
    raw = _load_yaml_with_overlay(config_path, overlay_path)
    return build_engine_config(validate_geocoder_config(raw, allow_unknown=allow_unknown))
