"""Gemini ``generateContent`` oracle."""

from __future__ import annotations

import json
import os
import re
from typing import Any

from geofill.common.config_loader import OracleConfig
from geofill.common.errors import ConfigError, MalformedResponseError
from geofill.common.http import HttpClient
from geofill.common.models import Coordinate
from geofill.oracle.base import OracleQuery, build_prompt

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "lat": {"type": "NUMBER", "description": "Latitude of the address"},
        "lng": {"type": "NUMBER", "description": "Longitude of the address"},
    },
    "required": ["lat", "lng"],
}

_FENCE_RE = re.compile(r"```(?:json)?")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def extract_candidate_text(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        raise MalformedResponseError("Response payload is not an object")
    candidates = payload.get("candidates") or []
    if not candidates:
        return None
    try:
        parts = candidates[0]["content"]["parts"] or []
    except (KeyError, TypeError, IndexError):
        return None
    # Blocked or safety-stopped candidates come back without usable parts.
    if not isinstance(parts, list):
        return None
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    text = "".join(texts)
    return text or None


def parse_coordinate(text: str) -> Coordinate:
    try:
        data = json.loads(strip_code_fences(text))
        return Coordinate(lat=float(data["lat"]), lng=float(data["lng"]))
    except (ValueError, KeyError, TypeError) as exc:
        raise MalformedResponseError(f"Unparseable coordinate payload: {text[:120]!r}") from exc


class GeminiOracle:
    def __init__(
        self,
        config: OracleConfig,
        *,
        http_client: HttpClient | None = None,
        api_key: str | None = None,
    ) -> None:
        self.config = config
        self.http = http_client or HttpClient(timeout=config.timeout)
        self.api_key = api_key if api_key is not None else os.environ.get(config.api_key_env)
        if not self.api_key:
            raise ConfigError(f"Oracle API key missing: set ${config.api_key_env}")

    @property
    def url(self) -> str:
        return f"{self.config.endpoint}/models/{self.config.model}:generateContent"

    def build_request(self, query: OracleQuery) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(query, self.config.region)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
                "temperature": self.config.temperature,
            },
        }

    def locate(self, query: OracleQuery) -> Coordinate | None:
        payload = self.http.post_json(
            self.url,
            json_body=self.build_request(query),
            headers={"x-goog-api-key": self.api_key},
        )
        text = extract_candidate_text(payload)
        if text is None:
            return None
        return parse_coordinate(text)

    def close(self) -> None:
        self.http.close()
