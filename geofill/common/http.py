"""HTTP client with timeouts and oracle failure classification."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import requests

from geofill.common.config_loader import TimeoutConfig
from geofill.common.constants import USER_AGENT
from geofill.common.errors import (
    ClientFaultError,
    MalformedResponseError,
    RateLimitedError,
    ServerFaultError,
)

RATE_LIMIT_STATUS_CODES = {429}
SERVER_FAULT_STATUS_CODES = {408, 425}


class HttpClient:
    """Thin ``requests`` wrapper.

    Failures are raised as oracle errors so callers can decide what is worth
    retrying: 429 is rate limiting, 408/425/5xx and transport errors are
    server faults, any other 4xx is a client fault and an undecodable body is
    a malformed response. Retrying itself is left to the caller.
    """

    def __init__(self, *, timeout: TimeoutConfig | None = None) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RATE_LIMIT_STATUS_CODES:
            raise RateLimitedError(f"Rate limited: HTTP {status}")
        if status in SERVER_FAULT_STATUS_CODES or status >= 500:
            raise ServerFaultError(f"Server fault: HTTP {status}")
        if status >= 400:
            raise ClientFaultError(f"Client fault: HTTP {status}")

    def request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=self._headers(headers),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.RequestException as exc:
            raise ServerFaultError(f"Transport failure for {url}: {exc}") from exc
        self._raise_for_status(response)

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Invalid JSON payload from {url}") from exc

    def post_json(
        self,
        url: str,
        *,
        json_body: dict[str, Any],
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        merged = {"Content-Type": "application/json"}
        if headers:
            merged.update(headers)
        return self.request_json(
            "POST",
            url,
            params=params,
            json_body=json_body,
            headers=merged,
            timeout=timeout,
        )
