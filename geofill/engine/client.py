"""Single-address enrichment with retry, backoff and result validation."""

from __future__ import annotations

import logging
import time
from typing import Callable

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from geofill.common.config_loader import RetryConfig
from geofill.common.errors import (
    ClientFaultError,
    MalformedResponseError,
    OracleError,
    TransientOracleError,
)
from geofill.common.logging import get_logger, log_event
from geofill.common.models import BoundingBox, Coordinate, EnrichmentOutcome, OutcomeReason
from geofill.oracle.base import Oracle, OracleQuery

logger = get_logger("engine.client")

_REASON_BY_ERROR = (
    (MalformedResponseError, OutcomeReason.MALFORMED),
    (ClientFaultError, OutcomeReason.CLIENT_FAULT),
)


def _valid_lat_lon(coordinate: Coordinate) -> bool:
    if not coordinate.is_finite():
        return False
    return -90 <= coordinate.lat <= 90 and -180 <= coordinate.lng <= 180


def validate_coordinate(coordinate: Coordinate, bbox: BoundingBox) -> bool:
    return _valid_lat_lon(coordinate) and bbox.contains(coordinate)


class OracleClient:
    """Wraps one oracle call per address.

    Transient failures (rate limiting, server faults) are retried up to
    ``retry.max_retries`` times, waiting ``base_delay * 2**attempt`` seconds
    between attempts. Every other failure, an empty answer and an answer
    outside ``bbox`` end the item at once. Oracle failures never escape
    :meth:`enrich`; they come back as a "no result" outcome.
    """

    def __init__(
        self,
        oracle: Oracle,
        bbox: BoundingBox,
        retry: RetryConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.oracle = oracle
        self.bbox = bbox
        self.retry = retry or RetryConfig()
        self._sleep = sleep

    def _retrying(self, query: OracleQuery) -> Retrying:
        def _log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            log_event(
                logger,
                f"transient oracle failure for {query.display_name!r}, retrying",
                level=logging.WARNING,
                event="ORACLE_RETRY",
                attempt=retry_state.attempt_number,
                duration_ms=int(retry_state.upcoming_sleep * 1000),
                error_code=getattr(exc, "error_code", None),
            )

        return Retrying(
            stop=stop_after_attempt(self.retry.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry.base_delay, exp_base=2),
            retry=retry_if_exception_type(TransientOracleError),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )

    def enrich(self, address: str | None, display_name: str) -> EnrichmentOutcome:
        if not address or not address.strip():
            return EnrichmentOutcome.no_result(OutcomeReason.NO_ADDRESS)

        query = OracleQuery(address=address.strip(), display_name=display_name)
        attempts = 0

        def _attempt() -> Coordinate | None:
            nonlocal attempts
            attempts += 1
            return self.oracle.locate(query)

        try:
            coordinate = self._retrying(query)(_attempt)
        except TransientOracleError as exc:
            return self._no_result(query, OutcomeReason.RETRIES_EXHAUSTED, attempts, exc)
        except OracleError as exc:
            reason = next(
                (reason for error_type, reason in _REASON_BY_ERROR if isinstance(exc, error_type)),
                OutcomeReason.CLIENT_FAULT,
            )
            return self._no_result(query, reason, attempts, exc)

        if coordinate is None:
            return self._no_result(query, OutcomeReason.NO_RESULT, attempts)
        if not validate_coordinate(coordinate, self.bbox):
            return self._no_result(query, OutcomeReason.OUT_OF_BOUNDS, attempts)
        return EnrichmentOutcome.success(coordinate, attempts)

    def _no_result(
        self,
        query: OracleQuery,
        reason: OutcomeReason,
        attempts: int,
        exc: OracleError | None = None,
    ) -> EnrichmentOutcome:
        log_event(
            logger,
            f"no coordinate for {query.display_name!r}: {exc or reason.value}",
            level=logging.WARNING,
            event="ORACLE_NO_RESULT",
            attempt=attempts,
            error_code=reason.value,
        )
        return EnrichmentOutcome.no_result(reason, attempts)
