from __future__ import annotations

import pytest

from geofill.common.config_loader import RetryConfig
from geofill.common.errors import (
    ClientFaultError,
    MalformedResponseError,
    RateLimitedError,
    ServerFaultError,
)
from geofill.common.models import BoundingBox, Coordinate, OutcomeReason
from geofill.engine.client import OracleClient, validate_coordinate

HK_BBOX = BoundingBox(min_lat=22.1, max_lat=22.6, min_lon=113.8, max_lon=114.5)


class ScriptedOracle:
    """Plays back a list of results; exceptions in the list are raised."""

    def __init__(self, *script):
        self.script = list(script)
        self.queries = []

    def locate(self, query):
        self.queries.append(query)
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


def _client(oracle, sleeps, retry=None):
    return OracleClient(oracle, HK_BBOX, retry or RetryConfig(), sleep=sleeps.append)


def test_backoff_schedule_doubles_then_returns_success():
    sleeps = []
    oracle = ScriptedOracle(RateLimitedError("429"), RateLimitedError("429"), Coordinate(22.28, 114.16))

    outcome = _client(oracle, sleeps).enrich("18 Hennessy Road", "Harbour View")

    assert sleeps == [1.0, 2.0]
    assert outcome.ok
    assert outcome.coordinate == Coordinate(22.28, 114.16)
    assert outcome.attempts == 3


def test_retry_budget_exhausted_degrades_to_no_result():
    sleeps = []
    oracle = ScriptedOracle(ServerFaultError("503"), ServerFaultError("502"), ServerFaultError("500"))

    outcome = _client(oracle, sleeps).enrich("18 Hennessy Road", "Harbour View")

    assert outcome.coordinate is None
    assert outcome.reason is OutcomeReason.RETRIES_EXHAUSTED
    assert outcome.attempts == 3
    assert sleeps == [1.0, 2.0]


def test_zero_retries_means_single_attempt():
    sleeps = []
    oracle = ScriptedOracle(RateLimitedError("429"))

    outcome = _client(oracle, sleeps, RetryConfig(max_retries=0)).enrich("addr", "name")

    assert outcome.reason is OutcomeReason.RETRIES_EXHAUSTED
    assert outcome.attempts == 1
    assert sleeps == []


@pytest.mark.parametrize(
    ("error", "reason"),
    [
        (MalformedResponseError("bad json"), OutcomeReason.MALFORMED),
        (ClientFaultError("400"), OutcomeReason.CLIENT_FAULT),
    ],
)
def test_non_transient_errors_are_not_retried(error, reason):
    sleeps = []
    oracle = ScriptedOracle(error, Coordinate(22.3, 114.1))

    outcome = _client(oracle, sleeps).enrich("addr", "name")

    assert outcome.reason is reason
    assert outcome.attempts == 1
    assert sleeps == []
    assert len(oracle.script) == 1


def test_out_of_bounds_result_is_rejected_without_retry():
    sleeps = []
    oracle = ScriptedOracle(Coordinate(40.0, -73.0), Coordinate(22.3, 114.1))

    outcome = _client(oracle, sleeps).enrich("5th Avenue", "Elsewhere Clinic")

    assert outcome.coordinate is None
    assert outcome.reason is OutcomeReason.OUT_OF_BOUNDS
    assert outcome.attempts == 1
    assert sleeps == []


def test_empty_answer_is_no_result():
    outcome = _client(ScriptedOracle(None), []).enrich("addr", "name")

    assert outcome.reason is OutcomeReason.NO_RESULT
    assert outcome.attempts == 1


@pytest.mark.parametrize("address", [None, "", "   "])
def test_missing_address_short_circuits(address):
    oracle = ScriptedOracle()

    outcome = _client(oracle, []).enrich(address, "name")

    assert outcome.reason is OutcomeReason.NO_ADDRESS
    assert outcome.attempts == 0
    assert oracle.queries == []


def test_query_carries_stripped_address_and_display_name():
    oracle = ScriptedOracle(Coordinate(22.3, 114.1))

    _client(oracle, []).enrich("  8 Sheung Yuet Road ", "Kowloon Bay Clinic")

    assert oracle.queries[0].address == "8 Sheung Yuet Road"
    assert oracle.queries[0].display_name == "Kowloon Bay Clinic"


def test_unexpected_exception_propagates():
    oracle = ScriptedOracle(RuntimeError("bug"))

    with pytest.raises(RuntimeError):
        _client(oracle, []).enrich("addr", "name")


def test_validate_coordinate_uses_open_box_and_rejects_nan():
    assert validate_coordinate(Coordinate(22.3, 114.1), HK_BBOX)
    assert not validate_coordinate(Coordinate(22.1, 114.1), HK_BBOX)
    assert not validate_coordinate(Coordinate(float("nan"), 114.1), HK_BBOX)
