"""Data models shared by the engine, the oracle and the pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def is_finite(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    def to_latlng(self) -> str:
        return f"{self.lat}, {self.lng}"


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, coordinate: Coordinate) -> bool:
        # Open interval on every edge.
        return (
            self.min_lat < coordinate.lat < self.max_lat
            and self.min_lon < coordinate.lng < self.max_lon
        )


@dataclass(frozen=True)
class Record:
    record_id: str
    name: str
    addresses: tuple[str, ...] = ()
    coordinate: Coordinate | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def address(self) -> str | None:
        """First candidate address, or ``None`` when the record has none."""
        if not self.addresses:
            return None
        return self.addresses[0]

    @property
    def has_coordinate(self) -> bool:
        return self.coordinate is not None

    def with_coordinate(self, coordinate: Coordinate) -> "Record":
        return replace(self, coordinate=coordinate)


@dataclass(frozen=True)
class PendingItem:
    index: int
    record: Record


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressSnapshot:
    processed: int
    total: int
    successful: int
    state: RunState

    @property
    def failed(self) -> int:
        return self.processed - self.successful

    @property
    def percent_complete(self) -> int:
        if self.total <= 0:
            return 0
        # Halves round up.
        return int(self.processed / self.total * 100 + 0.5)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "percent_complete": self.percent_complete,
            "state": self.state.value,
        }


class OutcomeReason(str, Enum):
    OK = "OK"
    NO_ADDRESS = "NO_ADDRESS"
    NO_RESULT = "NO_RESULT"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"
    MALFORMED = "MALFORMED"
    CLIENT_FAULT = "CLIENT_FAULT"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"


@dataclass(frozen=True)
class EnrichmentOutcome:
    coordinate: Coordinate | None
    reason: OutcomeReason
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.coordinate is not None

    @classmethod
    def success(cls, coordinate: Coordinate, attempts: int) -> "EnrichmentOutcome":
        return cls(coordinate=coordinate, reason=OutcomeReason.OK, attempts=attempts)

    @classmethod
    def no_result(cls, reason: OutcomeReason, attempts: int = 0) -> "EnrichmentOutcome":
        return cls(coordinate=None, reason=reason, attempts=attempts)


@dataclass(frozen=True)
class BatchResult:
    batch_index: int
    outcomes: tuple[tuple[PendingItem, EnrichmentOutcome], ...]

    @property
    def size(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for _item, outcome in self.outcomes if outcome.ok)
