"""In-memory record collection and its pending view."""

from __future__ import annotations

import threading
from typing import Iterable, Mapping

from geofill.common.errors import EngineError
from geofill.common.models import Coordinate, PendingItem, Record


class RecordStore:
    """Ordered, thread-safe collection of :class:`Record` values.

    Records are immutable; setting a coordinate swaps the stored record for a
    copy, so a reader sees either the old or the new record and nothing in
    between. Readers always get a snapshot list.
    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: list[Record] = list(records)
        self._positions: dict[str, int] = {}
        for index, record in enumerate(self._records):
            if record.record_id in self._positions:
                raise EngineError(f"Duplicate record id: {record.record_id}")
            self._positions[record.record_id] = index
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[Record]:
        with self._lock:
            return list(self._records)

    def get(self, record_id: str) -> Record:
        with self._lock:
            return self._records[self._position(record_id)]

    def pending(self) -> list[PendingItem]:
        with self._lock:
            return [
                PendingItem(index=index, record=record)
                for index, record in enumerate(self._records)
                if not record.has_coordinate
            ]

    def counts(self) -> dict[str, int]:
        with self._lock:
            with_coordinates = sum(1 for record in self._records if record.has_coordinate)
            return {
                "total": len(self._records),
                "with_coordinates": with_coordinates,
                "missing": len(self._records) - with_coordinates,
            }

    def set_coordinate(self, record_id: str, lat: float, lng: float) -> Record:
        return self.apply_coordinates({record_id: Coordinate(lat=lat, lng=lng)})[0]

    def apply_coordinates(self, updates: Mapping[str, Coordinate]) -> list[Record]:
        """Write several coordinates under one lock acquisition."""
        with self._lock:
            positions = [(self._position(record_id), coordinate) for record_id, coordinate in updates.items()]
            updated = []
            for index, coordinate in positions:
                record = self._records[index].with_coordinate(coordinate)
                self._records[index] = record
                updated.append(record)
            return updated

    def _position(self, record_id: str) -> int:
        try:
            return self._positions[record_id]
        except KeyError:
            raise EngineError(f"Unknown record id: {record_id}") from None
