import pytest

from geofill.common.models import (
    BatchResult,
    Coordinate,
    EnrichmentOutcome,
    OutcomeReason,
    PendingItem,
    ProgressSnapshot,
    Record,
    RunState,
)


@pytest.mark.parametrize(
    ("processed", "total", "expected"),
    [(0, 0, 0), (1, 8, 13), (3, 8, 38), (1, 3, 33), (5, 10, 50), (10, 10, 100)],
)
def test_percent_complete_rounds_halves_up(processed, total, expected):
    snapshot = ProgressSnapshot(processed=processed, total=total, successful=0, state=RunState.RUNNING)

    assert snapshot.percent_complete == expected


def test_batch_result_counts_successes():
    record = Record(record_id="1", name="One")
    batch = BatchResult(
        batch_index=0,
        outcomes=(
            (PendingItem(0, record), EnrichmentOutcome.success(Coordinate(22.3, 114.1), attempts=1)),
            (PendingItem(1, record), EnrichmentOutcome.no_result(OutcomeReason.NO_RESULT, attempts=1)),
        ),
    )

    assert (batch.size, batch.successful) == (2, 1)


def test_record_has_coordinate():
    record = Record(record_id="1", name="One")

    assert not record.has_coordinate
    assert record.with_coordinate(Coordinate(22.3, 114.1)).has_coordinate
