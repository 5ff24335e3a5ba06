"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from geofill.common.fs import write_json
from geofill.common.models import ProgressSnapshot, RunState


def run_status(snapshot: ProgressSnapshot, missing_after: int) -> str:
    if snapshot.state is RunState.FAILED:
        return "error"
    if missing_after > 0 or snapshot.state is RunState.PAUSED:
        return "partial"
    return "success"


def write_run_report(
    path: Path,
    *,
    run_id: str,
    snapshot: ProgressSnapshot,
    counts_before: dict[str, int],
    counts_after: dict[str, int],
    failure_reasons: dict[str, int],
    error: BaseException | None = None,
) -> Path:
    payload = {
        "run_id": run_id,
        "status": run_status(snapshot, counts_after.get("missing", 0)),
        "progress": snapshot.to_dict(),
        "records_before": counts_before,
        "records_after": counts_after,
        "failure_reasons": dict(sorted(failure_reasons.items())),
        "error": None if error is None else {"type": type(error).__name__, "message": str(error)},
    }
    write_json(path, payload)
    return path
