"""Run lifecycle, progress accounting and the batch commit step."""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from typing import Callable

from geofill.common.errors import ConfigError
from geofill.common.logging import get_logger, log_event
from geofill.common.models import BatchResult, EnrichmentOutcome, PendingItem, ProgressSnapshot, RunState
from geofill.common.time_utils import elapsed_ms
from geofill.engine.client import OracleClient
from geofill.engine.scheduler import run_batches
from geofill.engine.store import RecordStore

logger = get_logger("engine.controller")

STARTABLE_STATES = {RunState.IDLE, RunState.PAUSED, RunState.COMPLETED, RunState.FAILED}


class EnrichmentController:
    """Owns one run at a time over a :class:`RecordStore`.

    ``start`` and ``pause`` may be called from any thread. ``start`` runs the
    batches on a background worker; ``pause`` only raises a flag, so the
    state turns ``PAUSED`` once the worker reaches the next batch boundary
    after committing the batch it was working on. Every start, resume
    included, recomputes the pending records from the store and resets the
    progress counters against that new total.
    """

    def __init__(
        self,
        store: RecordStore,
        client: OracleClient,
        *,
        batch_size: int = 5,
        inter_batch_delay: float = 0.5,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
            raise ConfigError(f"batch_size must be a positive integer, got {batch_size!r}")
        if inter_batch_delay < 0:
            raise ConfigError(f"inter_batch_delay must be >= 0, got {inter_batch_delay!r}")
        self.store = store
        self.client = client
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay

        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._sleep = sleep or self._cancel.wait
        self._worker: threading.Thread | None = None
        self._state = RunState.IDLE
        self._processed = 0
        self._total = 0
        self._successful = 0
        self._failures: Counter[str] = Counter()
        self._last_error: BaseException | None = None

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def last_error(self) -> BaseException | None:
        with self._lock:
            return self._last_error

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                processed=self._processed,
                total=self._total,
                successful=self._successful,
                state=self._state,
            )

    def failure_reasons(self) -> dict[str, int]:
        with self._lock:
            return dict(self._failures)

    def start(self) -> bool:
        with self._lock:
            if self._state not in STARTABLE_STATES:
                return False
            pending = self.store.pending()
            if not pending:
                return False

            self._cancel.clear()
            self._state = RunState.RUNNING
            self._processed = 0
            self._total = len(pending)
            self._successful = 0
            self._failures = Counter()
            self._last_error = None
            self._worker = threading.Thread(
                target=self._run,
                args=(pending,),
                name="geofill-run",
                daemon=True,
            )
            log_event(logger, "run start", event="RUN_START", state=self._state.value, total=self._total)
            self._worker.start()
            return True

    resume = start

    def pause(self) -> bool:
        with self._lock:
            if self._state is not RunState.RUNNING or self._cancel.is_set():
                return False
            self._cancel.set()
            log_event(logger, "pause requested", event="RUN_PAUSE_REQUESTED", state=self._state.value)
            return True

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker; returns ``True`` once no run is in flight."""
        with self._lock:
            worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def run(self) -> ProgressSnapshot:
        self.start()
        self.join()
        return self.snapshot()

    def _enrich(self, item: PendingItem) -> EnrichmentOutcome:
        return self.client.enrich(item.record.address, item.record.name)

    def _run(self, pending: list[PendingItem]) -> None:
        started_at = time.monotonic()
        try:
            completed = run_batches(
                pending,
                self._enrich,
                batch_size=self.batch_size,
                inter_batch_delay=self.inter_batch_delay,
                is_cancelled=self._cancel.is_set,
                on_batch_complete=self._commit,
                sleep=self._sleep,
            )
        except Exception as exc:
            with self._lock:
                self._state = RunState.FAILED
                self._last_error = exc
            log_event(
                logger,
                f"run failed: {exc}",
                level=logging.ERROR,
                event="RUN_FAILED",
                state=RunState.FAILED.value,
                duration_ms=elapsed_ms(started_at),
                error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
            )
            return

        with self._lock:
            self._state = RunState.COMPLETED if completed else RunState.PAUSED
            event = "RUN_COMPLETED" if completed else "RUN_PAUSED"
            log_event(
                logger,
                f"run {self._state.value}",
                event=event,
                state=self._state.value,
                processed=self._processed,
                total=self._total,
                successful=self._successful,
                duration_ms=elapsed_ms(started_at),
            )

    def _commit(self, batch: BatchResult) -> None:
        updates = {item.record.record_id: outcome.coordinate for item, outcome in batch.outcomes if outcome.ok}
        with self._lock:
            if updates:
                self.store.apply_coordinates(updates)
            self._processed += batch.size
            self._successful += batch.successful
            self._failures.update(outcome.reason.value for _item, outcome in batch.outcomes if not outcome.ok)
            log_event(
                logger,
                f"batch {batch.batch_index} committed",
                event="BATCH_COMMIT",
                state=self._state.value,
                batch=batch.batch_index,
                processed=self._processed,
                total=self._total,
                successful=self._successful,
            )
