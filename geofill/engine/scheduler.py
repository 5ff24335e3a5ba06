"""Order-preserving batch dispatch with bounded concurrency."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, Sequence

from geofill.common.errors import EngineError
from geofill.common.models import BatchResult, EnrichmentOutcome, PendingItem

EnrichFn = Callable[[PendingItem], EnrichmentOutcome]


def partition(items: Sequence[PendingItem], batch_size: int) -> Iterator[Sequence[PendingItem]]:
    if batch_size < 1:
        raise EngineError(f"batch_size must be >= 1, got {batch_size}")
    for start in range(0, len(items), batch_size):
        yield items[start : start + batch_size]


def run_batches(
    items: Sequence[PendingItem],
    enrich: EnrichFn,
    *,
    batch_size: int = 5,
    inter_batch_delay: float = 0.5,
    is_cancelled: Callable[[], bool] = lambda: False,
    on_batch_complete: Callable[[BatchResult], None],
    sleep: Callable[[float], object] = time.sleep,
) -> bool:
    """Run ``enrich`` over ``items`` one batch at a time.

    ``is_cancelled`` is consulted before each batch starts; a batch that has
    started always runs to the end and is handed to ``on_batch_complete`` as
    one unit. Returns ``True`` when every batch ran and ``False`` when the
    run stopped early on cancellation.
    """
    if inter_batch_delay < 0:
        raise EngineError(f"inter_batch_delay must be >= 0, got {inter_batch_delay}")
    batches = list(partition(items, batch_size))
    if not batches:
        return True

    with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="geofill-batch") as pool:
        for batch_index, batch in enumerate(batches):
            if is_cancelled():
                return False

            futures = [pool.submit(enrich, item) for item in batch]
            outcomes = tuple((item, future.result()) for item, future in zip(batch, futures))
            on_batch_complete(BatchResult(batch_index=batch_index, outcomes=outcomes))

            if batch_index < len(batches) - 1 and inter_batch_delay > 0:
                sleep(inter_batch_delay)
    return True
