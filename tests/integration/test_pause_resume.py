from __future__ import annotations

import threading
from pathlib import Path

import pytest

from geofill.common.config_loader import load_config
from geofill.common.fs import write_json
from geofill.common.models import Coordinate, RunState
from geofill.engine.client import OracleClient
from geofill.engine.controller import EnrichmentController
from geofill.engine.store import RecordStore
from geofill.pipeline.load import load_records


class SlowOracle:
    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls = 0
        self.lock = threading.Lock()

    def locate(self, query):
        with self.lock:
            self.calls += 1
        self.started.set()
        assert self.release.wait(5)
        return Coordinate(22.3 + int(query.address.split()[0]) / 1000, 114.1)


def _rows(count: int) -> list[dict]:
    return [
        {
            "PHFNo": f"P{i:03d}",
            "PHFName": f"Clinic {i}",
            "Address": [{"PHFNo": f"P{i:03d}", "SeqNo": "1", "Address": f"{i} Nathan Road"}],
            "LatLng": None,
        }
        for i in range(count)
    ]


@pytest.mark.integration
def test_pause_then_resume_finishes_remaining_records(tmp_path: Path):
    config = load_config(Path("config/geocoder.yml"))
    input_path = tmp_path / "clinics.json"
    write_json(input_path, _rows(12))
    store = RecordStore(load_records(input_path, config.fields))
    oracle = SlowOracle()
    client = OracleClient(oracle, config.bbox, config.retry, sleep=lambda _s: None)
    controller = EnrichmentController(store, client, batch_size=config.batching.batch_size, inter_batch_delay=0.01)

    assert controller.start()
    assert oracle.started.wait(5)
    assert controller.pause()
    oracle.release.set()
    assert controller.join(5)

    paused = controller.snapshot()
    assert paused.state is RunState.PAUSED
    assert (paused.processed, paused.total, paused.successful) == (5, 12, 5)
    assert store.counts()["missing"] == 7
    enriched_ids = [r.record_id for r in store.records() if r.coordinate is not None]
    assert enriched_ids == ["P000", "P001", "P002", "P003", "P004"]

    assert controller.resume()
    assert controller.join(5)

    done = controller.snapshot()
    assert done.state is RunState.COMPLETED
    assert (done.processed, done.total, done.successful) == (7, 7, 7)
    assert oracle.calls == 12
    assert store.counts()["missing"] == 0
