import threading

import pytest

from geofill.common.errors import EngineError
from geofill.common.models import Coordinate, Record
from geofill.engine.store import RecordStore


def _store():
    return RecordStore(
        [
            Record(record_id="a", name="A", addresses=("1 Queen's Road",)),
            Record(record_id="b", name="B", addresses=(), coordinate=Coordinate(22.3, 114.1)),
            Record(record_id="c", name="C", addresses=("3 Des Voeux Road",)),
        ]
    )


def test_pending_keeps_store_order_and_indices():
    pending = _store().pending()

    assert [(item.index, item.record.record_id) for item in pending] == [(0, "a"), (2, "c")]


def test_set_coordinate_replaces_only_the_coordinate():
    store = _store()
    before = store.get("a")

    after = store.set_coordinate("a", 22.28, 114.15)

    assert after.coordinate == Coordinate(22.28, 114.15)
    assert (after.record_id, after.name, after.addresses) == (before.record_id, before.name, before.addresses)
    assert before.coordinate is None
    assert store.counts() == {"total": 3, "with_coordinates": 2, "missing": 1}


def test_records_returns_a_snapshot():
    store = _store()
    snapshot = store.records()

    store.set_coordinate("c", 22.29, 114.16)

    assert snapshot[2].coordinate is None
    assert store.records()[2].coordinate == Coordinate(22.29, 114.16)


def test_writing_same_coordinate_twice_is_harmless():
    store = _store()
    store.set_coordinate("a", 22.28, 114.15)
    store.set_coordinate("a", 22.28, 114.15)

    assert store.get("a").coordinate == Coordinate(22.28, 114.15)


def test_unknown_and_duplicate_ids_are_engine_errors():
    with pytest.raises(EngineError):
        _store().set_coordinate("zzz", 22.3, 114.1)
    with pytest.raises(EngineError):
        RecordStore([Record(record_id="x", name="X"), Record(record_id="x", name="Y")])


def test_apply_coordinates_is_all_or_nothing_on_unknown_id():
    store = _store()

    with pytest.raises(EngineError):
        store.apply_coordinates({"a": Coordinate(22.3, 114.1), "nope": Coordinate(22.3, 114.1)})

    assert store.get("a").coordinate is None


def test_concurrent_readers_see_whole_records():
    store = RecordStore([Record(record_id=str(i), name=str(i), addresses=("x",)) for i in range(200)])
    torn = []

    def reader():
        for _ in range(50):
            for record in store.records():
                if record.coordinate is not None and record.coordinate != Coordinate(22.3, 114.1):
                    torn.append(record)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for i in range(200):
        store.set_coordinate(str(i), 22.3, 114.1)
    for thread in threads:
        thread.join()

    assert torn == []
    assert store.counts()["missing"] == 0
