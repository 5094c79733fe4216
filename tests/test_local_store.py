"""
Tests for the bounded local event log.
"""

import json
import threading
from datetime import date

import pytest

from funnel_tracking.event_tracking import EventFactory
from funnel_tracking.identity import FileStorage, MemoryStorage
from funnel_tracking.identity.models import DeviceInfo, Enrichment
from funnel_tracking.local_store import LocalEventStore, MAX_EVENTS

ENRICHMENT = Enrichment(
    session_id="sess_1_abcdefghi",
    page="/discover",
    referrer=None,
    device=DeviceInfo(browser="Chrome", os="Windows", screen="1x1", user_agent="ua")
)


def make_event(event_type="swipe", **fields):
    return EventFactory().create_event(event_type, fields, ENRICHMENT)


class TestLocalEventStore:
    """Test append, read and clear."""

    @pytest.fixture
    def storage(self):
        return MemoryStorage()

    @pytest.fixture
    def store(self, storage):
        return LocalEventStore(storage)

    def test_empty_store(self, store):
        assert store.read_all() == []

    def test_append_preserves_order(self, store):
        for seq in range(3):
            assert store.append(make_event(seq=seq))

        events = store.read_all()
        assert [e["seq"] for e in events] == [0, 1, 2]
        assert all(e["event_type"] == "swipe" for e in events)

    def test_persisted_under_events_key(self, storage, store):
        store.append(make_event(seq=1))
        assert json.loads(storage.get_item("funnel_events"))[0]["seq"] == 1

    def test_log_survives_new_store_instance(self, storage, store):
        store.append(make_event(seq=1))
        assert LocalEventStore(storage).read_all()[0]["seq"] == 1

    def test_clear(self, store):
        store.append(make_event())
        store.clear()
        assert store.read_all() == []
        store.clear()

    def test_corrupt_log_treated_as_empty(self, storage, store):
        storage.set_item("funnel_events", "{not json")
        assert store.read_all() == []

        assert store.append(make_event(seq=1))
        assert [e["seq"] for e in store.read_all()] == [1]

    def test_wrong_type_treated_as_empty(self, storage, store):
        storage.set_item("funnel_events", json.dumps({"seq": 1}))
        assert store.read_all() == []

    def test_full_storage_returns_false(self):
        store = LocalEventStore(MemoryStorage(quota_bytes=50))
        assert store.append(make_event()) is False
        assert store.read_all() == []

    @pytest.mark.parametrize("backend", ["memory", "file"])
    def test_concurrent_appends_keep_every_event(self, backend, tmp_path):
        storage = MemoryStorage() if backend == "memory" else FileStorage(tmp_path)
        store = LocalEventStore(storage)
        start = threading.Barrier(8)

        def worker(thread_no):
            start.wait()
            for seq in range(25):
                store.append(make_event(thread_no=thread_no, seq=seq))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        events = store.read_all()
        assert len(events) == 200
        for n in range(8):
            assert [e["seq"] for e in events if e["thread_no"] == n] == list(range(25))


class TestCapacity:
    """Test eviction of the oldest events."""

    def test_small_capacity(self):
        store = LocalEventStore(MemoryStorage(), max_events=3)
        for seq in range(5):
            store.append(make_event(seq=seq))

        assert [e["seq"] for e in store.read_all()] == [2, 3, 4]

    def test_default_capacity_keeps_newest(self):
        """10005 appends keep the newest 10000 events."""
        storage = MemoryStorage()
        seeded = [{"event_type": "seed", "seq": seq} for seq in range(MAX_EVENTS - 5)]
        storage.set_item("funnel_events", json.dumps(seeded))
        store = LocalEventStore(storage)

        for seq in range(MAX_EVENTS - 5, MAX_EVENTS + 5):
            store.append(make_event(seq=seq))

        events = store.read_all()
        assert len(events) == MAX_EVENTS
        assert events[0]["seq"] == 5
        assert events[-1]["seq"] == MAX_EVENTS + 4


class TestStatsAndExport:
    """Test per-type stats and file export."""

    @pytest.fixture
    def store(self):
        store = LocalEventStore(MemoryStorage())
        store.append(make_event("page_view", page="/"))
        store.append(make_event("swipe", swipe_action="like"))
        store.append(make_event("swipe", swipe_action="dislike"))
        return store

    def test_event_stats(self, store):
        assert store.get_event_stats() == {"page_view": 1, "swipe": 2}

    def test_export_as_file(self, store):
        exported = store.export_as_file(today=date(2024, 3, 5))

        assert exported.filename == "funnel_events_2024-03-05.json"
        assert exported.mimetype == "application/json"
        assert json.loads(exported.content) == store.read_all()
        assert '\n  {' in exported.content

    def test_export_empty_log(self):
        exported = LocalEventStore(MemoryStorage()).export_as_file(today=date(2024, 3, 5))
        assert json.loads(exported.content) == []

    def test_export_to_directory(self, store, tmp_path):
        exported = store.export_as_file(tmp_path / "exports", today=date(2024, 3, 5))

        written = tmp_path / "exports" / "funnel_events_2024-03-05.json"
        assert written.read_text(encoding="utf-8") == exported.content

    def test_export_prefix(self):
        store = LocalEventStore(MemoryStorage(), export_prefix="eventos_")
        assert store.export_as_file(today=date(2024, 1, 2)).filename == "eventos_2024-01-02.json"


class TestUserData:
    """Test the local user snapshot."""

    def test_merge_user_data(self):
        store = LocalEventStore(MemoryStorage())
        store.merge_user_data({"name": "Ana", "age": 30})
        merged = store.merge_user_data({"age": 31, "password": "secret"})

        assert merged == {"name": "Ana", "age": 31}
        assert store.load_user_data() == merged

    def test_corrupt_user_data(self):
        storage = MemoryStorage()
        storage.set_item("funnel_user_data", "[1, 2")
        assert LocalEventStore(storage).load_user_data() == {}
