"""
Tests for the remote sync client, backends and the sync dispatcher.
"""

import threading
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from config_manager import RemoteConfig
from funnel_tracking.remote_sync import (
    SERVER_TIMESTAMP,
    InMemoryBackend,
    QueryFilter,
    RemoteBackendError,
    RemoteSyncClient,
    SyncDispatcher,
    clean_data,
    create_backend_factory,
)
from funnel_tracking.remote_sync.mongo_backend import MongoBackend


def make_remote_config(backend):
    return RemoteConfig(
        backend=backend,
        mongo_uri="mongodb://localhost:27017",
        database="funnel_test",
        events_collection="events",
        users_collection="users",
        default_country="MX",
        language="es",
        query_limit=1000,
        server_selection_timeout_ms=100
    )


class TestCleanData:
    """Test removal of values the remote store cannot represent."""

    def test_drops_unrepresentable_values(self):
        data = {
            "a": 1,
            "b": None,
            "c": object(),
            "nested": {"ok": "x", "bad": lambda: None},
            "items": [1, object(), {"k": set()}]
        }
        assert clean_data(data) == {"a": 1, "b": None, "nested": {"ok": "x"}, "items": [1, {}]}

    def test_keeps_dates(self):
        now = datetime(2024, 1, 1)
        assert clean_data({"at": now}) == {"at": now}


class TestInMemoryBackend:
    """Test the process-local document store."""

    @pytest.fixture
    def backend(self):
        backend = InMemoryBackend()
        backend.connect()
        return backend

    def test_unavailable_backend_cannot_connect(self):
        backend = InMemoryBackend(available=False)
        with pytest.raises(RemoteBackendError):
            backend.connect()
        assert not backend.is_connected()

    def test_writes_require_connection(self):
        with pytest.raises(RemoteBackendError):
            InMemoryBackend().add("events", {"a": 1})

    def test_add_resolves_server_timestamp(self, backend):
        doc_id = backend.add("events", {"a": 1, "server_timestamp": SERVER_TIMESTAMP})
        record = backend.get("events", doc_id)

        assert record["a"] == 1
        assert isinstance(record["server_timestamp"], datetime)

    def test_set_merge_is_shallow_merge(self, backend):
        backend.set_merge("users", "sess_1", {"name": "Ana", "prefs": {"a": 1}})
        backend.set_merge("users", "sess_1", {"age": 30, "prefs": {"b": 2}})

        assert backend.get("users", "sess_1") == {"name": "Ana", "age": 30, "prefs": {"b": 2}}

    def test_query_filters_order_and_limit(self, backend):
        for ts, country in ((1, "MX"), (5, "BR"), (3, "MX"), (9, "MX")):
            backend.add("events", {"timestamp": ts, "country": country})
        backend.add("events", {"country": "MX"})

        rows = backend.query(
            "events",
            filters=[QueryFilter("timestamp", ">=", 3), QueryFilter("country", "==", "MX")],
            order_by="timestamp",
            descending=True,
            limit=5
        )
        assert [record["timestamp"] for _, record in rows] == [9, 3]

    def test_unsupported_operator(self):
        with pytest.raises(ValueError):
            QueryFilter("timestamp", "!=", 1)


class TestRemoteSyncClient:
    """Test the best-effort remote mirror."""

    @pytest.fixture
    def backend(self):
        return InMemoryBackend()

    @pytest.fixture
    def client(self, backend):
        client = RemoteSyncClient(backend_factory=lambda: backend)
        assert client.initialize()
        return client

    def test_not_initialized_is_noop(self, backend):
        client = RemoteSyncClient(backend_factory=lambda: backend)

        assert not client.is_ready()
        assert client.save_event({"event_type": "swipe"}) is False
        assert client.save_user("sess_1", {"name": "Ana"}) is False
        assert client.update_funnel_stage("sess_1", "discover") is False
        assert client.get_events() == []

    def test_no_backend_configured(self):
        client = RemoteSyncClient()
        assert client.initialize() is False
        assert not client.is_ready()

    def test_unreachable_backend(self):
        client = RemoteSyncClient(backend_factory=lambda: InMemoryBackend(available=False))
        assert client.initialize() is False
        assert client.save_event({"event_type": "swipe"}) is False

    def test_initialize_is_idempotent(self, client):
        assert client.initialize() is True

    def test_save_event(self, client, backend):
        doc_id = client.save_event({"event_type": "swipe", "timestamp": 10, "bad": object()})
        record = backend.get("events", doc_id)

        assert record["event_type"] == "swipe"
        assert "bad" not in record
        assert isinstance(record["server_timestamp"], datetime)

    def test_rejected_write_returns_false(self):
        backend = InMemoryBackend(reject_writes=True)
        client = RemoteSyncClient(backend_factory=lambda: backend)
        client.initialize()

        assert client.save_event({"event_type": "swipe"}) is False
        assert client.save_user("sess_1", {"name": "Ana"}) is False

    def test_save_user(self, client, backend):
        assert client.save_user("sess_1", {"name": "Ana", "password": "secret"})
        record = backend.get("users", "sess_1")

        assert record["name"] == "Ana"
        assert "password" not in record
        assert record["country"] == "MX"
        assert record["language"] == "es"
        assert isinstance(record["updated_at"], datetime)

    def test_save_user_keeps_explicit_country(self, client, backend):
        client.save_user("sess_1", {"country": "BR"})
        assert backend.get("users", "sess_1")["country"] == "BR"

    def test_update_funnel_stage_merges(self, client, backend):
        client.save_user("sess_1", {"name": "Ana"})
        assert client.update_funnel_stage("sess_1", "paywall", {"source": "chat"})
        record = backend.get("users", "sess_1")

        assert record["name"] == "Ana"
        assert record["funnel_stage"] == "paywall"
        assert record["source"] == "chat"
        assert isinstance(record["funnel_stage_updated_at"], datetime)

    def test_get_events(self, client):
        for ts, country in ((100, "MX"), (200, "BR"), (300, "MX")):
            client.save_event({"event_type": "swipe", "timestamp": ts, "country": country})

        events = client.get_events()
        assert [e["timestamp"] for e in events] == [300, 200, 100]
        assert all(e["id"] for e in events)

        assert [e["timestamp"] for e in client.get_events(since=200)] == [300, 200]
        assert [e["timestamp"] for e in client.get_events(country="MX")] == [300, 100]
        assert [e["timestamp"] for e in client.get_events(limit=1)] == [300]

    def test_query_failure_returns_empty(self, client):
        client._backend.query = MagicMock(side_effect=RemoteBackendError("down"))
        assert client.get_events() == []


class TestSyncDispatcher:
    """Test the background remote task queue."""

    @pytest.fixture
    def dispatcher(self):
        dispatcher = SyncDispatcher(max_failures=2)
        yield dispatcher
        dispatcher.shutdown()

    def test_tasks_run_in_order(self, dispatcher):
        calls = []
        for value in range(5):
            dispatcher.submit(calls.append, value)

        assert dispatcher.flush(timeout=5)
        assert calls == [0, 1, 2, 3, 4]
        assert dispatcher.pending_count == 0

    def test_failures_are_recorded_not_raised(self, dispatcher):
        def explode():
            raise RuntimeError("boom")

        future = dispatcher.submit(explode, description="explode")
        assert dispatcher.flush(timeout=5)

        assert future.result() is None
        failures = dispatcher.failures
        assert len(failures) == 1
        assert failures[0].description == "explode"
        assert failures[0].error == "boom"

    def test_failure_channel_is_bounded(self, dispatcher):
        def explode(n):
            raise RuntimeError(f"boom {n}")

        for n in range(4):
            dispatcher.submit(explode, n)
        dispatcher.flush(timeout=5)

        assert [f.error for f in dispatcher.failures] == ["boom 2", "boom 3"]

    def test_submit_returns_before_task_runs(self, dispatcher):
        release = threading.Event()
        future = dispatcher.submit(release.wait, 5)

        assert not future.done()
        release.set()
        assert dispatcher.flush(timeout=5)

    def test_submit_after_shutdown(self):
        dispatcher = SyncDispatcher()
        dispatcher.shutdown()
        assert dispatcher.submit(print, "late") is None


class TestBackendFactory:
    """Test backend selection from configuration."""

    def test_none_disables_remote(self):
        assert create_backend_factory(make_remote_config("none")) is None

    def test_unknown_backend_disables_remote(self):
        assert create_backend_factory(make_remote_config("firebase")) is None

    def test_memory_backend(self):
        factory = create_backend_factory(make_remote_config("memory"))
        assert isinstance(factory(), InMemoryBackend)

    def test_mongo_backend(self):
        factory = create_backend_factory(make_remote_config("MONGO"))
        backend = factory()

        assert isinstance(backend, MongoBackend)
        assert backend.database == "funnel_test"
        assert backend.server_selection_timeout_ms == 100


class TestMongoBackend:
    """Test the MongoDB backend against a mocked client."""

    @pytest.fixture
    def mongo_client(self):
        return MagicMock()

    @pytest.fixture
    def backend(self, mongo_client):
        backend = MongoBackend(
            "mongodb://localhost:27017", "funnel_test", client_factory=lambda *a, **kw: mongo_client
        )
        backend.connect()
        return backend

    def test_connect_pings_server(self, backend, mongo_client):
        mongo_client.admin.command.assert_called_once_with("ping")
        assert backend.is_connected()

    def test_connect_failure(self):
        client = MagicMock()
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        backend = MongoBackend("mongodb://nowhere", "db", client_factory=lambda *a, **kw: client)

        with pytest.raises(RemoteBackendError):
            backend.connect()
        assert not backend.is_connected()

    def test_add_uses_current_date(self, backend, mongo_client):
        collection = mongo_client.__getitem__.return_value.__getitem__.return_value
        doc_id = backend.add("events", {"event_type": "swipe", "server_timestamp": SERVER_TIMESTAMP})

        _, update = collection.update_one.call_args[0]
        assert update == {
            "$set": {"event_type": "swipe"},
            "$currentDate": {"server_timestamp": True}
        }
        assert collection.update_one.call_args[1] == {"upsert": True}
        assert len(doc_id) == 24

    def test_set_merge_upserts_by_key(self, backend, mongo_client):
        collection = mongo_client.__getitem__.return_value.__getitem__.return_value
        backend.set_merge("users", "sess_1", {"name": "Ana", "updated_at": SERVER_TIMESTAMP})

        collection.update_one.assert_called_once_with(
            {"_id": "sess_1"},
            {"$set": {"name": "Ana"}, "$currentDate": {"updated_at": True}},
            upsert=True
        )

    def test_query_translates_filters(self, backend, mongo_client):
        collection = mongo_client.__getitem__.return_value.__getitem__.return_value
        cursor = collection.find.return_value
        cursor.sort.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.__iter__.return_value = iter([{"_id": "abc", "timestamp": 5}])

        rows = backend.query(
            "events",
            filters=[QueryFilter("timestamp", ">=", 3), QueryFilter("country", "==", "MX")],
            order_by="timestamp",
            descending=True,
            limit=10
        )

        collection.find.assert_called_once_with({
            "timestamp": {"$gte": 3, "$exists": True},
            "country": {"$eq": "MX"}
        })
        cursor.sort.assert_called_once_with("timestamp", -1)
        cursor.limit.assert_called_once_with(10)
        assert rows == [("abc", {"timestamp": 5})]
