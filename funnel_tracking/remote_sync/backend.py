"""
Remote Backend Contract

The remote document store is an external collaborator. Anything that can
connect, add a record, merge into a keyed record and run a filtered, ordered,
limited query can serve as one.
"""

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


class RemoteBackendError(Exception):
    """Raised by backends when the store is unreachable or rejects an operation."""


class _ServerTimestamp:
    """Placeholder resolved to the store's clock at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

SUPPORTED_OPERATORS = ("==", ">=", "<=", ">", "<")


@dataclass(frozen=True)
class QueryFilter:
    """Equality or range condition on a single field."""

    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")

    def matches(self, document: Dict[str, Any]) -> bool:
        if self.field not in document:
            return False
        actual = document[self.field]
        try:
            if self.op == "==":
                return actual == self.value
            if self.op == ">=":
                return actual >= self.value
            if self.op == "<=":
                return actual <= self.value
            if self.op == ">":
                return actual > self.value
            return actual < self.value
        except TypeError:
            return False


def split_server_timestamps(data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Separate top-level SERVER_TIMESTAMP placeholders from plain values."""
    plain = {key: value for key, value in data.items() if value is not SERVER_TIMESTAMP}
    server_fields = [key for key, value in data.items() if value is SERVER_TIMESTAMP]
    return plain, server_fields


class RemoteBackend:
    """Interface of the remote document store."""

    def connect(self) -> None:
        """Establish the connection. Raises RemoteBackendError on failure."""
        raise NotImplementedError

    def is_connected(self) -> bool:
        raise NotImplementedError

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Append a new record and return its generated id."""
        raise NotImplementedError

    def set_merge(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        """Merge ``data`` into the record ``key``, creating it if needed."""
        raise NotImplementedError

    def query(
        self,
        collection: str,
        filters: Optional[List[QueryFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """Return ``(id, record)`` pairs matching every filter."""
        raise NotImplementedError


class InMemoryBackend(RemoteBackend):
    """Process-local document store.

    Useful for development and tests; ``available`` and ``reject_writes``
    simulate an unreachable store and a store refusing writes.
    """

    def __init__(self, available: bool = True, reject_writes: bool = False):
        self.available = available
        self.reject_writes = reject_writes
        self._connected = False
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _now(self) -> datetime:
        return datetime.now(tz=timezone.utc)

    def _resolve(self, data: Dict[str, Any]) -> Dict[str, Any]:
        plain, server_fields = split_server_timestamps(data)
        now = self._now()
        plain.update({field: now for field in server_fields})
        return plain

    def _check_writable(self) -> None:
        if not self._connected:
            raise RemoteBackendError("Not connected")
        if self.reject_writes:
            raise RemoteBackendError("Write rejected")

    def connect(self) -> None:
        if not self.available:
            raise RemoteBackendError("In-memory backend marked unavailable")
        self._connected = True

    def is_connected(self) -> bool:
        return self._connected

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        with self._lock:
            self._check_writable()
            doc_id = uuid.uuid4().hex[:20]
            self._collections.setdefault(collection, {})[doc_id] = self._resolve(data)
            return doc_id

    def set_merge(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._check_writable()
            records = self._collections.setdefault(collection, {})
            records[key] = {**records.get(key, {}), **self._resolve(data)}

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._collections.get(collection, {}).get(key)
            return dict(record) if record is not None else None

    def query(
        self,
        collection: str,
        filters: Optional[List[QueryFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            if not self._connected:
                raise RemoteBackendError("Not connected")
            rows = [
                (doc_id, dict(record))
                for doc_id, record in self._collections.get(collection, {}).items()
                if all(f.matches(record) for f in (filters or []))
            ]

        if order_by:
            # Records without the ordering field are left out, as document stores do
            rows = [row for row in rows if order_by in row[1]]
            rows.sort(key=lambda row: row[1][order_by], reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows
