"""
MongoDB implementation of the remote backend contract.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING, ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from .backend import QueryFilter, RemoteBackend, RemoteBackendError, split_server_timestamps

logger = logging.getLogger(__name__)

_MONGO_OPERATORS = {
    "==": "$eq",
    ">=": "$gte",
    "<=": "$lte",
    ">": "$gt",
    "<": "$lt",
}


class MongoBackend(RemoteBackend):
    """Remote store backed by a MongoDB database.

    Server timestamps use ``$currentDate`` so the database clock stamps them.
    """

    def __init__(
        self,
        uri: str,
        database: str,
        server_selection_timeout_ms: int = 5000,
        client_factory: Callable[..., Any] = MongoClient
    ):
        self.uri = uri
        self.database = database
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client_factory = client_factory
        self._client = None
        self._db = None

    def connect(self) -> None:
        """Open the client and ping the server so readiness means reachable."""
        try:
            client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                retryWrites=True
            )
            client.admin.command("ping")
        except PyMongoError as e:
            raise RemoteBackendError(f"Failed to connect to MongoDB: {e}") from e

        self._client = client
        self._db = client[self.database]
        logger.info(f"Connected to MongoDB database '{self.database}'")

    def is_connected(self) -> bool:
        return self._db is not None

    def _collection(self, name: str):
        if self._db is None:
            raise RemoteBackendError("Not connected")
        return self._db[name]

    @staticmethod
    def _build_update(data: Dict[str, Any]) -> Dict[str, Any]:
        plain, server_fields = split_server_timestamps(data)
        update: Dict[str, Any] = {}
        if plain:
            update["$set"] = plain
        if server_fields:
            update["$currentDate"] = {field: True for field in server_fields}
        return update

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = ObjectId()
        update = self._build_update(data)
        try:
            if update:
                self._collection(collection).update_one({"_id": doc_id}, update, upsert=True)
            else:
                self._collection(collection).insert_one({"_id": doc_id})
        except PyMongoError as e:
            raise RemoteBackendError(f"Insert into '{collection}' failed: {e}") from e
        return str(doc_id)

    def set_merge(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        update = self._build_update(data)
        if not update:
            return
        try:
            self._collection(collection).update_one({"_id": key}, update, upsert=True)
        except PyMongoError as e:
            raise RemoteBackendError(f"Merge into '{collection}/{key}' failed: {e}") from e

    def query(
        self,
        collection: str,
        filters: Optional[List[QueryFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Tuple[str, Dict[str, Any]]]:
        mongo_filter: Dict[str, Dict[str, Any]] = {}
        for f in filters or []:
            mongo_filter.setdefault(f.field, {})[_MONGO_OPERATORS[f.op]] = f.value
        if order_by:
            mongo_filter.setdefault(order_by, {})["$exists"] = True

        try:
            cursor = self._collection(collection).find(mongo_filter)
            if order_by:
                cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
            if limit is not None:
                cursor = cursor.limit(limit)
            rows = []
            for document in cursor:
                doc_id = str(document.pop("_id"))
                rows.append((doc_id, document))
            return rows
        except PyMongoError as e:
            raise RemoteBackendError(f"Query on '{collection}' failed: {e}") from e
