"""
Remote Sync Client

Best-effort mirror of events and user snapshots to the remote document
store. Every operation returns a falsy/empty result instead of raising, and
no-ops until the backend connection has been established.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Union

from ..event_tracking.models import Event
from ..event_tracking.sanitize import strip_sensitive
from .backend import SERVER_TIMESTAMP, QueryFilter, RemoteBackend

logger = logging.getLogger(__name__)

_REPRESENTABLE = (str, int, float, bool, type(None), datetime, date)


def clean_data(value: Any) -> Any:
    """Drop values the remote store cannot represent.

    Mappings and sequences are cleaned recursively; anything else that is not
    a scalar, None or a date is removed from its parent.
    """
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            if _is_representable(item):
                cleaned[str(key)] = clean_data(item)
        return cleaned
    if isinstance(value, (list, tuple)):
        return [clean_data(item) for item in value if _is_representable(item)]
    return value


def _is_representable(value: Any) -> bool:
    return isinstance(value, (dict, list, tuple) + _REPRESENTABLE)


class RemoteSyncClient:
    """Forwards events and user data to the remote store."""

    def __init__(
        self,
        backend_factory: Optional[Callable[[], RemoteBackend]] = None,
        events_collection: str = "events",
        users_collection: str = "users",
        default_country: str = "MX",
        language: str = "es",
        query_limit: int = 1000
    ):
        """Initialize the remote sync client.

        Args:
            backend_factory: Builds the backend on initialize(); None keeps the
                client in local-only mode
            events_collection: Collection receiving events
            users_collection: Collection holding user snapshots keyed by session
            default_country: Country stored when the user data has none
            language: Language tag stored with every user snapshot
            query_limit: Default limit of get_events()
        """
        self._backend_factory = backend_factory
        self._backend: Optional[RemoteBackend] = None
        self.events_collection = events_collection
        self.users_collection = users_collection
        self.default_country = default_country
        self.language = language
        self.query_limit = query_limit

    def initialize(self) -> bool:
        """Establish the backend connection.

        Returns:
            True if the client is ready afterwards
        """
        if self.is_ready():
            return True
        if self._backend_factory is None:
            logger.warning("No remote backend configured, events stay local")
            return False

        try:
            backend = self._backend_factory()
            backend.connect()
        except Exception as e:
            logger.error(f"Failed to initialize remote backend: {e}")
            return False

        self._backend = backend
        logger.info("Remote backend initialized")
        return True

    def is_ready(self) -> bool:
        return self._backend is not None and self._backend.is_connected()

    def save_event(self, event: Union[Event, Dict[str, Any]]) -> Union[str, bool]:
        """Add an event to the events collection.

        Returns:
            The new record id, or False on failure
        """
        if not self.is_ready():
            logger.warning("Remote store unavailable, event kept locally only")
            return False

        event_data = event.to_dict() if isinstance(event, Event) else dict(event)
        try:
            data = clean_data(event_data)
            data["server_timestamp"] = SERVER_TIMESTAMP
            doc_id = self._backend.add(self.events_collection, data)
        except Exception as e:
            logger.error(f"Failed to save event remotely: {e}")
            return False

        logger.debug(f"Event saved remotely: {doc_id}")
        return doc_id

    def save_user(self, session_id: str, user_data: Dict[str, Any]) -> bool:
        """Merge a user snapshot into the record keyed by ``session_id``."""
        if not self.is_ready():
            logger.warning("Remote store unavailable, user data not synced")
            return False

        try:
            safe_data = strip_sensitive(dict(user_data))
            data = clean_data({
                **safe_data,
                "country": user_data.get("country") or self.default_country,
                "language": self.language,
            })
            data["updated_at"] = SERVER_TIMESTAMP
            self._backend.set_merge(self.users_collection, session_id, data)
        except Exception as e:
            logger.error(f"Failed to save user {session_id}: {e}")
            return False

        logger.info(f"User data saved: {session_id}")
        return True

    def update_funnel_stage(
        self,
        session_id: str,
        stage: str,
        extra: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Merge a funnel stage transition into the user record."""
        if not self.is_ready():
            return False

        try:
            data = clean_data({"funnel_stage": stage, **strip_sensitive(dict(extra or {}))})
            data["funnel_stage_updated_at"] = SERVER_TIMESTAMP
            self._backend.set_merge(self.users_collection, session_id, data)
        except Exception as e:
            logger.error(f"Failed to update funnel stage for {session_id}: {e}")
            return False

        logger.info(f"Funnel stage updated: {stage}")
        return True

    def get_events(
        self,
        since: Optional[int] = None,
        country: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Query events for dashboards, newest first.

        Args:
            since: Minimum event timestamp (epoch ms)
            country: Only events tagged with this country
            limit: Maximum number of events (defaults to the configured limit)

        Returns:
            Events with their record id, or [] when unavailable or on failure
        """
        if not self.is_ready():
            return []

        filters = []
        if since is not None:
            filters.append(QueryFilter("timestamp", ">=", since))
        if country:
            filters.append(QueryFilter("country", "==", country))

        try:
            rows = self._backend.query(
                self.events_collection,
                filters=filters,
                order_by="timestamp",
                descending=True,
                limit=limit or self.query_limit
            )
        except Exception as e:
            logger.error(f"Failed to query events: {e}")
            return []

        return [{"id": doc_id, **data} for doc_id, data in rows]
