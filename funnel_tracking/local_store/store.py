"""
Local Event Store

Bounded, append-only event log kept in profile-scoped client storage. It is
the source of truth whenever the remote store is unreachable, so every
failure here is logged and absorbed rather than raised.
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..event_tracking.models import Event
from ..event_tracking.sanitize import strip_sensitive
from ..identity.storage import KeyValueStorage

logger = logging.getLogger(__name__)

MAX_EVENTS = 10000


@dataclass
class ExportedFile:
    """A downloadable snapshot of the event log."""

    filename: str
    content: str
    mimetype: str = "application/json"


class LocalEventStore:
    """Event log and user snapshot persisted in client storage."""

    def __init__(
        self,
        storage: KeyValueStorage,
        events_key: str = "funnel_events",
        user_data_key: str = "funnel_user_data",
        max_events: int = MAX_EVENTS,
        export_prefix: str = "funnel_events_"
    ):
        """Initialize the local store.

        Args:
            storage: Profile-scoped storage (survives reloads)
            events_key: Storage key of the event log
            user_data_key: Storage key of the user snapshot
            max_events: Capacity of the log; oldest events are evicted first
            export_prefix: Filename prefix for exports
        """
        self.storage = storage
        self.events_key = events_key
        self.user_data_key = user_data_key
        self.max_events = max_events
        self.export_prefix = export_prefix
        # Held across each read-modify-write of the log and the user snapshot
        self._lock = threading.RLock()

    def _load_json(self, key: str, expected_type: type) -> Any:
        """Load a JSON value, treating missing or malformed content as empty."""
        try:
            raw = self.storage.get_item(key)
            if not raw:
                return expected_type()
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.error(f"Corrupt data under '{key}', treating as empty: {e}")
            return expected_type()
        except Exception as e:
            logger.error(f"Failed to read '{key}': {e}")
            return expected_type()

        if not isinstance(data, expected_type):
            logger.error(f"Unexpected {type(data).__name__} under '{key}', treating as empty")
            return expected_type()
        return data

    def append(self, event: Event) -> bool:
        """Append an event, evicting the oldest beyond capacity.

        Returns:
            True if the log was written, False if storage refused it
        """
        with self._lock:
            try:
                events = self.read_all()
                events.append(event.to_dict())

                if len(events) > self.max_events:
                    events = events[-self.max_events:]

                self.storage.set_item(self.events_key, json.dumps(events, ensure_ascii=False))
            except Exception as e:
                logger.error(f"Failed to save event {event.id} ({event.event_type}): {e}")
                return False

        logger.debug(f"Event recorded: {event.event_type} {event.page or event.get('cta_id') or ''}")
        return True

    def read_all(self) -> List[Dict[str, Any]]:
        """Return the full ordered log, or [] if empty or corrupt."""
        with self._lock:
            return self._load_json(self.events_key, list)

    def clear(self) -> None:
        """Empty the log."""
        with self._lock:
            try:
                self.storage.remove_item(self.events_key)
                logger.info("Local events cleared")
            except Exception as e:
                logger.error(f"Failed to clear events: {e}")

    def get_event_stats(self) -> Dict[str, int]:
        """Count logged events per event type."""
        stats: Dict[str, int] = {}
        for event in self.read_all():
            event_type = event.get("event_type", "") if isinstance(event, dict) else ""
            stats[event_type] = stats.get(event_type, 0) + 1
        return stats

    def export_as_file(self, directory: Optional[Path] = None, today: Optional[date] = None) -> ExportedFile:
        """Serialize the log as pretty-printed JSON named with the current date.

        Args:
            directory: If given, the file is also written there
            today: Date used in the filename (defaults to today)

        Returns:
            The exported file
        """
        today = today or date.today()
        exported = ExportedFile(
            filename=f"{self.export_prefix}{today.isoformat()}.json",
            content=json.dumps(self.read_all(), indent=2, ensure_ascii=False)
        )
        if directory is not None:
            directory = Path(directory)
            directory.mkdir(parents=True, exist_ok=True)
            (directory / exported.filename).write_text(exported.content, encoding="utf-8")
            logger.info(f"Exported events to {directory / exported.filename}")
        return exported

    def load_user_data(self) -> Dict[str, Any]:
        """Return the local user snapshot, or {} if missing or corrupt."""
        return self._load_json(self.user_data_key, dict)

    def merge_user_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge non-sensitive attributes into the local user snapshot.

        Returns:
            The merged snapshot (also returned when the write fails)
        """
        with self._lock:
            merged = {**self.load_user_data(), **strip_sensitive(dict(data))}
            try:
                self.storage.set_item(self.user_data_key, json.dumps(merged, ensure_ascii=False))
            except Exception as e:
                logger.error(f"Failed to save user data: {e}")
        return merged
