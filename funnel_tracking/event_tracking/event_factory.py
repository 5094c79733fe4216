"""
Event Factory

Builds immutable Event records from an event type, a payload and an
enrichment snapshot. Construction is pure: no storage or network access.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from ..identity.models import Enrichment
from ..identity.provider import random_base36
from .models import Event, EventPayload
from .sanitize import strip_sensitive

# Callers can never override these through a payload
PROTECTED_FIELDS = ("id", "timestamp", "session_id")


def format_iso_millis(epoch_ms: int) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    dt = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventFactory:
    """Creates enriched events."""

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize the event factory.

        Args:
            clock: Returns the current epoch time in seconds
        """
        self.clock = clock

    def new_event_id(self, epoch_ms: int) -> str:
        return f"evt_{epoch_ms}_{random_base36(5)}"

    def create_event(
        self,
        event_type: str,
        extra: Optional[Mapping[str, Any]],
        enrichment: Enrichment
    ) -> Event:
        """Create an event of ``event_type`` with ``extra`` merged over the base.

        Args:
            event_type: Event type tag
            extra: Type-specific fields; they win over base fields except the
                protected id/timestamp/session_id
            enrichment: Session, page and device context for this event

        Returns:
            The new Event
        """
        epoch_ms = int(self.clock() * 1000)
        base: Dict[str, Any] = {
            "id": self.new_event_id(epoch_ms),
            "timestamp": epoch_ms,
            "datetime": format_iso_millis(epoch_ms),
            "session_id": enrichment.session_id,
            "event_type": event_type,
            "page": enrichment.page,
            "referrer": enrichment.referrer,
            "device": enrichment.device.to_dict(),
            "utms": dict(enrichment.utms),
        }

        safe_extra = strip_sensitive(dict(extra or {}))
        for key in PROTECTED_FIELDS:
            safe_extra.pop(key, None)

        return Event.from_dict({**base, **safe_extra})

    def create_from_payload(self, payload: EventPayload, enrichment: Enrichment) -> Event:
        """Create an event from a typed payload."""
        return self.create_event(payload.kind(), payload.to_fields(), enrichment)
