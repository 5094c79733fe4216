"""
Event Tracking Subsystem

Event vocabulary, typed payloads and the factory that turns them into
enriched, immutable records.
"""

from .event_factory import EventFactory
from .event_types import EventType
from .models import PAYLOAD_MODELS, CustomPayload, Event, EventPayload, build_payload
from .sanitize import SENSITIVE_FIELDS, strip_sensitive

__all__ = [
    'EventFactory',
    'EventType',
    'Event',
    'EventPayload',
    'CustomPayload',
    'PAYLOAD_MODELS',
    'build_payload',
    'SENSITIVE_FIELDS',
    'strip_sensitive',
]
