"""
Funnel Tracking

Client-side capture of funnel events with a bounded local log and a
best-effort remote mirror.
"""

from .event_tracking import Event, EventType
from .factory import create_tracker
from .identity import BrowserContext, FileStorage, MemoryStorage
from .local_store import LocalEventStore
from .remote_sync import InMemoryBackend, RemoteSyncClient, SyncDispatcher
from .tracking_api import FunnelTracker

__all__ = [
    'BrowserContext',
    'Event',
    'EventType',
    'FileStorage',
    'FunnelTracker',
    'InMemoryBackend',
    'LocalEventStore',
    'MemoryStorage',
    'RemoteSyncClient',
    'SyncDispatcher',
    'create_tracker',
]
