"""
Remote Sync Subsystem

Best-effort mirroring of captured events to a remote document store.
"""

from .backend import (
    SERVER_TIMESTAMP,
    InMemoryBackend,
    QueryFilter,
    RemoteBackend,
    RemoteBackendError,
)
from .client import RemoteSyncClient, clean_data
from .dispatcher import SyncDispatcher, SyncFailure
from .factory import create_backend_factory

__all__ = [
    'SERVER_TIMESTAMP',
    'InMemoryBackend',
    'QueryFilter',
    'RemoteBackend',
    'RemoteBackendError',
    'RemoteSyncClient',
    'clean_data',
    'SyncDispatcher',
    'SyncFailure',
    'create_backend_factory',
]
