"""
Identity Subsystem

Tab-scoped session identity, device snapshot and sticky attribution.
"""

from .browser_context import BrowserContext
from .models import DeviceInfo, Enrichment
from .provider import IdentityProvider, UTM_KEYS, parse_user_agent
from .storage import FileStorage, KeyValueStorage, MemoryStorage, StorageQuotaExceeded

__all__ = [
    'BrowserContext',
    'DeviceInfo',
    'Enrichment',
    'IdentityProvider',
    'UTM_KEYS',
    'parse_user_agent',
    'FileStorage',
    'KeyValueStorage',
    'MemoryStorage',
    'StorageQuotaExceeded',
]
