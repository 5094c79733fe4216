"""
Local Store Subsystem

Bounded client-side event log with export and a local user snapshot.
"""

from .store import MAX_EVENTS, ExportedFile, LocalEventStore

__all__ = ['LocalEventStore', 'ExportedFile', 'MAX_EVENTS']
