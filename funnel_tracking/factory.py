"""
Factory for assembling a FunnelTracker from configuration.
"""
from pathlib import Path
from typing import Optional

from config_manager import ConfigManager, config_manager as default_config_manager
from .identity.browser_context import BrowserContext
from .identity.storage import FileStorage
from .local_store.store import LocalEventStore
from .remote_sync.client import RemoteSyncClient
from .remote_sync.dispatcher import SyncDispatcher
from .remote_sync.factory import create_backend_factory
from .tracking_api import FunnelTracker


def _resolve(path: str, base_dir: Optional[Path]) -> Path:
    resolved = Path(path)
    if base_dir is not None and not resolved.is_absolute():
        resolved = Path(base_dir) / resolved
    return resolved


def create_tracker(
    context: Optional[BrowserContext] = None,
    config: Optional[ConfigManager] = None,
    base_dir: Optional[Path] = None
) -> FunnelTracker:
    """Create a tracker with its store, remote client and dispatcher.

    Args:
        context: Browser tab to track; when omitted, a tab whose local storage
            lives in the configured profile directory
        config: Configuration source (defaults to the global config manager)
        base_dir: Directory relative paths are resolved against

    Returns:
        Configured FunnelTracker
    """
    config = config or default_config_manager
    tracking_config = config.get_tracking_config()
    remote_config = config.get_remote_config()
    ai_config = config.get_auto_instrumentation_config()

    paths_config = config.get_paths_config()
    if context is None:
        profile_dir = _resolve(paths_config.profile_dir, base_dir)
        context = BrowserContext(local_storage=FileStorage(profile_dir))

    store = LocalEventStore(
        storage=context.local_storage,
        events_key=tracking_config.events_key,
        user_data_key=tracking_config.user_data_key,
        max_events=tracking_config.max_events,
        export_prefix=tracking_config.export_prefix
    )

    backend_factory = create_backend_factory(remote_config)
    remote = None
    dispatcher = None
    if backend_factory is not None:
        remote = RemoteSyncClient(
            backend_factory=backend_factory,
            events_collection=remote_config.events_collection,
            users_collection=remote_config.users_collection,
            default_country=remote_config.default_country,
            language=remote_config.language,
            query_limit=remote_config.query_limit
        )
        dispatcher = SyncDispatcher()

    return FunnelTracker(
        context=context,
        store=store,
        remote=remote,
        dispatcher=dispatcher,
        session_key=tracking_config.session_key,
        default_price=tracking_config.default_price,
        default_conversion_type=tracking_config.default_conversion_type,
        auto_instrument=ai_config.enabled,
        language=ai_config.language,
        export_dir=_resolve(paths_config.export_dir, base_dir)
    )
