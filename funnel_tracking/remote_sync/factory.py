"""
Factory for choosing the remote backend from configuration.
"""
import logging
from typing import Callable, Optional

from config_manager import RemoteConfig
from .backend import InMemoryBackend, RemoteBackend

logger = logging.getLogger(__name__)


def create_backend_factory(remote_config: RemoteConfig) -> Optional[Callable[[], RemoteBackend]]:
    """Return a callable building the configured backend.

    Args:
        remote_config: Remote store settings

    Returns:
        Backend factory, or None when remote sync is disabled
    """
    backend = (remote_config.backend or "none").lower()

    if backend == "none":
        return None

    if backend == "memory":
        return InMemoryBackend

    if backend == "mongo":
        from .mongo_backend import MongoBackend

        def build_mongo() -> RemoteBackend:
            return MongoBackend(
                uri=remote_config.mongo_uri,
                database=remote_config.database,
                server_selection_timeout_ms=remote_config.server_selection_timeout_ms
            )
        return build_mongo

    logger.warning(f"Unknown remote backend '{remote_config.backend}', remote sync disabled")
    return None
