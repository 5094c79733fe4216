"""
Factory for creating the tracking admin module.
"""
from ..tracking_api import FunnelTracker
from .routes import create_tracking_admin_blueprint


def create_tracking_admin_module(tracker: FunnelTracker) -> dict:
    """Create tracking admin module with service and routes.

    Args:
        tracker: Tracker whose local log and remote client are exposed

    Returns:
        Dictionary containing the service and blueprint
    """
    blueprint = create_tracking_admin_blueprint(tracker)

    return {
        "service": tracker,
        "blueprint": blueprint
    }
