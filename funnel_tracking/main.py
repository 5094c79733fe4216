"""
Admin application for inspecting captured funnel events.
"""

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager, config_manager as default_config_manager
from .admin.factory import create_tracking_admin_module
from .factory import create_tracker
from .tracking_api import FunnelTracker

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent


def create_app(tracker: Optional[FunnelTracker] = None, config: Optional[ConfigManager] = None) -> Flask:
    """Create the admin Flask application.

    Args:
        tracker: Tracker to expose; built from configuration when omitted
        config: Configuration source (defaults to the global config manager)

    Returns:
        Flask application
    """
    config = config or default_config_manager

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_proto=1,     # trust 1 hop for X-Forwarded-Proto
        x_host=1,      # trust 1 hop for X-Forwarded-Host
        x_prefix=1)    # trust 1 hop for X-Forwarded-Prefix

    if tracker is None:
        tracker = create_tracker(config=config, base_dir=BASE_DIR)
        if tracker.remote is not None:
            tracker.dispatcher.submit(tracker.remote.initialize, description="initialize remote backend")

    admin_module = create_tracking_admin_module(tracker)
    app.register_blueprint(admin_module["blueprint"])
    app.extensions["funnel_tracker"] = admin_module["service"]

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "remote_ready": bool(tracker.remote and tracker.remote.is_ready())
        })

    logger.info("Tracking admin app created")
    return app
