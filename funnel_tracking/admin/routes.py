"""
Tracking Admin Routes

Flask routes exposing the local event log, typed ingest and the remote
dashboard query.
"""

import json
import logging

from flask import Blueprint, Response, request, jsonify
from pydantic import ValidationError

from ..event_tracking.models import build_payload
from ..event_tracking.sanitize import strip_sensitive
from ..tracking_api import FunnelTracker

logger = logging.getLogger(__name__)


def create_tracking_admin_blueprint(tracker: FunnelTracker):
    """Create a Flask blueprint for tracking admin routes.

    Args:
        tracker: Tracker whose log and remote client are exposed

    Returns:
        Flask blueprint with tracking admin routes
    """
    bp = Blueprint('tracking_admin', __name__)

    @bp.route("/event", methods=["POST"])
    def ingest_event():
        """Record an event posted as {"type": ..., "data": {...}}."""
        payload_data = request.get_json(silent=True)
        if payload_data is None:
            raw = request.get_data(as_text=True) or "{}"
            try:
                payload_data = json.loads(raw)
            except json.JSONDecodeError:
                payload_data = {}
        if not isinstance(payload_data, dict):
            return jsonify({"error": "payload must be an object"}), 400

        event_type = str(payload_data.get("type", "")).strip()
        if not event_type:
            return jsonify({"error": "missing event type"}), 400

        data = payload_data.get("data") or {}
        if not isinstance(data, dict):
            return jsonify({"error": "data must be an object"}), 400

        try:
            payload = build_payload(event_type, strip_sensitive(data))
        except ValidationError as exc:
            details = exc.errors(include_url=False, include_context=False, include_input=False)
            return jsonify({"error": "invalid payload", "details": details}), 400

        tracker.track_payload(payload)
        return jsonify({"status": "ok"})

    @bp.route("/events", methods=["GET"])
    def get_events():
        """List locally captured events, most recent last."""
        limit = request.args.get("limit", type=int)
        events = tracker.get_all_events()
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return jsonify({"status": "ok", "events": events})

    @bp.route("/events", methods=["DELETE"])
    def clear_events():
        """Empty the local event log."""
        tracker.clear_events()
        return jsonify({"status": "ok"})

    @bp.route("/events/stats", methods=["GET"])
    def get_event_stats():
        """Count local events per type."""
        return jsonify({"status": "ok", "stats": tracker.store.get_event_stats()})

    @bp.route("/events/export", methods=["GET"])
    def export_events():
        """Download the local event log as a dated JSON file."""
        exported = tracker.export_events()
        return Response(
            exported.content,
            mimetype=exported.mimetype,
            headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'}
        )

    @bp.route("/user", methods=["GET"])
    def get_user():
        """Local user snapshot."""
        return jsonify({"status": "ok", "user": tracker.get_user_data()})

    @bp.route("/remote/events", methods=["GET"])
    def get_remote_events():
        """Dashboard query against the remote store."""
        if tracker.remote is None or not tracker.remote.is_ready():
            return jsonify({"status": "unavailable", "events": []})

        events = tracker.remote.get_events(
            since=request.args.get("since", type=int),
            country=request.args.get("country") or None,
            limit=request.args.get("limit", type=int)
        )
        return jsonify({"status": "ok", "events": events})

    return bp
