"""
Tests for assembling a tracker from configuration.
"""

import json
import os
from unittest.mock import patch

import pytest

from config_manager import ConfigManager
from funnel_tracking import create_tracker
from funnel_tracking.identity import BrowserContext, FileStorage, MemoryStorage
from funnel_tracking.remote_sync import SyncDispatcher


@pytest.fixture
def make_config(tmp_path):
    def _make(overrides=None):
        config_file = tmp_path / "tracking_config.json"
        config_file.write_text(json.dumps(overrides or {}), encoding="utf-8")
        with patch.dict(os.environ, {}, clear=True):
            return ConfigManager(str(config_file))
    return _make


class TestCreateTracker:
    """Test create_tracker wiring."""

    def test_local_only_by_default(self, make_config, tmp_path):
        tracker = create_tracker(config=make_config(), base_dir=tmp_path)

        assert tracker.remote is None
        assert tracker.dispatcher is None
        assert isinstance(tracker.context.local_storage, FileStorage)
        assert tracker.context.local_storage.directory == tmp_path / "client_data"

    def test_events_persist_in_profile_dir(self, make_config, tmp_path):
        config = make_config()
        tracker = create_tracker(config=config, base_dir=tmp_path)
        tracker.track_swipe("like")

        reopened = create_tracker(config=config, base_dir=tmp_path)
        assert [e["event_type"] for e in reopened.get_all_events()] == ["swipe"]

    def test_tracking_settings_applied(self, make_config):
        config = make_config({
            "tracking": {"max_events": 2, "events_key": "ev", "default_price": 9.9},
            "auto_instrumentation": {"enabled": False}
        })
        context = BrowserContext(local_storage=MemoryStorage())
        tracker = create_tracker(context=context, config=config)

        for _ in range(3):
            tracker.track_paywall("view")

        assert len(tracker.get_all_events()) == 2
        assert context.local_storage.get_item("ev") is not None
        assert tracker.get_all_events()[0]["price"] == 9.9
        assert tracker.auto_instrument is False

    def test_memory_remote(self, make_config):
        config = make_config({"remote": {"backend": "memory", "default_country": "BR"}})
        tracker = create_tracker(context=BrowserContext(), config=config)
        try:
            assert isinstance(tracker.dispatcher, SyncDispatcher)
            assert tracker.remote.default_country == "BR"
            assert tracker.remote.initialize()
            assert tracker.remote.is_ready()
        finally:
            tracker.shutdown()

    def test_export_written_to_configured_dir(self, make_config, tmp_path):
        tracker = create_tracker(config=make_config({"paths": {"export_dir": "out"}}), base_dir=tmp_path)
        tracker.track_swipe("like")

        exported = tracker.export_events()

        assert tracker.export_dir == tmp_path / "out"
        written = json.loads((tmp_path / "out" / exported.filename).read_text(encoding="utf-8"))
        assert written == tracker.get_all_events()

    def test_explicit_export_directory_wins(self, make_config, tmp_path):
        tracker = create_tracker(config=make_config(), base_dir=tmp_path)
        tracker.track_swipe("like")

        exported = tracker.export_events(tmp_path / "elsewhere")

        assert (tmp_path / "elsewhere" / exported.filename).exists()
        assert not (tmp_path / "exports").exists()
