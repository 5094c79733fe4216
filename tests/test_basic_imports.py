"""
Basic import tests to verify the core functionality.
"""


def test_package_imports():
    """Test that the public tracking API can be imported."""
    from funnel_tracking import (
        BrowserContext,
        EventType,
        FunnelTracker,
        LocalEventStore,
        MemoryStorage,
        create_tracker,
    )

    assert callable(create_tracker)

    context = BrowserContext()
    store = LocalEventStore(MemoryStorage())
    tracker = FunnelTracker(context, store)
    assert tracker.remote is None
    assert tracker.dispatcher is None
    assert EventType.is_known("page_view")


def test_subsystem_imports():
    """Test that each subsystem package exposes its entry points."""
    from funnel_tracking.auto_instrumentation import AutoInstrumentationObserver, detect_error
    from funnel_tracking.event_tracking import EventFactory, build_payload
    from funnel_tracking.identity import IdentityProvider, parse_user_agent
    from funnel_tracking.local_store import ExportedFile, MAX_EVENTS
    from funnel_tracking.remote_sync import RemoteSyncClient, SyncDispatcher, create_backend_factory

    assert MAX_EVENTS == 10000
    assert callable(detect_error)
    assert callable(build_payload)
    assert callable(parse_user_agent)
    assert callable(create_backend_factory)
    assert ExportedFile("a.json", "[]").mimetype == "application/json"
    for cls in (AutoInstrumentationObserver, EventFactory, IdentityProvider, RemoteSyncClient, SyncDispatcher):
        assert isinstance(cls, type)


def test_app_factory_imports():
    """Test that the admin app factory can be imported."""
    from funnel_tracking.main import create_app
    from funnel_tracking.admin import create_tracking_admin_module

    assert callable(create_app)
    assert callable(create_tracking_admin_module)
