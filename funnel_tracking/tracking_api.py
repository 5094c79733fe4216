"""
Funnel Tracker

Public tracking API used by UI code and by auto-instrumentation. Every
tracking method builds an enriched event, appends it to the local log and
hands remote mirroring to the sync dispatcher. Tracking methods return None
and never raise; the local append alone defines "captured".
"""

import functools
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from .auto_instrumentation.dom import Document
from .auto_instrumentation.observer import AutoInstrumentationObserver
from .event_tracking import models as payloads
from .event_tracking.event_factory import EventFactory, format_iso_millis
from .event_tracking.models import Event, EventPayload
from .event_tracking.sanitize import strip_sensitive
from .identity.browser_context import BrowserContext
from .identity.provider import IdentityProvider
from .local_store.store import ExportedFile, LocalEventStore
from .remote_sync.client import RemoteSyncClient
from .remote_sync.dispatcher import SyncDispatcher

logger = logging.getLogger(__name__)

DEFAULT_PRICE = 19.90


def _never_raise(method):
    """Log and swallow any exception so tracking cannot break the host page."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            method(self, *args, **kwargs)
        except Exception as e:
            logger.error(f"{method.__name__} failed: {e}", exc_info=True)
        return None
    return wrapper


def format_time(ms: int) -> str:
    """Format a duration as ``"42s"`` or ``"3m 5s"``."""
    seconds = int(ms // 1000)
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    remaining_seconds = seconds % 60
    return f"{minutes}m {remaining_seconds}s"


class FunnelTracker:
    """Capture-path facade for one browser tab."""

    def __init__(
        self,
        context: BrowserContext,
        store: LocalEventStore,
        remote: Optional[RemoteSyncClient] = None,
        dispatcher: Optional[SyncDispatcher] = None,
        session_key: str = "funnel_session_id",
        default_price: float = DEFAULT_PRICE,
        default_conversion_type: str = "chat_reached",
        auto_instrument: bool = True,
        language: str = "pt",
        export_dir: Optional[Path] = None
    ):
        """Initialize the tracker.

        Args:
            context: Browser tab the events are captured in
            store: Local durable event log
            remote: Remote mirror; None means local-only capture
            dispatcher: Queue running remote work (created when omitted)
            session_key: Session storage key of the session id
            default_price: Price recorded for paywall/checkout without one
            default_conversion_type: Conversion type when none is given
            auto_instrument: Whether start() attaches auto-instrumentation
            language: Keyword language of the heuristics
            export_dir: Default directory export_events() writes to
        """
        self.context = context
        self.store = store
        self.remote = remote
        self.dispatcher = dispatcher or (SyncDispatcher() if remote is not None else None)
        self.identity = IdentityProvider(context, session_key=session_key)
        self.factory = EventFactory(clock=context.clock)
        self.observer = AutoInstrumentationObserver(self, language=language)
        self.default_price = default_price
        self.default_conversion_type = default_conversion_type
        self.auto_instrument = auto_instrument
        self.export_dir = Path(export_dir) if export_dir is not None else None
        self._page_start_ms: Optional[int] = None

    # ---------------------------------------------------------------------
    # Pipeline
    # ---------------------------------------------------------------------

    def _remote_ready(self) -> bool:
        return self.remote is not None and self.dispatcher is not None and self.remote.is_ready()

    def _sync(self, operation: str, *args, description: str = "") -> None:
        if self._remote_ready():
            self.dispatcher.submit(getattr(self.remote, operation), *args, description=description or operation)

    def _store(self, event: Event) -> Event:
        self.store.append(event)
        self._sync("save_event", event, description=f"save_event {event.event_type}")
        return event

    def _record(self, payload: EventPayload) -> Event:
        return self._store(self.factory.create_from_payload(payload, self.identity.snapshot()))

    def _capture(self, model: Type[EventPayload], fields: Dict[str, Any]) -> Event:
        """Validate ``fields`` against ``model`` and record the event.

        A payload that does not validate is still recorded with its raw
        fields; only the local append decides whether an event is captured.
        """
        try:
            payload = model.model_validate(fields)
        except ValidationError as e:
            logger.warning(f"Recording unvalidated {model.event_type} event ({e.error_count()} field errors)")
            return self._store(self.factory.create_event(model.event_type, fields, self.identity.snapshot()))
        return self._record(payload)

    @_never_raise
    def track_payload(self, payload: EventPayload) -> None:
        """Record an already validated payload."""
        self._record(payload)

    @_never_raise
    def track(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Record ``data`` as an ``event_type`` event.

        Known event types go through their payload model; unknown ones are
        recorded as custom events.
        """
        fields = strip_sensitive(dict(data or {}))
        model = payloads.PAYLOAD_MODELS.get(event_type)
        if model is None:
            self._record(payloads.CustomPayload(event_name=event_type, custom_data=fields))
        else:
            self._capture(model, fields)

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    @_never_raise
    def start(self, document: Optional[Document] = None) -> None:
        """Initial page load: connect remote lazily, instrument, page view."""
        if self.remote is not None and self.dispatcher is not None and not self.remote.is_ready():
            self.dispatcher.submit(self.remote.initialize, description="initialize remote backend")
        if document is not None and self.auto_instrument:
            self.observer.attach(document)
        self.track_page_view()
        logger.info("Funnel tracking initialized")

    def unload(self) -> None:
        """Page is being left."""
        self.track_page_exit()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Let queued remote work finish and stop the dispatcher."""
        if self.dispatcher is not None:
            self.dispatcher.shutdown(timeout)

    # ---------------------------------------------------------------------
    # Navigation
    # ---------------------------------------------------------------------

    @_never_raise
    def track_page_view(self, page_name: Optional[str] = None) -> None:
        self._page_start_ms = self.context.now_ms()
        self._capture(payloads.PageViewPayload, dict(page=page_name or self.context.pathname))

    @_never_raise
    def track_page_exit(self) -> None:
        """Record time spent since the last page view, if there was one."""
        if self._page_start_ms is None:
            return
        time_spent = self.context.now_ms() - self._page_start_ms
        self._capture(payloads.PageExitPayload, dict(
            time_spent_ms=time_spent,
            time_spent_formatted=format_time(time_spent)
        ))

    @_never_raise
    def track_cta(self, cta_id: str, cta_text: Optional[str] = None, destination_url: Optional[str] = None) -> None:
        self._capture(payloads.CtaClickPayload, dict(
            cta_id=cta_id,
            cta_text=cta_text,
            destination_url=destination_url or None
        ))

    @_never_raise
    def track_content_scroll(self, content_type: str, scroll_percent: float) -> None:
        self._capture(payloads.ContentScrollPayload, dict(content_type=content_type, scroll_percent=scroll_percent))

    # ---------------------------------------------------------------------
    # Registration
    # ---------------------------------------------------------------------

    @_never_raise
    def track_form_submit(self, form_id: str, form_data: Optional[Dict[str, Any]] = None) -> None:
        self._capture(payloads.FormSubmitPayload, dict(form_id=form_id, form_data=strip_sensitive(dict(form_data or {}))))

    @_never_raise
    def track_field_focus(self, field_name: str) -> None:
        self._capture(payloads.FieldFocusPayload, dict(field_name=field_name))

    @_never_raise
    def track_field_filled(self, field_name: str, has_value: bool) -> None:
        self._capture(payloads.FieldFilledPayload, dict(field_name=field_name, has_value=has_value))

    @_never_raise
    def track_form_error(self, error_type: str, details: Any = None) -> None:
        """Record a validation error ('password_mismatch', 'required_field', ...)."""
        self._capture(payloads.FormErrorPayload, dict(error_type=error_type, error_details=details))

    @_never_raise
    def track_form_attempt(self, form_id: str, success: bool, error_type: Optional[str] = None) -> None:
        self._capture(payloads.FormAttemptPayload, dict(form_id=form_id, success=success, error_type=error_type or None))

    @_never_raise
    def track_registration_complete(self, step, data: Optional[Dict[str, Any]] = None) -> None:
        self._capture(payloads.RegistrationCompletePayload, dict(step=step, data=strip_sensitive(dict(data or {}))))

    @_never_raise
    def track_bio_filled(self, char_count: int) -> None:
        self._capture(payloads.BioFilledPayload, dict(char_count=char_count, has_content=char_count > 0))

    @_never_raise
    def track_interest(self, interest: str, selected: bool) -> None:
        self._capture(payloads.InterestTogglePayload, dict(interest=interest, selected=selected))

    @_never_raise
    def track_interests_count(self, count: int, interests: Optional[List[str]] = None) -> None:
        self._capture(payloads.InterestsCountPayload, dict(count=count, interests=list(interests or [])))

    @_never_raise
    def track_photo_upload(self, photo_index: int) -> None:
        self._capture(payloads.PhotoUploadPayload, dict(photo_index=photo_index))

    # ---------------------------------------------------------------------
    # Discover
    # ---------------------------------------------------------------------

    @_never_raise
    def track_swipe(self, action: str, profile_id=None, profile_name: Optional[str] = None) -> None:
        self._capture(payloads.SwipePayload, dict(swipe_action=action, profile_id=profile_id, profile_name=profile_name))

    @_never_raise
    def track_profile_view(self, profile_id=None, profile_name: Optional[str] = None,
                           profile_index: Optional[int] = None) -> None:
        self._capture(payloads.ProfileViewPayload, dict(
            profile_id=profile_id,
            profile_name=profile_name,
            profile_index=profile_index
        ))

    @_never_raise
    def track_premium_match_action(self, action: str, profile_name: Optional[str] = None) -> None:
        self._capture(payloads.PremiumMatchActionPayload, dict(action=action, profile_name=profile_name))

    # ---------------------------------------------------------------------
    # Monetization
    # ---------------------------------------------------------------------

    @_never_raise
    def track_withdraw_popup(self, action: str, source: Optional[str] = None) -> None:
        self._capture(payloads.WithdrawPopupPayload, dict(action=action, source=source))

    @_never_raise
    def track_pix_key_entered(self, source: Optional[str] = None) -> None:
        self._capture(payloads.PixKeyEnteredPayload, dict(source=source))

    @_never_raise
    def track_paywall(self, action: str, source: Optional[str] = None, price: Optional[float] = None) -> None:
        self._capture(payloads.PaywallPayload, dict(action=action, source=source, price=price or self.default_price))

    @_never_raise
    def track_checkout(self, action: str, source: Optional[str] = None, price: Optional[float] = None) -> None:
        self._capture(payloads.CheckoutPayload, dict(action=action, source=source, price=price or self.default_price))

    @_never_raise
    def track_gift_claim(self, gift_id=None, gift_value: Optional[float] = None, source: Optional[str] = None) -> None:
        self._capture(payloads.GiftClaimPayload, dict(gift_id=gift_id, gift_value=gift_value, source=source))

    # ---------------------------------------------------------------------
    # Chat
    # ---------------------------------------------------------------------

    @_never_raise
    def track_chat_message(self, action: str, message_type: Optional[str] = None, source: Optional[str] = None) -> None:
        self._capture(payloads.ChatMessagePayload, dict(action=action, message_type=message_type, source=source))

    @_never_raise
    def track_conversion(self, conversion_type: Optional[str] = None) -> None:
        self._capture(payloads.ConversionPayload, dict(conversion_type=conversion_type or self.default_conversion_type))

    @_never_raise
    def track_custom(self, event_name: str, data: Any = None) -> None:
        self._record(payloads.CustomPayload(event_name=event_name, custom_data=strip_sensitive(data)))

    # ---------------------------------------------------------------------
    # User snapshot
    # ---------------------------------------------------------------------

    @_never_raise
    def save_user_data(self, data: Dict[str, Any]) -> None:
        """Merge user attributes locally and mirror them for remarketing."""
        safe_data = strip_sensitive(dict(data or {}))
        session_id = self.identity.get_session_id()
        self.store.merge_user_data({**safe_data, "session_id": session_id})

        if self._remote_ready():
            self.dispatcher.submit(
                self.remote.save_user,
                session_id,
                {
                    **safe_data,
                    "device": self.identity.get_device_info().to_dict(),
                    "utms": self.identity.get_utm_data(),
                },
                description=f"save_user {session_id}"
            )

    @_never_raise
    def update_funnel_stage(self, stage: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Record the user's current funnel stage."""
        session_id = self.identity.get_session_id()
        safe_extra = strip_sensitive(dict(extra or {}))
        self.store.merge_user_data({
            **safe_extra,
            "session_id": session_id,
            "funnel_stage": stage,
            "funnel_stage_updated_at": format_iso_millis(self.context.now_ms()),
        })
        self._sync("update_funnel_stage", session_id, stage, safe_extra,
                   description=f"update_funnel_stage {stage}")

    def get_user_data(self) -> Dict[str, Any]:
        return self.store.load_user_data()

    # ---------------------------------------------------------------------
    # Local log access
    # ---------------------------------------------------------------------

    def get_all_events(self) -> List[Dict[str, Any]]:
        return self.store.read_all()

    def clear_events(self) -> None:
        self.store.clear()

    def export_events(self, directory: Optional[Path] = None) -> ExportedFile:
        """Export the log, writing it to ``directory`` or the configured export dir."""
        return self.store.export_as_file(directory or self.export_dir)

    @staticmethod
    def format_time(ms: int) -> str:
        return format_time(ms)
