"""
Event Types for the Funnel Tracking System

Known funnel event kinds. The vocabulary is open: unknown types are still
captured as custom events, this enum only names the ones with a typed payload.
"""

from enum import Enum


class EventType(Enum):
    """Known funnel event types."""

    # Navigation events
    PAGE_VIEW = "page_view"
    PAGE_EXIT = "page_exit"
    CTA_CLICK = "cta_click"
    CONTENT_SCROLL = "content_scroll"

    # Registration events
    FORM_SUBMIT = "form_submit"
    FIELD_FOCUS = "field_focus"
    FIELD_FILLED = "field_filled"
    FORM_ERROR = "form_error"
    FORM_ATTEMPT = "form_attempt"
    REGISTRATION_COMPLETE = "registration_complete"
    BIO_FILLED = "bio_filled"
    INTEREST_TOGGLE = "interest_toggle"
    INTERESTS_COUNT = "interests_count"
    PHOTO_UPLOAD = "photo_upload"

    # Discover events
    SWIPE = "swipe"
    PROFILE_VIEW = "profile_view"
    PREMIUM_MATCH_ACTION = "premium_match_action"

    # Monetization events
    WITHDRAW_POPUP = "withdraw_popup"
    PIX_KEY_ENTERED = "pix_key_entered"
    PAYWALL = "paywall"
    CHECKOUT = "checkout"
    GIFT_CLAIM = "gift_claim"

    # Chat events
    CHAT_MESSAGE = "chat_message"
    CONVERSION = "conversion"

    @classmethod
    def is_known(cls, event_type: str) -> bool:
        """Check if an event type string names a known kind."""
        try:
            cls(event_type)
            return True
        except ValueError:
            return False

    @classmethod
    def get_known_types(cls) -> set[str]:
        """Get all known event type strings."""
        return {e.value for e in cls}
