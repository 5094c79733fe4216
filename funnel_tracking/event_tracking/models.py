"""
Data Models for Event Tracking

Typed payloads for each known event kind and the immutable Event record they
are merged into.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from .event_types import EventType

# Enrichment fields set by the factory; the rest of a flattened event is payload
BASE_FIELDS = (
    "id",
    "timestamp",
    "datetime",
    "session_id",
    "event_type",
    "page",
    "referrer",
    "device",
    "utms",
)

ProfileRef = Union[str, int, None]


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class Event:
    """Captured event. Never mutated; corrections are new events."""

    id: str
    timestamp: int
    datetime: str
    session_id: str
    event_type: str
    page: Optional[str] = None
    referrer: Optional[str] = None
    device: Mapping[str, Any] = field(default_factory=dict)
    utms: Mapping[str, str] = field(default_factory=dict)
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "device", _freeze(self.device))
        object.__setattr__(self, "utms", _freeze(self.utms))
        object.__setattr__(self, "payload", _freeze(self.payload))

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a base or payload field by name."""
        if key in BASE_FIELDS:
            return _thaw(getattr(self, key))
        return _thaw(self.payload.get(key, default))

    def to_dict(self) -> Dict[str, Any]:
        """Flatten base and payload fields for JSON serialization."""
        data = {name: _thaw(getattr(self, name)) for name in BASE_FIELDS}
        data.update(_thaw(self.payload))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        """Create Event from a flattened dictionary."""
        payload = {key: value for key, value in data.items() if key not in BASE_FIELDS}
        return cls(
            id=data.get("id", ""),
            timestamp=data.get("timestamp", 0),
            datetime=data.get("datetime", ""),
            session_id=data.get("session_id", ""),
            event_type=data.get("event_type", ""),
            page=data.get("page"),
            referrer=data.get("referrer"),
            device=data.get("device") or {},
            utms=data.get("utms") or {},
            payload=payload
        )


class EventPayload(BaseModel):
    """Fields a specific event kind merges over the enrichment base."""

    model_config = ConfigDict(extra="forbid")

    event_type: ClassVar[str] = ""

    def kind(self) -> str:
        return self.event_type

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump()


class PageViewPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PAGE_VIEW.value
    page: str


class PageExitPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PAGE_EXIT.value
    time_spent_ms: int
    time_spent_formatted: str


class CtaClickPayload(EventPayload):
    event_type: ClassVar[str] = EventType.CTA_CLICK.value
    cta_id: str
    cta_text: Optional[str] = None
    destination_url: Optional[str] = None


class ContentScrollPayload(EventPayload):
    event_type: ClassVar[str] = EventType.CONTENT_SCROLL.value
    content_type: str
    scroll_percent: float


class FormSubmitPayload(EventPayload):
    event_type: ClassVar[str] = EventType.FORM_SUBMIT.value
    form_id: str
    form_data: Dict[str, Any] = Field(default_factory=dict)


class FieldFocusPayload(EventPayload):
    event_type: ClassVar[str] = EventType.FIELD_FOCUS.value
    field_name: str


class FieldFilledPayload(EventPayload):
    event_type: ClassVar[str] = EventType.FIELD_FILLED.value
    field_name: str
    has_value: bool


class FormErrorPayload(EventPayload):
    event_type: ClassVar[str] = EventType.FORM_ERROR.value
    error_type: str
    error_details: Any = None


class FormAttemptPayload(EventPayload):
    event_type: ClassVar[str] = EventType.FORM_ATTEMPT.value
    form_id: str
    success: bool
    error_type: Optional[str] = None


class RegistrationCompletePayload(EventPayload):
    event_type: ClassVar[str] = EventType.REGISTRATION_COMPLETE.value
    step: Union[str, int]
    data: Dict[str, Any] = Field(default_factory=dict)


class BioFilledPayload(EventPayload):
    event_type: ClassVar[str] = EventType.BIO_FILLED.value
    char_count: int
    has_content: bool


class InterestTogglePayload(EventPayload):
    event_type: ClassVar[str] = EventType.INTEREST_TOGGLE.value
    interest: str
    selected: bool


class InterestsCountPayload(EventPayload):
    event_type: ClassVar[str] = EventType.INTERESTS_COUNT.value
    count: int
    interests: List[str] = Field(default_factory=list)


class PhotoUploadPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PHOTO_UPLOAD.value
    photo_index: int


class SwipePayload(EventPayload):
    event_type: ClassVar[str] = EventType.SWIPE.value
    swipe_action: str  # 'like' or 'dislike'
    profile_id: ProfileRef = None
    profile_name: Optional[str] = None


class ProfileViewPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PROFILE_VIEW.value
    profile_id: ProfileRef = None
    profile_name: Optional[str] = None
    profile_index: Optional[int] = None


class PremiumMatchActionPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PREMIUM_MATCH_ACTION.value
    action: str  # 'start_chat', 'next_profile', 'view_content'
    profile_name: Optional[str] = None


class WithdrawPopupPayload(EventPayload):
    event_type: ClassVar[str] = EventType.WITHDRAW_POPUP.value
    action: str  # 'open', 'close', 'submit_pix'
    source: Optional[str] = None


class PixKeyEnteredPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PIX_KEY_ENTERED.value
    source: Optional[str] = None


class PaywallPayload(EventPayload):
    event_type: ClassVar[str] = EventType.PAYWALL.value
    action: str  # 'view', 'dismiss', 'click_checkout'
    source: Optional[str] = None
    price: float


class CheckoutPayload(EventPayload):
    event_type: ClassVar[str] = EventType.CHECKOUT.value
    action: str  # 'init', 'complete', 'abandon'
    source: Optional[str] = None
    price: float


class GiftClaimPayload(EventPayload):
    event_type: ClassVar[str] = EventType.GIFT_CLAIM.value
    gift_id: ProfileRef = None
    gift_value: Optional[float] = None
    source: Optional[str] = None


class ChatMessagePayload(EventPayload):
    event_type: ClassVar[str] = EventType.CHAT_MESSAGE.value
    action: str  # 'sent', 'received', 'read'
    message_type: Optional[str] = None
    source: Optional[str] = None


class ConversionPayload(EventPayload):
    event_type: ClassVar[str] = EventType.CONVERSION.value
    conversion_type: str


class CustomPayload(EventPayload):
    """Escape hatch for event kinds without a typed payload."""

    event_name: str = Field(exclude=True)
    custom_data: Any = None

    def kind(self) -> str:
        return self.event_name


PAYLOAD_MODELS: Dict[str, Type[EventPayload]] = {
    model.event_type: model
    for model in (
        PageViewPayload,
        PageExitPayload,
        CtaClickPayload,
        ContentScrollPayload,
        FormSubmitPayload,
        FieldFocusPayload,
        FieldFilledPayload,
        FormErrorPayload,
        FormAttemptPayload,
        RegistrationCompletePayload,
        BioFilledPayload,
        InterestTogglePayload,
        InterestsCountPayload,
        PhotoUploadPayload,
        SwipePayload,
        ProfileViewPayload,
        PremiumMatchActionPayload,
        WithdrawPopupPayload,
        PixKeyEnteredPayload,
        PaywallPayload,
        CheckoutPayload,
        GiftClaimPayload,
        ChatMessagePayload,
        ConversionPayload,
    )
}


def build_payload(event_type: str, data: Optional[Dict[str, Any]] = None) -> EventPayload:
    """Validate ``data`` against the payload model registered for ``event_type``.

    Unknown event types become a CustomPayload carrying ``data`` as-is.

    Raises:
        pydantic.ValidationError: if ``data`` does not fit the registered model
    """
    model = PAYLOAD_MODELS.get(event_type)
    if model is None:
        return CustomPayload(event_name=event_type, custom_data=data)
    return model.model_validate(data or {})
