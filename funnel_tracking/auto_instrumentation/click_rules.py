"""
Click classification rules.

Each rule pairs a predicate over a clicked button with the tracking calls it
implies. Rules are evaluated in list order and every matching rule fires, so
one click can produce several classified events.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Tuple

from .dom import DomNode

if TYPE_CHECKING:
    from ..tracking_api import FunnelTracker

CTA_MARKER_ATTRIBUTE = "data-track-cta"

LIKE_BUTTON_CLASS = "bg-primary-500"
DISMISS_ICON_PATH = "M18 6 6 18"

# Lower-case keyword lists per UI language
BUTTON_KEYWORDS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "pt": {
        "like": ("curtir",),
        "dislike_exact": ("x",),
        "withdraw_open": ("saldo", "r$"),
        "checkout": ("liberar", "acesso vip", "assinar"),
        "withdraw_submit": ("solicitar saque",),
        "gift_claim": ("resgatar", "presente"),
        "continue": ("continuar", "próximo"),
    },
}

DISABLED_CLICK_DETAILS = "Tentativa de clique em botão desabilitado"


@dataclass(frozen=True)
class ButtonClick:
    """What the rules know about a clicked button."""

    button: DomNode
    text: str

    @classmethod
    def from_button(cls, button: DomNode) -> "ButtonClick":
        return cls(button=button, text=button.text_content.strip().lower())

    @property
    def has_icon(self) -> bool:
        return self.button.query(lambda node: node.tag == "svg") is not None

    def has_icon_path(self, fragment: str) -> bool:
        return self.button.query(
            lambda node: node.tag == "path" and fragment in (node.get_attribute("d") or "")
        ) is not None


@dataclass(frozen=True)
class ClickRule:
    name: str
    matches: Callable[[ButtonClick], bool]
    fire: Callable[["FunnelTracker"], None]


def get_keywords(language: str) -> Dict[str, Tuple[str, ...]]:
    """Keyword lists for ``language``, falling back to Portuguese."""
    return BUTTON_KEYWORDS.get(language, BUTTON_KEYWORDS["pt"])


def _contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def _fire_checkout(tracker: "FunnelTracker") -> None:
    tracker.track_paywall("click_checkout", "auto_detect")
    tracker.track_checkout("init", "auto_detect")


def build_button_rules(language: str = "pt") -> List[ClickRule]:
    """Ordered button rules for ``language``."""
    kw = get_keywords(language)
    return [
        ClickRule(
            name="like_swipe",
            matches=lambda click: _contains_any(click.text, kw["like"])
            or (click.has_icon and LIKE_BUTTON_CLASS in click.button.class_list),
            fire=lambda tracker: tracker.track_swipe("like", "auto", "Profile"),
        ),
        ClickRule(
            name="dislike_swipe",
            matches=lambda click: click.text in kw["dislike_exact"]
            or (click.has_icon and click.has_icon_path(DISMISS_ICON_PATH)),
            fire=lambda tracker: tracker.track_swipe("dislike", "auto", "Profile"),
        ),
        ClickRule(
            name="withdraw_popup_open",
            matches=lambda click: _contains_any(click.text, kw["withdraw_open"]),
            fire=lambda tracker: tracker.track_withdraw_popup("open", "header"),
        ),
        ClickRule(
            name="checkout_click",
            matches=lambda click: _contains_any(click.text, kw["checkout"]),
            fire=_fire_checkout,
        ),
        ClickRule(
            name="withdraw_submit",
            matches=lambda click: _contains_any(click.text, kw["withdraw_submit"]),
            fire=lambda tracker: tracker.track_withdraw_popup("submit_pix", "modal"),
        ),
        ClickRule(
            name="gift_claim",
            matches=lambda click: _contains_any(click.text, kw["gift_claim"]),
            fire=lambda tracker: tracker.track_gift_claim("auto", 50, "chat"),
        ),
    ]


def matching_rules(rules: List[ClickRule], click: ButtonClick) -> List[ClickRule]:
    """All rules matching ``click``, in rule order."""
    return [rule for rule in rules if rule.matches(click)]


def is_blocked_continue(target: DomNode, language: str = "pt") -> bool:
    """A disabled continue/next button, i.e. a step the user cannot leave yet."""
    if target.tag != "button" or not target.disabled:
        return False
    text = target.text_content.strip().lower()
    return _contains_any(text, get_keywords(language)["continue"])


def slugify_cta(text: str) -> str:
    """CTA id synthesized from button text."""
    return "auto_" + re.sub(r"\s+", "_", text.lower())
