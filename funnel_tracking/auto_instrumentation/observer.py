"""
Auto-Instrumentation Observer

Infers tracked actions from generic clicks and DOM additions without any
markup changes beyond the optional ``data-track-cta`` attribute. Explicit
markers take precedence; text heuristics cover everything else.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from .click_rules import (
    CTA_MARKER_ATTRIBUTE,
    DISABLED_CLICK_DETAILS,
    ButtonClick,
    build_button_rules,
    is_blocked_continue,
    matching_rules,
    slugify_cta,
)
from .dom import ClickEvent, Document, MutationRecord
from .error_detector import detect_error

if TYPE_CHECKING:
    from ..tracking_api import FunnelTracker

logger = logging.getLogger(__name__)


class AutoInstrumentationObserver:
    """Click interceptor and mutation-based error detector."""

    def __init__(self, tracker: "FunnelTracker", language: str = "pt"):
        self.tracker = tracker
        self.language = language
        self.rules = build_button_rules(language)
        self._document: Optional[Document] = None

    @property
    def attached(self) -> bool:
        return self._document is not None

    def attach(self, document: Document) -> bool:
        """Start observing ``document``. Only the first call has any effect."""
        if self._document is not None:
            logger.warning("Auto-instrumentation already attached, ignoring")
            return False
        document.add_click_listener(self.handle_click)
        document.observe_mutations(self.handle_mutations)
        self._document = document
        logger.info("Auto-instrumentation attached")
        return True

    def handle_click(self, event: ClickEvent) -> None:
        try:
            self._classify_click(event)
        except Exception as e:
            logger.error(f"Click instrumentation failed: {e}")

    def _classify_click(self, event: ClickEvent) -> None:
        target = event.target

        marked = target.closest_with_attribute(CTA_MARKER_ATTRIBUTE)
        if marked is not None:
            self.tracker.track_cta(
                marked.get_attribute(CTA_MARKER_ATTRIBUTE),
                marked.text_content.strip(),
                marked.get_attribute("href")
            )
        else:
            button = target.closest_tag("button")
            if button is not None:
                click = ButtonClick.from_button(button)
                for rule in matching_rules(self.rules, click):
                    logger.debug(f"Click rule matched: {rule.name}")
                    rule.fire(self.tracker)

                link = target.closest_tag("a")
                if link is not None:
                    cta_text = button.text_content.strip()
                    href = link.get_attribute("href")
                    if cta_text and href:
                        self.tracker.track_cta(slugify_cta(cta_text), cta_text, href)

        if is_blocked_continue(target, self.language):
            self.tracker.track_form_error("required_field", DISABLED_CLICK_DETAILS)

    def handle_mutations(self, records: List[MutationRecord]) -> None:
        for record in records:
            for node in record.added_nodes:
                if not node.is_element:
                    continue
                try:
                    detected = detect_error(node.text_content, self.language)
                except Exception as e:
                    logger.error(f"Error detection failed: {e}")
                    continue
                if detected is not None:
                    error_type, details = detected
                    self.tracker.track_form_error(error_type, details)
