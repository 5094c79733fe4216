"""
Auto-Instrumentation Subsystem

Heuristic tracking of clicks and rendered validation errors.
"""

from .click_rules import CTA_MARKER_ATTRIBUTE, ButtonClick, ClickRule, build_button_rules
from .dom import ClickEvent, Document, DomNode, MutationRecord
from .error_detector import classify_error, detect_error
from .observer import AutoInstrumentationObserver

__all__ = [
    'AutoInstrumentationObserver',
    'CTA_MARKER_ATTRIBUTE',
    'ButtonClick',
    'ClickRule',
    'build_button_rules',
    'ClickEvent',
    'Document',
    'DomNode',
    'MutationRecord',
    'classify_error',
    'detect_error',
]
