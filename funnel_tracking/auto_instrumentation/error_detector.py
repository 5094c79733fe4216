"""
Validation error detection from rendered text.

Toasts and inline alerts rendered by unrelated UI code are recognised by
language-specific substrings and classified by a fixed priority order.
"""

from typing import Dict, List, Optional, Tuple

ERROR_DETAILS_MAX_CHARS = 100

OTHER_ERROR = "other"

# Any of these marks the text as a validation error
ERROR_INDICATORS: Dict[str, Tuple[str, ...]] = {
    "pt": ("obrigatório", "inválido", "curta", "erro", "não confere"),
}

# (error_type, keywords) in priority order; first match wins
ERROR_CLASSIFIERS: Dict[str, List[Tuple[str, Tuple[str, ...]]]] = {
    "pt": [
        ("required_field", ("obrigatório",)),
        ("password_mismatch", ("não confere", "diferentes")),
        ("password_short", ("curta",)),
    ],
}


def is_error_text(text: str, language: str = "pt") -> bool:
    indicators = ERROR_INDICATORS.get(language, ERROR_INDICATORS["pt"])
    return any(indicator in text for indicator in indicators)


def classify_error(text: str, language: str = "pt") -> str:
    """Error kind of an already lower-cased error text."""
    for error_type, keywords in ERROR_CLASSIFIERS.get(language, ERROR_CLASSIFIERS["pt"]):
        if any(keyword in text for keyword in keywords):
            return error_type
    return OTHER_ERROR


def detect_error(rendered_text: str, language: str = "pt") -> Optional[Tuple[str, str]]:
    """Classify rendered text.

    Returns:
        ``(error_type, details)`` where details are the first characters of
        the lower-cased text, or None if the text is not an error
    """
    text = (rendered_text or "").lower()
    if not is_error_text(text, language):
        return None
    return classify_error(text, language), text[:ERROR_DETAILS_MAX_CHARS]
