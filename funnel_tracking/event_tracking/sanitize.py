"""
Removal of sensitive fields from user-supplied payloads.
"""

from typing import Any

SENSITIVE_FIELDS = frozenset({"password", "confirmPassword", "confirm_password"})


def strip_sensitive(value: Any) -> Any:
    """Return a copy of ``value`` with password-like keys removed at any depth."""
    if isinstance(value, dict):
        return {
            key: strip_sensitive(item)
            for key, item in value.items()
            if key not in SENSITIVE_FIELDS
        }
    if isinstance(value, (list, tuple)):
        return [strip_sensitive(item) for item in value]
    return value
