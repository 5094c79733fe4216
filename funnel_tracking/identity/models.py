"""
Data Models for Identity

Device and enrichment snapshots attached to every event.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DeviceInfo:
    """Coarse browser/OS/viewport snapshot."""

    browser: str
    os: str
    screen: str
    user_agent: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "browser": self.browser,
            "os": self.os,
            "screen": self.screen,
            "user_agent": self.user_agent
        }


@dataclass(frozen=True)
class Enrichment:
    """Context fields resolved once per event by the identity provider."""

    session_id: str
    page: str
    referrer: Optional[str]
    device: DeviceInfo
    utms: Dict[str, str] = field(default_factory=dict)
