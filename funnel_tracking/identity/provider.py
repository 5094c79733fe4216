"""
Identity Provider

Resolves the tab-scoped session id, a device snapshot and sticky UTM
attribution from a BrowserContext.
"""

import logging
import secrets
import string
from typing import Dict, Optional

from .browser_context import BrowserContext
from .models import DeviceInfo, Enrichment

logger = logging.getLogger(__name__)

UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")

USER_AGENT_MAX_CHARS = 200

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def random_base36(length: int) -> str:
    """Random lower-case base36 string of ``length`` characters."""
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def parse_user_agent(user_agent: str) -> Dict[str, str]:
    """Parse a user agent string into coarse browser and OS names.

    Checks are ordered substring tests and the first match wins, so an
    Android agent (which also says "Linux") reports Linux.

    Args:
        user_agent: User agent string

    Returns:
        Dictionary with browser and os
    """
    browser = "Unknown"
    os_info = "Unknown"

    if not user_agent:
        return {"browser": browser, "os": os_info}

    # Browser detection
    if "Firefox" in user_agent:
        browser = "Firefox"
    elif "Chrome" in user_agent and "Edg" not in user_agent:
        browser = "Chrome"
    elif "Safari" in user_agent and "Chrome" not in user_agent:
        browser = "Safari"
    elif "Edg" in user_agent:
        browser = "Edge"
    elif "Opera" in user_agent or "OPR" in user_agent:
        browser = "Opera"

    # OS detection
    if "Windows" in user_agent:
        os_info = "Windows"
    elif "Mac" in user_agent:
        os_info = "MacOS"
    elif "Linux" in user_agent:
        os_info = "Linux"
    elif "Android" in user_agent:
        os_info = "Android"
    elif "iPhone" in user_agent or "iPad" in user_agent:
        os_info = "iOS"

    return {"browser": browser, "os": os_info}


class IdentityProvider:
    """Session, device and attribution context for one tab."""

    def __init__(self, context: BrowserContext, session_key: str = "funnel_session_id"):
        """Initialize the identity provider.

        Args:
            context: Browser tab the provider reads from
            session_key: Session storage key holding the session id
        """
        self.context = context
        self.session_key = session_key
        # Only used when session storage refuses the write
        # Last id read or generated; used when session storage cannot be read
        self._session_id: Optional[str] = None

    def get_session_id(self) -> str:
        """Return the tab's session id, creating it on first access."""
        storage = self.context.session_storage
        try:
            session_id = storage.get_item(self.session_key)
        except Exception as e:
            logger.warning(f"Could not read session id: {e}")
            session_id = None
        if session_id:
            self._session_id = session_id
            return session_id

        if self._session_id:
            return self._session_id

        session_id = f"sess_{self.context.now_ms()}_{random_base36(9)}"
        self._session_id = session_id
        try:
            storage.set_item(self.session_key, session_id)
        except Exception as e:
            logger.warning(f"Could not persist session id, keeping it in memory: {e}")
        return session_id

    def get_device_info(self) -> DeviceInfo:
        """Snapshot of browser, OS and viewport at call time."""
        ua = self.context.user_agent or ""
        parsed = parse_user_agent(ua)
        return DeviceInfo(
            browser=parsed["browser"],
            os=parsed["os"],
            screen=f"{self.context.viewport_width}x{self.context.viewport_height}",
            user_agent=ua[:USER_AGENT_MAX_CHARS]
        )

    def get_utm_data(self) -> Dict[str, str]:
        """Sticky UTM attribution.

        The current URL wins over persisted values; anything observed is
        written back to local storage so later pages without the query
        string keep the attribution.
        """
        params = self.context.query_params
        storage = self.context.local_storage
        utms: Dict[str, str] = {}

        for key in UTM_KEYS:
            value = params.get(key)
            if not value:
                try:
                    value = storage.get_item(key)
                except Exception as e:
                    logger.warning(f"Could not read persisted {key}: {e}")
                    value = None
            if value:
                utms[key] = value
                try:
                    storage.set_item(key, value)
                except Exception as e:
                    logger.warning(f"Could not persist {key}: {e}")

        return utms

    def snapshot(self) -> Enrichment:
        """Resolve all enrichment fields for one event."""
        return Enrichment(
            session_id=self.get_session_id(),
            page=self.context.pathname,
            referrer=self.context.referrer or None,
            device=self.get_device_info(),
            utms=self.get_utm_data()
        )
