"""
Browser Context

Explicit stand-in for the page's execution context: one instance per browser
tab. Holds the navigation state the enrichment reads from and the two storage
scopes (tab-scoped session storage, profile-scoped local storage).
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from .storage import KeyValueStorage, MemoryStorage


@dataclass
class BrowserContext:
    """Navigation and storage state of a single browser tab."""

    local_storage: KeyValueStorage = field(default_factory=MemoryStorage)
    session_storage: KeyValueStorage = field(default_factory=MemoryStorage)
    url: str = "/"
    referrer: Optional[str] = None
    user_agent: str = ""
    viewport_width: int = 0
    viewport_height: int = 0
    clock: Callable[[], float] = time.time

    @property
    def pathname(self) -> str:
        """Path component of the current URL."""
        return urlsplit(self.url).path or "/"

    @property
    def query_params(self) -> Dict[str, str]:
        """First value of each query parameter in the current URL."""
        parsed = parse_qs(urlsplit(self.url).query, keep_blank_values=False)
        return {key: values[0] for key, values in parsed.items() if values}

    def now_ms(self) -> int:
        """Current epoch time in milliseconds."""
        return int(self.clock() * 1000)

    def navigate(self, url: str, referrer: Optional[str] = None) -> None:
        """Move the tab to ``url``; the previous URL becomes the referrer."""
        self.referrer = referrer if referrer is not None else self.url
        self.url = url

    def reload(self) -> "BrowserContext":
        """Same tab after a reload: both storages survive."""
        return BrowserContext(
            local_storage=self.local_storage,
            session_storage=self.session_storage,
            url=self.url,
            referrer=self.referrer,
            user_agent=self.user_agent,
            viewport_width=self.viewport_width,
            viewport_height=self.viewport_height,
            clock=self.clock,
        )

    def new_tab(self, url: str = "/") -> "BrowserContext":
        """A fresh tab in the same browser profile."""
        return BrowserContext(
            local_storage=self.local_storage,
            session_storage=MemoryStorage(),
            url=url,
            referrer=None,
            user_agent=self.user_agent,
            viewport_width=self.viewport_width,
            viewport_height=self.viewport_height,
            clock=self.clock,
        )
