"""Engine-neutral browser session interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from browser_keepalive.infrastructure.constants import DEFAULT_WAIT_UNTIL
from browser_keepalive.tracking import t


class BrowserSession(ABC):
    """A live handle to one controllable browser page.

    The scheduler, idle detector and network recorder depend only on this
    interface. ``close`` runs the backend shutdown at most once.
    """

    engine: str = ""

    def __init__(self, page: Any, *, cdp_port: Optional[int] = None) -> None:
        self.page = page
        self.cdp_port = cdp_port
        self._closed = False
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def goto(self, url: str, wait_until: str = DEFAULT_WAIT_UNTIL) -> Any:
        """Navigate the page to ``url``."""

    @abstractmethod
    async def reload(self, wait_until: str = DEFAULT_WAIT_UNTIL) -> Any:
        """Reload the current page."""

    @abstractmethod
    async def current_url(self) -> str:
        """Return the page's live URL."""

    @abstractmethod
    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe ``callback`` to a page event."""

    @abstractmethod
    def off(self, event: str, callback: Callable[..., Any]) -> None:
        """Remove a previously subscribed callback."""

    @abstractmethod
    async def _close(self) -> None:
        """Release the backend browser resources."""

    async def close(self) -> None:
        t('automation.browser.session.BrowserSession.close')
        if self._closed:
            return
        self._closed = True
        await self._close()

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.__class__.__name__}(engine={self.engine!r}, cdp_port={self.cdp_port!r})"
