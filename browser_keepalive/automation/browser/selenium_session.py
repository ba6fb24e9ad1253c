"""Selenium (Chrome WebDriver) backed browser session.

WebDriver calls block, so each one runs in a worker thread and is awaited
before the next call is issued. WebDriver has no page event stream; the
session emits navigation and request events around its own calls so idle
detection sees the same kind of activity as with Playwright.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from browser_keepalive.infrastructure.constants import (
    ActivityEvents,
    DEFAULT_WAIT_UNTIL,
    ENGINE_SELENIUM,
)
from browser_keepalive.tracking import t

from .session import BrowserSession

logger = logging.getLogger('EngineLauncher')

# WebDriver page load strategy matching each Playwright ``wait_until`` value
PAGE_LOAD_STRATEGIES = {
    "domcontentloaded": "eager",
    "load": "normal",
    "commit": "none",
}


class SeleniumSession(BrowserSession):
    """Session over a Selenium ``WebDriver``."""

    engine = ENGINE_SELENIUM

    def __init__(self, driver, *, cdp_port: Optional[int] = None) -> None:
        t('automation.browser.selenium_session.SeleniumSession.__init__')
        super().__init__(driver, cdp_port=cdp_port)
        self._listeners: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

    @property
    def driver(self):
        return self.page

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass

    def emit(self, event: str, payload: Any = None) -> None:
        for callback in list(self._listeners.get(event, ())):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    asyncio.ensure_future(result)
            except Exception as exc:
                self.logger.debug("Listener for %s raised: %s", event, exc)

    async def _navigate(self, call: Callable[[], Any], target: Optional[str]) -> Any:
        self.emit(ActivityEvents.REQUEST, target)
        try:
            result = await asyncio.to_thread(call)
        except Exception:
            self.emit(ActivityEvents.REQUEST_FAILED, target)
            raise
        self.emit(ActivityEvents.FRAME_NAVIGATED, target)
        self.emit(ActivityEvents.DOM_CONTENT_LOADED, target)
        self.emit(ActivityEvents.LOAD, target)
        self.emit(ActivityEvents.REQUEST_FINISHED, target)
        return result

    async def goto(self, url: str, wait_until: str = DEFAULT_WAIT_UNTIL) -> Any:
        t('automation.browser.selenium_session.SeleniumSession.goto')
        return await self._navigate(lambda: self.driver.get(url), url)

    async def reload(self, wait_until: str = DEFAULT_WAIT_UNTIL) -> Any:
        t('automation.browser.selenium_session.SeleniumSession.reload')
        return await self._navigate(self.driver.refresh, None)

    async def current_url(self) -> str:
        t('automation.browser.selenium_session.SeleniumSession.current_url')
        return await asyncio.to_thread(lambda: self.driver.current_url)

    async def _close(self) -> None:
        t('automation.browser.selenium_session.SeleniumSession._close')
        self._listeners.clear()
        await asyncio.to_thread(self.driver.quit)


def build_chrome_options(
    webdriver,
    *,
    headless: bool = False,
    args=None,
    user_data_dir: Optional[str] = None,
    wait_until: str = DEFAULT_WAIT_UNTIL,
):
    """Assemble ``ChromeOptions`` for the keepalive browser."""
    t('automation.browser.selenium_session.build_chrome_options')
    options = webdriver.ChromeOptions()
    if headless:
        options.add_argument("--headless=new")
    for arg in args or []:
        options.add_argument(arg)
    if user_data_dir:
        options.add_argument(f"--user-data-dir={user_data_dir}")
    options.add_argument("--no-first-run")
    options.add_argument("--no-default-browser-check")
    options.page_load_strategy = PAGE_LOAD_STRATEGIES.get(wait_until, "normal")
    return options


async def launch_selenium(
    webdriver,
    *,
    headless: bool = False,
    args=None,
    user_data_dir: Optional[str] = None,
    cdp_port: Optional[int] = None,
) -> SeleniumSession:
    """Start Chrome through ``selenium.webdriver`` and wrap it in a session."""
    t('automation.browser.selenium_session.launch_selenium')
    options = build_chrome_options(
        webdriver,
        headless=headless,
        args=args,
        user_data_dir=user_data_dir,
    )
    logger.info("Launching Chrome via Selenium WebDriver...")
    driver = await asyncio.to_thread(webdriver.Chrome, options=options)
    return SeleniumSession(driver, cdp_port=cdp_port)
