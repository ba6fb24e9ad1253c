"""Playwright (async API) backed browser session."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from browser_keepalive.infrastructure.constants import DEFAULT_WAIT_UNTIL, ENGINE_PLAYWRIGHT
from browser_keepalive.infrastructure.errors import LaunchError
from browser_keepalive.tracking import t

from .session import BrowserSession

logger = logging.getLogger('EngineLauncher')


class PlaywrightSession(BrowserSession):
    """Session over a Playwright ``Page``; page events are forwarded as-is."""

    engine = ENGINE_PLAYWRIGHT

    def __init__(
        self,
        page,
        *,
        browser=None,
        context=None,
        playwright=None,
        cdp_port: Optional[int] = None,
    ) -> None:
        t('automation.browser.playwright_session.PlaywrightSession.__init__')
        super().__init__(page, cdp_port=cdp_port)
        self.browser = browser
        self.context = context
        self.playwright = playwright

    async def goto(self, url: str, wait_until: str = DEFAULT_WAIT_UNTIL) -> Any:
        t('automation.browser.playwright_session.PlaywrightSession.goto')
        return await self.page.goto(url, wait_until=wait_until)

    async def reload(self, wait_until: str = DEFAULT_WAIT_UNTIL) -> Any:
        t('automation.browser.playwright_session.PlaywrightSession.reload')
        return await self.page.reload(wait_until=wait_until)

    async def current_url(self) -> str:
        t('automation.browser.playwright_session.PlaywrightSession.current_url')
        return self.page.url

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self.page.on(event, callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        self.page.remove_listener(event, callback)

    async def _close(self) -> None:
        t('automation.browser.playwright_session.PlaywrightSession._close')
        try:
            if self.browser is not None:
                await self.browser.close()
            elif self.context is not None:
                await self.context.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()


async def launch_playwright(
    module,
    *,
    headless: bool = False,
    args=None,
    user_data_dir: Optional[str] = None,
    cdp_port: Optional[int] = None,
) -> PlaywrightSession:
    """Start Playwright, launch Chromium and open a single page.

    ``module`` is the imported ``playwright.async_api`` module. A persistent
    context is used when ``user_data_dir`` is set so cookies survive restarts.
    """
    t('automation.browser.playwright_session.launch_playwright')
    async_playwright = getattr(module, "async_playwright", None)
    if async_playwright is None:
        raise LaunchError("'playwright' was imported but `async_playwright` export was not found.")

    launch_args = list(args or [])
    playwright = await async_playwright().start()
    try:
        chromium = playwright.chromium
        if user_data_dir:
            logger.info("Launching Chromium with persistent profile: %s", user_data_dir)
            context = await chromium.launch_persistent_context(
                user_data_dir,
                headless=headless,
                args=launch_args,
            )
            page = context.pages[0] if context.pages else await context.new_page()
            browser = None
        else:
            logger.info("Launching Chromium browser...")
            browser = await chromium.launch(headless=headless, args=launch_args)
            context = await browser.new_context()
            page = await context.new_page()
    except Exception:
        await playwright.stop()
        raise

    return PlaywrightSession(
        page,
        browser=browser,
        context=context,
        playwright=playwright,
        cdp_port=cdp_port,
    )
