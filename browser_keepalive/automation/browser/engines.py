"""Engine launcher: import the automation library and open a session."""

from __future__ import annotations

import importlib
import logging
from typing import Any, List, Optional

from browser_keepalive.infrastructure.constants import (
    CDP_HOST,
    ENGINE_DISTRIBUTIONS,
    ENGINE_PLAYWRIGHT,
    ENGINE_SELENIUM,
)
from browser_keepalive.infrastructure.errors import ConfigurationError, EngineImportError
from browser_keepalive.infrastructure.settings import normalize_port
from browser_keepalive.tracking import t

from .playwright_session import launch_playwright
from .selenium_session import launch_selenium
from .session import BrowserSession

logger = logging.getLogger('EngineLauncher')

# Module each engine launcher imports
ENGINE_IMPORTS = {
    ENGINE_PLAYWRIGHT: "playwright.async_api",
    ENGINE_SELENIUM: "selenium.webdriver",
}


def build_chromium_args(cdp_port: Optional[int] = None) -> List[str]:
    """Chromium flags exposing the DevTools endpoint on ``cdp_port``."""
    t('automation.browser.engines.build_chromium_args')
    if not cdp_port:
        return []
    return [
        f"--remote-debugging-port={cdp_port}",
        f"--remote-debugging-address={CDP_HOST}",
    ]


def with_cause(message: str, error: Any) -> str:
    """Append the error's message as a ``Cause:`` line when there is one."""
    if isinstance(error, BaseException) and str(error):
        return f"{message}\nCause: {error}"
    return message


def import_module(name: str):
    return importlib.import_module(name)


def import_engine_module(engine: str):
    """Import the library backing ``engine`` or raise :class:`EngineImportError`."""
    t('automation.browser.engines.import_engine_module')
    module_name = ENGINE_IMPORTS[engine]
    try:
        return import_module(module_name)
    except ImportError as exc:
        dist = ENGINE_DISTRIBUTIONS[engine]
        message = (
            f"Failed to import '{engine}'. Install it in this environment "
            f"(e.g. `pip install {dist}` or `uv pip install {dist}`)."
        )
        raise EngineImportError(with_cause(message, exc), engine) from exc


async def launch_engine(
    engine: str,
    *,
    headless: bool = False,
    cdp_port: Any = None,
    user_data_dir: Optional[str] = None,
) -> BrowserSession:
    """Launch ``engine`` and return a ready :class:`BrowserSession`."""
    t('automation.browser.engines.launch_engine')
    port = normalize_port(cdp_port)
    args = build_chromium_args(port)

    if engine == ENGINE_PLAYWRIGHT:
        module = import_engine_module(engine)
        return await launch_playwright(
            module,
            headless=headless,
            args=args,
            user_data_dir=user_data_dir,
            cdp_port=port,
        )

    if engine == ENGINE_SELENIUM:
        module = import_engine_module(engine)
        return await launch_selenium(
            module,
            headless=headless,
            args=args,
            user_data_dir=user_data_dir,
            cdp_port=port,
        )

    raise ConfigurationError(f"Unknown engine: {engine}")

