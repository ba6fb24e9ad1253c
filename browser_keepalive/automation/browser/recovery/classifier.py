"""Text based classification of engine launch failures.

The automation libraries report a missing browser only through free-text
messages, so classification matches known substrings. The phrase lists
follow current library wording and may stop matching after an upgrade.
"""

from __future__ import annotations

from typing import Any, Tuple

from browser_keepalive.infrastructure.constants import (
    ENGINE_MODULES,
    ENGINE_PLAYWRIGHT,
    ENGINE_SELENIUM,
)
from browser_keepalive.tracking import t

from .types import LaunchFailure

PLAYWRIGHT_MISSING_BROWSER_PHRASES: Tuple[str, ...] = (
    "executable doesn't exist",
    "executable doesnt exist",
    "playwright install",
)

SELENIUM_MISSING_BROWSER_PHRASES: Tuple[str, ...] = (
    "cannot find chrome binary",
    "could not find chrome",
    "no chrome binary",
    "unable to obtain driver",
    "unable to locate or obtain driver",
)

CHANNEL_NOT_FOUND_PHRASES: Tuple[str, ...] = (
    "distribution 'chrome' is not found",
    'distribution "chrome" is not found',
    "channel not found",
    "unsupported chrome channel",
)


def error_message(error: Any) -> str:
    if isinstance(error, BaseException):
        return str(error)
    return "" if error is None else str(error)


def is_missing_engine_error(error: Any, engine: str) -> bool:
    """True when the engine's automation library could not be imported."""
    t('automation.browser.recovery.classifier.is_missing_engine_error')
    module = ENGINE_MODULES.get(engine, engine)
    message = error_message(error)
    if f"Failed to import '{engine}'" in message:
        return True
    if f"No module named '{module}'" in message or f"No module named '{module}." in message:
        return True
    return False


def _mentions_channel_not_found(lowered: str) -> bool:
    return any(phrase in lowered for phrase in CHANNEL_NOT_FOUND_PHRASES)


def is_playwright_missing_browser_error(error: Any) -> bool:
    t('automation.browser.recovery.classifier.is_playwright_missing_browser_error')
    lowered = error_message(error).lower()
    if "playwright" not in lowered:
        return False
    return (
        any(phrase in lowered for phrase in PLAYWRIGHT_MISSING_BROWSER_PHRASES)
        or _mentions_channel_not_found(lowered)
    )


def is_selenium_missing_browser_error(error: Any) -> bool:
    t('automation.browser.recovery.classifier.is_selenium_missing_browser_error')
    lowered = error_message(error).lower()
    return (
        any(phrase in lowered for phrase in SELENIUM_MISSING_BROWSER_PHRASES)
        or _mentions_channel_not_found(lowered)
    )


def classify_launch_error(error: Any, engine: str) -> LaunchFailure:
    """Map a launch exception to a :class:`LaunchFailure`."""
    t('automation.browser.recovery.classifier.classify_launch_error')

    if is_missing_engine_error(error, engine):
        return LaunchFailure.MISSING_PACKAGE
    if engine == ENGINE_PLAYWRIGHT and is_playwright_missing_browser_error(error):
        return LaunchFailure.MISSING_BROWSER
    if engine == ENGINE_SELENIUM and is_selenium_missing_browser_error(error):
        return LaunchFailure.MISSING_BROWSER
    return LaunchFailure.UNKNOWN
