"""
Constants Module - Centralized configuration values
===================================================

PURPOSE: Single source of truth for constants used across the keepalive runtime
SCOPE: Engine names, URL markers, timing defaults, CDP and recorder settings
"""

from pathlib import Path

# Engines
ENGINE_PLAYWRIGHT = "playwright"
ENGINE_SELENIUM = "selenium"
SUPPORTED_ENGINES = (ENGINE_PLAYWRIGHT, ENGINE_SELENIUM)
DEFAULT_ENGINE = ENGINE_PLAYWRIGHT

# Import name and distribution name for each engine
ENGINE_MODULES = {
    ENGINE_PLAYWRIGHT: "playwright",
    ENGINE_SELENIUM: "selenium",
}
ENGINE_DISTRIBUTIONS = {
    ENGINE_PLAYWRIGHT: "playwright",
    ENGINE_SELENIUM: "selenium",
}

# URL handling
CACHE_BUST_PARAM = "_cb"
BLANK_PAGE_URL = "about:blank"
CACHE_BUST_RANDOM_CHARS = 4

# Navigation
DEFAULT_WAIT_UNTIL = "domcontentloaded"

# Refresh timing
DEFAULT_INTERVAL_SECONDS = 60.0
IDLE_POLL_CAP_SECONDS = 5.0

# Chrome DevTools Protocol
CDP_HOST = "127.0.0.1"
CDP_VERSION_PATH = "/json/version"
CDP_DISCOVERY_TIMEOUT_SECONDS = 10.0
CDP_POLL_INTERVAL_SECONDS = 0.25
MIN_PORT = 1
MAX_PORT = 65535

# Browser profile
DEFAULT_USER_DATA_DIR = str(Path.home() / ".browser-keepalive" / "chrome")

# Network recorder
DEFAULT_RECORD_MAX_BYTES = 1_000_000
TEXTUAL_CONTENT_MARKERS = ("json", "text", "javascript", "xml", "html", "form")


class ActivityEvents:
    """Page events that count as session activity."""

    DOM_CONTENT_LOADED = "domcontentloaded"
    LOAD = "load"
    FRAME_NAVIGATED = "framenavigated"
    REQUEST = "request"
    REQUEST_FINISHED = "requestfinished"
    REQUEST_FAILED = "requestfailed"
    RESPONSE = "response"

    ALL = (
        DOM_CONTENT_LOADED,
        LOAD,
        FRAME_NAVIGATED,
        REQUEST,
        REQUEST_FINISHED,
        REQUEST_FAILED,
        RESPONSE,
    )
