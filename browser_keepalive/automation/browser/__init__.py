"""Browser engine sessions for the keepalive runtime."""

from .engines import build_chromium_args, import_engine_module, launch_engine, with_cause
from .network_recorder import NetworkRecorder
from .playwright_session import PlaywrightSession
from .selenium_session import SeleniumSession
from .session import BrowserSession

__all__ = [
    "BrowserSession",
    "NetworkRecorder",
    "PlaywrightSession",
    "SeleniumSession",
    "build_chromium_args",
    "import_engine_module",
    "launch_engine",
    "with_cause",
]
