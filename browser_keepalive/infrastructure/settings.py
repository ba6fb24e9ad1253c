"""Centralized keepalive settings.

Validation helpers turn raw CLI/environment strings into typed values, and
:class:`KeepaliveConfig` is the immutable snapshot handed to the runtime.
Environment defaults are read once through :func:`get_settings` so command
line flags can override them.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

from browser_keepalive.tracking import t

from . import constants
from .errors import ConfigurationError


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""
    t('infrastructure.settings._to_bool')

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_interval(value: Any) -> float:
    """Parse the refresh interval in seconds; must be a finite positive number."""
    t('infrastructure.settings.parse_interval')

    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError("--interval must be a positive number of seconds") from None
    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigurationError("--interval must be a positive number of seconds")
    return seconds


def validate_engine(value: Any) -> str:
    t('infrastructure.settings.validate_engine')

    if value not in constants.SUPPORTED_ENGINES:
        choices = " or ".join(f"'{name}'" for name in constants.SUPPORTED_ENGINES)
        raise ConfigurationError(f"--engine must be {choices}")
    return value


def validate_url(value: Any) -> str:
    """Validate an absolute URL and return it in normalized form.

    Scheme and host are lower-cased and an empty HTTP path becomes ``/``,
    so ``https://Example.com`` is returned as ``https://example.com/``.
    """
    t('infrastructure.settings.validate_url')

    message = "<url> must be a valid absolute URL (e.g. https://example.com)"
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(message)

    try:
        parts = urlsplit(value.strip())
        # Accessing the port validates it.
        parts.port
    except ValueError:
        raise ConfigurationError(message) from None

    scheme = parts.scheme.lower()
    if not scheme:
        raise ConfigurationError(message)
    if scheme in {"http", "https", "ws", "wss", "ftp"}:
        if not parts.hostname:
            raise ConfigurationError(message)
        path = parts.path or "/"
        return urlunsplit((scheme, _lower_host(parts.netloc), path, parts.query, parts.fragment))
    if not (parts.netloc or parts.path):
        raise ConfigurationError(message)
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def _lower_host(netloc: str) -> str:
    userinfo, sep, hostport = netloc.rpartition("@")
    return f"{userinfo}{sep}{hostport.lower()}"


def normalize_port(value: Any) -> Optional[int]:
    """Return a CDP port in ``[1, 65535]`` or ``None`` when not configured."""
    t('infrastructure.settings.normalize_port')

    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    message = (
        f"CDP port must be an integer between {constants.MIN_PORT} and {constants.MAX_PORT}"
    )
    if isinstance(value, bool):
        raise ConfigurationError(message)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(message) from None
    if not math.isfinite(number) or not number.is_integer():
        raise ConfigurationError(message)
    port = int(number)
    if port < constants.MIN_PORT or port > constants.MAX_PORT:
        raise ConfigurationError(message)
    return port


def parse_positive_int(value: Any, label: str) -> Optional[int]:
    t('infrastructure.settings.parse_positive_int')

    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} must be a positive integer") from None
    if not number.is_integer() or number <= 0:
        raise ConfigurationError(f"{label} must be a positive integer")
    return int(number)


@dataclass(frozen=True)
class EnvironmentDefaults:
    """Defaults sourced from the environment (and an optional ``.env`` file)."""

    interval: str = str(int(constants.DEFAULT_INTERVAL_SECONDS))
    engine: str = constants.DEFAULT_ENGINE
    headless: bool = False
    user_data_dir: str = constants.DEFAULT_USER_DATA_DIR
    log_level: str = "INFO"
    log_dir: Optional[str] = None


def load_settings(env: Optional[Mapping[str, str]] = None) -> EnvironmentDefaults:
    """Load configuration from the environment and fall back to defaults."""
    t('infrastructure.settings.load_settings')

    if env is None:
        load_dotenv(override=False)
        env = os.environ

    return EnvironmentDefaults(
        interval=env.get("KEEPALIVE_INTERVAL", str(int(constants.DEFAULT_INTERVAL_SECONDS))),
        engine=env.get("KEEPALIVE_ENGINE", constants.DEFAULT_ENGINE),
        headless=_to_bool(env.get("KEEPALIVE_HEADLESS"), default=False),
        user_data_dir=env.get("KEEPALIVE_USER_DATA_DIR", constants.DEFAULT_USER_DATA_DIR),
        log_level=env.get("KEEPALIVE_LOG_LEVEL", "INFO").upper(),
        log_dir=env.get("KEEPALIVE_LOG_DIR") or None,
    )


@lru_cache(maxsize=1)
def get_settings() -> EnvironmentDefaults:
    """Return a cached :class:`EnvironmentDefaults` instance."""
    t('infrastructure.settings.get_settings')

    return load_settings()


@dataclass(frozen=True)
class KeepaliveConfig:
    """Immutable snapshot of the validated command line configuration."""

    url: str
    interval_seconds: float = constants.DEFAULT_INTERVAL_SECONDS
    cache_bust: bool = True
    always_reset: bool = False
    only_if_idle: bool = False
    engine: str = constants.DEFAULT_ENGINE
    headless: bool = False
    cdp_port: Optional[int] = None
    auto_install: bool = False
    yes: bool = False
    user_data_dir: str = ""
    record_network_path: Optional[str] = None
    record_includes: Tuple[str, ...] = field(default_factory=tuple)
    record_max_bytes: int = constants.DEFAULT_RECORD_MAX_BYTES
    record_body: bool = True
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    def describe(self) -> str:
        """One-line summary logged at startup."""
        return (
            f"engine={self.engine} interval={self.interval_seconds:g}s "
            f"cacheBust={self.cache_bust} alwaysReset={self.always_reset} "
            f"headless={self.headless} userDataDir={self.user_data_dir or '(none)'} "
            f"cdp={self.cdp_port if self.cdp_port is not None else 'off'} "
            f"onlyIfIdle={self.only_if_idle}"
        )
