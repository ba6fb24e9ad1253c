"""Exception types shared across the keepalive runtime."""

from __future__ import annotations


class KeepaliveError(Exception):
    """Base class for errors raised by browser-keepalive."""


class ConfigurationError(KeepaliveError, ValueError):
    """Invalid user supplied configuration (bad URL, interval, engine, port)."""


class LaunchError(KeepaliveError):
    """The browser engine could not be launched."""


class EngineImportError(LaunchError):
    """The automation library for an engine could not be imported."""

    def __init__(self, message: str, engine: str) -> None:
        super().__init__(message)
        self.engine = engine


class InstallError(LaunchError):
    """Installing a missing engine or browser binary failed or was declined."""
