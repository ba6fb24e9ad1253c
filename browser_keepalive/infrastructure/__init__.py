"""Infrastructure helpers."""

from .errors import (
    ConfigurationError,
    EngineImportError,
    InstallError,
    KeepaliveError,
    LaunchError,
)
from .settings import KeepaliveConfig, get_settings, load_settings

__all__ = [
    "ConfigurationError",
    "EngineImportError",
    "InstallError",
    "KeepaliveConfig",
    "KeepaliveError",
    "LaunchError",
    "get_settings",
    "load_settings",
]
