"""Launch recovery: failure classification, installation and retry."""

from .classifier import classify_launch_error
from .installer import EngineInstaller
from .service import LaunchRecoveryService
from .types import LaunchFailure, RecoveryAttempt

__all__ = [
    "EngineInstaller",
    "LaunchFailure",
    "LaunchRecoveryService",
    "RecoveryAttempt",
    "classify_launch_error",
]
