"""Shared launch recovery types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class LaunchFailure(Enum):
    """Classification of a failed engine launch."""

    UNKNOWN = "unknown-error"
    MISSING_PACKAGE = "missing-package"
    MISSING_BROWSER = "missing-browser-binary"

    @property
    def recoverable(self) -> bool:
        return self is not LaunchFailure.UNKNOWN


@dataclass
class RecoveryAttempt:
    """Track details about a single recovery attempt."""

    engine: str
    failure: LaunchFailure
    timestamp: datetime
    success: bool = False
    error_message: Optional[str] = None
    duration_seconds: float = 0.0
