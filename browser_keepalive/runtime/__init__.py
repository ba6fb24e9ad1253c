"""Runtime orchestration for browser-keepalive."""

from .application import KeepaliveApplication

__all__ = ["KeepaliveApplication"]
