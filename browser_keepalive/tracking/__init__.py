"""Function call tracking."""

from .runtime import get_counts, reset_counts, t

__all__ = ["t", "get_counts", "reset_counts"]
