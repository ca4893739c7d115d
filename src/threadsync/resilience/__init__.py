"""Resilience infrastructure for threads API loads."""

from threadsync.resilience.retry import with_retry

__all__ = [
    "with_retry",
]
