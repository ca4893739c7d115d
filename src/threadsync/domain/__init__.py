"""Domain layer: enumerations and exceptions."""

from threadsync.domain.errors import ClassifiedError, InvalidTransitionError, ThreadSyncError
from threadsync.domain.types import RETRYABLE_KINDS, CategoryStatus, ErrorKind, SyncCategory

__all__ = [
    "RETRYABLE_KINDS",
    "CategoryStatus",
    "ClassifiedError",
    "ErrorKind",
    "InvalidTransitionError",
    "SyncCategory",
    "ThreadSyncError",
]
