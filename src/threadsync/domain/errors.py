"""Domain-specific exception classes for the thread synchronization layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from threadsync.domain.types import CategoryStatus, SyncCategory

if TYPE_CHECKING:
    from threadsync.threads.models import ErrorState


class ThreadSyncError(Exception):
    """Base class for all domain errors in threadsync."""


class ClassifiedError(ThreadSyncError):
    """Raised when a remote operation finally fails with a classified error.

    Attributes:
        error_state: The classified failure, ready to be stored in state.
    """

    def __init__(self, error_state: ErrorState) -> None:
        self.error_state = error_state
        super().__init__(f"[{error_state.kind}] {error_state.message}")


class InvalidTransitionError(ThreadSyncError):
    """Raised when a category status transition is not allowed.

    Attributes:
        category: The operation category whose machine rejected the event.
        current_status: The status the category was in.
        event: The event that was rejected.
    """

    def __init__(self, category: SyncCategory, current_status: CategoryStatus, event: str) -> None:
        self.category = category
        self.current_status = current_status
        self.event = event
        super().__init__(
            f"Cannot apply event '{event}' to category '{category}' in status '{current_status}'"
        )
