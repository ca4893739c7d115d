"""CategoryStateMachine class with trigger, history, and valid_events."""

from __future__ import annotations

from threadsync.domain.errors import InvalidTransitionError
from threadsync.domain.types import CategoryStatus, SyncCategory
from threadsync.sync.transitions import TRANSITIONS


class CategoryStateMachine:
    """Finite state machine governing one operation category.

    Tracks the current status of a category (thread list, thread detail,
    email send, or reply send), validates transitions against the
    transition map, and records the history of all status changes.

    Usage::

        sm = CategoryStateMachine(SyncCategory.LIST)
        sm.trigger("start")     # -> LOADING
        sm.trigger("fail")      # -> ERROR_SHOWN
        sm.trigger("start")     # -> LOADING (retry)
        sm.trigger("succeed")   # -> IDLE
    """

    def __init__(
        self,
        category: SyncCategory,
        initial_status: CategoryStatus = CategoryStatus.IDLE,
    ) -> None:
        self._category = category
        self._status: CategoryStatus = initial_status
        self._history: list[tuple[CategoryStatus, str, CategoryStatus]] = []

    @property
    def category(self) -> SyncCategory:
        """Return the category this machine governs."""
        return self._category

    @property
    def status(self) -> CategoryStatus:
        """Return the current status."""
        return self._status

    @property
    def history(self) -> list[tuple[CategoryStatus, str, CategoryStatus]]:
        """Return a copy of the transition history.

        Each entry is a ``(from_status, event, to_status)`` tuple recorded in
        chronological order.
        """
        return list(self._history)

    def can_trigger(self, event: str) -> bool:
        """Return True if *event* is valid from the current status."""
        return (self._status, event) in TRANSITIONS

    def trigger(self, event: str) -> CategoryStatus:
        """Apply an event to the current status and transition.

        Args:
            event: The event string (e.g. ``"start"``).

        Returns:
            The new status after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed from
                the current status.
        """
        key = (self._status, event)
        if key not in TRANSITIONS:
            raise InvalidTransitionError(self._category, self._status, event)

        old_status = self._status
        new_status = TRANSITIONS[key]
        self._history.append((old_status, event, new_status))
        self._status = new_status
        return new_status

    def get_valid_events(self) -> list[str]:
        """Return a sorted list of events valid from the current status."""
        return sorted(event for status, event in TRANSITIONS if status == self._status)
