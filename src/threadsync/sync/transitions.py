"""Transition map defining all valid (status, event) -> status mappings."""

from enum import StrEnum

from threadsync.domain.types import CategoryStatus


class CategoryEvent(StrEnum):
    """Events that move an operation category between statuses."""

    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"
    ABANDON = "abandon"
    DISMISS = "dismiss"


# All valid (current_status, event_string) -> next_status mappings.
# Any pair not in this dict is an invalid transition; in particular
# LOADING never re-enters LOADING without resolving first.
TRANSITIONS: dict[tuple[CategoryStatus, str], CategoryStatus] = {
    # From IDLE
    (CategoryStatus.IDLE, CategoryEvent.START): CategoryStatus.LOADING,
    # From LOADING
    (CategoryStatus.LOADING, CategoryEvent.SUCCEED): CategoryStatus.IDLE,
    (CategoryStatus.LOADING, CategoryEvent.FAIL): CategoryStatus.ERROR_SHOWN,
    (CategoryStatus.LOADING, CategoryEvent.ABANDON): CategoryStatus.IDLE,
    # From ERROR_SHOWN
    (CategoryStatus.ERROR_SHOWN, CategoryEvent.START): CategoryStatus.LOADING,
    (CategoryStatus.ERROR_SHOWN, CategoryEvent.DISMISS): CategoryStatus.IDLE,
}
