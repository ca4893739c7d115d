"""Tests for domain exception classes."""

import pytest

from threadsync.domain.errors import ClassifiedError, InvalidTransitionError, ThreadSyncError
from threadsync.domain.types import CategoryStatus, ErrorKind, SyncCategory
from threadsync.threads.models import ErrorState


class TestClassifiedError:
    def test_carries_error_state(self):
        state = ErrorState.for_kind(ErrorKind.SERVER, "Server error.")
        err = ClassifiedError(state)

        assert err.error_state is state
        assert str(err) == "[server] Server error."

    def test_is_domain_error(self):
        with pytest.raises(ThreadSyncError):
            raise ClassifiedError(ErrorState.validation("Subject is required"))


class TestInvalidTransitionError:
    def test_message_names_category_status_and_event(self):
        err = InvalidTransitionError(SyncCategory.DETAIL, CategoryStatus.IDLE, "succeed")

        assert err.category == SyncCategory.DETAIL
        assert err.current_status == CategoryStatus.IDLE
        assert err.event == "succeed"
        assert "succeed" in str(err)
        assert "detail" in str(err)
        assert "idle" in str(err)
