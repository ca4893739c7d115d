"""The orchestrator's single source of truth for one mounted lead view."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from threadsync.threads.models import ErrorState, Thread, ThreadDetail


class SyncState(BaseModel):
    """Immutable snapshot of the thread view.

    Covers the thread list, the selected thread's detail, the compose and
    reply panels, and in-flight sends.  The orchestrator replaces the
    snapshot on every change; presenters only ever read it.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    # Thread list
    threads: tuple[Thread, ...] = ()
    is_loading_threads: bool = False
    threads_error: ErrorState | None = None

    # Thread detail
    selected_thread_id: str | None = None
    selected_thread_details: ThreadDetail | None = None
    is_loading_thread_detail: bool = False
    thread_detail_error: ErrorState | None = None

    # Panels
    is_compose_open: bool = False
    is_reply_open: bool = False

    # Sends
    is_sending_email: bool = False
    is_sending_reply: bool = False
    send_error: ErrorState | None = None

    last_refresh: datetime | None = None

    @property
    def active_error(self) -> ErrorState | None:
        """Return the first populated error slot: list, then detail, then send."""
        return self.threads_error or self.thread_detail_error or self.send_error

    @property
    def can_retry(self) -> bool:
        """True when ``retry_last_action`` would replay a retryable load."""
        if self.threads_error is not None:
            return self.threads_error.retryable
        if self.thread_detail_error is not None and self.selected_thread_id is not None:
            return self.thread_detail_error.retryable
        return False
