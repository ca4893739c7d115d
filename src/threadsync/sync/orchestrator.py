"""ThreadSyncOrchestrator: the single owner of a lead view's ``SyncState``.

Sequences thread-list loads, thread-detail loads, email sends, and reply
sends through a ``ThreadApiClient``, folds every result or classified error
into one immutable snapshot, and notifies subscribers after each change.

Every command runs on one asyncio event loop.  State updates are
synchronous read-modify-write steps that never await, so a completion can
never interleave inside another completion's update.  Each category
(list, detail, email send, reply send) is tracked by its own
``CategoryStateMachine``; categories may be in flight concurrently.

A newer list or detail request supersedes an older one in flight: each
request is tagged with a generation number (and, for detail, the thread id
it was issued for) and its result is dropped on arrival if it is no longer
current.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from threadsync.domain.errors import ClassifiedError
from threadsync.domain.types import CategoryStatus, SyncCategory
from threadsync.sync.machine import CategoryStateMachine
from threadsync.sync.state import SyncState
from threadsync.sync.transitions import CategoryEvent
from threadsync.threads.models import ComposeEmailRequest, ErrorState, ReplyRequest
from threadsync.transport.client import ThreadApiClient

logger = structlog.get_logger()

StateListener = Callable[[SyncState], None]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class ThreadSyncOrchestrator:
    """Owns the thread view state for one lead and sequences all API calls.

    Presenters read :attr:`state` (or subscribe to snapshots) and invoke the
    command coroutines; commands return ``None`` and every outcome surfaces
    through the next snapshot.

    Args:
        api: The threads API client.
        lead_id: The lead whose threads this view shows.
        clock: Returns the current time; stamps ``last_refresh``.
    """

    def __init__(
        self,
        api: ThreadApiClient,
        lead_id: str,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._api = api
        self._lead_id = lead_id
        self._clock = clock
        self._state = SyncState()
        self._listeners: list[StateListener] = []
        self._machines: dict[SyncCategory, CategoryStateMachine] = {
            category: CategoryStateMachine(category) for category in SyncCategory
        }
        self._list_generation = 0
        self._detail_generation = 0
        self._discarded = False

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        """Return the current immutable snapshot."""
        return self._state

    @property
    def api(self) -> ThreadApiClient:
        """Return the API client this view sends requests through."""
        return self._api

    @property
    def lead_id(self) -> str:
        """Return the lead this view is bound to."""
        return self._lead_id

    def status(self, category: SyncCategory) -> CategoryStatus:
        """Return the lifecycle status of one operation category."""
        return self._machines[category].status

    def history(self, category: SyncCategory) -> list[tuple[CategoryStatus, str, CategoryStatus]]:
        """Return the transition history of one operation category."""
        return self._machines[category].history

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* to receive every new snapshot.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        """Atomically replace the snapshot and notify listeners."""
        self._state = self._state.model_copy(update=changes)
        snapshot = self._state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener failed")

    def _trigger(self, category: SyncCategory, event: CategoryEvent) -> None:
        self._machines[category].trigger(event)

    def _ignored_after_unmount(self, command: str) -> bool:
        if self._discarded:
            logger.debug("command_ignored_after_unmount", command=command, lead_id=self._lead_id)
        return self._discarded

    def _resolve_lead(self, lead_id: str | None) -> str:
        """Return the lead a command targets, which must be the bound lead.

        Raises:
            ValueError: If the lead id is empty or names another lead.
        """
        lead = self._lead_id if lead_id is None else lead_id
        if not lead.strip():
            raise ValueError("lead_id must not be empty")
        if lead != self._lead_id:
            raise ValueError(f"view is bound to lead {self._lead_id!r}, got {lead!r}")
        return lead

    def _settle(self, category: SyncCategory, event: CategoryEvent) -> None:
        """Trigger *event* only if the category's machine accepts it."""
        machine = self._machines[category]
        if machine.can_trigger(event):
            machine.trigger(event)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Populate a freshly created view with its initial thread list."""
        logger.info("thread_view_mounted", lead_id=self._lead_id)
        await self.load_threads()

    def unmount(self) -> None:
        """Discard the view.

        In-flight results arriving later are dropped and every later command
        is a no-op.  The API client is left open; its owner closes it.
        """
        self._discarded = True
        self._listeners.clear()
        self._list_generation += 1
        self._detail_generation += 1
        logger.info("thread_view_unmounted", lead_id=self._lead_id)

    # ------------------------------------------------------------------
    # Thread list
    # ------------------------------------------------------------------

    async def load_threads(self, lead_id: str | None = None) -> None:
        """Load (or reload) the thread list for the lead.

        Args:
            lead_id: Lead to load; defaults to the bound lead.

        Raises:
            ValueError: If the lead id is empty or not the bound lead.
        """
        lead = self._resolve_lead(lead_id)
        if self._ignored_after_unmount("load_threads"):
            return

        self._settle(SyncCategory.LIST, CategoryEvent.ABANDON)
        self._trigger(SyncCategory.LIST, CategoryEvent.START)
        self._list_generation += 1
        generation = self._list_generation
        self._update(is_loading_threads=True, threads_error=None)

        try:
            threads = await self._api.list_threads(lead)
        except ClassifiedError as exc:
            if generation != self._list_generation:
                logger.debug("threads_result_discarded", lead_id=lead, outcome="error")
                return
            self._trigger(SyncCategory.LIST, CategoryEvent.FAIL)
            self._update(is_loading_threads=False, threads_error=exc.error_state)
            logger.warning("threads_load_failed", lead_id=lead, kind=exc.error_state.kind)
            return

        if generation != self._list_generation:
            logger.debug("threads_result_discarded", lead_id=lead, outcome="success")
            return
        self._trigger(SyncCategory.LIST, CategoryEvent.SUCCEED)
        self._update(
            threads=tuple(threads),
            is_loading_threads=False,
            last_refresh=self._clock(),
        )
        logger.info("threads_loaded", lead_id=lead, count=len(threads))

    # ------------------------------------------------------------------
    # Thread detail
    # ------------------------------------------------------------------

    def _is_current_detail(self, generation: int, thread_id: str) -> bool:
        return (
            generation == self._detail_generation
            and self._state.selected_thread_id == thread_id
        )

    async def select_thread(self, thread_id: str) -> None:
        """Select a thread and load its detail, dropping any stale detail."""
        if self._ignored_after_unmount("select_thread"):
            return
        self._settle(SyncCategory.DETAIL, CategoryEvent.ABANDON)
        self._trigger(SyncCategory.DETAIL, CategoryEvent.START)
        self._detail_generation += 1
        generation = self._detail_generation
        self._update(
            selected_thread_id=thread_id,
            selected_thread_details=None,
            is_loading_thread_detail=True,
            thread_detail_error=None,
        )

        try:
            detail = await self._api.get_thread_detail(thread_id)
        except ClassifiedError as exc:
            if not self._is_current_detail(generation, thread_id):
                logger.debug("thread_detail_discarded", thread_id=thread_id, outcome="error")
                return
            self._trigger(SyncCategory.DETAIL, CategoryEvent.FAIL)
            self._update(is_loading_thread_detail=False, thread_detail_error=exc.error_state)
            logger.warning(
                "thread_detail_load_failed", thread_id=thread_id, kind=exc.error_state.kind
            )
            return

        if not self._is_current_detail(generation, thread_id):
            logger.debug("thread_detail_discarded", thread_id=thread_id, outcome="success")
            return
        self._trigger(SyncCategory.DETAIL, CategoryEvent.SUCCEED)
        self._update(selected_thread_details=detail, is_loading_thread_detail=False)
        logger.info("thread_detail_loaded", thread_id=thread_id, messages=len(detail.messages))

    def go_back(self) -> None:
        """Return to the thread list, closing the reply panel.

        Any in-flight detail request is abandoned and its result dropped.
        The thread list is left untouched.
        """
        if self._ignored_after_unmount("go_back"):
            return
        self._settle(SyncCategory.DETAIL, CategoryEvent.ABANDON)
        self._settle(SyncCategory.DETAIL, CategoryEvent.DISMISS)
        self._detail_generation += 1
        self._update(
            selected_thread_id=None,
            selected_thread_details=None,
            is_loading_thread_detail=False,
            thread_detail_error=None,
            is_reply_open=False,
        )

    # ------------------------------------------------------------------
    # Panels
    # ------------------------------------------------------------------

    def _dismiss_send_errors(self) -> None:
        """Move send categories showing an error back to idle.

        The send error slot is shared by email and reply sends, so clearing
        it dismisses both.
        """
        self._settle(SyncCategory.SEND_EMAIL, CategoryEvent.DISMISS)
        self._settle(SyncCategory.SEND_REPLY, CategoryEvent.DISMISS)

    def open_compose(self) -> None:
        if self._ignored_after_unmount("open_compose"):
            return
        self._update(is_compose_open=True)

    def close_compose(self) -> None:
        if self._ignored_after_unmount("close_compose"):
            return
        self._dismiss_send_errors()
        self._update(is_compose_open=False, send_error=None)

    def open_reply(self) -> None:
        if self._ignored_after_unmount("open_reply"):
            return
        self._update(is_reply_open=True)

    def close_reply(self) -> None:
        if self._ignored_after_unmount("close_reply"):
            return
        self._dismiss_send_errors()
        self._update(is_reply_open=False, send_error=None)

    # ------------------------------------------------------------------
    # Sends
    # ------------------------------------------------------------------

    def _reject_locally(self, category: SyncCategory, message: str) -> None:
        """Record a local validation failure without touching the network."""
        self._dismiss_send_errors()
        self._trigger(category, CategoryEvent.START)
        self._trigger(category, CategoryEvent.FAIL)
        self._update(send_error=ErrorState.validation(message))
        logger.info("send_rejected_locally", category=category, reason=message)

    async def send_email(self, request: ComposeEmailRequest, lead_id: str | None = None) -> None:
        """Send a new email; on success close compose and reload the list.

        Blank fields fail validation before any network call.  A failed send
        keeps the compose modal open so the user can resubmit.
        """
        lead = self._resolve_lead(lead_id)
        if self._ignored_after_unmount("send_email"):
            return

        if self.status(SyncCategory.SEND_EMAIL) is CategoryStatus.LOADING:
            logger.warning("send_email_ignored_in_flight", lead_id=lead)
            return

        message = request.validation_message()
        if message is not None:
            self._reject_locally(SyncCategory.SEND_EMAIL, message)
            return

        self._dismiss_send_errors()
        self._trigger(SyncCategory.SEND_EMAIL, CategoryEvent.START)
        self._update(is_sending_email=True, send_error=None)

        try:
            thread = await self._api.send_email(lead, request)
        except ClassifiedError as exc:
            if self._discarded:
                return
            self._trigger(SyncCategory.SEND_EMAIL, CategoryEvent.FAIL)
            self._update(is_sending_email=False, send_error=exc.error_state)
            logger.warning("send_email_failed", lead_id=lead, kind=exc.error_state.kind)
            return

        if self._discarded:
            return
        self._trigger(SyncCategory.SEND_EMAIL, CategoryEvent.SUCCEED)
        self._update(is_sending_email=False, is_compose_open=False)
        logger.info("email_sent", lead_id=lead, thread_id=thread.id)
        await self.load_threads(lead)

    async def send_reply(self, request: ReplyRequest) -> None:
        """Reply within the selected thread; on success refresh its detail.

        Without a selected thread this is a silent no-op.  Blank bodies
        fail validation before any network call.  A failed send keeps the
        reply panel open.
        """
        if self._ignored_after_unmount("send_reply"):
            return
        thread_id = self._state.selected_thread_id
        if thread_id is None:
            logger.debug("send_reply_ignored_no_thread")
            return

        if self.status(SyncCategory.SEND_REPLY) is CategoryStatus.LOADING:
            logger.warning("send_reply_ignored_in_flight", thread_id=thread_id)
            return

        message = request.validation_message()
        if message is not None:
            self._reject_locally(SyncCategory.SEND_REPLY, message)
            return

        self._dismiss_send_errors()
        self._trigger(SyncCategory.SEND_REPLY, CategoryEvent.START)
        self._update(is_sending_reply=True, send_error=None)

        try:
            await self._api.send_reply(thread_id, request)
        except ClassifiedError as exc:
            if self._discarded:
                return
            self._trigger(SyncCategory.SEND_REPLY, CategoryEvent.FAIL)
            self._update(is_sending_reply=False, send_error=exc.error_state)
            logger.warning("send_reply_failed", thread_id=thread_id, kind=exc.error_state.kind)
            return

        if self._discarded:
            return
        self._trigger(SyncCategory.SEND_REPLY, CategoryEvent.SUCCEED)
        self._update(is_sending_reply=False, is_reply_open=False)
        logger.info("reply_sent", thread_id=thread_id)

        if self._state.selected_thread_id != thread_id:
            logger.debug("reply_refresh_skipped", thread_id=thread_id)
            return
        await self.select_thread(thread_id)

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    async def retry_last_action(self) -> None:
        """Replay the load behind the highest-priority active error.

        A list error wins over a detail error; send errors are retried by
        resubmitting the form, not here.
        """
        if self._ignored_after_unmount("retry_last_action"):
            return
        state = self._state
        if state.threads_error is not None:
            logger.info("retry_last_action", category=SyncCategory.LIST)
            await self.load_threads()
        elif state.thread_detail_error is not None and state.selected_thread_id is not None:
            logger.info("retry_last_action", category=SyncCategory.DETAIL)
            await self.select_thread(state.selected_thread_id)
        else:
            logger.debug("retry_last_action_nothing_to_retry")
