"""Thread domain: wire models for threads, messages, and send requests."""

from threadsync.threads.models import (
    ComposeEmailRequest,
    ErrorState,
    ReplyRequest,
    Thread,
    ThreadDetail,
    ThreadMessage,
)

__all__ = [
    "ComposeEmailRequest",
    "ErrorState",
    "ReplyRequest",
    "Thread",
    "ThreadDetail",
    "ThreadMessage",
]
