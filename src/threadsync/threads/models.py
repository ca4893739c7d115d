"""Pydantic v2 models for email threads, messages, and send requests.

Wire payloads use camelCase keys (``senderEmail``, ``lastMessageDate``);
the models expose snake_case attributes and accept either form on input.
All models are frozen: a refresh replaces a snapshot, it never patches one.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from threadsync.domain.types import RETRYABLE_KINDS, ErrorKind

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    coerce_numbers_to_str=True,
)


class Thread(BaseModel):
    """Summary of one email conversation tied to a lead."""

    model_config = _WIRE_CONFIG

    id: str
    lead_id: str
    sender: str
    sender_email: str
    subject: str
    last_message_date: str  # ISO 8601
    message_preview: str
    message_count: int


class ThreadMessage(BaseModel):
    """A single message within a thread.

    ``is_outgoing`` is true when the message was sent by the current user.
    """

    model_config = _WIRE_CONFIG

    id: str
    sender: str
    sender_email: str
    timestamp: str  # ISO 8601
    body: str
    is_outgoing: bool


class ThreadDetail(BaseModel):
    """Full conversation for one thread.

    ``messages`` keeps the order the server returned (ascending by
    timestamp); it is never re-sorted client-side.
    """

    model_config = _WIRE_CONFIG

    id: str
    lead_id: str
    subject: str
    messages: tuple[ThreadMessage, ...]


class ComposeEmailRequest(BaseModel):
    """A new outbound email that starts a thread.

    Field emptiness is reported by :meth:`validation_message` rather than
    rejected at construction, so the orchestrator can surface it as an
    ``ErrorState`` without a network round-trip.
    """

    model_config = ConfigDict(frozen=True)

    recipient_email: str
    subject: str
    body: str

    def validation_message(self) -> str | None:
        """Return the first local validation failure, or ``None`` if valid."""
        if not self.recipient_email.strip():
            return "Recipient email is required"
        if not self.subject.strip():
            return "Subject is required"
        if not self.body.strip():
            return "Message body is required"
        return None

    def to_payload(self, lead_id: str) -> dict[str, str]:
        """Build the JSON body for ``POST /threads``."""
        return {
            "entityType": "lead",
            "entityId": lead_id,
            "emailTo": self.recipient_email,
            "subject": self.subject,
            "body": self.body,
        }


class ReplyRequest(BaseModel):
    """A reply to the currently selected thread."""

    model_config = ConfigDict(frozen=True)

    body: str

    def validation_message(self) -> str | None:
        """Return ``"Message body is required"`` for a blank body, else ``None``."""
        if not self.body.strip():
            return "Message body is required"
        return None


class ErrorState(BaseModel):
    """A classified failure ready to be rendered.

    ``retryable`` is derivable from ``kind`` but is carried explicitly so
    presenters never need the derivation rule.
    """

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    retryable: bool

    @classmethod
    def for_kind(cls, kind: ErrorKind, message: str) -> ErrorState:
        """Create an ``ErrorState`` whose ``retryable`` flag follows from *kind*."""
        return cls(kind=kind, message=message, retryable=kind in RETRYABLE_KINDS)

    @classmethod
    def validation(cls, message: str) -> ErrorState:
        """Create a non-retryable validation error."""
        return cls.for_kind(ErrorKind.VALIDATION, message)
