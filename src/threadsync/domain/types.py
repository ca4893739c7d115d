"""Domain enumerations for the thread synchronization layer."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Failure classes surfaced to the presentation layer."""

    NETWORK = "network"
    SERVER = "server"
    VALIDATION = "validation"


# Kinds that are eligible for an automatic or user-triggered retry
RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({ErrorKind.NETWORK, ErrorKind.SERVER})


class SyncCategory(StrEnum):
    """Independent operation categories tracked by the orchestrator."""

    LIST = "list"
    DETAIL = "detail"
    SEND_EMAIL = "send_email"
    SEND_REPLY = "send_reply"


class CategoryStatus(StrEnum):
    """Lifecycle states of a single operation category."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR_SHOWN = "error_shown"
