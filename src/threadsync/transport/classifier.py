"""Failure classification for threads API calls.

Reduces any failure raised while talking to the threads API to an
``ErrorState`` and decides which failures are eligible for automatic retry:

- no response (connect/read failure, timeout) -> ``network``, retryable
- status >= 500 -> ``server``, retryable
- status 4xx -> ``validation``, not retryable, server message if present
- anything else -> ``server``, retryable
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from threadsync.domain.errors import ClassifiedError
from threadsync.domain.types import ErrorKind
from threadsync.threads.models import ErrorState

NETWORK_MESSAGE = "Unable to connect. Please check your internet connection."
SERVER_MESSAGE = "Server error. Please try again later."
INVALID_REQUEST_MESSAGE = "Invalid request. Please check your input."
UNEXPECTED_MESSAGE = "An unexpected error occurred."
INVALID_RESPONSE_MESSAGE = "Invalid response format"

M = TypeVar("M", bound=BaseModel)


def _server_message(response: httpx.Response) -> str | None:
    """Extract a non-empty ``message`` string from a JSON error body."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if isinstance(message, str) and message.strip():
        return message
    return None


def classify(failure: BaseException) -> ErrorState:
    """Map a failure to an ``ErrorState``.

    Args:
        failure: The exception raised by a transport call.

    Returns:
        The classified error, with ``retryable`` derived from its kind.
    """
    if isinstance(failure, ClassifiedError):
        return failure.error_state

    if isinstance(failure, httpx.TransportError):
        return ErrorState.for_kind(ErrorKind.NETWORK, NETWORK_MESSAGE)

    if isinstance(failure, httpx.HTTPStatusError):
        status = failure.response.status_code
        if status >= 500:
            return ErrorState.for_kind(ErrorKind.SERVER, SERVER_MESSAGE)
        if 400 <= status < 500:
            message = _server_message(failure.response) or INVALID_REQUEST_MESSAGE
            return ErrorState.validation(message)

    return ErrorState.for_kind(ErrorKind.SERVER, UNEXPECTED_MESSAGE)


def is_retry_eligible(failure: BaseException) -> bool:
    """Return True only for connection failures and 5xx responses."""
    if isinstance(failure, httpx.TransportError):
        return True
    if isinstance(failure, httpx.HTTPStatusError):
        return failure.response.status_code >= 500
    return False


def invalid_response() -> ClassifiedError:
    """Build the error raised for a malformed success payload."""
    return ClassifiedError(ErrorState.validation(INVALID_RESPONSE_MESSAGE))


def parse_model(model: type[M], payload: Any) -> M:
    """Validate *payload* as *model*, classifying shape errors.

    Raises:
        ClassifiedError: A non-retryable validation error when the payload
            does not match the model.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise invalid_response() from exc


def unwrap_envelope(model: type[M], payload: Any) -> list[M]:
    """Unwrap a ``{"success": true, "data": [...]}`` list envelope.

    Args:
        model: The model each element of ``data`` must validate as.
        payload: The decoded JSON response body.

    Returns:
        The validated items in server order.

    Raises:
        ClassifiedError: If ``success`` is not true, ``data`` is not a list,
            or any element has the wrong shape.
    """
    if not isinstance(payload, dict) or payload.get("success") is not True:
        raise invalid_response()
    data = payload.get("data")
    if not isinstance(data, list):
        raise invalid_response()
    return [parse_model(model, item) for item in data]
