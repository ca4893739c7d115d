"""Async client for the email threads REST API.

Provides the ``ThreadApiClient`` class that wraps an ``httpx.AsyncClient``
and exposes the four operations the thread view needs: listing threads for a
lead, fetching one thread's detail, sending a new email, and replying within
a thread.  Loads retry on connection failures and 5xx responses; sends make
a single attempt because re-sending risks duplicate delivery.  Every failure
leaves this module as a ``ClassifiedError``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from threadsync.config import Settings
from threadsync.domain.errors import ClassifiedError
from threadsync.resilience.retry import (
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    with_retry,
)
from threadsync.threads.models import (
    ComposeEmailRequest,
    ReplyRequest,
    Thread,
    ThreadDetail,
    ThreadMessage,
)
from threadsync.transport.classifier import (
    classify,
    invalid_response,
    is_retry_eligible,
    parse_model,
    unwrap_envelope,
)

logger = structlog.get_logger()


class ThreadApiClient:
    """Client for the email threads endpoints.

    Example::

        async with ThreadApiClient("https://crm.example.com") as api:
            threads = await api.list_threads("lead_42")

    Args:
        base_url: Scheme and host of the API, e.g. ``"https://crm.example.com"``.
        threads_path: Path prefix of the threads resource.
        authorization: Value of the ``Authorization`` header, if any.
        timeout: Request timeout in seconds.
        max_attempts: Total attempts for list/detail loads.
        backoff: Fixed delay in seconds between load attempts.
        http_client: Optional preconfigured ``httpx.AsyncClient``; when given,
            the caller owns its lifecycle.
        transport: Optional httpx transport for the client this instance
            creates (ignored with ``http_client``).
        sleep: Awaitable sleep used between load attempts (tests inject one).
    """

    def __init__(
        self,
        base_url: str,
        threads_path: str = "/api/tenant/email-threads",
        *,
        authorization: str | None = None,
        timeout: float = 30.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: float = DEFAULT_BACKOFF_SECONDS,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._threads_path = "/" + threads_path.strip("/")
        self._authorization = authorization
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._sleep = sleep
        self._external_client = http_client is not None
        self._http = http_client
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ThreadApiClient:
        """Create a client configured from application settings."""
        return cls(
            settings.api_base_url,
            settings.threads_path,
            authorization=settings.authorization_header(),
            timeout=settings.request_timeout_seconds,
            max_attempts=settings.load_max_attempts,
            backoff=settings.load_backoff_seconds,
            **kwargs,
        )

    async def __aenter__(self) -> ThreadApiClient:
        self._client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if not self._external_client and self._http is not None:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            headers = {"Authorization": self._authorization} if self._authorization else {}
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Issue one request and return the decoded JSON body.

        Raises:
            httpx.TransportError: If no response was received.
            httpx.HTTPStatusError: For any non-2xx status.
            ClassifiedError: If a 2xx body is not valid JSON.
        """
        response = await self._client().request(method, path, **kwargs)
        if response.status_code == 401:
            logger.warning("auth_rejected", method=method, path=path)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise invalid_response() from exc

    async def _send(self, operation_name: str, method: str, path: str, **kwargs: Any) -> Any:
        """Single-attempt request whose failure is classified, never retried."""
        try:
            return await self._request(method, path, **kwargs)
        except ClassifiedError:
            raise
        except Exception as exc:
            error_state = classify(exc)
            logger.error(
                "API send failed",
                operation=operation_name,
                kind=error_state.kind,
                exception=str(exc),
            )
            raise ClassifiedError(error_state) from exc

    async def _load(self, operation_name: str, path: str, **kwargs: Any) -> Any:
        return await with_retry(
            lambda: self._request("GET", path, **kwargs),
            operation_name=operation_name,
            is_eligible=is_retry_eligible,
            classify=classify,
            max_attempts=self._max_attempts,
            backoff=self._backoff,
            sleep=self._sleep,
        )

    async def list_threads(self, lead_id: str) -> list[Thread]:
        """Fetch thread summaries for a lead, in server order.

        Raises:
            ClassifiedError: On any failure, including a malformed envelope.
        """
        payload = await self._load(
            "list_threads",
            self._threads_path,
            params={"entityType": "lead", "entityId": lead_id},
        )
        threads = unwrap_envelope(Thread, payload)
        logger.debug("threads_fetched", lead_id=lead_id, count=len(threads))
        return threads

    async def get_thread_detail(self, thread_id: str) -> ThreadDetail:
        """Fetch one thread with its full message history.

        Raises:
            ClassifiedError: On any failure, including a malformed body.
        """
        payload = await self._load("get_thread_detail", f"{self._threads_path}/{thread_id}")
        return parse_model(ThreadDetail, payload)

    async def send_email(self, lead_id: str, request: ComposeEmailRequest) -> Thread:
        """Start a new thread for a lead.  Never retried.

        Raises:
            ClassifiedError: On any failure.
        """
        payload = await self._send(
            "send_email", "POST", self._threads_path, json=request.to_payload(lead_id)
        )
        return parse_model(Thread, payload)

    async def send_reply(self, thread_id: str, request: ReplyRequest) -> ThreadMessage:
        """Append a reply to an existing thread.  Never retried.

        Raises:
            ClassifiedError: On any failure.
        """
        payload = await self._send(
            "send_reply",
            "POST",
            f"{self._threads_path}/{thread_id}/messages",
            json={"body": request.body},
        )
        return parse_model(ThreadMessage, payload)
