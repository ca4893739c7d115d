"""Tests for the bounded with_retry helper."""

from __future__ import annotations

import httpx
import pytest

from threadsync.domain.errors import ClassifiedError
from threadsync.domain.types import ErrorKind
from threadsync.resilience.retry import with_retry
from threadsync.threads.models import ErrorState
from threadsync.transport.classifier import classify, is_retry_eligible

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

REQUEST = httpx.Request("GET", "http://test/threads")


def _status_error(status: int) -> httpx.HTTPStatusError:
    response = httpx.Response(status, request=REQUEST)
    return httpx.HTTPStatusError(f"HTTP {status}", request=REQUEST, response=response)


class FlakyOperation:
    """Coroutine factory that raises queued failures, then returns a value."""

    def __init__(self, failures: list[BaseException], result: str = "ok") -> None:
        self._failures = list(failures)
        self._result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._failures:
            raise self._failures.pop(0)
        return self._result


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


async def _run(operation: FlakyOperation, sleep: SleepRecorder, **kwargs: object) -> str:
    return await with_retry(
        operation,
        operation_name="test_op",
        is_eligible=is_retry_eligible,
        classify=classify,
        sleep=sleep,
        **kwargs,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# with_retry
# ---------------------------------------------------------------------------


class TestWithRetry:
    """Tests for with_retry attempt counting, backoff, and classification."""

    @pytest.mark.anyio()
    async def test_success_first_attempt(self) -> None:
        operation = FlakyOperation([])
        sleep = SleepRecorder()

        assert await _run(operation, sleep) == "ok"
        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.anyio()
    async def test_recovers_after_transient_failures(self) -> None:
        operation = FlakyOperation(
            [httpx.ConnectError("refused", request=REQUEST), _status_error(503)]
        )
        sleep = SleepRecorder()

        assert await _run(operation, sleep) == "ok"
        assert operation.calls == 3
        assert sleep.delays == [2.0, 2.0]

    @pytest.mark.anyio()
    async def test_network_failure_exhausts_three_attempts(self) -> None:
        operation = FlakyOperation([httpx.ConnectError("refused", request=REQUEST)] * 5)
        sleep = SleepRecorder()

        with pytest.raises(ClassifiedError) as exc_info:
            await _run(operation, sleep)

        assert operation.calls == 3
        assert sleep.delays == [2.0, 2.0]
        assert exc_info.value.error_state.kind == ErrorKind.NETWORK
        assert exc_info.value.error_state.retryable is True

    @pytest.mark.anyio()
    async def test_server_failure_exhausts_three_attempts(self) -> None:
        operation = FlakyOperation([_status_error(500)] * 5)
        sleep = SleepRecorder()

        with pytest.raises(ClassifiedError) as exc_info:
            await _run(operation, sleep)

        assert operation.calls == 3
        assert exc_info.value.error_state.kind == ErrorKind.SERVER

    @pytest.mark.anyio()
    @pytest.mark.parametrize("status", [400, 404, 422])
    async def test_client_error_is_not_retried(self, status: int) -> None:
        operation = FlakyOperation([_status_error(status)])
        sleep = SleepRecorder()

        with pytest.raises(ClassifiedError) as exc_info:
            await _run(operation, sleep)

        assert operation.calls == 1
        assert sleep.delays == []
        assert exc_info.value.error_state.retryable is False

    @pytest.mark.anyio()
    async def test_classified_failure_is_not_retried(self) -> None:
        carried = ErrorState.validation("Invalid response format")
        operation = FlakyOperation([ClassifiedError(carried)])
        sleep = SleepRecorder()

        with pytest.raises(ClassifiedError) as exc_info:
            await _run(operation, sleep)

        assert operation.calls == 1
        assert exc_info.value.error_state is carried

    @pytest.mark.anyio()
    async def test_non_retryable_after_retryable_stops(self) -> None:
        operation = FlakyOperation([_status_error(502), _status_error(400)])
        sleep = SleepRecorder()

        with pytest.raises(ClassifiedError) as exc_info:
            await _run(operation, sleep)

        assert operation.calls == 2
        assert exc_info.value.error_state.kind == ErrorKind.VALIDATION

    @pytest.mark.anyio()
    async def test_custom_attempts_and_backoff(self) -> None:
        operation = FlakyOperation([_status_error(500)] * 10)
        sleep = SleepRecorder()

        with pytest.raises(ClassifiedError):
            await _run(operation, sleep, max_attempts=5, backoff=0.5)

        assert operation.calls == 5
        assert sleep.delays == [0.5, 0.5, 0.5, 0.5]

    @pytest.mark.anyio()
    async def test_original_exception_chained(self) -> None:
        failure = _status_error(404)
        operation = FlakyOperation([failure])

        with pytest.raises(ClassifiedError) as exc_info:
            await _run(operation, SleepRecorder())

        assert exc_info.value.__cause__ is failure
