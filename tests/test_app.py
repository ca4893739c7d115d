"""Tests for application wiring: structlog config and orchestrator construction."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest
import structlog
from payloads import LEAD_ID, thread_payload
from pydantic import SecretStr

from threadsync.app import build_orchestrator, configure_logging
from threadsync.config import Settings
from threadsync.sync.orchestrator import ThreadSyncOrchestrator
from threadsync.sync.state import SyncState


def _reset_structlog() -> None:
    """Reset structlog so cached loggers don't leak between tests."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture(autouse=True)
def _restore_structlog() -> Iterator[None]:
    """Leave structlog unconfigured for the rest of the suite."""
    yield
    _reset_structlog()


def _settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "api_base_url": "http://crm.test",
        "api_token": SecretStr("tok_1"),
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)  # type: ignore[call-arg, arg-type]


class TestConfigureLogging:
    """Tests for structlog configuration in dev and production modes."""

    def test_development_mode_uses_console_renderer(self) -> None:
        _reset_structlog()
        configure_logging(production=False)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    def test_production_mode_uses_json_renderer(self) -> None:
        _reset_structlog()
        configure_logging(production=True)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_default_is_development_mode(self) -> None:
        _reset_structlog()
        configure_logging()
        processors = structlog.get_config()["processors"]
        assert not any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_production_flattens_exceptions(self) -> None:
        _reset_structlog()
        configure_logging(production=True)
        processors = structlog.get_config()["processors"]
        assert structlog.processors.format_exc_info in processors
        assert processors.index(structlog.processors.format_exc_info) < len(processors) - 1

    def test_development_keeps_console_tracebacks(self) -> None:
        _reset_structlog()
        configure_logging(production=False)
        assert structlog.processors.format_exc_info not in structlog.get_config()["processors"]

    def test_binds_service_name(self) -> None:
        _reset_structlog()
        configure_logging(production=True)
        assert structlog.contextvars.get_contextvars()["service"] == "threadsync"


class TestBuildOrchestrator:
    """Tests for build_orchestrator."""

    def test_returns_empty_view(self) -> None:
        orchestrator = build_orchestrator(LEAD_ID, _settings())

        assert isinstance(orchestrator, ThreadSyncOrchestrator)
        assert orchestrator.lead_id == LEAD_ID
        assert orchestrator.state == SyncState()

    def test_production_without_token_exits(self) -> None:
        with pytest.raises(SystemExit):
            build_orchestrator(LEAD_ID, _settings(production=True, api_token=SecretStr("")))

    @pytest.mark.anyio()
    async def test_client_kwargs_forwarded(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"success": True, "data": [thread_payload()]})

        orchestrator = build_orchestrator(
            LEAD_ID, _settings(), transport=httpx.MockTransport(handler)
        )
        async with orchestrator.api:
            await orchestrator.mount()

        assert len(requests) == 1
        assert str(requests[0].url).startswith("http://crm.test/api/tenant/email-threads")
        assert requests[0].headers["Authorization"] == "tok_1"
        assert [t.id for t in orchestrator.state.threads] == ["t1"]
