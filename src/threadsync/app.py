"""Application wiring for the thread view.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Settings validation** at startup
- **ThreadApiClient** built from settings
- **ThreadSyncOrchestrator** bound to one lead
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from threadsync.config import Settings, get_settings, validate_settings
from threadsync.sync.orchestrator import ThreadSyncOrchestrator
from threadsync.transport.client import ThreadApiClient

logger = structlog.get_logger()


def configure_logging(production: bool = False) -> None:
    """Set up structlog for the thread view and its API client.

    With *production* set, events render as one JSON object per line at
    INFO and above, with exception tracebacks flattened into the event so
    listener and transport failures stay machine-readable.  Otherwise
    events render through the console renderer at DEBUG, which also shows
    the discard and retry events the orchestrator emits.  Every event
    carries ``service="threadsync"``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderers: list[structlog.types.Processor]
    if production:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        log_level = logging.INFO
    else:
        renderers = [structlog.dev.ConsoleRenderer()]
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, *renderers],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service="threadsync")


def build_orchestrator(
    lead_id: str,
    settings: Settings | None = None,
    **client_kwargs: Any,
) -> ThreadSyncOrchestrator:
    """Create an orchestrator for one lead view from application settings.

    Args:
        lead_id: The lead whose threads the view shows.
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        **client_kwargs: Extra keyword arguments for ``ThreadApiClient``
            (e.g. ``http_client`` or ``sleep``).

    Returns:
        A ``ThreadSyncOrchestrator`` with a fresh, empty ``SyncState``.
    """
    if settings is None:
        settings = get_settings()
    validate_settings(settings)

    api = ThreadApiClient.from_settings(settings, **client_kwargs)
    logger.info("orchestrator_built", lead_id=lead_id, api_base_url=settings.api_base_url)
    return ThreadSyncOrchestrator(api, lead_id)
