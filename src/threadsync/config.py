"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_settings()``
startup gate that enforces API credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``threadsync`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False

    # -- Threads API -----------------------------------------------------------
    api_base_url: str = "http://localhost:8000"
    threads_path: str = "/api/tenant/email-threads"
    api_token: SecretStr = SecretStr("")
    auth_scheme: str = ""  # e.g. "Bearer"; empty sends the raw token
    request_timeout_seconds: float = 30.0

    # -- Load retry policy -----------------------------------------------------
    load_max_attempts: int = 3
    load_backoff_seconds: float = 2.0

    def authorization_header(self) -> str | None:
        """Return the ``Authorization`` header value, or ``None`` without a token."""
        token = self.api_token.get_secret_value()
        if not token:
            return None
        if self.auth_scheme:
            return f"{self.auth_scheme} {token}"
        return token


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_settings(settings: Settings) -> None:
    """Enforce API configuration at startup.

    In **production** mode the process exits with a clear error block if the
    API token is missing or the retry policy is nonsensical.  In
    **development** mode each problem is logged as a warning and startup
    continues.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.api_token.get_secret_value():
        errors.append("API_TOKEN is empty or not set")

    if settings.load_max_attempts < 1:
        errors.append(f"LOAD_MAX_ATTEMPTS must be at least 1, got {settings.load_max_attempts}")

    if settings.load_backoff_seconds < 0:
        errors.append(
            f"LOAD_BACKOFF_SECONDS must not be negative, got {settings.load_backoff_seconds}"
        )

    if not errors:
        logger.info("settings_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("setting_invalid", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Invalid configuration for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("setting_invalid_dev", detail=err)
