"""Shared pytest fixtures for the threadsync test suite."""

from __future__ import annotations

import pytest
from payloads import make_detail, make_thread

from threadsync.threads.models import Thread, ThreadDetail


@pytest.fixture
def sample_threads() -> list[Thread]:
    """Three thread summaries in server order (not sorted by id)."""
    return [make_thread("t3"), make_thread("t1"), make_thread("t2")]


@pytest.fixture
def sample_detail() -> ThreadDetail:
    """A representative two-message thread detail."""
    return make_detail("t1")


@pytest.fixture
def anyio_backend() -> str:
    """The suite drives asyncio primitives directly, so run anyio tests on asyncio only."""
    return "asyncio"
