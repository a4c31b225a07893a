"""Shared pytest fixtures for the Vibecoder test suite.

Provides reusable fixtures for:
- Loggers that print to an in-memory console
- Default settings and a temporary workspace
- Mocked ``httpx.AsyncClient`` instances returning real ``httpx.Response`` objects
- Mocked command runner, LLM client and recovery engine for pipeline tests
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from rich.console import Console

from vibecoder.config import Settings
from vibecoder.file_store import VersionedFileStore
from vibecoder.log import Logger
from vibecoder.models import CommandResult


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture
def log_output() -> io.StringIO:
    """Buffer that receives everything the test logger prints."""
    return io.StringIO()


@pytest.fixture
def logger(log_output: io.StringIO) -> Logger:
    """Debug-level logger writing plain text into ``log_output``."""
    console = Console(file=log_output, width=240, color_system=None)
    return Logger("debug", console=console)


# ---------------------------------------------------------------------------
# Settings & workspace
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty workspace directory (auto-cleanup)."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def file_store(workspace: Path, logger: Logger) -> VersionedFileStore:
    return VersionedFileStore(workspace, logger)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def make_response(
    status_code: int = 200,
    *,
    json_data: Any = None,
    text: str | None = None,
    method: str = "POST",
    url: str = "http://test.local",
) -> httpx.Response:
    """Build a real ``httpx.Response`` so ``raise_for_status`` behaves normally."""
    request = httpx.Request(method, url)
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


def make_http_client(
    *,
    post: Any = None,
    get: Any = None,
) -> AsyncMock:
    """Return an ``AsyncClient`` stand-in usable as an async context manager.

    *post* / *get* may be a response, an exception, or a callable used as
    ``side_effect``.
    """
    client = AsyncMock()
    for name, behaviour in (("post", post), ("get", get)):
        if behaviour is None:
            continue
        if isinstance(behaviour, httpx.Response):
            setattr(client, name, AsyncMock(return_value=behaviour))
        else:
            setattr(client, name, AsyncMock(side_effect=behaviour))
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.fixture
def http_client_factory() -> Callable[..., AsyncMock]:
    """Factory for mocked ``httpx.AsyncClient`` objects.

    Usage:
        def test_something(http_client_factory):
            client = http_client_factory(post=make_response(json_data={...}))
            with patch("httpx.AsyncClient", return_value=client):
                ...
    """
    return make_http_client


# ---------------------------------------------------------------------------
# Pipeline collaborators
# ---------------------------------------------------------------------------


def ok_result(command: str = "true", output: str = "") -> CommandResult:
    return CommandResult(command=command, success=True, exit_code=0, output=output)


def failed_result(command: str = "false", output: str = "", exit_code: int = 1) -> CommandResult:
    return CommandResult(command=command, success=False, exit_code=exit_code, output=output)


@pytest.fixture
def mock_runner() -> MagicMock:
    """Command runner whose commands all succeed unless reconfigured."""
    runner = MagicMock()
    runner.run_command = AsyncMock(side_effect=lambda command, cwd, timeout=None: ok_result(command))
    runner.run_checked = AsyncMock(side_effect=lambda command, cwd, timeout=None: ok_result(command))
    return runner


@pytest.fixture
def mock_llm() -> MagicMock:
    """LLM client returning fixed code and supporting every capability."""
    llm = MagicMock()
    llm.provider = "mock"
    llm.generate_code = AsyncMock(return_value="print('generated')\n")
    llm.supports = MagicMock(return_value=True)
    llm.set_model = MagicMock()
    return llm
