"""Shared test fixtures for Clearwater Assistant test suite.

This module provides common fixtures used across all test modules,
including mocks for external dependencies and a scripted model backend.
"""

from __future__ import annotations

import tempfile

from collections.abc import Awaitable, Callable, Generator, Sequence
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from models.session_models import Turn
from models.tool_models import ToolDescriptor

# ============================================================================
# Test Isolation: Cache Management
# ============================================================================


def _clear_token_caches() -> None:
    try:
        from utils import token_utils

        token_utils._count_tokens_cached.cache_clear()
        token_utils._hash_to_count_cache.clear()
        token_utils._encoder_cache.clear()
    except (ImportError, AttributeError):
        pass


@pytest.fixture(autouse=True)
def clear_token_cache() -> Generator[None, None, None]:
    """Clear token count caches between tests to ensure isolation."""
    _clear_token_caches()
    yield
    _clear_token_caches()


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; tests that change env need a fresh load."""
    from core.constants import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Mock External Dependencies
# ============================================================================


@pytest.fixture
def mock_runner() -> Generator[Mock, None, None]:
    """Mock Runner from agents SDK."""
    runner = Mock()
    runner.run = AsyncMock()
    runner.run_streamed = MagicMock()
    yield runner


@pytest.fixture
def mock_logger() -> Generator[Mock, None, None]:
    """Mock ChatLogger. ``bind`` returns the same mock so calls are visible."""
    logger = Mock()
    logger.bind.return_value = logger
    yield logger


# ============================================================================
# Scripted Model Backend
# ============================================================================

ToolCall = tuple[str, str]


class ScriptedBackend:
    """ModelBackend that replays a fixed script.

    Each ``generate`` call performs the listed tool calls (name, JSON args)
    through ``execute_tool`` and returns ``reply``. Everything the backend
    saw is recorded for assertions.
    """

    def __init__(
        self,
        reply: str | Callable[[Sequence[Turn]], str] = "Hello!",
        tool_calls: Sequence[ToolCall] = (),
        error: Exception | None = None,
        before_reply: Callable[[], Awaitable[None]] | None = None,
    ):
        self.reply = reply
        self.tool_calls = list(tool_calls)
        self.error = error
        self.before_reply = before_reply
        self.histories: list[tuple[Turn, ...]] = []
        self.tool_results: list[str] = []
        self.tools_seen: list[tuple[ToolDescriptor, ...]] = []

    async def generate(
        self,
        history: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
        execute_tool: Callable[[str, str], Awaitable[str]],
    ) -> str:
        self.histories.append(tuple(history))
        self.tools_seen.append(tuple(tools))
        for name, arguments in self.tool_calls:
            self.tool_results.append(await execute_tool(name, arguments))
        if self.before_reply is not None:
            await self.before_reply()
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(history)
        return self.reply


@pytest.fixture
def scripted_backend() -> type[ScriptedBackend]:
    """The ScriptedBackend class, for tests to instantiate with their script."""
    return ScriptedBackend


# ============================================================================
# File System Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def mock_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Mock environment variables for testing."""
    env_vars = {
        "API_PROVIDER": "openai",
        "OPENAI_API_KEY": "test-key-123",
        "OPENAI_MODEL": "gpt-4o",
        "AZURE_OPENAI_API_KEY": "test-azure-key",
        "AZURE_OPENAI_ENDPOINT": "https://test.openai.azure.com",
        "AZURE_OPENAI_DEPLOYMENT": "gpt-4o-deployment",
        "LOG_DIR": str(temp_dir / "logs"),
    }
    for key in ("KUSTO_ACCESS_TOKEN", "GITHUB_TOKEN", "AZURE_DEVOPS_PAT", "AZURE_DEVOPS_ORG_URL", "CHUNK_POLICY"):
        monkeypatch.delenv(key, raising=False)
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    yield env_vars


# ============================================================================
# Conversation Fixtures
# ============================================================================


@pytest.fixture
def sample_turns() -> list[Turn]:
    """Provide a short conversation for testing."""
    return [
        Turn.system("How can I assist you today?"),
        Turn.user("How many SafeFly requests are open?"),
        Turn.tool("kusto_query", '[{"Count": 3}]'),
        Turn.assistant("There are 3 open requests."),
    ]


# ============================================================================
# Token Counting Fixtures
# ============================================================================


@pytest.fixture
def mock_tiktoken(monkeypatch: pytest.MonkeyPatch) -> Generator[Mock, None, None]:
    """Mock tiktoken for token counting tests."""
    mock_encoding = Mock()
    mock_encoding.encode.return_value = [1, 2, 3, 4, 5]  # 5 tokens
    mock_encoding.name = "cl100k_base"

    mock_tiktoken_module = Mock()
    mock_tiktoken_module.encoding_for_model.return_value = mock_encoding
    mock_tiktoken_module.get_encoding.return_value = mock_encoding

    monkeypatch.setattr("tiktoken.encoding_for_model", mock_tiktoken_module.encoding_for_model)
    monkeypatch.setattr("tiktoken.get_encoding", mock_tiktoken_module.get_encoding)

    yield mock_tiktoken_module


# ============================================================================
# Query Executor Fixtures
# ============================================================================


class FakeQueryExecutor:
    """QueryExecutor that records calls and returns canned text."""

    def __init__(self, text: str = '[\n  {\n    "Count": 3\n  }\n]', admin_text: str = '[{"TableName": "Build"}]'):
        from integrations.query_executor import QueryResult

        self.result = QueryResult.from_text(text)
        self.admin_result = QueryResult.from_text(admin_text)
        self.queries: list[dict[str, Any]] = []
        self.commands: list[tuple[str, str]] = []

    async def execute_query(self, cluster_key: str, query: str, **kwargs: Any) -> Any:
        self.queries.append({"cluster_key": cluster_key, "query": query, **kwargs})
        return self.result

    async def execute_admin_command(self, cluster_key: str, command: str, timeout: float | None = None) -> Any:
        self.commands.append((cluster_key, command))
        return self.admin_result


@pytest.fixture
def fake_executor() -> FakeQueryExecutor:
    return FakeQueryExecutor()


class FakeDocumentExecutor:
    """DocumentQueryExecutor and SearchExecutor returning canned documents."""

    def __init__(self, documents: list[dict[str, Any]] | None = None):
        self.documents = documents if documents is not None else [{"id": "1", "status": "Open"}]
        self.queries: list[str] = []
        self.searches: list[tuple[str, int]] = []

    async def query_items(self, sql_query: str) -> list[dict[str, Any]]:
        self.queries.append(sql_query)
        return self.documents

    async def search(self, search_text: str, top: int) -> list[dict[str, Any]]:
        self.searches.append((search_text, top))
        return self.documents[:top]


@pytest.fixture
def fake_documents() -> FakeDocumentExecutor:
    return FakeDocumentExecutor()


# ============================================================================
# Tool Fixtures
# ============================================================================


@pytest.fixture
def echo_tool() -> ToolDescriptor:
    """A tool that echoes its 'text' argument."""
    from models.tool_models import ToolParameter

    async def echo(args: dict[str, Any]) -> str:
        return str(args["text"])

    return ToolDescriptor(
        name="echo",
        description="Echo the text back.",
        invoke=echo,
        parameters=(ToolParameter(name="text", description="Text to echo."),),
        group="test",
    )
