"""Tests for the dialogue orchestrator.

Covers the respond() contract: atomic exchanges, per-session serialization,
tool failure recovery, result clamping and cancellation.
"""

from __future__ import annotations

import asyncio
import json

from collections.abc import Awaitable, Callable, Sequence
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from core.constants import APOLOGY_MESSAGE, SESSION_GREETING, TOOL_ERROR_MAX_CHARS
from core.orchestrator import (
    DialogueOrchestrator,
    PendingExchange,
    TurnState,
    parse_tool_arguments,
    tool_failure_message,
)
from core.result_guard import ResultSizeGuard
from core.session_manager import SessionStore
from models.error_models import (
    InvalidToolArgumentsError,
    ToolExecutionError,
    UnknownSessionKeyError,
    UpstreamModelError,
)
from models.session_models import Role, Turn
from models.tool_models import ToolDescriptor, ToolParameter
from tools.registry import ToolRegistry, build_registry


def make_tool(name: str, invoke: Callable[[dict[str, Any]], Awaitable[str]], *params: str) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=f"{name} tool",
        invoke=invoke,
        parameters=tuple(ToolParameter(name=p) for p in params),
        group="test",
    )


async def boom(_: dict[str, Any]) -> str:
    raise RuntimeError("backend exploded " + "x" * 2000)


async def huge(_: dict[str, Any]) -> str:
    return "r" * 1_000_000


@pytest.fixture
def registry(mock_logger: Mock, echo_tool: ToolDescriptor) -> ToolRegistry:
    tools = [echo_tool, make_tool("boom", boom), make_tool("huge", huge)]
    return build_registry([lambda: tools], mock_logger)


@pytest.fixture
def make_orchestrator(registry: ToolRegistry, mock_logger: Mock) -> Callable[..., DialogueOrchestrator]:
    def factory(backend: Any, **kwargs: Any) -> DialogueOrchestrator:
        return DialogueOrchestrator(
            store=kwargs.pop("store", SessionStore()),
            registry=kwargs.pop("registry", registry),
            backend=backend,
            guard=kwargs.pop("guard", ResultSizeGuard()),
            logger=mock_logger,
            **kwargs,
        )

    return factory


def contents(orchestrator: DialogueOrchestrator, key: str) -> list[tuple[Role, str]]:
    session = orchestrator.store.get(key)
    assert session is not None
    return [(turn.role, turn.content) for turn in session.history()]


class TestParseToolArguments:
    """Tests for parse_tool_arguments."""

    def test_object(self) -> None:
        assert parse_tool_arguments("echo", '{"text": "hi"}') == {"text": "hi"}

    def test_blank(self) -> None:
        assert parse_tool_arguments("echo", "") == {}
        assert parse_tool_arguments("echo", "   ") == {}
        assert parse_tool_arguments("echo", None) == {}

    def test_invalid_json(self) -> None:
        with pytest.raises(InvalidToolArgumentsError, match="Invalid JSON"):
            parse_tool_arguments("echo", "{not json")

    def test_non_object(self) -> None:
        with pytest.raises(ToolExecutionError, match="must be a JSON object"):
            parse_tool_arguments("echo", "[1, 2]")


class TestToolFailureMessage:
    """Tests for tool_failure_message."""

    def test_bounded_length(self) -> None:
        payload = json.loads(tool_failure_message("boom", RuntimeError("e" * 5000)))

        assert len(payload["message"]) == TOOL_ERROR_MAX_CHARS
        assert payload["message"].endswith("...")
        assert payload["tool"] == "boom"

    def test_uses_error_code(self) -> None:
        payload = json.loads(tool_failure_message("nope", ToolExecutionError("nope", "bad")))
        assert payload["code"] == "TOOL_3002"

    def test_generic_exception_code(self) -> None:
        payload = json.loads(tool_failure_message("x", KeyError("k")))
        assert payload["code"] == "TOOL_3002"

    def test_empty_message_uses_type_name(self) -> None:
        payload = json.loads(tool_failure_message("x", RuntimeError()))
        assert payload["message"] == "RuntimeError"


class TestPendingExchange:
    """Tests for PendingExchange."""

    def test_commit_appends_in_order(self) -> None:
        store = SessionStore()
        session = store.get_or_create("alice")
        exchange = PendingExchange()
        exchange.add(Turn.user("q"))
        exchange.add(Turn.assistant("a"))

        assert len(session) == 1
        exchange.commit(session)
        assert [t.content for t in session.history()] == [SESSION_GREETING, "q", "a"]


class TestRespond:
    """Tests for DialogueOrchestrator.respond."""

    @pytest.mark.asyncio
    async def test_simple_reply(self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any) -> None:
        orchestrator = make_orchestrator(scripted_backend(reply="Hi Alice"))

        reply = await orchestrator.respond("alice", "hello")

        assert reply == "Hi Alice"
        assert contents(orchestrator, "alice") == [
            (Role.SYSTEM, SESSION_GREETING),
            (Role.USER, "hello"),
            (Role.ASSISTANT, "Hi Alice"),
        ]
        assert orchestrator.turn_state("alice") is TurnState.IDLE

    @pytest.mark.asyncio
    async def test_backend_sees_history_with_new_user_turn(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend(reply="ok")
        orchestrator = make_orchestrator(backend)

        await orchestrator.respond("alice", "first")
        await orchestrator.respond("alice", "second")

        last = backend.histories[-1]
        assert [t.content for t in last] == [SESSION_GREETING, "first", "ok", "second"]

    @pytest.mark.asyncio
    async def test_tool_call_recorded_before_reply(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend(reply="done", tool_calls=[("echo", '{"text": "ping"}')])
        orchestrator = make_orchestrator(backend)

        await orchestrator.respond("alice", "use echo")

        history = orchestrator.store.get_or_create("alice").history()
        assert [t.role for t in history] == [Role.SYSTEM, Role.USER, Role.TOOL, Role.ASSISTANT]
        assert history[2].tool_name == "echo"
        assert history[2].content == "ping"
        assert backend.tool_results == ["ping"]

    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error_turn(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend(reply="sorry", tool_calls=[("does_not_exist", "{}")])
        orchestrator = make_orchestrator(backend)

        reply = await orchestrator.respond("alice", "go")

        assert reply == "sorry"
        payload = json.loads(backend.tool_results[0])
        assert payload["code"] == "TOOL_3001"
        assert "does_not_exist" in payload["message"]

    @pytest.mark.asyncio
    async def test_failing_tool_yields_bounded_tool_turn(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        """A tool that throws does not abort the turn; the model sees a bounded error."""
        backend = scripted_backend(reply="recovered", tool_calls=[("boom", "{}")])
        orchestrator = make_orchestrator(backend)

        reply = await orchestrator.respond("alice", "go")

        assert reply == "recovered"
        tool_turn = orchestrator.store.get_or_create("alice").turns_by_role(Role.TOOL)[0]
        payload = json.loads(tool_turn.content)
        assert payload["error"] is True
        assert payload["code"] == "TOOL_3002"
        assert len(payload["message"]) <= TOOL_ERROR_MAX_CHARS
        assert "backend exploded" in payload["message"]

    @pytest.mark.asyncio
    async def test_missing_argument_reported(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend(reply="ok", tool_calls=[("echo", "{}")])
        orchestrator = make_orchestrator(backend)

        await orchestrator.respond("alice", "go")

        payload = json.loads(backend.tool_results[0])
        assert "missing required argument 'text'" in payload["message"]
        assert payload["code"] == "TOOL_3003"

    @pytest.mark.asyncio
    async def test_invalid_json_arguments_reported(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend(reply="ok", tool_calls=[("echo", "{broken")])
        orchestrator = make_orchestrator(backend)

        await orchestrator.respond("alice", "go")

        assert "Invalid JSON" in json.loads(backend.tool_results[0])["message"]

    @pytest.mark.asyncio
    async def test_oversized_tool_result_is_clamped(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend(reply="ok", tool_calls=[("huge", "{}")])
        orchestrator = make_orchestrator(backend)

        await orchestrator.respond("alice", "go")

        payload = json.loads(backend.tool_results[0])
        assert payload["code"] == "RES_4001"
        tool_turn = orchestrator.store.get_or_create("alice").turns_by_role(Role.TOOL)[0]
        assert tool_turn.content == backend.tool_results[0]

    @pytest.mark.asyncio
    async def test_model_failure_returns_apology(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any, mock_logger: Mock
    ) -> None:
        orchestrator = make_orchestrator(scripted_backend(error=UpstreamModelError("Rate limit exceeded")))

        reply = await orchestrator.respond("alice", "hello")

        assert reply == APOLOGY_MESSAGE
        assert contents(orchestrator, "alice")[-2:] == [(Role.USER, "hello"), (Role.ASSISTANT, APOLOGY_MESSAGE)]
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_reply_returns_apology(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        orchestrator = make_orchestrator(scripted_backend(reply="   "))
        assert await orchestrator.respond("alice", "hello") == APOLOGY_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_session_key_rejected(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        orchestrator = make_orchestrator(scripted_backend())
        with pytest.raises(UnknownSessionKeyError):
            await orchestrator.respond("", "hello")

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        """Concurrent users each see only their own conversation."""
        backend = scripted_backend(reply=lambda history: f"echo: {history[-1].content}")
        orchestrator = make_orchestrator(backend)

        alice, bob = await asyncio.gather(
            orchestrator.respond("alice", "I am Alice"),
            orchestrator.respond("bob", "I am Bob"),
        )

        assert alice == "echo: I am Alice"
        assert bob == "echo: I am Bob"
        assert all("Bob" not in content for _, content in contents(orchestrator, "alice"))
        assert all("Alice" not in content for _, content in contents(orchestrator, "bob"))

    @pytest.mark.asyncio
    async def test_same_session_turns_are_serialized(self, make_orchestrator: Callable[..., DialogueOrchestrator]) -> None:
        """Overlapping calls for one key run one at a time and never interleave turns."""
        active = 0
        max_active = 0

        class SlowBackend:
            async def generate(self, history: Sequence[Turn], tools: Any, execute_tool: Any) -> str:
                nonlocal active, max_active
                active += 1
                max_active = max(max_active, active)
                await asyncio.sleep(0.01)
                active -= 1
                return f"reply to {history[-1].content}"

        orchestrator = make_orchestrator(SlowBackend())

        await asyncio.gather(*(orchestrator.respond("alice", f"msg {i}") for i in range(5)))

        assert max_active == 1
        history = contents(orchestrator, "alice")[1:]
        assert len(history) == 10
        for user, assistant in zip(history[::2], history[1::2]):
            assert user[0] is Role.USER
            assert assistant == (Role.ASSISTANT, f"reply to {user[1]}")

    @pytest.mark.asyncio
    async def test_cancellation_commits_nothing(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        """A cancelled turn leaves the session exactly as it was, even after a tool ran."""
        started = asyncio.Event()

        async def hang() -> None:
            started.set()
            await asyncio.Event().wait()

        backend = scripted_backend(tool_calls=[("echo", '{"text": "ping"}')], before_reply=hang)
        orchestrator = make_orchestrator(backend)

        task = asyncio.create_task(orchestrator.respond("alice", "hello"))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert contents(orchestrator, "alice") == [(Role.SYSTEM, SESSION_GREETING)]
        assert orchestrator.turn_state("alice") is TurnState.IDLE
        assert not orchestrator.store.get_or_create("alice").turn_lock.locked()

    @pytest.mark.asyncio
    async def test_state_during_tool_execution(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], mock_logger: Mock, scripted_backend: Any
    ) -> None:
        seen: list[TurnState] = []
        holder: dict[str, DialogueOrchestrator] = {}

        async def record_state(_: dict[str, Any]) -> str:
            seen.append(holder["o"].turn_state("alice"))
            return "recorded"

        registry = build_registry([lambda: [make_tool("record_state", record_state)]], mock_logger)
        backend = scripted_backend(reply="ok", tool_calls=[("record_state", "")])
        orchestrator = make_orchestrator(backend, registry=registry)
        holder["o"] = orchestrator

        await orchestrator.respond("alice", "go")

        assert seen == [TurnState.TOOL_EXECUTING]
        assert orchestrator.turn_state("alice") is TurnState.IDLE

    def test_tool_catalog_fixed_at_construction(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], registry: ToolRegistry, scripted_backend: Any
    ) -> None:
        orchestrator = make_orchestrator(scripted_backend())
        before = orchestrator.tools

        registry.register(make_tool("late", huge))

        assert orchestrator.tools == before
        assert "late" not in [tool.name for tool in orchestrator.tools]
        assert {"echo", "boom", "huge", "help"} <= {tool.name for tool in before}

    @pytest.mark.asyncio
    async def test_backend_receives_catalog(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        backend = scripted_backend()
        orchestrator = make_orchestrator(backend)

        await orchestrator.respond("alice", "hi")

        assert backend.tools_seen[0] == orchestrator.tools


class TestAuditAndLogging:
    """Tests for the optional audit sink and turn logging."""

    @pytest.mark.asyncio
    async def test_audit_records_successful_tools_only(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any
    ) -> None:
        sink = Mock()
        sink.record = AsyncMock()
        backend = scripted_backend(reply="ok", tool_calls=[("echo", '{"text": "ping"}'), ("boom", "{}")])
        orchestrator = make_orchestrator(backend, audit_sink=sink)

        await orchestrator.respond("alice", "go")

        sink.record.assert_awaited_once_with("echo", {"text": "ping"}, "ping")

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_break_turn(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any, mock_logger: Mock
    ) -> None:
        sink = Mock()
        sink.record = AsyncMock(side_effect=OSError("disk full"))
        backend = scripted_backend(reply="ok", tool_calls=[("echo", '{"text": "ping"}')])
        orchestrator = make_orchestrator(backend, audit_sink=sink)

        assert await orchestrator.respond("alice", "go") == "ok"
        assert backend.tool_results == ["ping"]
        assert any("Audit sink failed" in str(c) for c in mock_logger.warning.call_args_list)

    @pytest.mark.asyncio
    async def test_conversation_turn_logged(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any, mock_logger: Mock
    ) -> None:
        counter = Mock(return_value=42)
        backend = scripted_backend(reply="ok", tool_calls=[("echo", '{"text": "ping"}')])
        orchestrator = make_orchestrator(backend, token_counter=counter)

        await orchestrator.respond("alice", "go")

        mock_logger.bind.assert_called_with("alice")
        kwargs = mock_logger.log_conversation_turn.call_args.kwargs
        assert kwargs["user_input"] == "go"
        assert kwargs["response"] == "ok"
        assert kwargs["function_calls"] == ["echo"]
        assert kwargs["tokens_used"] == 42
        mock_logger.log_function_call.assert_called_once_with("echo", {"text": "ping"}, "ping")

    @pytest.mark.asyncio
    async def test_token_counter_failure_logged(
        self, make_orchestrator: Callable[..., DialogueOrchestrator], scripted_backend: Any, mock_logger: Mock
    ) -> None:
        orchestrator = make_orchestrator(scripted_backend(), token_counter=Mock(side_effect=KeyError("model")))

        assert await orchestrator.respond("alice", "hi") == "Hello!"
        assert mock_logger.log_conversation_turn.call_args.kwargs["tokens_used"] is None
