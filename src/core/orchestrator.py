"""
Dialogue orchestration: one user turn from input text to final reply.

State machine per session::

    IDLE -> AWAITING_MODEL -> (TOOL_CALL_REQUESTED -> TOOL_EXECUTING -> AWAITING_MODEL)*
         -> RESPONDING -> IDLE

Turns produced while answering (user, tool results, assistant) are staged in
a PendingExchange and committed to the session in one atomic step once the
reply is known. A cancelled ``respond`` therefore leaves the session exactly
as it was; a completed one always ends with exactly one assistant turn, which
is the fixed apology if the model call failed.
"""

from __future__ import annotations

import json
import time

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.agent import ModelBackend
from core.constants import APOLOGY_MESSAGE, TOOL_ERROR_MAX_CHARS
from core.result_guard import ResultSizeGuard
from core.session import ConversationSession
from core.session_manager import SessionStore
from integrations.audit import QueryAuditSink
from models.error_models import ClearwaterError, ErrorCode, InvalidToolArgumentsError
from models.session_models import Turn
from models.tool_models import ToolDescriptor
from tools.registry import ToolRegistry
from utils.json_utils import error_response
from utils.logger import ChatLogger


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    TOOL_CALL_REQUESTED = "tool_call_requested"
    TOOL_EXECUTING = "tool_executing"
    RESPONDING = "responding"


@dataclass
class PendingExchange:
    """Turns staged during one respond call, committed together."""

    turns: list[Turn] = field(default_factory=list)
    tool_calls: list[str] = field(default_factory=list)

    def add(self, turn: Turn) -> None:
        self.turns.append(turn)

    def commit(self, session: ConversationSession) -> None:
        session.extend(self.turns)


def parse_tool_arguments(tool_name: str, arguments: str | None) -> dict[str, Any]:
    """Decode the model's JSON arguments object."""
    if not arguments or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise InvalidToolArgumentsError(tool_name, f"Invalid JSON arguments for tool '{tool_name}': {e.msg}") from e
    if not isinstance(parsed, dict):
        raise InvalidToolArgumentsError(tool_name, f"Arguments for tool '{tool_name}' must be a JSON object")
    return parsed


def tool_failure_message(tool_name: str, error: Exception) -> str:
    """Bounded, model-readable description of a failed tool call."""
    message = str(error) or type(error).__name__
    if len(message) > TOOL_ERROR_MAX_CHARS:
        message = message[: TOOL_ERROR_MAX_CHARS - 3] + "..."
    code = error.code if isinstance(error, ClearwaterError) else ErrorCode.TOOL_EXECUTION_FAILED
    return error_response(message, code=code.value, tool=tool_name)


class DialogueOrchestrator:
    """Façade the hosting layer calls with (session key, user text)."""

    def __init__(
        self,
        store: SessionStore,
        registry: ToolRegistry,
        backend: ModelBackend,
        guard: ResultSizeGuard,
        logger: ChatLogger,
        audit_sink: QueryAuditSink | None = None,
        token_counter: Callable[[str], int] | None = None,
    ):
        self.store = store
        self.registry = registry
        self.backend = backend
        self.guard = guard
        self.logger = logger
        self.audit_sink = audit_sink
        self.token_counter = token_counter
        # The catalog is fixed for the orchestrator's lifetime
        self._tools = tuple(registry.descriptors())
        self._states: dict[str, TurnState] = {}

    @property
    def tools(self) -> tuple[ToolDescriptor, ...]:
        return self._tools

    def turn_state(self, session_key: str) -> TurnState:
        return self._states.get(session_key, TurnState.IDLE)

    async def respond(self, session_key: str, user_input: str) -> str:
        """Answer one user message and return the assistant's reply.

        Turns for the same session are processed one at a time; different
        sessions proceed concurrently.

        Raises:
            UnknownSessionKeyError: If session_key is empty
            asyncio.CancelledError: If the caller cancels; nothing is recorded
        """
        session = self.store.get_or_create(session_key)
        log = self.logger.bind(session_key)

        async with session.turn_lock:
            started = time.perf_counter()
            exchange = PendingExchange()
            exchange.add(Turn.user(user_input))
            try:
                reply = await self._generate(session, exchange, log)
                self._set_state(session_key, TurnState.RESPONDING)
                exchange.add(Turn.assistant(reply))
                exchange.commit(session)
            finally:
                self._set_state(session_key, TurnState.IDLE)

        log.log_conversation_turn(
            user_input=user_input,
            response=reply,
            function_calls=exchange.tool_calls,
            duration_ms=(time.perf_counter() - started) * 1000,
            tokens_used=self._count_history_tokens(session, log),
        )
        return reply

    async def _generate(self, session: ConversationSession, exchange: PendingExchange, log: ChatLogger) -> str:
        key = session.session_key

        async def execute_tool(tool_name: str, arguments: str) -> str:
            return await self._execute_tool(key, exchange, log, tool_name, arguments)

        self._set_state(key, TurnState.AWAITING_MODEL)
        history = session.history() + tuple(exchange.turns)
        try:
            reply = await self.backend.generate(history, self._tools, execute_tool)
        except Exception as e:
            log.error(f"Model call failed: {e}", exc_info=True)
            return APOLOGY_MESSAGE

        if not reply.strip():
            log.warning("Model returned an empty reply")
            return APOLOGY_MESSAGE
        return reply

    async def _execute_tool(
        self,
        session_key: str,
        exchange: PendingExchange,
        log: ChatLogger,
        tool_name: str,
        arguments: str,
    ) -> str:
        self._set_state(session_key, TurnState.TOOL_CALL_REQUESTED)
        tool_name = tool_name or "unknown"
        exchange.tool_calls.append(tool_name)

        self._set_state(session_key, TurnState.TOOL_EXECUTING)
        args: dict[str, Any] = {}
        try:
            args = parse_tool_arguments(tool_name, arguments)
            raw = await self.registry.invoke(tool_name, args)
        except Exception as e:
            log.warning(f"Tool {tool_name} failed: {e}")
            result = tool_failure_message(tool_name, e)
        else:
            result = self.guard.clamp(raw)
            if result is not raw:
                log.warning(f"Tool {tool_name} result clamped ({len(raw)} chars)")
            await self._audit(tool_name, args, result, log)

        log.log_function_call(tool_name, args, result)
        exchange.add(Turn.tool(tool_name, result))
        self._set_state(session_key, TurnState.AWAITING_MODEL)
        return result

    async def _audit(self, tool_name: str, args: dict[str, Any], result: str, log: ChatLogger) -> None:
        if self.audit_sink is None:
            return
        try:
            await self.audit_sink.record(tool_name, args, result)
        except Exception as e:
            log.warning(f"Audit sink failed for tool {tool_name}: {e}")

    def _count_history_tokens(self, session: ConversationSession, log: ChatLogger) -> int | None:
        if self.token_counter is None:
            return None
        try:
            return self.token_counter("\n".join(turn.content for turn in session.history()))
        except Exception as e:
            log.warning(f"Token counting failed: {e}")
            return None

    def _set_state(self, session_key: str, state: TurnState) -> None:
        self._states[session_key] = state
