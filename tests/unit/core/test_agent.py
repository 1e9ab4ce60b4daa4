"""Tests for agent module.

Tests agent creation, history conversion and the Runner-based backend.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from agents.exceptions import MaxTurnsExceeded
from openai import APIConnectionError, RateLimitError

from core.agent import (
    AgentRunnerBackend,
    create_agent,
    describe_model_error,
    is_valid_reasoning_effort,
    to_input_items,
)
from models.error_models import UpstreamModelError
from models.session_models import Turn
from models.tool_models import ToolDescriptor


class TestCreateAgent:
    """Tests for create_agent function."""

    @patch("core.agent.Agent")
    def test_create_agent_basic(self, mock_agent_class: Mock, mock_logger: Mock) -> None:
        """Test creating agent with basic configuration."""
        create_agent(deployment="gpt-4o", instructions="Test instructions", tools=[], logger=mock_logger)

        mock_agent_class.assert_called_once()
        kwargs = mock_agent_class.call_args.kwargs
        assert kwargs["name"] == "Clearwater"
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["instructions"] == "Test instructions"

    @patch("core.agent.Agent")
    @patch("core.agent.ModelSettings")
    def test_create_agent_with_reasoning_model(
        self, mock_model_settings: Mock, mock_agent_class: Mock, mock_logger: Mock
    ) -> None:
        """Reasoning models get model_settings with the requested effort."""
        create_agent(
            deployment="gpt-5-mini",
            instructions="Test instructions",
            tools=[],
            logger=mock_logger,
            reasoning_effort="high",
        )

        assert "model_settings" in mock_agent_class.call_args.kwargs
        reasoning = mock_model_settings.call_args.kwargs["reasoning"]
        assert reasoning.effort == "high"

    @patch("core.agent.Agent")
    def test_create_agent_with_non_reasoning_model(self, mock_agent_class: Mock, mock_logger: Mock) -> None:
        """Non-reasoning models get no model_settings."""
        create_agent(
            deployment="gpt-4o",
            instructions="Test instructions",
            tools=[],
            logger=mock_logger,
            reasoning_effort="high",
        )

        assert "model_settings" not in mock_agent_class.call_args.kwargs

    @patch("core.agent.Agent")
    @patch("core.agent.ModelSettings")
    def test_invalid_reasoning_effort_defaults_to_medium(
        self, mock_model_settings: Mock, mock_agent_class: Mock, mock_logger: Mock
    ) -> None:
        """Test that an invalid effort falls back to medium with a warning."""
        create_agent(
            deployment="o3",
            instructions="Test",
            tools=[],
            logger=mock_logger,
            reasoning_effort="extreme",
        )

        assert mock_model_settings.call_args.kwargs["reasoning"].effort == "medium"
        mock_logger.warning.assert_called_once()


class TestReasoningEffort:
    """Tests for is_valid_reasoning_effort."""

    def test_valid_values(self) -> None:
        for effort in ["minimal", "low", "medium", "high"]:
            assert is_valid_reasoning_effort(effort)

    def test_invalid_value(self) -> None:
        assert not is_valid_reasoning_effort("max")


class TestToInputItems:
    """Tests for converting session turns into Runner input."""

    def test_roles_are_preserved(self, sample_turns: list[Turn]) -> None:
        items = to_input_items(sample_turns)

        assert [item["role"] for item in items] == ["system", "user", "developer", "assistant"]  # type: ignore[index]
        assert items[1]["content"] == "How many SafeFly requests are open?"  # type: ignore[index]

    def test_tool_turn_names_tool(self, sample_turns: list[Turn]) -> None:
        """Past tool results are replayed with the tool name."""
        items = to_input_items(sample_turns)

        content = items[2]["content"]  # type: ignore[index]
        assert content.startswith("Result of tool 'kusto_query':")
        assert '[{"Count": 3}]' in content

    def test_empty_history(self) -> None:
        assert to_input_items([]) == []


class TestDescribeModelError:
    """Tests for describe_model_error."""

    def test_connection_error(self) -> None:
        error = APIConnectionError(request=httpx.Request("POST", "https://example.com"))
        assert describe_model_error(error) == "Connection to the model service failed"

    def test_rate_limit(self) -> None:
        response = httpx.Response(429, request=httpx.Request("POST", "https://example.com"))
        error = RateLimitError("slow down", response=response, body=None)
        assert describe_model_error(error) == "Rate limit exceeded"

    def test_agents_exception(self) -> None:
        message = describe_model_error(MaxTurnsExceeded("too many turns"))
        assert message.startswith("Agent run failed: MaxTurnsExceeded")

    def test_unexpected(self) -> None:
        assert "ValueError" in describe_model_error(ValueError("boom"))


class TestAgentRunnerBackend:
    """Tests for AgentRunnerBackend.generate."""

    @pytest.mark.asyncio
    async def test_generate_returns_final_output(
        self, mock_runner: Mock, mock_logger: Mock, sample_turns: list[Turn], echo_tool: ToolDescriptor
    ) -> None:
        mock_runner.run.return_value = Mock(final_output="There are 3 open requests.")
        backend = AgentRunnerBackend("gpt-4o", "Be helpful", mock_logger, max_turns=7)

        with patch("core.agent.Runner", mock_runner), patch("core.agent.Agent") as mock_agent_class:
            reply = await backend.generate(sample_turns, [echo_tool], AsyncMock(return_value="ok"))

        assert reply == "There are 3 open requests."
        call = mock_runner.run.call_args
        assert call.kwargs["max_turns"] == 7
        assert len(call.kwargs["input"]) == len(sample_turns)

        tools = mock_agent_class.call_args.kwargs["tools"]
        assert [tool.name for tool in tools] == ["echo"]

    @pytest.mark.asyncio
    async def test_generate_none_output(self, mock_runner: Mock, mock_logger: Mock) -> None:
        mock_runner.run.return_value = Mock(final_output=None)
        backend = AgentRunnerBackend("gpt-4o", "Be helpful", mock_logger)

        with patch("core.agent.Runner", mock_runner), patch("core.agent.Agent"):
            reply = await backend.generate([Turn.user("hi")], [], AsyncMock())

        assert reply == ""

    @pytest.mark.asyncio
    async def test_api_errors_become_upstream_errors(self, mock_runner: Mock, mock_logger: Mock) -> None:
        """SDK and API failures are raised as UpstreamModelError with the cause chained."""
        error = APIConnectionError(request=httpx.Request("POST", "https://example.com"))
        mock_runner.run.side_effect = error
        backend = AgentRunnerBackend("gpt-4o", "Be helpful", mock_logger)

        with patch("core.agent.Runner", mock_runner), patch("core.agent.Agent"):
            with pytest.raises(UpstreamModelError) as exc_info:
                await backend.generate([Turn.user("hi")], [], AsyncMock())

        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_tool_calls_forward_to_executor(self, mock_logger: Mock, echo_tool: ToolDescriptor) -> None:
        """The FunctionTool handed to the agent calls back into the executor."""
        execute_tool = AsyncMock(return_value="echoed")
        captured: dict[str, Any] = {}

        async def fake_run(agent: Any, input: Any, max_turns: int) -> Mock:
            tool = captured["tools"][0]
            result = await tool.on_invoke_tool(None, '{"text": "hello"}')
            return Mock(final_output=f"tool said {result}")

        def fake_agent(**kwargs: Any) -> Mock:
            captured.update(kwargs)
            return Mock()

        backend = AgentRunnerBackend("gpt-4o", "Be helpful", mock_logger)
        with patch("core.agent.Runner") as runner, patch("core.agent.Agent", side_effect=fake_agent):
            runner.run = fake_run
            reply = await backend.generate([Turn.user("hi")], [echo_tool], execute_tool)

        assert reply == "tool said echoed"
        execute_tool.assert_awaited_once_with("echo", '{"text": "hello"}')
