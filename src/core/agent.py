"""
Agent setup and the reasoning backend for Clearwater Assistant.

``ModelBackend`` is what the DialogueOrchestrator talks to: it receives the
session history, the tool catalog and a callback for executing tools, and
returns the final assistant text. ``AgentRunnerBackend`` implements it with
the Agent/Runner framework; each registry tool becomes a FunctionTool whose
body calls back into the orchestrator.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, Protocol, TypeGuard, get_args

from agents import Agent, ModelSettings, Runner, TResponseInputItem
from agents.exceptions import AgentsException
from openai import APIConnectionError, APIStatusError, RateLimitError
from openai.types.shared import Reasoning

from core.constants import AGENT_NAME, MAX_CONVERSATION_TURNS, REASONING_MODELS
from models.error_models import UpstreamModelError
from models.session_models import Role, Turn
from models.tool_models import ToolDescriptor
from tools.wrappers import ToolExecutor, create_function_tools
from utils.logger import ChatLogger

# Type alias for valid reasoning effort levels
ReasoningEffort = Literal["minimal", "low", "medium", "high"]


class ModelBackend(Protocol):
    """Reasoning backend used by the orchestrator."""

    async def generate(
        self,
        history: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
        execute_tool: ToolExecutor,
    ) -> str:
        """Produce the final assistant text, calling ``execute_tool`` for each tool request."""
        ...


def is_valid_reasoning_effort(value: str) -> TypeGuard[ReasoningEffort]:
    """Type guard to validate reasoning effort level."""
    return value in get_args(ReasoningEffort)


def create_agent(
    deployment: str,
    instructions: str,
    tools: list[Any],
    logger: ChatLogger,
    reasoning_effort: str | None = None,
) -> Agent:
    """Create and configure the Clearwater Agent.

    Args:
        deployment: Model deployment name
        instructions: System instructions for the agent
        tools: List of function tools
        logger: Application logger
        reasoning_effort: Optional reasoning effort level (minimal, low, medium, high).
            Only applied to reasoning models.

    Returns:
        Configured Agent instance
    """
    effort_level = reasoning_effort if reasoning_effort is not None else "medium"

    if is_valid_reasoning_effort(effort_level):
        validated_effort: ReasoningEffort = effort_level
    else:
        logger.warning(f"Invalid reasoning_effort '{effort_level}', defaulting to 'medium'")
        validated_effort = "medium"

    is_reasoning_model = any(deployment.startswith(model) for model in REASONING_MODELS)

    agent_kwargs: dict[str, Any] = {
        "name": AGENT_NAME,
        "model": deployment,
        "instructions": instructions,
        "tools": tools,
    }

    if is_reasoning_model:
        agent_kwargs["model_settings"] = ModelSettings(reasoning=Reasoning(effort=validated_effort))
        logger.debug(f"Reasoning model detected - reasoning_effort set to '{validated_effort}'")

    agent = Agent(**agent_kwargs)
    logger.debug(f"Agent created - Deployment: {deployment}, {len(tools)} tools")
    return agent


def to_input_items(history: Sequence[Turn]) -> list[TResponseInputItem]:
    """Convert session turns into Runner input items.

    Tool turns from earlier exchanges carry no call ids, so they are replayed
    as developer messages naming the tool.
    """
    items: list[TResponseInputItem] = []
    for turn in history:
        if turn.role is Role.TOOL:
            items.append({"role": "developer", "content": f"Result of tool '{turn.tool_name}':\n{turn.content}"})
        else:
            items.append({"role": turn.role.value, "content": turn.content})  # type: ignore[misc]
    return items


def describe_model_error(error: Exception) -> str:
    """Map SDK/API failures to a short description for logs and UpstreamModelError."""
    if isinstance(error, RateLimitError):
        return "Rate limit exceeded"
    if isinstance(error, APIConnectionError):
        return "Connection to the model service failed"
    if isinstance(error, APIStatusError):
        return f"Model service returned status {error.status_code}"
    if isinstance(error, AgentsException):
        return f"Agent run failed: {type(error).__name__}: {error}"
    return f"Unexpected model error: {type(error).__name__}: {error}"


class AgentRunnerBackend:
    """ModelBackend built on ``agents.Runner.run``."""

    def __init__(
        self,
        deployment: str,
        instructions: str,
        logger: ChatLogger,
        reasoning_effort: str | None = None,
        max_turns: int = MAX_CONVERSATION_TURNS,
    ):
        self.deployment = deployment
        self.instructions = instructions
        self.logger = logger
        self.reasoning_effort = reasoning_effort
        self.max_turns = max_turns

    async def generate(
        self,
        history: Sequence[Turn],
        tools: Sequence[ToolDescriptor],
        execute_tool: ToolExecutor,
    ) -> str:
        agent = create_agent(
            self.deployment,
            self.instructions,
            create_function_tools(tools, execute_tool),
            self.logger,
            reasoning_effort=self.reasoning_effort,
        )

        try:
            result = await Runner.run(agent, input=to_input_items(history), max_turns=self.max_turns)
        except (APIStatusError, APIConnectionError, AgentsException) as e:
            raise UpstreamModelError(describe_model_error(e)) from e

        return str(result.final_output or "")
