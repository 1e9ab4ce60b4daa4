"""
Tool registry for Clearwater Assistant.

Tools are registered explicitly at startup from factory functions; there is
no runtime discovery. Once the orchestrator is built the catalog is fixed, so
help output and the tool list the model sees stay stable for the whole run.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from models.error_models import (
    DuplicateToolError,
    InvalidToolArgumentsError,
    InvalidToolSchemaError,
    ToolExecutionError,
    UnknownToolError,
)
from models.tool_models import ParameterType, ToolDescriptor, ToolParameter
from utils.json_utils import json_pretty
from utils.logger import ChatLogger

#: A factory builds the descriptors of one plugin
ToolFactory = Callable[[], Iterable[ToolDescriptor]]

HELP_TOOL_NAME = "help"

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


def coerce_argument(param: ToolParameter, value: Any) -> Any:
    """Convert a model-supplied value to the parameter's declared type.

    Tool schemas are not strict, so booleans and numbers may arrive as strings.

    Raises:
        ValueError: If the value cannot be read as the declared type
    """
    if param.type is ParameterType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ValueError(f"expected a boolean, got {value!r}")
    if param.type is ParameterType.INTEGER:
        if isinstance(value, bool):
            raise ValueError(f"expected an integer, got {value!r}")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    if param.type is ParameterType.NUMBER:
        if isinstance(value, bool):
            raise ValueError(f"expected a number, got {value!r}")
        return float(value)
    return value


def validate_descriptor(descriptor: ToolDescriptor) -> None:
    """Reject malformed descriptors before they reach the catalog."""
    if not descriptor.name or not descriptor.name.strip():
        raise InvalidToolSchemaError("Tool name must be a non-empty string")
    if not callable(descriptor.invoke):
        raise InvalidToolSchemaError(f"Tool '{descriptor.name}' has no callable invoke")

    seen: set[str] = set()
    optional_seen = False
    for param in descriptor.parameters:
        if param.name in seen:
            raise InvalidToolSchemaError(f"Tool '{descriptor.name}' declares parameter '{param.name}' twice")
        seen.add(param.name)
        if param.optional:
            optional_seen = True
        elif optional_seen:
            raise InvalidToolSchemaError(
                f"Tool '{descriptor.name}': required parameter '{param.name}' follows an optional one"
            )


class ToolRegistry:
    """Mapping from tool name to descriptor with dispatch and help."""

    def __init__(self, logger: ChatLogger):
        self._tools: dict[str, ToolDescriptor] = {}
        self.logger = logger

    def register(self, descriptor: ToolDescriptor) -> None:
        """Add a tool to the catalog.

        Raises:
            DuplicateToolError: If a tool with the same name exists
            InvalidToolSchemaError: If the descriptor is malformed
        """
        validate_descriptor(descriptor)
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = descriptor
        self.logger.debug(f"Registered tool {descriptor.name} ({descriptor.group})")

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def descriptors(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, args: Mapping[str, Any] | Sequence[Any] | None = None) -> str:
        """Run a tool and return its text result.

        Args:
            name: Registered tool name
            args: Arguments by name, or positionally in parameter order

        Raises:
            UnknownToolError: If no tool has this name
            InvalidToolArgumentsError: If arguments do not parse or bind
            ToolExecutionError: If the tool raises
        """
        descriptor = self.get(name)
        bound = self._bind(descriptor, args)

        try:
            result = await descriptor.invoke(bound)
        except Exception as e:
            raise ToolExecutionError(name, f"Tool '{name}' failed: {e}") from e

        return result if isinstance(result, str) else str(result)

    def help(self, group: str | None = None) -> str:
        """Aggregate name, description and parameters of every tool into JSON.

        A tool whose description raises is logged and left out.

        Args:
            group: Only describe tools of this plugin group
        """
        entries: list[dict[str, Any]] = []
        for descriptor in self._tools.values():
            if group and descriptor.group != group:
                continue
            try:
                entries.append(descriptor.describe())
            except Exception as e:
                self.logger.warning(f"Skipping help for tool {descriptor.name}: {e}")
        return json_pretty({"tools": entries})

    @staticmethod
    def _bind(descriptor: ToolDescriptor, args: Mapping[str, Any] | Sequence[Any] | None) -> dict[str, Any]:
        name = descriptor.name
        params = descriptor.parameters
        if args is None:
            provided: dict[str, Any] = {}
        elif isinstance(args, Mapping):
            provided = dict(args)
        elif isinstance(args, (str, bytes)):
            raise InvalidToolArgumentsError(name, f"Tool '{name}' expects an argument list or object")
        else:
            values = list(args)
            if len(values) > len(params):
                raise InvalidToolArgumentsError(
                    name, f"Tool '{name}' takes {len(params)} arguments but {len(values)} were given"
                )
            provided = {param.name: value for param, value in zip(params, values)}

        known = {param.name for param in params}
        unexpected = sorted(set(provided) - known)
        if unexpected:
            raise InvalidToolArgumentsError(name, f"Tool '{name}' got unexpected arguments: {', '.join(unexpected)}")

        bound: dict[str, Any] = {}
        for param in params:
            if param.name in provided and provided[param.name] is not None:
                try:
                    bound[param.name] = coerce_argument(param, provided[param.name])
                except (TypeError, ValueError) as e:
                    raise InvalidToolArgumentsError(name, f"Tool '{name}' argument '{param.name}': {e}") from e
            elif param.optional:
                bound[param.name] = param.default
            else:
                raise InvalidToolArgumentsError(name, f"Tool '{name}' is missing required argument '{param.name}'")
        return bound


def build_registry(factories: Iterable[ToolFactory], logger: ChatLogger) -> ToolRegistry:
    """Build the static tool catalog.

    Each factory returns the descriptors of one plugin. A ``help`` tool that
    reports on the whole catalog is registered last.

    Raises:
        DuplicateToolError: If two factories produce the same tool name
        InvalidToolSchemaError: If any descriptor is malformed
    """
    registry = ToolRegistry(logger)
    for factory in factories:
        for descriptor in factory():
            registry.register(descriptor)

    async def help_tool(args: dict[str, Any]) -> str:
        return registry.help(args["group"])

    registry.register(
        ToolDescriptor(
            name=HELP_TOOL_NAME,
            description=(
                "Provides detailed information about every available function, "
                "including descriptions and parameters."
            ),
            invoke=help_tool,
            parameters=(
                ToolParameter(
                    name="group",
                    description="Only describe tools of this plugin (e.g., 'kusto', 'meta'). Omit for all.",
                    optional=True,
                ),
            ),
            group="clearwater",
        )
    )
    logger.info(f"Tool registry built with {len(registry)} tools")
    return registry
