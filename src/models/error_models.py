"""
Error codes and exception taxonomy for Clearwater Assistant.

Configuration errors (duplicate or malformed tools) are fatal at startup.
Tool and model failures are recovered by the DialogueOrchestrator and turned
into user-visible text, so they never reach the hosting layer.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Session errors (1xxx)
    SESSION_KEY_INVALID = "SES_1001"

    # Tool configuration errors (2xxx)
    TOOL_DUPLICATE = "CFG_2001"
    TOOL_SCHEMA_INVALID = "CFG_2002"

    # Tool runtime errors (3xxx)
    TOOL_NOT_FOUND = "TOOL_3001"
    TOOL_EXECUTION_FAILED = "TOOL_3002"
    TOOL_ARGUMENTS_INVALID = "TOOL_3003"

    # Result handling (4xxx)
    RESULT_OVERSIZED = "RES_4001"
    RESULT_DISCARDED = "RES_4002"

    # External service errors (5xxx)
    UPSTREAM_MODEL_FAILED = "EXT_5001"
    CLUSTER_NOT_FOUND = "EXT_5002"
    QUERY_FAILED = "EXT_5003"
    ISSUE_TRACKER_FAILED = "EXT_5004"


class ClearwaterError(Exception):
    """Base class for all application errors."""

    code: ErrorCode = ErrorCode.TOOL_EXECUTION_FAILED


class UnknownSessionKeyError(ClearwaterError, ValueError):
    """Session key was empty or missing."""

    code = ErrorCode.SESSION_KEY_INVALID


class ToolConfigurationError(ClearwaterError):
    """Tool catalog could not be built."""

    code = ErrorCode.TOOL_SCHEMA_INVALID


class DuplicateToolError(ToolConfigurationError):
    """A tool with the same name is already registered."""

    code = ErrorCode.TOOL_DUPLICATE

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is already registered")
        self.tool_name = name


class InvalidToolSchemaError(ToolConfigurationError):
    """A tool descriptor is malformed."""

    code = ErrorCode.TOOL_SCHEMA_INVALID


class ToolError(ClearwaterError):
    """Base class for tool dispatch failures."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


class UnknownToolError(ToolError):
    """No tool is registered under the requested name."""

    code = ErrorCode.TOOL_NOT_FOUND

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Unknown tool '{tool_name}'")


class ToolExecutionError(ToolError):
    """A tool failed. The underlying exception is chained as __cause__."""

    code = ErrorCode.TOOL_EXECUTION_FAILED


class InvalidToolArgumentsError(ToolExecutionError):
    """The arguments for a tool call did not parse or bind."""

    code = ErrorCode.TOOL_ARGUMENTS_INVALID


class UpstreamModelError(ClearwaterError):
    """The reasoning backend failed to produce a response."""

    code = ErrorCode.UPSTREAM_MODEL_FAILED


class ClusterLookupError(ClearwaterError, LookupError):
    """Cluster key is not in the catalog."""

    code = ErrorCode.CLUSTER_NOT_FOUND

    def __init__(self, cluster_key: str):
        super().__init__(f"Cluster with key '{cluster_key}' not found.")
        self.cluster_key = cluster_key


class QueryExecutionError(ClearwaterError):
    """The query backend rejected or failed a query."""

    code = ErrorCode.QUERY_FAILED


class IssueTrackerError(ClearwaterError):
    """Issue creation failed with a user-presentable message."""

    code = ErrorCode.ISSUE_TRACKER_FAILED


__all__ = [
    "ClearwaterError",
    "ClusterLookupError",
    "DuplicateToolError",
    "ErrorCode",
    "InvalidToolSchemaError",
    "IssueTrackerError",
    "QueryExecutionError",
    "ToolConfigurationError",
    "ToolError",
    "ToolExecutionError",
    "UnknownSessionKeyError",
    "UnknownToolError",
    "UpstreamModelError",
]
