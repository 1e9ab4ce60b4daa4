"""
Models Module - Data Models and Type Definitions
=================================================

Modules:
    session_models: Role and Turn (immutable conversation messages)
    tool_models: ToolDescriptor, ToolParameter, ParameterType and ChunkPolicy
    error_models: ErrorCode and the application exception hierarchy

Error Taxonomy (error_models.py):
    - UnknownSessionKeyError: empty session key (usage error)
    - DuplicateToolError / InvalidToolSchemaError: fatal at startup
    - UnknownToolError / ToolExecutionError: recovered by the orchestrator
    - UpstreamModelError: recovered as the apology reply
    - ClusterLookupError: unknown Kusto cluster key
"""
