"""
Clearwater Assistant - chat assistant for deployment and build investigations
==============================================================================

Agent/Runner pattern over Azure OpenAI or OpenAI, with tools for Kusto
analytics, SafeFly deployment requests, DevOps build lookups, feedback capture
and issue creation.

Key Features:
    - **Per-user sessions**: Append-only conversation history, one session per key
    - **Static tool catalog**: Explicit registration with aggregated help
    - **Result size guard**: Oversized tool output is replaced with guidance
    - **Structured Logging**: JSON logs with rotation and session correlation

Modules:
    core: Session store, orchestrator, result guard, agent backend, configuration
    tools: Tool registry and plugin factories
    models: Pydantic models, tool descriptors and error taxonomy
    utils: Logging, token counting, JSON helpers, client factories
    integrations: Query executor, audit sink, issue tracker clients
"""
