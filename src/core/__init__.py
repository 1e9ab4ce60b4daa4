"""
Core Application Layer - Conversation State and Orchestration
=============================================================

Modules:
    constants: Configuration values, cluster table and Pydantic settings validation
    session: ConversationSession, the append-only history of one user
    session_manager: SessionStore, the thread-safe map of session key to session
    result_guard: ResultSizeGuard, which clamps oversized tool output
    orchestrator: DialogueOrchestrator, the respond() entry point and turn state machine
    agent: Agent creation and the Runner-based reasoning backend
    prompts: System instructions

Key Components:

DialogueOrchestrator (orchestrator.py):
    Serializes turns per session with an asyncio lock, lets the model call
    tools through the registry, clamps every tool result and commits the
    whole exchange atomically. Tool failures become bounded error text the
    model can react to; model failures become a fixed apology.

ResultSizeGuard (result_guard.py):
    Pure function of the input length. A transport check (1MB) chunks the
    payload by an explicit ChunkPolicy, then a token estimate (len // 4
    against 120,000) replaces oversized results with narrowing suggestions.

See Also:
    :mod:`tools.registry`: Tool catalog used by the orchestrator
    :mod:`integrations.query_executor`: Query backend used by Kusto tools
"""
