"""
Utils Module - Infrastructure Utilities and Support Functions
==============================================================

Modules:
    logger: JSON structured logging with rotation (ChatLogger, setup_logging)
    token_utils: Length-based token estimates and exact tiktoken counts
    json_utils: JSON serialization partials and the tool error payload
    client_factory: httpx and AsyncOpenAI client creation
    file_utils: Async UTF-8 file writes through aiofiles

Logging (logger.py):
    - Console handler: Human-readable format to stderr
    - Conversation handler: JSON Lines format to <log_dir>/conversations.jsonl
    - Error handler: JSON Lines format to <log_dir>/errors.jsonl

    The ChatLogger is created once at bootstrap and passed to components;
    bind(session_id) gives a per-session view sharing the same handlers.
"""
