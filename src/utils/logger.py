"""
Logging setup for Clearwater Assistant using Python's standard logging
with JSON formatting for structured logs.

Log destinations:
- Console (stderr): Human-readable format for debugging
- <log_dir>/conversations.jsonl: JSON format for conversation history
- <log_dir>/errors.jsonl: JSON format for error tracking

There is no module-level logger instance. Bootstrap creates one ChatLogger
and passes it to every component that logs.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import uuid

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

from core.constants import (
    DEFAULT_LOG_DIR,
    LOG_BACKUP_COUNT_CONVERSATIONS,
    LOG_BACKUP_COUNT_ERRORS,
    LOG_MAX_SIZE,
    LOG_PREVIEW_LENGTH,
    SESSION_ID_LENGTH,
)


@dataclass
class ConversationTurn:
    """Structured representation of a conversation turn for logging."""

    user_input: str
    response: str
    function_calls: list[str] = field(default_factory=list)
    duration_ms: float | None = None
    tokens_used: int | None = None
    session_id: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class ConversationFilter(logging.Filter):
    """Filter to allow all INFO level logs for conversations"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.INFO


class ErrorFilter(logging.Filter):
    """Filter to only allow ERROR and CRITICAL logs"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _preview(text: str) -> str:
    preview = text[:LOG_PREVIEW_LENGTH].replace("\n", " ")
    if len(text) > LOG_PREVIEW_LENGTH:
        preview += "..."
    return preview


def setup_logging(
    name: str = "clearwater",
    debug: bool | None = None,
    log_dir: str | Path | None = None,
) -> logging.Logger:
    """
    Set up logging with console and rotating JSON file handlers.

    Args:
        name: Logger name
        debug: Enable debug logging (overrides DEBUG env var)
        log_dir: Directory for the JSON log files (default: <project>/logs)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    logger.propagate = False

    # Remove any existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []

    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # --- Console Handler (Human-readable) ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)8s] %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

    # --- Conversation Log Handler (JSON) ---
    directory = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    conv_handler = logging.handlers.RotatingFileHandler(
        directory / "conversations.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_CONVERSATIONS,
    )
    conv_handler.setLevel(logging.INFO)
    conv_handler.addFilter(ConversationFilter())
    conv_handler.setFormatter(
        jsonlogger.JsonFormatter(  # type: ignore[attr-defined]
            "%(timestamp)s %(levelname)s %(message)s %(session_id)s %(tokens)s %(functions)s %(func)s",
            timestamp=True,
        )
    )
    logger.addHandler(conv_handler)

    # --- Error Log Handler (JSON) ---
    error_handler = logging.handlers.RotatingFileHandler(
        directory / "errors.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_ERRORS,
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(ErrorFilter())
    error_handler.setFormatter(
        jsonlogger.JsonFormatter(  # type: ignore[attr-defined]
            "%(timestamp)s %(levelname)s %(name)s %(message)s",
            timestamp=True,
        )
    )
    logger.addHandler(error_handler)

    return logger


class ChatLogger:
    """
    High-level logging interface for Clearwater Assistant.
    Wraps standard Python logging with convenience methods.

    Pass an existing ``logging.Logger`` to share handlers (see ``bind``);
    otherwise handlers are configured with ``setup_logging``.
    """

    def __init__(
        self,
        name: str = "clearwater",
        session_id: str | None = None,
        *,
        debug: bool | None = None,
        log_dir: str | Path | None = None,
        logger: logging.Logger | None = None,
    ):
        self.logger = logger if logger is not None else setup_logging(name, debug=debug, log_dir=log_dir)
        self.session_id = session_id or str(uuid.uuid4())[:SESSION_ID_LENGTH]

    def bind(self, session_id: str) -> ChatLogger:
        """Return a logger that tags records with ``session_id``, sharing handlers."""
        return ChatLogger(session_id=session_id, logger=self.logger)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Debug level logging"""
        kwargs["session_id"] = self.session_id
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Info level logging"""
        kwargs["session_id"] = self.session_id
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Warning level logging"""
        kwargs["session_id"] = self.session_id
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Error level logging with optional exception info"""
        kwargs["session_id"] = self.session_id
        self.logger.error(message, extra=kwargs, exc_info=exc_info)

    def log_conversation_turn(
        self,
        user_input: str,
        response: str,
        function_calls: list[Any] | None = None,
        duration_ms: float | None = None,
        tokens_used: int | None = None,
    ) -> None:
        """
        Log a complete conversation turn to conversations.jsonl

        Args:
            user_input: The user's input text
            response: The assistant's response text
            function_calls: Names of the tools called during the turn
            duration_ms: Response time in milliseconds
            tokens_used: Token count of the session history after the turn
        """
        turn = ConversationTurn(
            user_input=user_input,
            response=response,
            function_calls=function_calls or [],
            duration_ms=duration_ms,
            tokens_used=tokens_used,
            session_id=self.session_id,
        )

        msg_parts = [f"User: {_preview(turn.user_input)} → AI: {_preview(turn.response)}"]

        if turn.function_calls:
            msg_parts.append(f"[{len(turn.function_calls)} functions]")

        if turn.duration_ms:
            msg_parts.append(f"[{turn.duration_ms:.0f}ms]")

        if turn.tokens_used:
            msg_parts.append(f"[{turn.tokens_used} tokens]")

        extra_data: dict[str, Any] = {
            "conversation_turn": True,
            "timestamp": turn.timestamp,
            "session_id": turn.session_id,
            "chars": len(turn.user_input) + len(turn.response),
            "functions": len(turn.function_calls),
        }

        if turn.duration_ms is not None:
            extra_data["ms"] = int(turn.duration_ms)
        if turn.tokens_used is not None:
            extra_data["tokens"] = turn.tokens_used

        self.logger.info(" ".join(msg_parts), extra=extra_data)

    def log_function_call(self, function_name: str, args: dict[str, Any], result: Any) -> None:
        """
        Log a tool call - verbose to console, concise summary in the record.

        Args:
            function_name: Name of the tool called
            args: Arguments passed to the tool
            result: Result returned by the tool
        """
        args_parts = []
        for key, value in args.items():
            value_str = str(value)
            if len(value_str) > 20:
                value_str = value_str[:20] + "..."
            args_parts.append(f"{key}={value_str}")

        file_msg = f"Func: {function_name}({', '.join(args_parts)}) → {_preview(str(result))}"

        self.logger.info(
            f"Function call: {function_name}({args}) → {_preview(str(result))}",
            extra={"file_message": file_msg, "func": function_name, "session_id": self.session_id},
        )
