"""
HTTP and OpenAI client factory utilities.
Centralizes httpx/AsyncOpenAI client creation with consistent configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from utils.logger import ChatLogger

# Reasoning models can pause 30+ seconds before producing output,
# and Kusto queries may run for the full server timeout.
DEFAULT_CONNECT_TIMEOUT = 30.0  # Time to establish connection
DEFAULT_READ_TIMEOUT = 600.0  # 10 minutes
DEFAULT_WRITE_TIMEOUT = 30.0  # Time to send request
DEFAULT_POOL_TIMEOUT = 30.0  # Time to acquire connection from pool


def _logging_hooks(logger: ChatLogger) -> dict[str, list[Any]]:
    async def log_request(request: httpx.Request) -> None:
        logger.debug(f"HTTP {request.method} {request.url}")

    async def log_response(response: httpx.Response) -> None:
        request = response.request
        logger.debug(f"HTTP {request.method} {request.url} -> {response.status_code}")

    return {"request": [log_request], "response": [log_response]}


def create_http_client(
    logger: ChatLogger | None = None,
    read_timeout: float | None = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create HTTP client with generous timeouts.

    Args:
        logger: When given, every request/response is logged at debug level
        read_timeout: Read timeout in seconds (default: 600s)
        **kwargs: Passed through to httpx.AsyncClient (base_url, headers, transport, ...)

    Returns:
        Configured httpx.AsyncClient
    """
    effective_read_timeout = read_timeout if read_timeout is not None else DEFAULT_READ_TIMEOUT
    timeout = httpx.Timeout(
        connect=DEFAULT_CONNECT_TIMEOUT,
        read=effective_read_timeout,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )

    if logger is not None:
        kwargs["event_hooks"] = _logging_hooks(logger)

    return httpx.AsyncClient(timeout=timeout, **kwargs)


def create_openai_client(
    api_key: str,
    base_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """Create AsyncOpenAI client with consistent configuration.

    Args:
        api_key: OpenAI or Azure OpenAI API key
        base_url: Optional base URL for Azure or custom endpoints
        http_client: Optional httpx client (e.g. with request logging)

    Returns:
        Configured AsyncOpenAI client
    """
    kwargs: dict[str, Any] = {"api_key": api_key, "http_client": http_client}
    if base_url:
        kwargs["base_url"] = base_url
    return AsyncOpenAI(**kwargs)
