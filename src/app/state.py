"""Application state for Clearwater Assistant.

AppState is the single container for everything bootstrap builds. It is
passed explicitly to the main loop rather than stored in module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from core.orchestrator import DialogueOrchestrator
from core.session_manager import SessionStore
from tools.registry import ToolRegistry
from utils.logger import ChatLogger


class AsyncCloseable(Protocol):
    """Anything bootstrap opens that must be closed on shutdown (httpx clients, SDK executors)."""

    async def aclose(self) -> None: ...


@dataclass
class AppState:
    """Application state container.

    Attributes:
        orchestrator: Entry point for user messages
        sessions: Session store shared with the orchestrator
        registry: Static tool catalog
        logger: Application logger
        deployment: Model deployment name
        closeables: Clients and executors to close on shutdown
    """

    orchestrator: DialogueOrchestrator
    sessions: SessionStore
    registry: ToolRegistry
    logger: ChatLogger
    deployment: str = ""
    closeables: list[AsyncCloseable] = field(default_factory=list)

    async def aclose(self) -> None:
        """Close clients and executors created during bootstrap."""
        for resource in self.closeables:
            await resource.aclose()
        self.closeables.clear()
