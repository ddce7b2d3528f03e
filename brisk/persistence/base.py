"""
Game Repository - Durability contract the engine calls into.

The engine treats persistence as fire-and-forget: state is committed in
memory first, then handed to the repository. Implementations may raise;
the orchestrator logs and carries on.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine_core.state import ChatMessage, Session


class GameRepository(ABC):
    """Abstract store for sessions and their chat history."""

    @abstractmethod
    def save(self, session: Session) -> None:
        """Store the full session under its lobby code."""

    @abstractmethod
    def load(self, lobby_code: str) -> Session | None:
        """Load a session with its chat history, or None."""

    @abstractmethod
    def delete_game(self, session_id: str, lobby_code: str | None = None) -> None:
        """Remove a session and its chat history."""

    @abstractmethod
    def append_chat_message(self, message: ChatMessage, session_id: str) -> None:
        """Append one chat line to a session's history."""
