"""
In-memory repository.

Keeps serialized copies so a loaded session never aliases the live one.
Used by default and in tests.
"""

from __future__ import annotations
from typing import Any

from .base import GameRepository
from ..engine_core.state import CHAT_LOG_LIMIT, ChatMessage, Session


class MemoryRepository(GameRepository):

    def __init__(self):
        self._games: dict[str, dict[str, Any]] = {}
        self._chats: dict[str, list[dict[str, Any]]] = {}

    def save(self, session: Session) -> None:
        data = session.to_dict()
        # Chat is stored on its own, like the file store does
        data["chat"] = []
        self._games[session.lobby_code] = data

    def load(self, lobby_code: str) -> Session | None:
        data = self._games.get(lobby_code)
        if data is None:
            return None
        data = dict(data)
        data["chat"] = list(self._chats.get(data["session_id"], []))
        return Session.from_dict(data)

    def delete_game(self, session_id: str, lobby_code: str | None = None) -> None:
        if lobby_code:
            self._games.pop(lobby_code, None)
        else:
            for code, data in list(self._games.items()):
                if data["session_id"] == session_id:
                    del self._games[code]
        self._chats.pop(session_id, None)

    def append_chat_message(self, message: ChatMessage, session_id: str) -> None:
        chat = self._chats.setdefault(session_id, [])
        chat.append(message.to_dict())
        del chat[:-CHAT_LOG_LIMIT]

    def list_lobbies(self) -> list[str]:
        return list(self._games)
