"""
JSON File Store - Sessions persisted as JSON files on local disk.

Layout under data_dir:
    games/<LOBBY_CODE>.json     full session (without chat)
    chat/<session_id>.json      chat history, appended per message

Design decisions:
- Simple file-based storage, no database
- Writes go to a temp file and are renamed into place
- A corrupt file is treated as absent and removed
- Chat history keeps the same last CHAT_LOG_LIMIT lines as a live session
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any

from .base import GameRepository
from ..engine_core.state import CHAT_LOG_LIMIT, ChatMessage, Session

logger = logging.getLogger(__name__)


class JsonFileRepository(GameRepository):
    """
    File-backed repository.

    Usage:
        repo = JsonFileRepository(data_dir="~/.brisk/data")
        repo.save(session)
        restored = repo.load(session.lobby_code)
    """

    def __init__(self, data_dir: str | Path | None = None):
        if data_dir is None:
            data_dir = Path.home() / ".brisk" / "data"
        self.data_dir = Path(data_dir).expanduser()
        self.games_dir = self.data_dir / "games"
        self.chat_dir = self.data_dir / "chat"

        self.games_dir.mkdir(parents=True, exist_ok=True)
        self.chat_dir.mkdir(parents=True, exist_ok=True)

    def save(self, session: Session) -> None:
        data = session.to_dict()
        data.pop("chat", None)
        self._write(self._game_path(session.lobby_code), data)

    def load(self, lobby_code: str) -> Session | None:
        data = self._read(self._game_path(lobby_code))
        if data is None:
            return None
        data["chat"] = self._read(self._chat_path(data["session_id"])) or []
        try:
            return Session.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding unreadable session file for %s", lobby_code)
            self._game_path(lobby_code).unlink(missing_ok=True)
            return None

    def delete_game(self, session_id: str, lobby_code: str | None = None) -> None:
        if lobby_code:
            self._game_path(lobby_code).unlink(missing_ok=True)
        else:
            for path in self.games_dir.glob("*.json"):
                data = self._read(path)
                if data and data.get("session_id") == session_id:
                    path.unlink(missing_ok=True)
        self._chat_path(session_id).unlink(missing_ok=True)

    def append_chat_message(self, message: ChatMessage, session_id: str) -> None:
        path = self._chat_path(session_id)
        chat = self._read(path) or []
        chat.append(message.to_dict())
        self._write(path, chat[-CHAT_LOG_LIMIT:])

    def list_lobbies(self) -> list[str]:
        return [f.stem for f in self.games_dir.glob("*.json")]

    def _game_path(self, lobby_code: str) -> Path:
        return self.games_dir / f"{lobby_code}.json"

    def _chat_path(self, session_id: str) -> Path:
        return self.chat_dir / f"{session_id}.json"

    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError:
            logger.warning("Removing corrupt store file %s", path)
            path.unlink(missing_ok=True)
            return None

    def _write(self, path: Path, data: Any):
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
