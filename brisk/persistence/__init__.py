"""
Persistence module - Durability for live sessions.

Sessions live in memory; a repository only keeps a copy so a lobby can be
restored after a restart. The only operations the engine needs are
save, load, delete_game and append_chat_message.
"""

from .base import GameRepository
from .memory import MemoryRepository
from .json_store import JsonFileRepository

__all__ = [
    "GameRepository",
    "MemoryRepository",
    "JsonFileRepository",
]
