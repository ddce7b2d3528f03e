"""
Session Store - Owns every live Session, keyed by lobby code.

All mutation of a session happens while holding that lobby's lock, so
actions for one lobby run one at a time in arrival order. Lobbies never
wait on each other: the registry lock only guards insert/remove of keys.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator
import random
import string
import threading

from ..engine_core.state import GamePhase, Session
from ..errors import ErrorCode, NotFoundError


LOBBY_CODE_LENGTH = 6
LOBBY_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class _Entry:
    session: Session
    lock: threading.RLock = field(default_factory=threading.RLock)


class SessionStore:
    """
    In-memory map of lobby code -> Session.

    Usage:
        store = SessionStore()
        store.add(session)

        with store.locked("ABC123") as session:
            ...  # mutate session
    """

    def __init__(self, rng: random.Random | None = None):
        self._entries: dict[str, _Entry] = {}
        self._registry_lock = threading.Lock()
        self._rng = rng or random.Random()

    def generate_code(self) -> str:
        """A lobby code not used by any live session."""
        while True:
            code = "".join(
                self._rng.choice(LOBBY_CODE_ALPHABET) for _ in range(LOBBY_CODE_LENGTH)
            )
            if code not in self._entries:
                return code

    def add(self, session: Session) -> Session:
        with self._registry_lock:
            if session.lobby_code in self._entries:
                raise ValueError(f"Lobby code already in use: {session.lobby_code}")
            self._entries[session.lobby_code] = _Entry(session=session)
        return session

    def get(self, lobby_code: str) -> Session | None:
        entry = self._entries.get(lobby_code)
        return entry.session if entry else None

    def remove(self, lobby_code: str) -> Session | None:
        with self._registry_lock:
            entry = self._entries.pop(lobby_code, None)
        return entry.session if entry else None

    @contextmanager
    def locked(self, lobby_code: str) -> Iterator[Session]:
        """
        Hold the lobby's lock for the duration of the block.

        Raises NotFoundError if the lobby does not exist, including when
        it was removed while waiting for the lock.
        """
        entry = self._entries.get(lobby_code)
        if entry is None:
            raise NotFoundError("Lobby not found", ErrorCode.LOBBY_NOT_FOUND)
        with entry.lock:
            if self._entries.get(lobby_code) is not entry:
                raise NotFoundError("Lobby not found", ErrorCode.LOBBY_NOT_FOUND)
            yield entry.session

    def __contains__(self, lobby_code: str) -> bool:
        return lobby_code in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def codes(self) -> list[str]:
        return list(self._entries)

    def sessions(self) -> list[Session]:
        return [e.session for e in list(self._entries.values())]

    def count_by_phase(self) -> dict[str, int]:
        counts = {phase.value: 0 for phase in GamePhase}
        for session in self.sessions():
            counts[session.phase.value] += 1
        return counts
