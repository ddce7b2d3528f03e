"""
Tests for the session store.
"""

import threading

import pytest

from ..engine_core.state import GamePhase, Session
from ..errors import ErrorCode, NotFoundError
from ..session.store import LOBBY_CODE_ALPHABET, LOBBY_CODE_LENGTH, SessionStore


class ScriptedRandom:
    """choice() returns letters from a fixed script."""

    def __init__(self, script):
        self._letters = iter(script)

    def choice(self, seq):
        return next(self._letters)


def session(code, phase=GamePhase.LOBBY):
    return Session(session_id=f"id-{code}", lobby_code=code, phase=phase)


class TestCodes:
    """Tests for lobby code generation."""

    def test_code_shape(self, rng):
        """Lobby codes use the fixed length and alphabet."""
        code = SessionStore(rng=rng).generate_code()
        assert len(code) == LOBBY_CODE_LENGTH
        assert all(ch in LOBBY_CODE_ALPHABET for ch in code)

    def test_code_skips_live_lobbies(self):
        """New codes avoid live lobbies."""
        store = SessionStore(rng=ScriptedRandom("AAAAAA" + "AAAAAA" + "BBBBBB"))
        store.add(session(store.generate_code()))
        assert store.generate_code() == "BBBBBB"


class TestRegistry:
    """Tests for add/get/remove."""

    def test_add_and_get(self):
        """An added session can be fetched."""
        store = SessionStore()
        s = store.add(session("ABC123"))
        assert store.get("ABC123") is s
        assert "ABC123" in store
        assert len(store) == 1

    def test_duplicate_rejected(self):
        """Adding a code twice is rejected."""
        store = SessionStore()
        store.add(session("ABC123"))
        with pytest.raises(ValueError):
            store.add(session("ABC123"))

    def test_remove(self):
        """Removed sessions are gone."""
        store = SessionStore()
        store.add(session("ABC123"))
        assert store.remove("ABC123").lobby_code == "ABC123"
        assert store.get("ABC123") is None
        assert store.remove("ABC123") is None

    def test_count_by_phase(self):
        """Sessions are counted by phase."""
        store = SessionStore()
        store.add(session("AAAAAA"))
        store.add(session("BBBBBB", GamePhase.PLAYING))
        store.add(session("CCCCCC", GamePhase.PLAYING))
        assert store.count_by_phase() == {"lobby": 1, "playing": 2, "ended": 0}
        assert sorted(store.codes()) == ["AAAAAA", "BBBBBB", "CCCCCC"]


class TestLocking:
    """Tests for per-lobby locking."""

    def test_locked_yields_session(self):
        """The lock yields the session."""
        store = SessionStore()
        s = store.add(session("ABC123"))
        with store.locked("ABC123") as locked:
            assert locked is s

    def test_missing_lobby(self):
        """Locking a missing lobby raises LOBBY_NOT_FOUND."""
        with pytest.raises(NotFoundError) as exc:
            with SessionStore().locked("NOPE00"):
                pass
        assert exc.value.code == ErrorCode.LOBBY_NOT_FOUND

    def test_lock_is_reentrant(self):
        """The same thread can lock twice."""
        store = SessionStore()
        store.add(session("ABC123"))
        with store.locked("ABC123"):
            with store.locked("ABC123") as inner:
                assert inner.lobby_code == "ABC123"

    def test_lobbies_do_not_block_each_other(self):
        """Different lobbies lock independently."""
        store = SessionStore()
        store.add(session("AAAAAA"))
        store.add(session("BBBBBB"))
        entered = threading.Event()

        def other_lobby():
            with store.locked("BBBBBB"):
                entered.set()

        with store.locked("AAAAAA"):
            worker = threading.Thread(target=other_lobby)
            worker.start()
            worker.join(timeout=2)
        assert entered.is_set()

    def test_same_lobby_waits(self):
        """A second thread waits for the lobby lock."""
        store = SessionStore()
        store.add(session("AAAAAA"))
        entered = threading.Event()

        def same_lobby():
            with store.locked("AAAAAA"):
                entered.set()

        with store.locked("AAAAAA"):
            worker = threading.Thread(target=same_lobby)
            worker.start()
            worker.join(timeout=0.2)
            assert not entered.is_set()
        worker.join(timeout=2)
        assert entered.is_set()

    def test_removed_while_waiting(self):
        """A lobby removed while waiting raises."""
        store = SessionStore()
        store.add(session("AAAAAA"))
        errors = []

        def waiter():
            try:
                with store.locked("AAAAAA"):
                    pass
            except NotFoundError as e:
                errors.append(e)

        with store.locked("AAAAAA"):
            worker = threading.Thread(target=waiter)
            worker.start()
            worker.join(timeout=0.2)
            store.remove("AAAAAA")
        worker.join(timeout=2)
        assert len(errors) == 1
