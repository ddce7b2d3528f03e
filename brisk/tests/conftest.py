"""
Pytest fixtures for Brisk tests.
"""

import random

import pytest

from ..engine_core.cards import Card
from ..engine_core.state import GamePhase, Player, PlayerMode, Session
from ..persistence import MemoryRepository
from ..session import GameOrchestrator


class ManualTimer:
    """A timer that only fires when a test says so."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class ManualTimerFactory:
    """Records every timer the scheduler creates."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.timers if not t.cancelled]

    @property
    def last(self):
        return self.timers[-1]


class FakeClock:
    """Epoch milliseconds that only move when told to."""

    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def orchestrator(timers, clock, rng, repository) -> GameOrchestrator:
    """Orchestrator with manual timers and card-conservation checks on."""
    return GameOrchestrator(
        repository=repository,
        rng=rng,
        clock=clock,
        timer_factory=timers,
        debug_invariants=True,
    )


@pytest.fixture
def lobby(orchestrator):
    """
    Open a lobby through the orchestrator.

    The first name creates it on connection "c0", the others join on
    "c1", "c2", ... Returns the lobby code.
    """
    def _lobby(*names):
        names = names or ("Alice", "Bob")
        created = orchestrator.create_lobby("c0", names[0])
        for i, name in enumerate(names[1:], start=1):
            orchestrator.join_lobby(f"c{i}", created.lobby_code, name)
        return created.lobby_code
    return _lobby


@pytest.fixture
def make_session():
    """Build a bare session with players p0..pN-1 (p0 hosts)."""
    def _make(num_players=2, phase=GamePhase.LOBBY, ai_seats=()):
        players = [
            Player(
                player_id=f"p{i}",
                name=f"Player{i}",
                is_host=i == 0,
                mode=PlayerMode.AI if i in ai_seats else PlayerMode.HUMAN,
            )
            for i in range(num_players)
        ]
        return Session(session_id="s1", lobby_code="ABC123", phase=phase, players=players)
    return _make


def cards(*codes):
    """cards("a1", "b3") -> [Card(1, "a"), Card(3, "b")]"""
    return [Card(int(code[1:]), code[0]) for code in codes]
