"""
Turn Scheduler - Per-lobby turn timers.

Contract:
- arm(session): if the current seat is AI, play it immediately (no
  timer); otherwise start one single-shot timer for the session's speed
  preset. Arming replaces any timer already pending for the lobby.
- disarm(lobby_code): cancel the pending timer. Callers disarm before
  any explicit play.
- A fired timer only reaches the owner if its token is still the one
  pending for the lobby; the owner re-checks the token against the
  session (phase, seat, turn serial) before acting.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Protocol
import asyncio
import logging
import threading
import time

from ..engine_core.state import GamePhase, GameVariant, Session

logger = logging.getLogger(__name__)


# Extra time after a trick so clients can show who took it
TRICK_RESOLUTION_BUFFER_MS = 3000


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def default_timer_factory(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """
    Schedule callback after delay seconds.

    Uses the running asyncio loop; outside of one (CLI, worker threads)
    falls back to a daemon thread timer.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
    return loop.call_later(delay, callback)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TurnToken:
    """Identifies the exact turn a timer was armed for."""
    lobby_code: str
    player_id: str
    serial: int

    def matches(self, session: Session) -> bool:
        """Whether the session is still waiting on this very turn."""
        if session.phase != GamePhase.PLAYING:
            return False
        if session.turn_serial != self.serial:
            return False
        player = session.current_player
        return player is not None and player.player_id == self.player_id


class TurnScheduler:
    """
    Arms and cancels turn timers.

    Usage:
        scheduler = TurnScheduler(
            on_timeout=orchestrator.handle_turn_timeout,
            on_ai_turn=orchestrator.play_ai_turn,
        )
        scheduler.arm(session)
    """

    def __init__(
        self,
        on_timeout: Callable[[TurnToken], None],
        on_ai_turn: Callable[[Session], None],
        timer_factory: TimerFactory | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self._on_timeout = on_timeout
        self._on_ai_turn = on_ai_turn
        self._timer_factory = timer_factory or default_timer_factory
        self._clock = clock or now_ms
        self._pending: dict[str, tuple[TurnToken, TimerHandle]] = {}
        self._lock = threading.Lock()

    def arm(self, session: Session, after_trick: bool = False):
        """Open the next turn window for the session's current seat."""
        self.disarm(session.lobby_code)

        if session.phase != GamePhase.PLAYING:
            return
        player = session.current_player
        if player is None:
            return
        if session.variant == GameVariant.CARDS and not player.hand:
            return

        session.turn_serial += 1
        start = self._clock()
        duration = session.speed.timeout_ms
        if after_trick:
            duration += TRICK_RESOLUTION_BUFFER_MS
        session.turn_start_ms = start
        session.turn_end_ms = start + duration

        if player.is_ai:
            self._on_ai_turn(session)
            return

        token = TurnToken(session.lobby_code, player.player_id, session.turn_serial)
        handle = self._timer_factory(duration / 1000.0, lambda: self._fire(token))
        with self._lock:
            self._pending[session.lobby_code] = (token, handle)
        logger.debug(
            "Armed %d ms turn for %s in %s", duration, player.name, session.lobby_code
        )

    def disarm(self, lobby_code: str) -> bool:
        """Cancel the lobby's pending timer. Returns whether one was pending."""
        with self._lock:
            pending = self._pending.pop(lobby_code, None)
        if pending is None:
            return False
        pending[1].cancel()
        logger.debug("Disarmed turn timer in %s", lobby_code)
        return True

    def disarm_all(self):
        for lobby_code in list(self._pending):
            self.disarm(lobby_code)

    def is_armed(self, lobby_code: str) -> bool:
        return lobby_code in self._pending

    def pending_token(self, lobby_code: str) -> TurnToken | None:
        pending = self._pending.get(lobby_code)
        return pending[0] if pending else None

    def _fire(self, token: TurnToken):
        with self._lock:
            pending = self._pending.get(token.lobby_code)
            if pending is None or pending[0] != token:
                logger.debug("Dropping stale timer for %s", token.lobby_code)
                return
            del self._pending[token.lobby_code]
        try:
            self._on_timeout(token)
        except Exception:
            logger.exception("Turn timeout handling failed in %s", token.lobby_code)
