"""
Game Orchestrator - The public face of the session engine.

Every intent from the transport lands here. An operation:
1. Resolves the caller's connection to a (lobby, player) seat
2. Takes the lobby's lock
3. Validates through the lifecycle manager / reducer (no mutation on failure)
4. Mutates, re-arms the turn scheduler, asserts invariants in debug builds
5. Persists (best effort) and returns an Outcome

An Outcome lists the notifications to fan out. The orchestrator never
talks to sockets itself; the API layer renders and delivers them. Turns
that finish without an inbound intent (timeouts) are handed to
`listener` instead of being returned.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator
import copy
import logging
import random

from ..bots import CardPolicy, HeuristicBot, RandomPolicy
from ..engine_core.cards import Card
from ..engine_core.reducer import (
    PlayResult,
    check_card_conservation,
    play_card,
    reset_to_lobby,
    roll_dice,
    start_match,
    validate_play,
    validate_roll,
)
from ..engine_core.state import (
    DEFAULT_POINTS_TO_WIN,
    ChatMessage,
    GamePhase,
    GameVariant,
    Player,
    Session,
    TurnSpeed,
)
from ..errors import ErrorCode, GameError, GameStateError, NotFoundError
from ..persistence import GameRepository, JsonFileRepository, MemoryRepository
from .lifecycle import KickRegistry, PlayerLifecycle, new_id
from .scheduler import TimerFactory, TurnScheduler, TurnToken, now_ms
from .store import SessionStore

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


SYSTEM_PLAYER_ID = "system"
SYSTEM_PLAYER_NAME = "System"


@dataclass
class Notification:
    """
    One event to deliver.

    to: a single connection id; None means every connection in the lobby.
    state: frozen copy of the session, rendered per viewer as gameState.
    detach: close the `to` connection after delivery.
    """
    event: str
    payload: dict[str, Any] = field(default_factory=dict)
    to: str | None = None
    exclude: str | None = None
    detach: bool = False
    state: Session | None = None


@dataclass
class Outcome:
    lobby_code: str | None
    notifications: list[Notification] = field(default_factory=list)
    player_id: str | None = None

    def events(self) -> list[str]:
        return [n.event for n in self.notifications]


@dataclass(frozen=True)
class Seat:
    lobby_code: str
    player_id: str


def chat_payload(message: ChatMessage) -> dict[str, Any]:
    return {
        "id": message.message_id,
        "playerId": message.player_id,
        "playerName": message.player_name,
        "message": message.message,
        "timestamp": message.timestamp,
    }


class GameOrchestrator:
    """
    Composition root of the session engine.

    Usage:
        orchestrator = GameOrchestrator()
        outcome = orchestrator.create_lobby("conn-1", "Alice")
        outcome = orchestrator.join_lobby("conn-2", outcome.lobby_code, "Bob")
        outcome = orchestrator.start_game("conn-1")
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        repository: GameRepository | None = None,
        lifecycle: PlayerLifecycle | None = None,
        bot: CardPolicy | None = None,
        auto_policy: CardPolicy | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        timer_factory: TimerFactory | None = None,
        debug_invariants: bool = False,
        points_to_win: int = DEFAULT_POINTS_TO_WIN,
    ):
        self._rng = rng or random.Random()
        self._clock = clock or now_ms
        self.store = store or SessionStore(rng=self._rng)
        self.repository = repository if repository is not None else MemoryRepository()
        self.lifecycle = lifecycle or PlayerLifecycle(
            kicks=KickRegistry(clock=self._clock), rng=self._rng
        )
        self.bot = bot or HeuristicBot()
        self.auto_policy = auto_policy or RandomPolicy(rng=self._rng)
        self.scheduler = TurnScheduler(
            on_timeout=self.handle_turn_timeout,
            on_ai_turn=self.play_ai_turn,
            timer_factory=timer_factory,
            clock=self._clock,
        )
        self.debug_invariants = debug_invariants
        self.points_to_win = points_to_win

        # Receives outcomes produced by timers rather than by an intent
        self.listener: Callable[[Outcome], None] | None = None

        self._connections: dict[str, Seat] = {}
        self._outbox: dict[str, list[Notification]] = {}

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> GameOrchestrator:
        rng = random.Random(settings.random_seed)
        if settings.data_dir:
            repository = JsonFileRepository(settings.data_dir)
        else:
            repository = MemoryRepository()
        clock = kwargs.pop("clock", None) or now_ms
        lifecycle = PlayerLifecycle(
            kicks=KickRegistry(cooldown_ms=settings.kick_cooldown_ms, clock=clock),
            rng=rng,
        )
        return cls(
            store=SessionStore(rng=rng),
            repository=repository,
            lifecycle=lifecycle,
            rng=rng,
            clock=clock,
            debug_invariants=settings.debug_invariants,
            points_to_win=settings.points_to_win,
            **kwargs,
        )

    # =========================================================================
    # Connection registry
    # =========================================================================

    def bind(self, connection_id: str, lobby_code: str, player_id: str):
        self._connections[connection_id] = Seat(lobby_code, player_id)

    def unbind(self, connection_id: str) -> Seat | None:
        return self._connections.pop(connection_id, None)

    def seat_for(self, connection_id: str) -> Seat | None:
        return self._connections.get(connection_id)

    def connections_in(self, lobby_code: str) -> list[tuple[str, str]]:
        """(connection_id, player_id) for every connection seated in a lobby."""
        return [
            (conn_id, seat.player_id)
            for conn_id, seat in list(self._connections.items())
            if seat.lobby_code == lobby_code
        ]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def _require_seat(self, connection_id: str) -> Seat:
        seat = self._connections.get(connection_id)
        if seat is None:
            raise NotFoundError("You are not in a lobby", ErrorCode.PLAYER_NOT_FOUND)
        return seat

    def _require_unseated(self, connection_id: str):
        if connection_id in self._connections:
            raise GameStateError(
                "Leave your current lobby first", ErrorCode.INVALID_REQUEST
            )

    # =========================================================================
    # Lobby membership
    # =========================================================================

    def create_lobby(self, connection_id: str, player_name: str) -> Outcome:
        self._require_unseated(connection_id)
        session = self.lifecycle.create_session(self.store.generate_code(), player_name)
        session.points_to_win = self.points_to_win
        self.store.add(session)

        with self._locked(session.lobby_code) as session:
            host = session.host
            self.bind(connection_id, session.lobby_code, host.player_id)
            self._emit(
                session, "lobby-created", {"playerUuid": host.player_id},
                to=connection_id, with_state=True,
            )
            logger.info("Lobby %s created by %s", session.lobby_code, host.name)
            self._persist(session)
            return self._outcome(session, host.player_id)

    def join_lobby(self, connection_id: str, lobby_code: str, player_name: str) -> Outcome:
        """Join a lobby, or reclaim a seat the AI took over."""
        self._require_unseated(connection_id)
        lobby_code = (lobby_code or "").strip().upper()
        restored = self._ensure_loaded(lobby_code)

        try:
            with self._locked(lobby_code) as session:
                result = self.lifecycle.join(session, player_name)
                player = result.player
                self.bind(connection_id, lobby_code, player.player_id)

                verb = "reconnected" if result.reconnected else "joined the lobby"
                self._system_message(session, f"{player.name} {verb}")
                self._emit(
                    session, "lobby-joined", {"playerUuid": player.player_id},
                    to=connection_id, with_state=True,
                )
                self._emit(
                    session, "player-joined",
                    {
                        "playerId": player.player_id,
                        "playerName": player.name,
                        "reconnected": result.reconnected,
                    },
                    exclude=connection_id,
                )
                self._emit(session, "game-updated", exclude=connection_id, with_state=True)
                if result.reconnected:
                    logger.info("%s reconnected to %s", player.name, lobby_code)

                if session.phase == GamePhase.PLAYING and not self.scheduler.is_armed(lobby_code):
                    self.scheduler.arm(session)
                self._persist(session)
                return self._outcome(session, player.player_id)
        except GameError:
            if restored:
                self.store.remove(lobby_code)
            raise

    def _ensure_loaded(self, lobby_code: str) -> bool:
        """
        Bring a lobby back from the repository if it is not live.

        Returns True when the session was restored by this call. Restored
        seats have no connections: during play they are handed to the AI
        (and can be reclaimed by name); otherwise they are dropped. An
        ended match is reset to the lobby.
        """
        if lobby_code in self.store:
            return False
        session = None
        try:
            session = self.repository.load(lobby_code)
        except Exception:
            logger.warning("Could not load lobby %s", lobby_code, exc_info=True)
        if session is None:
            raise NotFoundError("Lobby not found", ErrorCode.LOBBY_NOT_FOUND)

        for player in session.humans():
            if session.phase == GamePhase.PLAYING:
                player.to_ai()
            else:
                session.remove_player(player.player_id)
        if session.phase == GamePhase.ENDED:
            # A finished match comes back as an open lobby
            reset_to_lobby(session)
        session.reassign_host()

        try:
            self.store.add(session)
        except ValueError:
            return False
        logger.info("Lobby %s restored from storage", lobby_code)
        return True

    def leave_lobby(self, connection_id: str) -> Outcome:
        """Voluntary departure. The leaver gets a player-left of their own."""
        seat = self._require_seat(connection_id)
        outcome = self._depart(connection_id, seat)
        outcome.notifications.append(
            Notification("player-left", {"playerId": seat.player_id}, to=connection_id)
        )
        return outcome

    def disconnect(self, connection_id: str) -> Outcome:
        """A dropped connection is handled like leaving."""
        seat = self._connections.get(connection_id)
        if seat is None:
            return Outcome(lobby_code=None)
        return self._depart(connection_id, seat)

    def _depart(self, connection_id: str, seat: Seat) -> Outcome:
        self.unbind(connection_id)
        try:
            with self._locked(seat.lobby_code) as session:
                if session.get_player(seat.player_id) is None:
                    return self._outcome(session)
                result = self.lifecycle.leave(session, seat.player_id)
                player = result.player

                if result.destroyed:
                    self._destroy(session)
                    return Outcome(lobby_code=seat.lobby_code)

                if result.converted:
                    logger.info("AI took over %s in %s", player.name, session.lobby_code)
                    self._system_message(session, f"{player.name} left, the AI takes over")
                else:
                    self._system_message(session, f"{player.name} left the lobby")
                self._emit(
                    session, "player-left",
                    {
                        "playerId": player.player_id,
                        "playerName": player.name,
                        "converted": result.converted,
                    },
                )
                self._emit(session, "game-updated", with_state=True)

                if result.converted and result.was_current:
                    self.scheduler.arm(session)
                self._persist(session)
                return self._outcome(session)
        except NotFoundError:
            return Outcome(lobby_code=seat.lobby_code)

    def kick_player(self, connection_id: str, target_id: str) -> Outcome:
        seat = self._require_seat(connection_id)
        with self._locked(seat.lobby_code) as session:
            result = self.lifecycle.kick(session, seat.player_id, target_id)
            target = result.target
            logger.info("%s kicked from %s", target.name, session.lobby_code)

            for conn_id, player_id in self.connections_in(session.lobby_code):
                if player_id == target_id:
                    self.unbind(conn_id)
                    self._emit(
                        session, "player-kicked",
                        {"playerId": target_id, "message": "You have been kicked from the lobby"},
                        to=conn_id, detach=True,
                    )

            self._system_message(session, f"{target.name} was kicked")
            self._emit(
                session, "player-kicked",
                {"playerId": target_id, "playerName": target.name},
            )
            self._emit(session, "game-updated", with_state=True)

            if result.was_current and session.phase == GamePhase.PLAYING:
                self.scheduler.arm(session)
            self._persist(session)
            return self._outcome(session, seat.player_id)

    def _destroy(self, session: Session):
        code = session.lobby_code
        self.scheduler.disarm(code)
        self.store.remove(code)
        self.lifecycle.kicks.clear(code)
        self._outbox.pop(code, None)
        for conn_id, _ in self.connections_in(code):
            self.unbind(conn_id)
        try:
            self.repository.delete_game(session.session_id, code)
        except Exception:
            logger.warning("Could not delete stored lobby %s", code, exc_info=True)
        logger.info("Lobby %s destroyed", code)

    # =========================================================================
    # Lobby settings
    # =========================================================================

    def change_max_players(self, connection_id: str, max_players: int) -> Outcome:
        return self._configure(connection_id, self.lifecycle.change_max_players, max_players)

    def change_speed(self, connection_id: str, speed: TurnSpeed | str) -> Outcome:
        return self._configure(connection_id, self.lifecycle.change_speed, speed)

    def change_variant(self, connection_id: str, variant: GameVariant | str) -> Outcome:
        return self._configure(connection_id, self.lifecycle.change_variant, variant)

    def _configure(self, connection_id: str, change, value) -> Outcome:
        seat = self._require_seat(connection_id)
        with self._locked(seat.lobby_code) as session:
            change(session, seat.player_id, value)
            self._emit(session, "game-updated", with_state=True)
            self._persist(session)
            return self._outcome(session, seat.player_id)

    def add_bot(self, connection_id: str) -> Outcome:
        seat = self._require_seat(connection_id)
        with self._locked(seat.lobby_code) as session:
            bot = self.lifecycle.add_bot(session, seat.player_id)
            self._emit(
                session, "player-joined",
                {"playerId": bot.player_id, "playerName": bot.name, "reconnected": False},
            )
            self._emit(session, "game-updated", with_state=True)
            self._persist(session)
            return self._outcome(session, seat.player_id)

    # =========================================================================
    # Play
    # =========================================================================

    def start_game(self, connection_id: str) -> Outcome:
        seat = self._require_seat(connection_id)
        with self._locked(seat.lobby_code) as session:
            self.lifecycle.check_can_start(session, seat.player_id)
            start_match(session, self._rng)
            self._check(session)
            self._emit(session, "game-started", with_state=True)
            self.scheduler.arm(session)
            self._persist(session)
            return self._outcome(session, seat.player_id)

    def play_card(self, connection_id: str, card: Card) -> Outcome:
        seat = self._require_seat(connection_id)
        with self._locked(seat.lobby_code) as session:
            validate_play(session, seat.player_id, card)
            self.scheduler.disarm(session.lobby_code)
            result = play_card(session, seat.player_id, card)
            self._after_play(session, result)
            self._persist(session)
            return self._outcome(session, seat.player_id)

    def roll_dice(self, connection_id: str) -> Outcome:
        seat = self._require_seat(connection_id)
        with self._locked(seat.lobby_code) as session:
            validate_roll(session, seat.player_id)
            self.scheduler.disarm(session.lobby_code)
            result = roll_dice(session, seat.player_id, self._rng)
            self._after_play(session, result)
            self._persist(session)
            return self._outcome(session, seat.player_id)

    def play_ai_turn(self, session: Session):
        """
        Scheduler callback for an AI seat. Runs under the lobby lock.

        A failing AI turn is logged and dropped; the lobby keeps running.
        """
        player = session.current_player
        try:
            result = self._auto_play(session, player, self.bot)
        except Exception:
            logger.exception("AI turn failed for %s in %s", player.name, session.lobby_code)
            return
        self._after_play(session, result)

    def handle_turn_timeout(self, token: TurnToken):
        """Scheduler callback for a human turn that ran out of time."""
        try:
            with self._locked(token.lobby_code) as session:
                if not token.matches(session):
                    logger.warning("Ignoring stale turn timer in %s", token.lobby_code)
                    return
                player = session.current_player
                logger.info("Turn timed out for %s in %s", player.name, session.lobby_code)
                try:
                    result = self._auto_play(session, player, self.auto_policy)
                except Exception:
                    logger.exception(
                        "Auto-play failed for %s in %s", player.name, session.lobby_code
                    )
                    return
                self._after_play(session, result)
                self._persist(session)
                outcome = self._outcome(session)
        except NotFoundError:
            return
        self._publish(outcome)

    def _auto_play(self, session: Session, player: Player, policy: CardPolicy) -> PlayResult:
        if session.variant == GameVariant.DICE:
            return roll_dice(session, player.player_id, self._rng)
        decision = policy.select_card(session, player)
        logger.debug("%s auto-plays %s: %s", player.name, decision.card, decision.explanation)
        return play_card(session, player.player_id, decision.card)

    def _after_play(self, session: Session, result: PlayResult):
        """Announce a play and open the next turn."""
        self._check(session)
        if result.roll is not None:
            self._emit(
                session, "dice-rolled",
                {
                    "playerId": result.player_id,
                    "roll": result.roll.roll,
                    "score": result.roll.score,
                },
            )

        if result.match_over:
            self.scheduler.disarm(session.lobby_code)
            winner = session.winner
            self._emit(
                session, "game-ended",
                {
                    "winnerId": winner.player_id if winner else None,
                    "winnerName": winner.name if winner else None,
                },
                with_state=True,
            )
            return

        self._emit(session, "game-updated", with_state=True)
        self.scheduler.arm(session, after_trick=result.trick is not None)

    def return_to_lobby(self, lobby_code: str) -> Outcome:
        """ended -> lobby. A no-op for any other phase or a vanished lobby."""
        try:
            with self._locked(lobby_code) as session:
                if session.phase != GamePhase.ENDED:
                    return self._outcome(session)
                reset_to_lobby(session)
                self._emit(session, "game-updated", with_state=True)
                self._persist(session)
                return self._outcome(session)
        except NotFoundError:
            return Outcome(lobby_code=lobby_code)

    # =========================================================================
    # Chat
    # =========================================================================

    def send_message(self, connection_id: str, text: str) -> Outcome:
        seat = self._require_seat(connection_id)
        text = (text or "").strip()
        if not text:
            raise GameStateError("Message cannot be empty", ErrorCode.INVALID_REQUEST)
        with self._locked(seat.lobby_code) as session:
            player = self.lifecycle.require_player(session, seat.player_id)
            self._chat(session, player.player_id, player.name, text)
            return self._outcome(session, seat.player_id)

    def _system_message(self, session: Session, text: str):
        self._chat(session, SYSTEM_PLAYER_ID, SYSTEM_PLAYER_NAME, text)

    def _chat(self, session: Session, player_id: str, player_name: str, text: str):
        message = ChatMessage(
            message_id=new_id(),
            player_id=player_id,
            player_name=player_name,
            message=text,
            timestamp=self._clock(),
        )
        session.append_chat(message)
        self._emit(session, "message-received", chat_payload(message))
        try:
            self.repository.append_chat_message(message, session.session_id)
        except Exception:
            logger.warning(
                "Could not store chat message in %s", session.lobby_code, exc_info=True
            )

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_session(self, lobby_code: str) -> Session | None:
        return self.store.get(lobby_code)

    def status(self) -> dict[str, Any]:
        return {
            "sessions": len(self.store),
            "connections": self.connection_count,
            "phases": self.store.count_by_phase(),
        }

    def shutdown(self):
        self.scheduler.disarm_all()

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _locked(self, lobby_code: str) -> Iterator[Session]:
        with self.store.locked(lobby_code) as session:
            try:
                yield session
            except BaseException:
                self._outbox.pop(lobby_code, None)
                raise

    def _emit(
        self,
        session: Session,
        event: str,
        payload: dict[str, Any] | None = None,
        to: str | None = None,
        exclude: str | None = None,
        detach: bool = False,
        with_state: bool = False,
    ):
        self._outbox.setdefault(session.lobby_code, []).append(
            Notification(
                event=event,
                payload=payload or {},
                to=to,
                exclude=exclude,
                detach=detach,
                state=copy.deepcopy(session) if with_state else None,
            )
        )

    def _outcome(self, session: Session, player_id: str | None = None) -> Outcome:
        return Outcome(
            lobby_code=session.lobby_code,
            notifications=self._outbox.pop(session.lobby_code, []),
            player_id=player_id,
        )

    def _publish(self, outcome: Outcome):
        if self.listener is not None and outcome.notifications:
            self.listener(outcome)

    def _persist(self, session: Session):
        try:
            self.repository.save(session)
        except Exception:
            logger.warning("Could not persist lobby %s", session.lobby_code, exc_info=True)

    def _check(self, session: Session):
        if self.debug_invariants:
            check_card_conservation(session)
