"""
Player Lifecycle - Who sits at a table and who runs it.

Handles:
- Creating a lobby with its host
- Joining, and reconnecting into a seat an AI kept warm
- Leaving: removal in the lobby, AI takeover during play
- Kicking, with a per-name cooldown
- Host handoff and AI fillers
- Host-only lobby settings

Nothing here touches timers or persistence; the orchestrator does that
after a lifecycle call succeeds. Every check runs before the first
mutation so a rejected call leaves the session untouched.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable
import random
import uuid

from ..engine_core.state import (
    AI_NAME_SUFFIX,
    MAX_PLAYERS,
    MIN_PLAYERS,
    GamePhase,
    GameVariant,
    Player,
    PlayerMode,
    Session,
    TurnSpeed,
)
from ..errors import (
    AuthorityError,
    ErrorCode,
    GameStateError,
    KickCooldownError,
    NotFoundError,
)
from .scheduler import now_ms


KICK_COOLDOWN_MS = 30_000

AI_NAMES = [
    "Rossi", "Buffon", "Totti", "Baggio", "Maldini", "Pirlo", "Del Piero",
    "Cannavaro", "Gattuso", "Insigne", "Immobile", "Verratti", "Donnarumma",
    "Chiesa", "Barella", "Zaniolo", "Pellegrini", "Spinazzola", "Chiellini",
    "Bonucci", "Bernardeschi", "Belotti", "Locatelli", "Scamacca",
]


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class JoinResult:
    player: Player
    reconnected: bool = False


@dataclass
class LeaveResult:
    """
    What leaving did.

    converted: the seat was handed to the AI instead of being removed.
    destroyed: no human is left; the caller must drop the session.
    """
    player: Player
    converted: bool = False
    was_current: bool = False
    destroyed: bool = False
    new_host: Player | None = None


@dataclass
class KickResult:
    target: Player
    removed: bool = True
    was_current: bool = False
    cooldown_until: int | None = None


class KickRegistry:
    """Recently kicked display names, per lobby, with expiry times."""

    def __init__(self, cooldown_ms: int = KICK_COOLDOWN_MS, clock: Callable[[], int] | None = None):
        self.cooldown_ms = cooldown_ms
        self._clock = clock or now_ms
        self._kicked: dict[str, dict[str, int]] = {}

    def add(self, lobby_code: str, name: str) -> int:
        expiry = self._clock() + self.cooldown_ms
        self._kicked.setdefault(lobby_code, {})[name] = expiry
        return expiry

    def remaining_ms(self, lobby_code: str, name: str) -> int:
        """Milliseconds left on a name's cooldown, 0 when free to join."""
        kicked = self._kicked.get(lobby_code)
        if not kicked:
            return 0
        now = self._clock()
        for kicked_name, expiry in list(kicked.items()):
            if expiry <= now:
                del kicked[kicked_name]
        if not kicked:
            del self._kicked[lobby_code]
            return 0
        expiry = kicked.get(name)
        return expiry - now if expiry else 0

    def clear(self, lobby_code: str):
        self._kicked.pop(lobby_code, None)


class PlayerLifecycle:
    """
    Membership and authority rules for sessions.

    Usage:
        lifecycle = PlayerLifecycle()
        session = lifecycle.create_session("ABC123", "Alice")
        result = lifecycle.join(session, "Bob")
    """

    def __init__(
        self,
        kicks: KickRegistry | None = None,
        rng: random.Random | None = None,
    ):
        self.kicks = kicks or KickRegistry()
        self._rng = rng or random.Random()

    # =========================================================================
    # Guards
    # =========================================================================

    @staticmethod
    def require_player(session: Session, player_id: str) -> Player:
        player = session.get_player(player_id)
        if player is None:
            raise NotFoundError("Player not found", ErrorCode.PLAYER_NOT_FOUND)
        return player

    def require_host(self, session: Session, player_id: str) -> Player:
        player = self.require_player(session, player_id)
        if not player.is_host:
            raise AuthorityError("Only the host can do that")
        return player

    @staticmethod
    def require_phase(session: Session, *phases: GamePhase):
        if session.phase not in phases:
            raise GameStateError(
                f"Not allowed while the game is {session.phase.value}",
                ErrorCode.WRONG_PHASE,
            )

    @staticmethod
    def _require_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise GameStateError("A player name is required", ErrorCode.INVALID_REQUEST)
        return name

    # =========================================================================
    # Create / join
    # =========================================================================

    def create_session(self, lobby_code: str, player_name: str) -> Session:
        """A new lobby with a single human host."""
        name = self._require_name(player_name)
        host = Player(player_id=new_id(), name=name, is_host=True)
        return Session(session_id=new_id(), lobby_code=lobby_code, players=[host])

    def join(self, session: Session, player_name: str) -> JoinResult:
        """
        Seat a player, or hand an AI-kept seat back to its owner.

        A seat is reclaimed when an AI player is named exactly
        player_name + AI_NAME_SUFFIX; id, hand and score are kept.
        """
        name = self._require_name(player_name)

        remaining = self.kicks.remaining_ms(session.lobby_code, name)
        if remaining > 0:
            raise KickCooldownError(remaining)

        if session.find_by_name(name) is not None:
            raise GameStateError(
                "This player has already joined the lobby", ErrorCode.NAME_TAKEN
            )

        seat = session.find_by_name(name + AI_NAME_SUFFIX)
        if seat is not None and seat.is_ai:
            seat.to_human()
            session.reassign_host()
            return JoinResult(player=seat, reconnected=True)

        if session.phase == GamePhase.PLAYING:
            raise GameStateError(
                "Game already started, cannot join now", ErrorCode.WRONG_PHASE
            )
        if session.num_players >= session.max_players:
            raise GameStateError("Lobby is full", ErrorCode.LOBBY_FULL)

        player = Player(player_id=new_id(), name=name)
        session.players.append(player)
        session.reassign_host()
        return JoinResult(player=player)

    # =========================================================================
    # Leave / kick
    # =========================================================================

    def leave(self, session: Session, player_id: str) -> LeaveResult:
        """
        Take a player out of the session.

        While playing the seat is kept and handed to the AI; otherwise it
        is removed. The session is destroyed once no human is left.
        """
        player = self.require_player(session, player_id)
        was_current = session.current_player is player
        result = LeaveResult(player=player, was_current=was_current)

        if session.phase == GamePhase.PLAYING:
            player.to_ai()
            result.converted = True
        else:
            session.remove_player(player_id)

        result.new_host = session.reassign_host()
        result.destroyed = not session.has_humans()
        return result

    def kick(self, session: Session, host_id: str, target_id: str) -> KickResult:
        """
        Host removes a player.

        Humans get a name cooldown. During play the seat stays at the
        table under AI control so the deck and the trick stay whole, and
        seats already held by the AI cannot be kicked.
        """
        self.require_host(session, host_id)
        target = self.require_player(session, target_id)
        if target.player_id == host_id:
            raise GameStateError("You cannot kick yourself", ErrorCode.INVALID_REQUEST)
        if session.phase == GamePhase.PLAYING and target.is_ai:
            raise GameStateError(
                "AI seats cannot be kicked during a game", ErrorCode.WRONG_PHASE
            )

        result = KickResult(target=target, was_current=session.current_player is target)
        if target.is_human:
            result.cooldown_until = self.kicks.add(session.lobby_code, target.name)

        if session.phase == GamePhase.PLAYING:
            target.to_ai()
            result.removed = False
        else:
            session.remove_player(target_id)
        session.reassign_host()
        return result

    # =========================================================================
    # Lobby settings (host only, lobby only)
    # =========================================================================

    def add_bot(self, session: Session, host_id: str) -> Player:
        """Seat an AI filler under a name nobody at the table uses."""
        self.require_host(session, host_id)
        self.require_phase(session, GamePhase.LOBBY)
        if session.num_players >= session.max_players:
            raise GameStateError("Lobby is full", ErrorCode.LOBBY_FULL)

        bot = Player(player_id=new_id(), name=self._bot_name(session), mode=PlayerMode.AI)
        session.players.append(bot)
        return bot

    def _bot_name(self, session: Session) -> str:
        taken = {p.name for p in session.players}
        free = [n for n in AI_NAMES if n not in taken]
        if free:
            return self._rng.choice(free)
        i = 1
        while f"Bot {i}" in taken:
            i += 1
        return f"Bot {i}"

    def change_max_players(self, session: Session, host_id: str, max_players: int):
        self.require_host(session, host_id)
        self.require_phase(session, GamePhase.LOBBY)
        if not MIN_PLAYERS <= max_players <= MAX_PLAYERS:
            raise GameStateError(
                f"Max players must be between {MIN_PLAYERS} and {MAX_PLAYERS}",
                ErrorCode.INVALID_PLAYER_COUNT,
            )
        if max_players < session.num_players:
            raise GameStateError(
                "More players are already seated", ErrorCode.INVALID_PLAYER_COUNT
            )
        session.max_players = max_players

    def change_speed(self, session: Session, host_id: str, speed: TurnSpeed | str):
        self.require_host(session, host_id)
        self.require_phase(session, GamePhase.LOBBY)
        try:
            session.speed = TurnSpeed(speed)
        except ValueError:
            raise GameStateError(f"Unknown speed: {speed}", ErrorCode.INVALID_REQUEST)

    def change_variant(self, session: Session, host_id: str, variant: GameVariant | str):
        self.require_host(session, host_id)
        self.require_phase(session, GamePhase.LOBBY)
        try:
            session.variant = GameVariant(variant)
        except ValueError:
            raise GameStateError(f"Unknown variant: {variant}", ErrorCode.INVALID_REQUEST)

    def check_can_start(self, session: Session, host_id: str):
        self.require_host(session, host_id)
        self.require_phase(session, GamePhase.LOBBY)
        if session.num_players < MIN_PLAYERS:
            raise GameStateError(
                f"Need at least {MIN_PLAYERS} players to start",
                ErrorCode.INVALID_PLAYER_COUNT,
            )
        if session.num_players > MAX_PLAYERS:
            raise GameStateError(
                f"Too many players, maximum is {MAX_PLAYERS}",
                ErrorCode.INVALID_PLAYER_COUNT,
            )
