"""
Game State - Session, player and chat containers.

Design principles:
- Mutable in place: the session store is the single owner of a Session
  and serialises every mutation per lobby
- Serializable: to_dict()/from_dict() round-trip for persistence
- A player's seat is stable: disconnecting flips the player to AI mode
  rather than removing it
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .cards import Card, cards_value


AI_NAME_SUFFIX = "bot"
CHAT_LOG_LIMIT = 100
MIN_PLAYERS = 2
MAX_PLAYERS = 5
DEFAULT_POINTS_TO_WIN = 30


class GamePhase(str, Enum):
    """lobby -> playing -> ended -> lobby (rematch)."""
    LOBBY = "lobby"
    PLAYING = "playing"
    ENDED = "ended"


class PlayerMode(str, Enum):
    """Who is driving a seat."""
    HUMAN = "human"
    AI = "ai"


class GameVariant(str, Enum):
    """Which rules a session plays."""
    CARDS = "cards"
    DICE = "dice"


class TurnSpeed(str, Enum):
    """Named turn-timeout presets."""
    VERY_SLOW = "very_slow"
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"
    VERY_FAST = "very_fast"

    @property
    def timeout_ms(self) -> int:
        return TURN_TIMEOUTS_MS[self]


TURN_TIMEOUTS_MS = {
    TurnSpeed.VERY_SLOW: 60_000,
    TurnSpeed.SLOW: 30_000,
    TurnSpeed.NORMAL: 20_000,
    TurnSpeed.FAST: 10_000,
    TurnSpeed.VERY_FAST: 5_000,
}


@dataclass
class Player:
    """
    A seated player.

    The same object is kept for the whole life of the seat; mode flips
    between HUMAN and AI on disconnect/reconnect.
    """
    player_id: str
    name: str
    is_host: bool = False
    mode: PlayerMode = PlayerMode.HUMAN
    score: int = 0
    hand: list[Card] = field(default_factory=list)
    won_cards: list[Card] = field(default_factory=list)
    last_roll: int | None = None

    @property
    def is_ai(self) -> bool:
        return self.mode == PlayerMode.AI

    @property
    def is_human(self) -> bool:
        return self.mode == PlayerMode.HUMAN

    def has_card(self, card: Card) -> bool:
        return card in self.hand

    def recompute_score(self) -> int:
        """Score is always the value of everything won, never an increment."""
        self.score = cards_value(self.won_cards)
        return self.score

    def to_ai(self):
        """Hand the seat to the AI, tagging the name for later rediscovery."""
        if self.mode == PlayerMode.AI:
            return
        self.mode = PlayerMode.AI
        self.name = f"{self.name}{AI_NAME_SUFFIX}"
        self.is_host = False

    def to_human(self):
        """Give the seat back to its human, restoring the display name."""
        if self.mode == PlayerMode.HUMAN:
            return
        self.mode = PlayerMode.HUMAN
        if self.name.endswith(AI_NAME_SUFFIX):
            self.name = self.name[: -len(AI_NAME_SUFFIX)]

    def reset_for_match(self):
        self.score = 0
        self.hand = []
        self.won_cards = []
        self.last_roll = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "is_host": self.is_host,
            "mode": self.mode.value,
            "score": self.score,
            "hand": [c.to_dict() for c in self.hand],
            "won_cards": [c.to_dict() for c in self.won_cards],
            "last_roll": self.last_roll,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        return cls(
            player_id=data["player_id"],
            name=data["name"],
            is_host=data.get("is_host", False),
            mode=PlayerMode(data.get("mode", PlayerMode.HUMAN.value)),
            score=data.get("score", 0),
            hand=[Card.from_dict(c) for c in data.get("hand", [])],
            won_cards=[Card.from_dict(c) for c in data.get("won_cards", [])],
            last_roll=data.get("last_roll"),
        )


@dataclass(frozen=True)
class PlayedCard:
    """A card laid on the table during a trick."""
    player_id: str
    card: Card

    def to_dict(self) -> dict[str, Any]:
        return {"player_id": self.player_id, "card": self.card.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayedCard:
        return cls(player_id=data["player_id"], card=Card.from_dict(data["card"]))


@dataclass
class ChatMessage:
    """One line of lobby chat."""
    message_id: str
    player_id: str
    player_name: str
    message: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "message": self.message,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        return cls(**data)


@dataclass
class Session:
    """
    Complete state of one lobby/match.

    players order is seat order and turn rotation. current_player_idx
    always indexes into players while any player is seated.
    """
    session_id: str
    lobby_code: str

    phase: GamePhase = GamePhase.LOBBY
    variant: GameVariant = GameVariant.CARDS
    players: list[Player] = field(default_factory=list)
    current_player_idx: int = 0
    max_players: int = MAX_PLAYERS
    speed: TurnSpeed = TurnSpeed.NORMAL
    points_to_win: int = DEFAULT_POINTS_TO_WIN
    current_round: int = 1

    # Card table
    deck: list[Card] = field(default_factory=list)
    trump_card: Card | None = None
    played_cards: list[PlayedCard] = field(default_factory=list)
    last_played_cards: list[PlayedCard] = field(default_factory=list)
    last_trick_winner_id: str | None = None

    # Turn window (epoch milliseconds)
    turn_start_ms: int | None = None
    turn_end_ms: int | None = None
    # Bumped on every arm; a timer only acts if the serial still matches
    turn_serial: int = 0

    chat: list[ChatMessage] = field(default_factory=list)
    winner_id: str | None = None

    @property
    def current_player(self) -> Player | None:
        if not self.players:
            return None
        return self.players[self.current_player_idx]

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def trump_suit(self):
        return self.trump_card.suit if self.trump_card else None

    @property
    def host(self) -> Player | None:
        for p in self.players:
            if p.is_host:
                return p
        return None

    @property
    def winner(self) -> Player | None:
        return self.get_player(self.winner_id) if self.winner_id else None

    def humans(self) -> list[Player]:
        return [p for p in self.players if p.is_human]

    def has_humans(self) -> bool:
        return any(p.is_human for p in self.players)

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def seat_of(self, player_id: str) -> int:
        """Seat index of a player, -1 when absent."""
        for i, p in enumerate(self.players):
            if p.player_id == player_id:
                return i
        return -1

    def find_by_name(self, name: str) -> Player | None:
        for p in self.players:
            if p.name == name:
                return p
        return None

    def advance_turn(self):
        if self.players:
            self.current_player_idx = (self.current_player_idx + 1) % len(self.players)

    def remove_player(self, player_id: str) -> Player | None:
        """
        Drop a seat and keep current_player_idx pointing at the same
        player (or the next one when the current player leaves).
        """
        idx = self.seat_of(player_id)
        if idx < 0:
            return None
        player = self.players.pop(idx)
        if idx < self.current_player_idx:
            self.current_player_idx -= 1
        if self.current_player_idx >= len(self.players):
            self.current_player_idx = 0
        return player

    def reassign_host(self) -> Player | None:
        """
        Make the first human the only host.

        Returns the host, or None when no human is left.
        """
        humans = self.humans()
        new_host = humans[0] if humans else None
        current = self.host
        if current is not None and current.is_human:
            new_host = current
        for p in self.players:
            p.is_host = p is new_host
        return new_host

    def append_chat(self, message: ChatMessage):
        self.chat.append(message)
        if len(self.chat) > CHAT_LOG_LIMIT:
            self.chat = self.chat[-CHAT_LOG_LIMIT:]

    def all_cards(self) -> list[Card]:
        """Every card in play: deck, hands, won piles and the open trick."""
        cards = list(self.deck)
        for p in self.players:
            cards.extend(p.hand)
            cards.extend(p.won_cards)
        cards.extend(pc.card for pc in self.played_cards)
        return cards

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "lobby_code": self.lobby_code,
            "phase": self.phase.value,
            "variant": self.variant.value,
            "players": [p.to_dict() for p in self.players],
            "current_player_idx": self.current_player_idx,
            "max_players": self.max_players,
            "speed": self.speed.value,
            "points_to_win": self.points_to_win,
            "current_round": self.current_round,
            "deck": [c.to_dict() for c in self.deck],
            "trump_card": self.trump_card.to_dict() if self.trump_card else None,
            "played_cards": [pc.to_dict() for pc in self.played_cards],
            "last_played_cards": [pc.to_dict() for pc in self.last_played_cards],
            "last_trick_winner_id": self.last_trick_winner_id,
            "turn_start_ms": self.turn_start_ms,
            "turn_end_ms": self.turn_end_ms,
            "turn_serial": self.turn_serial,
            "chat": [m.to_dict() for m in self.chat],
            "winner_id": self.winner_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        trump = data.get("trump_card")
        return cls(
            session_id=data["session_id"],
            lobby_code=data["lobby_code"],
            phase=GamePhase(data.get("phase", GamePhase.LOBBY.value)),
            variant=GameVariant(data.get("variant", GameVariant.CARDS.value)),
            players=[Player.from_dict(p) for p in data.get("players", [])],
            current_player_idx=data.get("current_player_idx", 0),
            max_players=data.get("max_players", MAX_PLAYERS),
            speed=TurnSpeed(data.get("speed", TurnSpeed.NORMAL.value)),
            points_to_win=data.get("points_to_win", DEFAULT_POINTS_TO_WIN),
            current_round=data.get("current_round", 1),
            deck=[Card.from_dict(c) for c in data.get("deck", [])],
            trump_card=Card.from_dict(trump) if trump else None,
            played_cards=[PlayedCard.from_dict(pc) for pc in data.get("played_cards", [])],
            last_played_cards=[
                PlayedCard.from_dict(pc) for pc in data.get("last_played_cards", [])
            ],
            last_trick_winner_id=data.get("last_trick_winner_id"),
            turn_start_ms=data.get("turn_start_ms"),
            turn_end_ms=data.get("turn_end_ms"),
            turn_serial=data.get("turn_serial", 0),
            chat=[ChatMessage.from_dict(m) for m in data.get("chat", [])],
            winner_id=data.get("winner_id"),
        )
