"""
Pydantic Schemas for the websocket API.

Every frame in either direction is {"type": ..., "payload": {...}}.
Field names are snake_case in Python and camelCase on the wire
(serialize with model_dump(by_alias=True)).

Snapshots are per viewer: the viewer's own hand is included, other
players only expose how many cards they hold.
"""

from __future__ import annotations
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..engine_core.cards import Card, Suit
from ..engine_core.state import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    ChatMessage,
    GameVariant,
    PlayedCard,
    Player,
    Session,
    TurnSpeed,
)
from ..errors import GameError, KickCooldownError


class WireModel(BaseModel):
    """camelCase aliases on the wire, snake_case attribute access."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Frames
# =============================================================================

class ClientFrame(BaseModel):
    """Inbound frame from a client."""
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Snapshot
# =============================================================================

class CardInfo(WireModel):
    number: int
    suit: str
    value: int = 0

    @classmethod
    def from_card(cls, card: Card) -> CardInfo:
        return cls(number=card.number, suit=card.suit.value, value=card.value)


class PlayerInfo(WireModel):
    id: str
    name: str
    is_host: bool = False
    is_ai: bool = False
    score: int = 0
    hand: Optional[list[CardInfo]] = Field(
        default=None, description="Only present for the viewing player"
    )
    hand_size: int = 0
    won_cards_count: int = 0
    last_roll: Optional[int] = None


class PlayedCardInfo(WireModel):
    player_id: str
    card: CardInfo

    @classmethod
    def from_played(cls, played: PlayedCard) -> PlayedCardInfo:
        return cls(player_id=played.player_id, card=CardInfo.from_card(played.card))


class ChatMessageInfo(WireModel):
    id: str
    player_id: str
    player_name: str
    message: str
    timestamp: int

    @classmethod
    def from_message(cls, message: ChatMessage) -> ChatMessageInfo:
        return cls(
            id=message.message_id,
            player_id=message.player_id,
            player_name=message.player_name,
            message=message.message,
            timestamp=message.timestamp,
        )


class GameSnapshot(WireModel):
    """Everything a client needs to render the table."""
    id: str
    lobby_code: str
    phase: str
    variant: str
    players: list[PlayerInfo]
    current_player_index: int
    current_player_id: Optional[str] = None
    max_players: int
    speed: str
    turn_timeout_ms: int
    points_to_win: int
    current_round: int
    deck_size: int = 0
    trump_card: Optional[CardInfo] = None
    trump_suit: Optional[str] = None
    played_cards: list[PlayedCardInfo] = Field(default_factory=list)
    last_played_cards: list[PlayedCardInfo] = Field(default_factory=list)
    last_trick_winner_id: Optional[str] = None
    turn_start_time: Optional[int] = None
    turn_end_time: Optional[int] = None
    winner_id: Optional[str] = None
    chat: list[ChatMessageInfo] = Field(default_factory=list)


def _player_info(player: Player, viewer_id: str | None) -> PlayerInfo:
    own = player.player_id == viewer_id
    return PlayerInfo(
        id=player.player_id,
        name=player.name,
        is_host=player.is_host,
        is_ai=player.is_ai,
        score=player.score,
        hand=[CardInfo.from_card(c) for c in player.hand] if own else None,
        hand_size=len(player.hand),
        won_cards_count=len(player.won_cards),
        last_roll=player.last_roll,
    )


def build_snapshot(session: Session, viewer_id: str | None = None) -> GameSnapshot:
    """Render a session as seen by viewer_id (None hides every hand)."""
    current = session.current_player
    return GameSnapshot(
        id=session.session_id,
        lobby_code=session.lobby_code,
        phase=session.phase.value,
        variant=session.variant.value,
        players=[_player_info(p, viewer_id) for p in session.players],
        current_player_index=session.current_player_idx,
        current_player_id=current.player_id if current else None,
        max_players=session.max_players,
        speed=session.speed.value,
        turn_timeout_ms=session.speed.timeout_ms,
        points_to_win=session.points_to_win,
        current_round=session.current_round,
        deck_size=len(session.deck),
        trump_card=CardInfo.from_card(session.trump_card) if session.trump_card else None,
        trump_suit=session.trump_suit.value if session.trump_suit else None,
        played_cards=[PlayedCardInfo.from_played(pc) for pc in session.played_cards],
        last_played_cards=[PlayedCardInfo.from_played(pc) for pc in session.last_played_cards],
        last_trick_winner_id=session.last_trick_winner_id,
        turn_start_time=session.turn_start_ms,
        turn_end_time=session.turn_end_ms,
        winner_id=session.winner_id,
        chat=[ChatMessageInfo.from_message(m) for m in session.chat],
    )


# =============================================================================
# Intent payloads
# =============================================================================

class CreateLobbyPayload(WireModel):
    player_name: str = Field(min_length=1)


class JoinLobbyPayload(WireModel):
    lobby_code: str = Field(min_length=1)
    player_name: str = Field(min_length=1)


class CardPayload(WireModel):
    number: int = Field(ge=1, le=10)
    suit: Suit

    def to_card(self) -> Card:
        return Card(self.number, self.suit)


class PlayCardPayload(WireModel):
    card: CardPayload


class KickPlayerPayload(WireModel):
    player_id: str


class SendMessagePayload(WireModel):
    message: str


class ChangeMaxPlayersPayload(WireModel):
    max_players: int = Field(ge=MIN_PLAYERS, le=MAX_PLAYERS)


class ChangeSpeedPayload(WireModel):
    speed: TurnSpeed


class ChangeVariantPayload(WireModel):
    variant: GameVariant


# =============================================================================
# Errors and HTTP responses
# =============================================================================

class ErrorPayload(WireModel):
    message: str
    code: str


class KickTimeoutPayload(WireModel):
    kind: str = "kick-timeout"
    message: str
    remaining_ms: int


def error_payload(error: GameError) -> dict[str, Any]:
    """Wire form of a rejected intent."""
    if isinstance(error, KickCooldownError):
        return KickTimeoutPayload(
            kind=error.kind, message=error.message, remaining_ms=error.remaining_ms
        ).dump()
    return ErrorPayload(message=error.message, code=error.code.value).dump()


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class StatusResponse(BaseModel):
    sessions: int
    connections: int
    phases: dict[str, int]
