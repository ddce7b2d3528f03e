"""
Engine Core - Deterministic table rules for a Brisk session.

The engine core:
1. Models cards, the deck and the trump indicator
2. Holds Session/Player state
3. Resolves tricks and dice rolls
4. Applies every table mutation through the reducer
"""

from .cards import Card, Suit, card_value, cards_value, HAND_SIZE
from .state import (
    Session,
    Player,
    PlayedCard,
    ChatMessage,
    GamePhase,
    GameVariant,
    PlayerMode,
    TurnSpeed,
    AI_NAME_SUFFIX,
    MIN_PLAYERS,
    MAX_PLAYERS,
)
from .trick import TrickResult, resolve_trick, dominant_suit, best_played, match_winner
from .reducer import (
    PlayResult,
    start_match,
    play_card,
    roll_dice,
    validate_play,
    validate_roll,
    reset_to_lobby,
    check_card_conservation,
)

__all__ = [
    "Card",
    "Suit",
    "card_value",
    "cards_value",
    "HAND_SIZE",
    "Session",
    "Player",
    "PlayedCard",
    "ChatMessage",
    "GamePhase",
    "GameVariant",
    "PlayerMode",
    "TurnSpeed",
    "AI_NAME_SUFFIX",
    "MIN_PLAYERS",
    "MAX_PLAYERS",
    "TrickResult",
    "resolve_trick",
    "dominant_suit",
    "best_played",
    "match_winner",
    "PlayResult",
    "start_match",
    "play_card",
    "roll_dice",
    "validate_play",
    "validate_roll",
    "reset_to_lobby",
    "check_card_conservation",
]
