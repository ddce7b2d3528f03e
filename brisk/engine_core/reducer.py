"""
Reducer - Applies table actions to a Session.

The reducer is the single point of game-rule mutation. Lobby membership
is handled by the lifecycle manager; everything that touches cards, dice,
turns and scores goes through here.

Design principles:
- Validate first, then mutate: a rejected action leaves no trace
- Deterministic given the session and the rng
- Card conservation can be asserted after every mutation
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
import logging
import random

from .cards import Card, deck_for_players, deal, refill, shuffled_deck, trump_indicator
from .dice import RollResult, apply_roll, roll_die
from .state import GamePhase, GameVariant, PlayedCard, Session
from .trick import TrickResult, match_winner, resolve_trick
from ..errors import ErrorCode, GameStateError, InvariantViolation, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class PlayResult:
    """
    What a single play did to the session.

    trick is set when the play completed a trick; match_over when the
    play ended the match.
    """
    player_id: str
    card: Card | None = None
    roll: RollResult | None = None
    trick: TrickResult | None = None
    match_over: bool = False


# ============================================================================
# Match setup / teardown
# ============================================================================

def start_match(session: Session, rng: random.Random | None = None):
    """
    Move a lobby into play: reset players, then build, shuffle and deal.

    Seat 0 acts first.
    """
    rng = rng or random.Random()

    for player in session.players:
        player.reset_for_match()

    session.phase = GamePhase.PLAYING
    session.current_player_idx = 0
    session.current_round = 1
    session.winner_id = None
    session.played_cards = []
    session.last_played_cards = []
    session.last_trick_winner_id = None

    if session.variant == GameVariant.CARDS:
        session.deck = shuffled_deck(session.num_players, rng)
        session.trump_card = trump_indicator(session.deck)
        deal(session.deck, [p.hand for p in session.players])
    else:
        session.deck = []
        session.trump_card = None

    logger.info(
        "Match started in %s: %d players, variant=%s, trump=%s",
        session.lobby_code,
        session.num_players,
        session.variant.value,
        session.trump_card,
    )


def reset_to_lobby(session: Session):
    """Rematch: back to the lobby with the table cleared. Scores stay visible."""
    session.phase = GamePhase.LOBBY
    session.current_player_idx = 0
    session.current_round = 1
    session.winner_id = None
    session.deck = []
    session.trump_card = None
    session.played_cards = []
    session.turn_start_ms = None
    session.turn_end_ms = None
    for player in session.players:
        player.hand = []


# ============================================================================
# Turn actions
# ============================================================================

def _require_turn(session: Session, player_id: str, variant: GameVariant):
    if session.phase != GamePhase.PLAYING:
        raise GameStateError("Game not found or not in progress", ErrorCode.WRONG_PHASE)
    if session.variant != variant:
        raise GameStateError(
            f"This lobby is playing {session.variant.value}", ErrorCode.WRONG_PHASE
        )
    player = session.get_player(player_id)
    if player is None:
        raise NotFoundError("Player not found", ErrorCode.PLAYER_NOT_FOUND)
    if session.current_player is not player:
        raise GameStateError("It is not your turn", ErrorCode.NOT_YOUR_TURN)
    return player


def validate_play(session: Session, player_id: str, card: Card):
    """Raise unless player_id may lay card right now. Mutates nothing."""
    player = _require_turn(session, player_id, GameVariant.CARDS)
    if not player.has_card(card):
        raise GameStateError("Card not in hand", ErrorCode.CARD_NOT_IN_HAND)
    return player


def validate_roll(session: Session, player_id: str):
    return _require_turn(session, player_id, GameVariant.DICE)


def play_card(session: Session, player_id: str, card: Card) -> PlayResult:
    """
    Lay a card from the current player's hand.

    When the last seat plays, the trick is resolved on the spot: the
    winner collects it, hands are refilled from the winner onwards and
    the winner leads the next trick. The match ends once any hand is
    empty after refilling.
    """
    player = validate_play(session, player_id, card)

    player.hand.remove(card)
    session.played_cards.append(PlayedCard(player_id=player_id, card=card))
    result = PlayResult(player_id=player_id, card=card)
    logger.debug("%s played %s in %s", player.name, card, session.lobby_code)

    if len(session.played_cards) < session.num_players:
        session.advance_turn()
        return result

    result.trick = _complete_trick(session)
    result.match_over = session.phase == GamePhase.ENDED
    return result


def _complete_trick(session: Session) -> TrickResult:
    trick = resolve_trick(session.played_cards, session.trump_suit)

    winner = session.get_player(trick.winner_id)
    winner.won_cards.extend(trick.cards)
    winner.recompute_score()

    session.last_played_cards = list(session.played_cards)
    session.last_trick_winner_id = trick.winner_id
    session.played_cards = []
    session.current_round += 1

    winner_seat = session.seat_of(trick.winner_id)
    refill(session.deck, [p.hand for p in session.players], winner_seat)
    session.current_player_idx = winner_seat

    logger.debug(
        "Trick in %s won by %s with %s (%d points)",
        session.lobby_code,
        winner.name,
        trick.winning_card,
        trick.points,
    )

    if any(not p.hand for p in session.players):
        _end_match(session, match_winner(session.players))
    return trick


def roll_dice(
    session: Session,
    player_id: str,
    rng: random.Random | None = None,
) -> PlayResult:
    """Dice variant turn: roll, score, pass the turn or end the match."""
    player = validate_roll(session, player_id)
    roll = apply_roll(player, roll_die(rng), session.points_to_win)
    result = PlayResult(player_id=player_id, roll=roll)

    if roll.won:
        _end_match(session, player)
        result.match_over = True
    else:
        session.advance_turn()
        session.current_round += 1
    return result


def _end_match(session: Session, winner):
    session.phase = GamePhase.ENDED
    session.winner_id = winner.player_id if winner else None
    logger.info(
        "Match ended in %s, winner %s",
        session.lobby_code,
        winner.name if winner else None,
    )


# ============================================================================
# Diagnostics
# ============================================================================

def check_card_conservation(session: Session):
    """
    Raise InvariantViolation unless every card of the table's deck is
    present exactly once across deck, hands, won piles and the open trick.
    """
    if session.phase != GamePhase.PLAYING or session.variant != GameVariant.CARDS:
        return
    expected = Counter(deck_for_players(session.num_players))
    actual = Counter(session.all_cards())
    if expected != actual:
        missing = expected - actual
        extra = actual - expected
        raise InvariantViolation(
            f"Card multiset mismatch in {session.lobby_code}: "
            f"missing={sorted(map(str, missing))} extra={sorted(map(str, extra))}"
        )
