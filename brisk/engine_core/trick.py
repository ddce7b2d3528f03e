"""
Trick Resolver - Winner and scoring of a completed trick.

Rules:
1. If any card of the trump suit was played, trump is the dominant suit;
   otherwise the suit of the first card played (the lead) is.
2. Only dominant-suit cards can win. Highest point value wins; among
   zero-value cards the higher rank wins.
3. The winner takes every card of the trick and leads the next one.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

from .cards import Card, Suit, card_value, cards_value

if TYPE_CHECKING:
    from .state import PlayedCard, Player


@dataclass
class TrickResult:
    """Outcome of resolving one trick."""
    winner_id: str
    winning_card: Card
    dominant_suit: Suit
    points: int
    cards: list[Card] = field(default_factory=list)


def dominant_suit(played: Sequence[PlayedCard], trump_suit: Suit | None) -> Suit | None:
    """Trump if any trump is on the table, otherwise the lead suit."""
    if not played:
        return None
    if trump_suit is not None and any(pc.card.suit == trump_suit for pc in played):
        return trump_suit
    return played[0].card.suit


def beats(challenger: Card, best: Card) -> bool:
    """
    Whether challenger outranks best, both being of the dominant suit.

    Value decides; rank only breaks ties between worthless cards.
    """
    challenger_value = card_value(challenger)
    best_value = card_value(best)
    if challenger_value != best_value:
        return challenger_value > best_value
    return challenger_value == 0 and challenger.number > best.number


def best_played(played: Sequence[PlayedCard], trump_suit: Suit | None) -> PlayedCard | None:
    """The card currently winning a (possibly incomplete) trick."""
    suit = dominant_suit(played, trump_suit)
    best: PlayedCard | None = None
    for pc in played:
        if pc.card.suit != suit:
            continue
        if best is None or beats(pc.card, best.card):
            best = pc
    return best


def resolve_trick(played: Sequence[PlayedCard], trump_suit: Suit | None) -> TrickResult:
    """
    Resolve a completed trick.

    Raises ValueError for an empty trick.
    """
    if not played:
        raise ValueError("Cannot resolve an empty trick")

    winner = best_played(played, trump_suit)
    # The lead card is always of the dominant suit when no trump shows,
    # and some trump is when it does, so a winner always exists.
    assert winner is not None

    cards = [pc.card for pc in played]
    return TrickResult(
        winner_id=winner.player_id,
        winning_card=winner.card,
        dominant_suit=dominant_suit(played, trump_suit),
        points=cards_value(cards),
        cards=cards,
    )


def match_winner(players: Iterable[Player]) -> Player | None:
    """
    Player with the strictly highest score.

    On a tie the first such player in seat order keeps the lead.
    """
    winner: Player | None = None
    for player in players:
        if winner is None or player.score > winner.score:
            winner = player
    return winner
