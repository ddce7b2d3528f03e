"""
Cards - Immutable card values, point table and deck handling.

A Brisk deck is the 40-card Italian pack:
- 4 suits (a, b, c, d)
- ranks 1-10 in each suit

The deck is drawn from its tail. The card at index 0 of the shuffled
deck is revealed as the trump indicator and is the last card drawn.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any
import random


HAND_SIZE = 3
RANKS = range(1, 11)

# rank -> points; every other rank is worth nothing
CARD_POINTS = {1: 11, 3: 10, 10: 4, 9: 3, 8: 2}


class Suit(str, Enum):
    """The four suits of the pack."""
    A = "a"
    B = "b"
    C = "c"
    D = "d"


@dataclass(frozen=True)
class Card:
    """
    A single card.

    Equality and hashing are by (rank, suit), so a Card can be used
    directly as a set member or dict key.
    """
    number: int
    suit: Suit

    def __post_init__(self):
        if self.number not in RANKS:
            raise ValueError(f"Card rank must be 1-10, got {self.number}")
        if not isinstance(self.suit, Suit):
            object.__setattr__(self, "suit", Suit(self.suit))

    @property
    def value(self) -> int:
        """Point value of this card."""
        return card_value(self)

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "suit": self.suit.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Card:
        return cls(number=int(data["number"]), suit=Suit(data["suit"]))

    def __str__(self) -> str:
        return f"{self.suit.value}{self.number}"


def card_value(card: Card) -> int:
    """Points scored by winning this card."""
    return CARD_POINTS.get(card.number, 0)


def cards_value(cards) -> int:
    """Sum of point values of a collection of cards."""
    return sum(card_value(c) for c in cards)


def lowest_value_card(cards: list[Card]) -> Card:
    """
    Cheapest card by point value.

    Ties keep the earliest card in the given order.
    """
    if not cards:
        raise ValueError("Cannot pick the lowest card from an empty hand")
    return min(cards, key=card_value)


# ============================================================================
# Deck
# ============================================================================

def full_deck() -> list[Card]:
    """All 40 cards in build order (suit-major)."""
    return [Card(number, suit) for suit in Suit for number in RANKS]


def deck_for_players(num_players: int) -> list[Card]:
    """
    Unshuffled deck for a given table size.

    With 3 players one rank-2 card is removed so the pack divides
    evenly; the first one in build order goes.
    """
    deck = full_deck()
    if num_players == 3:
        for i, card in enumerate(deck):
            if card.number == 2:
                del deck[i]
                break
    return deck


def shuffled_deck(num_players: int, rng: random.Random | None = None) -> list[Card]:
    """Build and shuffle (Fisher-Yates) the deck for a table size."""
    rng = rng or random.Random()
    deck = deck_for_players(num_players)
    rng.shuffle(deck)
    return deck


def trump_indicator(deck: list[Card]) -> Card | None:
    """The revealed card: bottom of the deck, drawn last."""
    return deck[0] if deck else None


def deal(deck: list[Card], hands: list[list[Card]], hand_size: int = HAND_SIZE):
    """Deal up to hand_size cards to each hand, one hand at a time."""
    for hand in hands:
        while len(hand) < hand_size and deck:
            hand.append(deck.pop())


def refill(
    deck: list[Card],
    hands: list[list[Card]],
    first_seat: int,
    hand_size: int = HAND_SIZE,
) -> list[int]:
    """
    Top hands back up to hand_size starting at first_seat, in seat order.

    Returns the seats that received a card, in the order they drew.
    The order decides who gets the last cards when the deck runs dry.
    """
    drawn_by: list[int] = []
    count = len(hands)
    for offset in range(count):
        seat = (first_seat + offset) % count
        hand = hands[seat]
        while len(hand) < hand_size and deck:
            hand.append(deck.pop())
            drawn_by.append(seat)
    return drawn_by
