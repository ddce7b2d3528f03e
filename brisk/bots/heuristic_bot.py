"""
Heuristic Bot - Deterministic stand-in player.

The bot does NOT search. It reads the open trick and:
- leads with its cheapest non-trump card
- takes valuable tricks, or any trick it can take, as cheaply as possible
- otherwise follows the lead suit cheaply, or discards its cheapest card

The same session and hand always produce the same card.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .policy import CardPolicy, BotDecision
from ..engine_core.cards import card_value, cards_value
from ..engine_core.trick import beats, best_played

if TYPE_CHECKING:
    from ..engine_core.cards import Card
    from ..engine_core.state import Player, Session


# Trick value at which the bot always tries to win
WINNING_THRESHOLD = 10


def cheapest(cards: list[Card]) -> Card:
    """Lowest point value, then lowest rank."""
    return min(cards, key=lambda c: (card_value(c), c.number))


@dataclass
class HeuristicBot(CardPolicy):
    """
    Rule-of-thumb Brisk player.

    Usage:
        bot = HeuristicBot()
        decision = bot.select_card(session, session.current_player)
    """
    winning_threshold: int = WINNING_THRESHOLD

    def select_card(self, session: Session, player: Player) -> BotDecision:
        hand = list(player.hand)
        if not hand:
            raise ValueError(f"{player.name} has no cards to play")

        trump = session.trump_suit
        played = session.played_cards

        if not played:
            non_trump = [c for c in hand if c.suit != trump]
            if non_trump:
                return BotDecision(cheapest(non_trump), "Leading with cheapest non-trump")
            return BotDecision(cheapest(hand), "Only trumps left, leading cheapest")

        best = best_played(played, trump).card
        lead_suit = played[0].card.suit
        trick_value = cards_value(pc.card for pc in played)

        winners = self._winning_cards(hand, best, trump)
        if trick_value >= self.winning_threshold or winners:
            same_suit = [c for c in winners if c.suit == best.suit]
            if same_suit:
                return BotDecision(cheapest(same_suit), "Taking the trick in suit")
            trumps = [c for c in winners if c.suit == trump]
            if trumps:
                return BotDecision(cheapest(trumps), "Taking the trick with trump")

        following = [c for c in hand if c.suit == lead_suit]
        if following:
            return BotDecision(cheapest(following), "Following suit cheaply")
        return BotDecision(cheapest(hand), "Discarding cheapest card")

    @staticmethod
    def _winning_cards(hand: list[Card], best: Card, trump) -> list[Card]:
        """Cards that would take the lead over best if played now."""
        winners = []
        for card in hand:
            if card.suit == best.suit:
                if beats(card, best):
                    winners.append(card)
            elif card.suit == trump:
                # best is not trump, so any trump takes it
                winners.append(card)
        return winners
