"""
Bot Policy - Interface for choosing a card on behalf of a seat.

A CardPolicy takes the session and the seat to play for and returns a
decision. Policies never mutate the session; the orchestrator applies
the chosen card through the reducer like any other play.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING
import random

if TYPE_CHECKING:
    from ..engine_core.cards import Card
    from ..engine_core.state import Player, Session


@dataclass
class BotDecision:
    """
    A card chosen by a policy.

    explanation is for logs and debugging only.
    """
    card: Card
    explanation: str = ""


class CardPolicy(ABC):
    """Abstract base class for card-choosing policies."""

    @abstractmethod
    def select_card(self, session: Session, player: Player) -> BotDecision:
        """
        Pick one card from player's hand.

        Args:
            session: Current session (read only)
            player: The seat to play for

        Returns:
            BotDecision with a card from player.hand
        """


class RandomPolicy(CardPolicy):
    """
    Uniformly random card from the hand.

    Used when a human's turn timer runs out.
    """

    def __init__(self, rng: random.Random | None = None, seed: int | None = None):
        self.rng = rng or random.Random(seed)

    def select_card(self, session: Session, player: Player) -> BotDecision:
        if not player.hand:
            raise ValueError(f"{player.name} has no cards to play")
        return BotDecision(card=self.rng.choice(player.hand), explanation="Selected randomly")
