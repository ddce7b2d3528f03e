"""
Tests for AI card selection.

Tests:
- Leading choices
- Taking tricks cheaply
- Following and discarding
- Determinism
"""

import random

import pytest

from ..bots import HeuristicBot, RandomPolicy
from ..engine_core.cards import Card
from ..engine_core.state import GamePhase, PlayedCard
from .conftest import cards


@pytest.fixture
def seat(make_session):
    """Session with trump suit a; returns a function setting hand and trick."""
    def _seat(hand, played=()):
        session = make_session(2, phase=GamePhase.PLAYING)
        session.trump_card = Card(5, "a")
        session.played_cards = [PlayedCard("p0", c) for c in cards(*played)]
        player = session.players[1]
        player.hand = cards(*hand)
        return session, player
    return _seat


class TestHeuristicLead:
    """Tests for leading a trick."""

    def test_leads_cheapest_non_trump(self, seat):
        """Leading plays the cheapest non-trump."""
        session, player = seat(["a1", "b3", "c2"])
        assert HeuristicBot().select_card(session, player).card == Card(2, "c")

    def test_leads_cheapest_trump_when_only_trumps(self, seat):
        """With only trumps the cheapest one leads."""
        session, player = seat(["a1", "a4", "a3"])
        assert HeuristicBot().select_card(session, player).card == Card(4, "a")


class TestHeuristicFollow:
    """Tests for following a trick."""

    def test_takes_trick_cheaply_in_suit(self, seat):
        """A winnable trick is taken with the cheapest winner in suit."""
        session, player = seat(["b7", "b3", "a6"], played=["b2"])
        assert HeuristicBot().select_card(session, player).card == Card(7, "b")

    def test_trumps_valuable_trick(self, seat):
        """A valuable trick is worth a trump."""
        session, player = seat(["b2", "a4", "c5"], played=["b1"])
        assert HeuristicBot().select_card(session, player).card == Card(4, "a")

    def test_prefers_suit_over_trump(self, seat):
        """Winning in suit is preferred over trumping."""
        session, player = seat(["b1", "a2"], played=["b3"])
        assert HeuristicBot().select_card(session, player).card == Card(1, "b")

    def test_follows_lead_when_it_cannot_win(self, seat):
        """A lost trick is followed in suit."""
        session, player = seat(["c2", "b5", "d6"], played=["c1"])
        assert HeuristicBot().select_card(session, player).card == Card(2, "c")

    def test_discards_cheapest_when_beaten_by_trump(self, seat):
        """A trumped trick gets the cheapest discard."""
        session, player = seat(["b3", "c4", "b2"], played=["a1"])
        assert HeuristicBot().select_card(session, player).card == Card(2, "b")

    def test_discards_when_void_and_beaten(self, seat):
        """Nothing wins and nothing follows suit: throw the cheapest card."""
        session, player = seat(["c4", "d7"], played=["b1"])
        decision = HeuristicBot(winning_threshold=50).select_card(session, player)
        assert decision.card == Card(4, "c")
        assert decision.explanation


class TestHeuristicContract:
    """Determinism and input checks."""

    def test_same_input_same_card(self, seat):
        """The choice is deterministic."""
        session, player = seat(["d1", "b9", "c8"], played=["d4"])
        bot = HeuristicBot()
        first = bot.select_card(session, player).card
        assert all(bot.select_card(session, player).card == first for _ in range(5))

    def test_empty_hand_rejected(self, seat):
        """An empty hand cannot choose a card."""
        session, player = seat([])
        with pytest.raises(ValueError):
            HeuristicBot().select_card(session, player)

    def test_does_not_mutate_session(self, seat):
        """Choosing a card leaves the session untouched."""
        session, player = seat(["b7", "b3", "a6"], played=["b2"])
        HeuristicBot().select_card(session, player)
        assert len(player.hand) == 3
        assert len(session.played_cards) == 1


class TestRandomPolicy:
    """Tests for the timeout auto-play policy."""

    def test_picks_from_hand(self, seat):
        """The random policy picks a held card."""
        session, player = seat(["b7", "b3", "a6"])
        policy = RandomPolicy(rng=random.Random(5))
        for _ in range(10):
            assert policy.select_card(session, player).card in player.hand

    def test_seeded_is_reproducible(self, seat):
        """A seeded random policy repeats its choices."""
        session, player = seat(["b7", "b3", "a6", "c1"])
        first = [RandomPolicy(seed=3).select_card(session, player).card for _ in range(3)]
        second = [RandomPolicy(seed=3).select_card(session, player).card for _ in range(3)]
        assert first == second

    def test_empty_hand_rejected(self, seat):
        """An empty hand cannot choose a card."""
        session, player = seat([])
        with pytest.raises(ValueError):
            RandomPolicy(seed=1).select_card(session, player)
