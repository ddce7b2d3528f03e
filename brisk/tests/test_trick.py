"""
Tests for trick resolution.

Tests:
- Dominant suit selection
- Winner and points
- Tie-breaking between worthless cards
- Match winner
"""

import pytest

from ..engine_core.cards import Card, Suit
from ..engine_core.state import PlayedCard, Player
from ..engine_core.trick import best_played, dominant_suit, match_winner, resolve_trick
from .conftest import cards


def trick(*plays):
    """trick(("p1", "a1"), ("p2", "b3"))"""
    return [PlayedCard(player_id, cards(code)[0]) for player_id, code in plays]


class TestDominantSuit:
    """Tests for the dominant-suit rule."""

    def test_trump_dominates_when_played(self):
        """A played trump makes trump the dominant suit."""
        played = trick(("p1", "b3"), ("p2", "a2"))
        assert dominant_suit(played, Suit.A) == Suit.A

    def test_lead_suit_without_trump(self):
        """Without trumps the lead suit dominates."""
        played = trick(("p1", "b3"), ("p2", "c1"))
        assert dominant_suit(played, Suit.A) == Suit.B

    def test_empty_trick(self):
        """An empty trick has no dominant suit."""
        assert dominant_suit([], Suit.A) is None


class TestResolveTrick:
    """Tests for resolve_trick."""

    def test_trump_lead_beats_higher_value_off_suit(self):
        """Trump a1 against b3: trump dominates, p1 takes 21."""
        result = resolve_trick(trick(("p1", "a1"), ("p2", "b3")), Suit.A)

        assert result.winner_id == "p1"
        assert result.dominant_suit == Suit.A
        assert result.winning_card == Card(1, "a")
        assert result.points == 21

    def test_lead_suit_decides_without_trump(self):
        """b3 led, b1 follows, no trump: b1 wins 21."""
        result = resolve_trick(trick(("p1", "b3"), ("p2", "b1")), Suit.A)

        assert result.winner_id == "p2"
        assert result.dominant_suit == Suit.B
        assert result.points == 21

    def test_off_suit_card_cannot_win(self):
        """A card outside the dominant suit never takes the trick."""
        result = resolve_trick(trick(("p1", "b2"), ("p2", "c1")), Suit.A)
        assert result.winner_id == "p1"
        assert result.points == 11

    def test_worthless_cards_break_ties_by_rank(self):
        """Zero-point cards are ordered by rank."""
        result = resolve_trick(trick(("p1", "b7"), ("p2", "b2"), ("p3", "b6")), Suit.A)
        assert result.winner_id == "p1"
        assert result.points == 0

    def test_small_trump_beats_big_lead(self):
        """Any trump beats the lead suit's ace."""
        result = resolve_trick(trick(("p1", "c1"), ("p2", "a2"), ("p3", "c3")), Suit.A)
        assert result.winner_id == "p2"
        assert result.points == 21

    def test_highest_trump_wins(self):
        """Among trumps the strongest one wins."""
        result = resolve_trick(trick(("p1", "c1"), ("p2", "a3"), ("p3", "a1")), Suit.A)
        assert result.winner_id == "p3"
        assert result.winning_card == Card(1, "a")
        assert result.points == 32

    def test_winner_collects_every_card(self):
        """Trick points cover every card on the table."""
        played = trick(("p1", "c1"), ("p2", "a3"), ("p3", "d9"), ("p4", "b8"))
        result = resolve_trick(played, Suit.A)
        assert result.cards == [pc.card for pc in played]
        assert result.points == 11 + 10 + 3 + 2

    def test_resolution_is_deterministic(self):
        """The same trick always resolves the same way."""
        played = trick(("p1", "d4"), ("p2", "d5"), ("p3", "b1"))
        assert resolve_trick(played, Suit.C) == resolve_trick(played, Suit.C)

    def test_empty_trick_rejected(self):
        """Resolving an empty trick raises."""
        with pytest.raises(ValueError):
            resolve_trick([], Suit.A)

    def test_best_played_on_partial_trick(self):
        """The current best card is known before the trick is full."""
        played = trick(("p1", "b4"), ("p2", "b10"))
        assert best_played(played, Suit.A).player_id == "p2"
        assert best_played([], Suit.A) is None


class TestMatchWinner:
    """Tests for match_winner."""

    def test_highest_score_wins(self):
        """The top scorer wins the match."""
        players = [Player("p1", "A", score=40), Player("p2", "B", score=80)]
        assert match_winner(players).player_id == "p2"

    def test_tie_goes_to_first_seat(self):
        """Tied scores go to the earliest seat."""
        players = [Player("p1", "A", score=60), Player("p2", "B", score=60)]
        assert match_winner(players).player_id == "p1"

    def test_no_players(self):
        """No players means no winner."""
        assert match_winner([]) is None
