"""
Dice - The simple dice variant.

Each turn the player rolls one six-sided die and adds it to their score.
The first player to reach the session's points_to_win takes the match.
"""

from __future__ import annotations
from dataclasses import dataclass
import random


DIE_FACES = 6


@dataclass
class RollResult:
    player_id: str
    roll: int
    score: int
    won: bool


def roll_die(rng: random.Random | None = None) -> int:
    rng = rng or random.Random()
    return rng.randint(1, DIE_FACES)


def apply_roll(player, roll: int, points_to_win: int) -> RollResult:
    """Record a roll on a player and report whether it wins the match."""
    if not 1 <= roll <= DIE_FACES:
        raise ValueError(f"Die roll must be 1-{DIE_FACES}, got {roll}")
    player.last_roll = roll
    player.score += roll
    return RollResult(
        player_id=player.player_id,
        roll=roll,
        score=player.score,
        won=player.score >= points_to_win,
    )
