"""
Bots module - AI stand-ins for empty or disconnected seats.

Provides:
- CardPolicy: Interface for card selection
- RandomPolicy: Uniform pick, used for timed-out human turns
- HeuristicBot: Deterministic AI player
"""

from .policy import CardPolicy, BotDecision, RandomPolicy
from .heuristic_bot import HeuristicBot, WINNING_THRESHOLD

__all__ = [
    "CardPolicy",
    "BotDecision",
    "RandomPolicy",
    "HeuristicBot",
    "WINNING_THRESHOLD",
]
