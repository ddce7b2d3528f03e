"""
Session Module - Live lobbies and matches.

A session is one lobby and the matches played in it:
- Created when a player opens a lobby
- Lives in memory, keyed by lobby code
- Saved to the repository after each change, for restarts only
- Destroyed when the last human leaves

The orchestrator is the only entry point the transport uses.
"""

from .store import SessionStore
from .scheduler import TurnScheduler, TurnToken, TRICK_RESOLUTION_BUFFER_MS
from .lifecycle import PlayerLifecycle, KickRegistry, KICK_COOLDOWN_MS
from .orchestrator import GameOrchestrator, Notification, Outcome, Seat

__all__ = [
    "SessionStore",
    "TurnScheduler",
    "TurnToken",
    "TRICK_RESOLUTION_BUFFER_MS",
    "PlayerLifecycle",
    "KickRegistry",
    "KICK_COOLDOWN_MS",
    "GameOrchestrator",
    "Notification",
    "Outcome",
    "Seat",
]
