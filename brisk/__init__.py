"""
Brisk - Multiplayer trick-taking card game server

Runs lobbies where players gather under a short code and play Brisk
(or a dice race) over websockets:
- Lobby membership, host authority and kick cooldowns
- Deterministic trick resolution with a trump suit
- Per-turn timers with random auto-play
- AI stand-ins for empty or disconnected seats
"""

__version__ = "0.1.0"
