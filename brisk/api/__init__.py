"""
API Module - Websocket interface for game clients.

Clients:
1. Open a websocket on /ws
2. Create or join a lobby by code
3. Send intents (start, play, chat, kick, ...)
4. Receive per-player game snapshots and events

All game state lives in the session engine; this layer only parses
frames and fans out notifications.
"""

from .schemas import (
    # Frames
    ClientFrame,
    # Snapshot
    GameSnapshot,
    PlayerInfo,
    CardInfo,
    PlayedCardInfo,
    ChatMessageInfo,
    build_snapshot,
    # Responses
    ErrorPayload,
    KickTimeoutPayload,
    error_payload,
    HealthResponse,
    StatusResponse,
)
from .app import ConnectionManager, create_app

__all__ = [
    # Frames
    "ClientFrame",
    # Snapshot
    "GameSnapshot",
    "PlayerInfo",
    "CardInfo",
    "PlayedCardInfo",
    "ChatMessageInfo",
    "build_snapshot",
    # Responses
    "ErrorPayload",
    "KickTimeoutPayload",
    "error_payload",
    "HealthResponse",
    "StatusResponse",
    # App
    "ConnectionManager",
    "create_app",
]
