"""
Errors - Validation failures raised before any state is touched.

Every GameError carries a machine-readable ErrorCode so the transport can
map it onto an error event without parsing messages.
"""

from __future__ import annotations
from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes."""
    LOBBY_NOT_FOUND = "LOBBY_NOT_FOUND"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    NOT_HOST = "NOT_HOST"
    LOBBY_FULL = "LOBBY_FULL"
    WRONG_PHASE = "WRONG_PHASE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    INVALID_PLAYER_COUNT = "INVALID_PLAYER_COUNT"
    NAME_TAKEN = "NAME_TAKEN"
    INVALID_REQUEST = "INVALID_REQUEST"
    KICK_TIMEOUT = "KICK_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GameError(Exception):
    """Base class for rejected intents."""
    default_code = ErrorCode.INVALID_REQUEST

    def __init__(self, message: str, code: ErrorCode | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class NotFoundError(GameError):
    """Lobby, session or player does not exist."""
    default_code = ErrorCode.LOBBY_NOT_FOUND


class AuthorityError(GameError):
    """A non-host tried a host-only action."""
    default_code = ErrorCode.NOT_HOST


class GameStateError(GameError):
    """Capacity or phase does not allow the action."""
    default_code = ErrorCode.WRONG_PHASE


class KickCooldownError(GameError):
    """Name was kicked recently; the client renders a countdown."""
    default_code = ErrorCode.KICK_TIMEOUT
    kind = "kick-timeout"

    def __init__(self, remaining_ms: int, message: str | None = None):
        super().__init__(
            message or "You have been kicked. Please wait before rejoining.",
            ErrorCode.KICK_TIMEOUT,
        )
        self.remaining_ms = max(0, int(remaining_ms))


class InvariantViolation(AssertionError):
    """Engine bug detected by a diagnostic check."""
