"""
Configuration - Environment-driven server settings.

Read once at startup:

    BRISK_HOST                   bind address (0.0.0.0)
    BRISK_PORT                   bind port (5000)
    BRISK_ENV                    development | production
    BRISK_ALLOWED_ORIGINS        comma separated CORS origins (*)
    BRISK_DATA_DIR               JSON store directory; unset keeps sessions in memory
    BRISK_LOG_LEVEL              logging level name (INFO)
    BRISK_KICK_COOLDOWN_MS       rejoin block after a kick (30000)
    BRISK_RETURN_TO_LOBBY_DELAY  seconds from game end to lobby (5.0)
    BRISK_POINTS_TO_WIN          dice variant target score (30)
    BRISK_RANDOM_SEED            seed for shuffles, codes and auto-play
    BRISK_DEBUG_INVARIANTS       assert card conservation after every play
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping
import os

from .engine_core.state import DEFAULT_POINTS_TO_WIN
from .session.lifecycle import KICK_COOLDOWN_MS


RETURN_TO_LOBBY_DELAY = 5.0

_TRUE = {"1", "true", "yes", "on"}


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 5000
    env: str = "development"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    data_dir: str | None = None
    log_level: str = "INFO"
    kick_cooldown_ms: int = KICK_COOLDOWN_MS
    return_to_lobby_delay: float = RETURN_TO_LOBBY_DELAY
    points_to_win: int = DEFAULT_POINTS_TO_WIN
    random_seed: int | None = None
    debug_invariants: bool = True

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        mode = env.get("BRISK_ENV", "development")
        seed = env.get("BRISK_RANDOM_SEED")
        return cls(
            host=env.get("BRISK_HOST", "0.0.0.0"),
            port=int(env.get("BRISK_PORT", "5000")),
            env=mode,
            allowed_origins=[
                o.strip() for o in env.get("BRISK_ALLOWED_ORIGINS", "*").split(",") if o.strip()
            ],
            data_dir=env.get("BRISK_DATA_DIR") or None,
            log_level=env.get("BRISK_LOG_LEVEL", "INFO").upper(),
            kick_cooldown_ms=int(env.get("BRISK_KICK_COOLDOWN_MS", str(KICK_COOLDOWN_MS))),
            return_to_lobby_delay=float(
                env.get("BRISK_RETURN_TO_LOBBY_DELAY", str(RETURN_TO_LOBBY_DELAY))
            ),
            points_to_win=int(env.get("BRISK_POINTS_TO_WIN", str(DEFAULT_POINTS_TO_WIN))),
            random_seed=int(seed) if seed else None,
            debug_invariants=_flag(
                env.get("BRISK_DEBUG_INVARIANTS"), default=mode != "production"
            ),
        )
