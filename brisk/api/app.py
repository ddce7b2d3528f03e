"""
FastAPI Application - Websocket game server.

Endpoints:
    GET    /health      Liveness check
    GET    /status      Live sessions, connections and sessions per phase
    WS     /ws          Game channel, one connection per player

Frames in both directions are {"type": ..., "payload": {...}}.

Client intents:
    create-lobby        {playerName}
    join-lobby          {lobbyCode, playerName}
    start-game          {}
    play-card           {card: {number, suit}}
    roll-dice           {}
    kick-player         {playerId}
    leave-lobby         {}
    send-message        {message}
    change-max-players  {maxPlayers}
    change-speed        {speed}
    change-variant      {variant}
    add-bot             {}
    ping                {}

Server events:
    lobby-created / lobby-joined   {gameState, playerUuid}
    game-started / game-updated    {gameState}
    game-ended                     {gameState, winnerId, winnerName}
    player-joined / player-left / player-kicked
    message-received / dice-rolled / error / pong

gameState is rendered per recipient: only the recipient's own hand is
included. A finished game goes back to the lobby after a short delay.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, Callable
import asyncio
import json
import logging
import uuid

from fastapi import WebSocket
from pydantic import ValidationError

from .. import __version__
from ..config import Settings
from ..errors import ErrorCode, GameError, GameStateError, KickCooldownError
from ..session.orchestrator import GameOrchestrator, Outcome
from .schemas import (
    ChangeMaxPlayersPayload,
    ChangeSpeedPayload,
    ChangeVariantPayload,
    ClientFrame,
    CreateLobbyPayload,
    ErrorPayload,
    HealthResponse,
    JoinLobbyPayload,
    KickPlayerPayload,
    PlayCardPayload,
    SendMessagePayload,
    StatusResponse,
    build_snapshot,
    error_payload,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Open websockets by connection id, and delivery of Outcomes to them.

    Seats (which player a connection is) are owned by the orchestrator;
    this class only knows sockets.
    """

    def __init__(self, orchestrator: GameOrchestrator, return_to_lobby_delay: float = 5.0):
        self.orchestrator = orchestrator
        self.return_to_lobby_delay = return_to_lobby_delay
        self.active_connections: dict[str, Any] = {}
        self.loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task] = set()

    async def connect(self, websocket) -> str:
        await websocket.accept()
        self.loop = asyncio.get_running_loop()
        connection_id = str(uuid.uuid4())
        self.active_connections[connection_id] = websocket
        logger.info(
            "Client connected: %s (%d open)", connection_id, len(self.active_connections)
        )
        return connection_id

    def disconnect(self, connection_id: str):
        self.active_connections.pop(connection_id, None)
        logger.info(
            "Client disconnected: %s (%d open)", connection_id, len(self.active_connections)
        )

    async def send(self, connection_id: str, event: str, payload: Any = None):
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json({"type": event, "payload": payload or {}})
        except Exception:
            logger.warning("Error sending %s to %s", event, connection_id, exc_info=True)
            self.active_connections.pop(connection_id, None)

    async def close(self, connection_id: str):
        websocket = self.active_connections.pop(connection_id, None)
        if websocket is None:
            return
        try:
            await websocket.close()
        except Exception:
            logger.debug("Socket %s already closed", connection_id)

    async def deliver(self, outcome: Outcome):
        """Fan out every notification of an outcome, in order."""
        game_ended = False
        for note in outcome.notifications:
            if note.to is not None:
                recipients = [note.to]
            else:
                recipients = [
                    conn_id
                    for conn_id, _ in self.orchestrator.connections_in(outcome.lobby_code)
                    if conn_id != note.exclude
                ]
            for conn_id in recipients:
                payload = dict(note.payload)
                if note.state is not None:
                    seat = self.orchestrator.seat_for(conn_id)
                    viewer = seat.player_id if seat else None
                    payload["gameState"] = build_snapshot(note.state, viewer).dump()
                await self.send(conn_id, note.event, payload)
                if note.detach:
                    await self.close(conn_id)
            game_ended = game_ended or note.event == "game-ended"

        if game_ended and outcome.lobby_code:
            self.spawn(self._return_to_lobby_later(outcome.lobby_code))

    def publish_threadsafe(self, outcome: Outcome):
        """Orchestrator listener: deliver from whichever thread a timer fired on."""
        if self.loop is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(lambda: self.spawn(self.deliver(outcome)))

    def spawn(self, coro):
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _return_to_lobby_later(self, lobby_code: str):
        await asyncio.sleep(self.return_to_lobby_delay)
        await self.deliver(self.orchestrator.return_to_lobby(lobby_code))


def create_app(orchestrator: GameOrchestrator | None = None, settings: Settings | None = None):
    """
    Create the FastAPI application.

    Args:
        orchestrator: Optional GameOrchestrator (built from settings if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, WebSocket, WebSocketDisconnect
    from fastapi.middleware.cors import CORSMiddleware

    settings = settings or Settings.from_env()
    orchestrator = orchestrator or GameOrchestrator.from_settings(settings)
    manager = ConnectionManager(orchestrator, settings.return_to_lobby_delay)
    orchestrator.listener = manager.publish_threadsafe

    @asynccontextmanager
    async def lifespan(app):
        yield
        orchestrator.shutdown()

    app = FastAPI(
        title="Brisk Game Server",
        description="Multiplayer Brisk lobbies over websockets. Connect to `/ws`.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.orchestrator = orchestrator
    app.state.connections = manager

    # =========================================================================
    # Intent dispatch
    # =========================================================================

    def create_lobby(conn_id: str, payload: dict) -> Outcome:
        body = CreateLobbyPayload.model_validate(payload)
        return orchestrator.create_lobby(conn_id, body.player_name)

    def join_lobby(conn_id: str, payload: dict) -> Outcome:
        body = JoinLobbyPayload.model_validate(payload)
        return orchestrator.join_lobby(conn_id, body.lobby_code, body.player_name)

    def play_card(conn_id: str, payload: dict) -> Outcome:
        body = PlayCardPayload.model_validate(payload)
        return orchestrator.play_card(conn_id, body.card.to_card())

    def kick_player(conn_id: str, payload: dict) -> Outcome:
        body = KickPlayerPayload.model_validate(payload)
        return orchestrator.kick_player(conn_id, body.player_id)

    def send_message(conn_id: str, payload: dict) -> Outcome:
        body = SendMessagePayload.model_validate(payload)
        return orchestrator.send_message(conn_id, body.message)

    def change_max_players(conn_id: str, payload: dict) -> Outcome:
        body = ChangeMaxPlayersPayload.model_validate(payload)
        return orchestrator.change_max_players(conn_id, body.max_players)

    def change_speed(conn_id: str, payload: dict) -> Outcome:
        body = ChangeSpeedPayload.model_validate(payload)
        return orchestrator.change_speed(conn_id, body.speed)

    def change_variant(conn_id: str, payload: dict) -> Outcome:
        body = ChangeVariantPayload.model_validate(payload)
        return orchestrator.change_variant(conn_id, body.variant)

    handlers: dict[str, Callable[[str, dict], Outcome]] = {
        "create-lobby": create_lobby,
        "join-lobby": join_lobby,
        "start-game": lambda conn_id, _: orchestrator.start_game(conn_id),
        "play-card": play_card,
        "roll-dice": lambda conn_id, _: orchestrator.roll_dice(conn_id),
        "kick-player": kick_player,
        "leave-lobby": lambda conn_id, _: orchestrator.leave_lobby(conn_id),
        "send-message": send_message,
        "change-max-players": change_max_players,
        "change-speed": change_speed,
        "change-variant": change_variant,
        "add-bot": lambda conn_id, _: orchestrator.add_bot(conn_id),
    }

    async def send_error(conn_id: str, message: str, code: ErrorCode):
        await manager.send(conn_id, "error", ErrorPayload(message=message, code=code.value).dump())

    async def handle_frame(conn_id: str, raw: str):
        try:
            frame = ClientFrame.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            await send_error(conn_id, "Malformed frame", ErrorCode.INVALID_REQUEST)
            return

        if frame.type == "ping":
            await manager.send(conn_id, "pong", {})
            return

        try:
            handler = handlers.get(frame.type)
            if handler is None:
                raise GameStateError(f"Unknown intent: {frame.type}", ErrorCode.INVALID_REQUEST)
            outcome = handler(conn_id, frame.payload)
        except KickCooldownError as e:
            payload = error_payload(e)
            await manager.send(conn_id, "error", payload)
            await manager.send(conn_id, "player-kicked", payload)
            return
        except GameError as e:
            await manager.send(conn_id, "error", error_payload(e))
            return
        except ValidationError as e:
            await send_error(conn_id, _validation_message(e), ErrorCode.INVALID_REQUEST)
            return
        except Exception:
            logger.exception("Unhandled error for %s on %s", frame.type, conn_id)
            await send_error(conn_id, "Internal server error", ErrorCode.INTERNAL_ERROR)
            return

        await manager.deliver(outcome)

    # =========================================================================
    # Routes
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/status", response_model=StatusResponse, tags=["System"])
    async def status() -> StatusResponse:
        return StatusResponse(**orchestrator.status())

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        conn_id = await manager.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                await handle_frame(conn_id, raw)
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(conn_id)
            try:
                outcome = orchestrator.disconnect(conn_id)
            except Exception:
                logger.exception("Disconnect handling failed for %s", conn_id)
            else:
                await manager.deliver(outcome)

    return app


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid {location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
