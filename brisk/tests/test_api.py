"""
Tests for the websocket server.

Tests:
- HTTP health and status routes
- Frame handling and error mapping
- Lobby flow over two sockets
- Per-recipient game state
"""

import pytest
from fastapi.testclient import TestClient

from ..api import create_app
from ..config import Settings


@pytest.fixture
def client(orchestrator):
    app = create_app(orchestrator=orchestrator, settings=Settings(return_to_lobby_delay=0.0))
    with TestClient(app) as client:
        yield client


def send(ws, event, **payload):
    ws.send_json({"type": event, "payload": payload})


def receive_until(ws, event, limit=20):
    """Read frames until one of the given type arrives."""
    for _ in range(limit):
        frame = ws.receive_json()
        if frame["type"] == event:
            return frame["payload"]
    raise AssertionError(f"no {event} frame received")


def open_lobby(alice, bob):
    send(alice, "create-lobby", playerName="Alice")
    created = receive_until(alice, "lobby-created")
    code = created["gameState"]["lobbyCode"]
    send(bob, "join-lobby", lobbyCode=code, playerName="Bob")
    joined = receive_until(bob, "lobby-joined")
    receive_until(alice, "player-joined")
    return created, joined


class TestHttp:
    """Tests for the HTTP health and status routes."""

    def test_health(self, client):
        """Health check answers ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_status(self, client, lobby):
        """Status reports sessions, connections and phases."""
        lobby()
        data = client.get("/status").json()
        assert data["sessions"] == 1
        assert data["connections"] == 2
        assert data["phases"]["lobby"] == 1


class TestFrames:
    """Tests for frame parsing and error mapping."""

    def test_ping(self, client):
        """Ping is answered with pong."""
        with client.websocket_connect("/ws") as ws:
            send(ws, "ping")
            assert ws.receive_json() == {"type": "pong", "payload": {}}

    def test_malformed_json(self, client):
        """Malformed frames get an error back."""
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{nope")
            frame = ws.receive_json()
            assert frame["type"] == "error"
            assert frame["payload"]["code"] == "INVALID_REQUEST"

    def test_unknown_intent(self, client):
        """Unknown intents get an error back."""
        with client.websocket_connect("/ws") as ws:
            send(ws, "fold")
            payload = receive_until(ws, "error")
            assert payload["code"] == "INVALID_REQUEST"
            assert "fold" in payload["message"]

    def test_invalid_payload(self, client):
        """Payloads failing validation get an error back."""
        with client.websocket_connect("/ws") as ws:
            send(ws, "create-lobby", playerName="")
            assert receive_until(ws, "error")["code"] == "INVALID_REQUEST"

    def test_intent_without_lobby(self, client):
        """Game intents need a seat first."""
        with client.websocket_connect("/ws") as ws:
            send(ws, "start-game")
            assert receive_until(ws, "error")["code"] == "PLAYER_NOT_FOUND"


class TestLobbyFlow:
    """Tests driving two players through the server."""

    def test_create_and_join(self, client):
        """Creating and joining a lobby reaches both clients."""
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            created, joined = open_lobby(alice, bob)

            assert created["playerUuid"]
            assert joined["playerUuid"] != created["playerUuid"]
            names = [p["name"] for p in joined["gameState"]["players"]]
            assert names == ["Alice", "Bob"]

    def test_only_host_starts(self, client):
        """A guest cannot start the game."""
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            open_lobby(alice, bob)
            send(bob, "start-game")
            assert receive_until(bob, "error")["code"] == "NOT_HOST"

    def test_game_state_hides_other_hands(self, client):
        """Each client sees only its own hand."""
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            created, joined = open_lobby(alice, bob)
            send(alice, "start-game")

            for ws, me in ((alice, created["playerUuid"]), (bob, joined["playerUuid"])):
                state = receive_until(ws, "game-started")["gameState"]
                for player in state["players"]:
                    if player["id"] == me:
                        assert len(player["hand"]) == 3
                    else:
                        assert player["hand"] is None
                    assert player["handSize"] == 3

    def test_play_card(self, client, orchestrator):
        """A played card reaches every client."""
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            created, _ = open_lobby(alice, bob)
            send(alice, "start-game")
            state = receive_until(alice, "game-started")["gameState"]
            card = state["players"][0]["hand"][0]

            send(alice, "play-card", card={"number": card["number"], "suit": card["suit"]})

            updated = receive_until(bob, "game-updated")["gameState"]
            assert updated["playedCards"][0]["playerId"] == created["playerUuid"]
            assert updated["currentPlayerIndex"] == 1

    def test_invalid_card(self, client):
        """Playing a card not in hand returns an error."""
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            open_lobby(alice, bob)
            send(alice, "start-game")
            receive_until(alice, "game-started")
            send(alice, "play-card", card={"number": 11, "suit": "a"})
            assert receive_until(alice, "error")["code"] == "INVALID_REQUEST"

    def test_kicked_name_gets_countdown(self, client):
        """A kicked name gets the remaining cooldown on rejoin."""
        with client.websocket_connect("/ws") as alice:
            with client.websocket_connect("/ws") as bob:
                open_lobby(alice, bob)
                state = receive_until(alice, "game-updated")["gameState"]
                code = state["lobbyCode"]
                bob_id = state["players"][1]["id"]

                send(alice, "kick-player", playerId=bob_id)

                assert receive_until(bob, "player-kicked")["playerId"] == bob_id

            with client.websocket_connect("/ws") as again:
                send(again, "join-lobby", lobbyCode=code, playerName="Bob")
                error = receive_until(again, "error")
                assert error["kind"] == "kick-timeout"
                assert error["remainingMs"] == 30_000
                assert receive_until(again, "player-kicked")["remainingMs"] == 30_000

    def test_disconnect_hands_seat_to_ai(self, client):
        """Closing the socket mid-game hands the seat to the AI."""
        with client.websocket_connect("/ws") as alice:
            with client.websocket_connect("/ws") as bob:
                open_lobby(alice, bob)
                send(alice, "start-game")
                receive_until(bob, "game-started")

            left = receive_until(alice, "player-left")
            assert left["converted"] is True
            assert left["playerName"] == "Bobbot"

    def test_chat(self, client):
        """Chat messages are broadcast to the lobby."""
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            open_lobby(alice, bob)
            send(bob, "send-message", message="ciao")
            for ws in (alice, bob):
                message = receive_until(ws, "message-received")
                while message["playerName"] == "System":
                    message = receive_until(ws, "message-received")
                assert message["message"] == "ciao"
