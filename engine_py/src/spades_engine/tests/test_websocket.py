"""
Tests for the WebSocket transport and HTTP endpoints.
"""

import asyncio
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from spades_engine import errors
from spades_engine.constants import PHASE_SCORING
from spades_engine.coordinator import RoomCoordinator
from spades_engine.errors import GameError
from spades_engine.registry import RoomRegistry
from spades_engine.settings import ServerSettings
from spades_engine.ws.events import (
    NextRoundEvent, OutboundEventType, PlaceBidEvent, StartGameEvent, parse_inbound_event,
)
from spades_engine.ws.server import ConnectionManager, GameServer, create_app

TWO_PLAYER = {"player_count": 2, "team_mode": "individual"}


@pytest.fixture
def client():
    app = create_app(ServerSettings(shuffle_seed=5), RoomRegistry())
    with TestClient(app) as test_client:
        yield test_client


def _create(ws, name="Alice", config=None):
    ws.send_json({"type": "create_room", "name": name, "config": config or TWO_PLAYER})
    joined = ws.receive_json()
    state = ws.receive_json()
    assert joined["type"] == "joined_room"
    assert state["type"] == "game_state"
    return joined


def _join(ws, room_id, name="Bob"):
    ws.send_json({"type": "join_room", "room_id": room_id, "name": name})
    joined = ws.receive_json()
    assert joined["type"] == "joined_room"
    return joined


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "rooms": 0, "connections": 0}


def test_create_room_and_list(client):
    with client.websocket_connect("/ws") as ws:
        joined = _create(ws, config={"player_count": 4})

        rooms = client.get("/rooms").json()
        assert rooms == [{"id": joined["room_id"], "player_count": 1, "max_players": 4, "phase": "waiting"}]
        assert client.get("/health").json()["rooms"] == 1


def test_full_lobby_to_bidding_flow(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        created = _create(alice)
        room_id = created["room_id"]

        joined = _join(bob, room_id)
        bob_view = bob.receive_json()["state"]
        alice_view = alice.receive_json()["state"]
        assert [p["name"] for p in alice_view["players"]] == ["Alice", "Bob"]
        assert bob_view["my_player_id"] == joined["player_id"]
        assert alice_view["my_player_id"] == created["player_id"]

        alice.send_json({"type": "start_game"})
        alice_view = alice.receive_json()["state"]
        bob_view = bob.receive_json()["state"]
        assert alice_view["phase"] == "bidding"
        assert len(alice_view["my_hand"]) == 1
        assert len(bob_view["my_hand"]) == 1
        assert alice_view["my_hand"] != bob_view["my_hand"]
        assert "hands" not in alice_view
        # Seat 1 bids first
        assert alice_view["current_player_index"] == 1

        # Alice is out of turn; only she hears about it
        alice.send_json({"type": "place_bid", "bid": 1})
        error = alice.receive_json()
        assert error["type"] == "error"
        assert error["code"] == errors.NOT_YOUR_TURN

        bob.send_json({"type": "place_bid", "bid": 1})
        alice_view = alice.receive_json()["state"]
        bob_view = bob.receive_json()["state"]
        assert alice_view["bids"][joined["player_id"]] == 1
        assert alice_view["current_player_index"] == 0
        assert bob_view["bids"] == alice_view["bids"]


def test_join_errors(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        room_id = _create(alice)["room_id"]

        bob.send_json({"type": "join_room", "room_id": "NOPE1", "name": "Bob"})
        assert bob.receive_json()["code"] == errors.ROOM_NOT_FOUND

        bob.send_json({"type": "start_game"})
        assert bob.receive_json()["code"] == errors.NOT_IN_ROOM

        alice.send_json({"type": "join_room", "room_id": room_id, "name": "Alice again"})
        assert alice.receive_json()["code"] == errors.ALREADY_IN_ROOM


def test_invalid_events(client):
    with client.websocket_connect("/ws") as ws:
        for message in ["not json", "[1, 2]", '{"name": "x"}', '{"type": "shout"}',
                        '{"type": "place_bid", "bid": true}', '{"type": "create_room", "name": ""}']:
            ws.send_text(message)
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["code"] == errors.INVALID_EVENT

        # The connection survives bad input
        _create(ws)


def test_disconnect_and_rejoin(client):
    with client.websocket_connect("/ws") as alice:
        created = _create(alice)
        room_id = created["room_id"]

        with client.websocket_connect("/ws") as bob:
            bob_id = _join(bob, room_id)["player_id"]
            bob.receive_json()
            alice.receive_json()

        # Bob's seat is kept but marked disconnected
        view = alice.receive_json()["state"]
        assert [p["connected"] for p in view["players"]] == [True, False]

        with client.websocket_connect("/ws") as bob_again:
            bob_again.send_json({"type": "rejoin_room", "room_id": room_id, "player_id": bob_id})
            rejoined = bob_again.receive_json()
            assert rejoined["type"] == "joined_room"
            assert rejoined["room_id"] == room_id
            assert rejoined["player_id"] == bob_id
            assert bob_again.receive_json()["state"]["my_player_id"] == bob_id

            view = alice.receive_json()["state"]
            assert [p["connected"] for p in view["players"]] == [True, True]

            bob_again.send_json({"type": "request_state"})
            assert bob_again.receive_json()["state"]["my_player_id"] == bob_id


def test_parse_inbound_event():
    event = parse_inbound_event({"type": "place_bid", "bid": "nil"})
    assert isinstance(event, PlaceBidEvent)
    assert event.bid == "nil"

    for data in [None, {}, {"type": "place_bid"}, {"type": "place_bid", "bid": 1.5}]:
        with pytest.raises(ValueError):
            parse_inbound_event(data)


class RecordingConnections(ConnectionManager):
    """Collects outbound events instead of writing to sockets."""

    def __init__(self):
        super().__init__()
        self.sent = []

    async def send(self, connection_id, event):
        self.sent.append((connection_id, event))
        # Let other tasks run between sends, as a real socket write would
        await asyncio.sleep(0)
        return True


@pytest.mark.asyncio
async def test_rejection_goes_only_to_the_actor():
    coordinator = RoomCoordinator(RoomRegistry(), seed=1)
    connections = RecordingConnections()
    server = GameServer(coordinator, connections)

    created = coordinator.create_room("a", "Alice", TWO_PLAYER)
    coordinator.join_room("b", created.room_id, "Bob")

    await server.handle_event("a", StartGameEvent())
    assert sorted(cid for cid, _ in connections.sent) == ["a", "b"]
    views = {cid: event.state for cid, event in connections.sent}
    assert views["a"]["my_player_id"] != views["b"]["my_player_id"]

    connections.sent.clear()
    await server.handle_event("a", PlaceBidEvent(bid=1))

    assert len(connections.sent) == 1
    cid, event = connections.sent[0]
    assert cid == "a"
    assert event.code == errors.NOT_YOUR_TURN


@pytest.mark.asyncio
async def test_disconnect_of_unseated_connection_is_silent():
    connections = RecordingConnections()
    server = GameServer(RoomCoordinator(RoomRegistry()), connections)

    await server.handle_disconnect("ghost")

    assert connections.sent == []


def _started_server(seed=1):
    coordinator = RoomCoordinator(RoomRegistry(), seed=seed)
    connections = RecordingConnections()
    server = GameServer(coordinator, connections)
    created = coordinator.create_room("a", "Alice", TWO_PLAYER)
    coordinator.join_room("b", created.room_id, "Bob")
    assert coordinator.start_game("a").success
    return server, connections, created.room_id


@pytest.mark.asyncio
async def test_broadcasts_go_out_in_commit_order():
    server, connections, _ = _started_server()

    # Bob bids first, then Alice closes the bidding
    await asyncio.gather(
        server.handle_event("b", PlaceBidEvent(bid=1)),
        server.handle_event("a", PlaceBidEvent(bid=0)),
    )

    assert all(event.type == OutboundEventType.GAME_STATE for _, event in connections.sent)
    # Each snapshot reaches the whole room before the next one starts
    assert [(cid, event.state["phase"]) for cid, event in connections.sent] == [
        ("a", "bidding"), ("b", "bidding"), ("a", "playing"), ("b", "playing"),
    ]


@pytest.mark.asyncio
async def test_duplicate_commands_commit_once():
    server, connections, room_id = _started_server()

    await asyncio.gather(
        server.handle_event("b", PlaceBidEvent(bid=1)),
        server.handle_event("b", PlaceBidEvent(bid=1)),
    )

    sent = [(cid, event.type) for cid, event in connections.sent]
    assert sent == [
        ("a", OutboundEventType.GAME_STATE),
        ("b", OutboundEventType.GAME_STATE),
        ("b", OutboundEventType.ERROR),
    ]
    assert connections.sent[-1][1].code == errors.NOT_YOUR_TURN
    assert server.registry.get_room(room_id).current_player_index == 0


@pytest.mark.asyncio
async def test_structural_error_is_reported_without_broadcast(monkeypatch):
    server, connections, room_id = _started_server()
    scoring = replace(server.registry.get_room(room_id), phase=PHASE_SCORING)
    server.registry.put_room(scoring)

    def exhausted(state, rng=None):
        raise GameError(errors.DECK_EXHAUSTED, "No cards left")

    monkeypatch.setattr("spades_engine.coordinator.start_next_round", exhausted)
    await server.handle_event("a", NextRoundEvent())

    assert [(cid, event.code) for cid, event in connections.sent] == [("a", errors.INTERNAL_ERROR)]
    assert server.registry.get_room(room_id) is scoring
