"""
FastAPI WebSocket server for the Spades room server.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Dict, Optional

import orjson
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .. import errors
from ..coordinator import ActionResult, RoomCoordinator
from ..models import GameState
from ..registry import RoomRegistry
from ..serialization import public_state
from ..settings import ServerSettings, configure_logging
from .events import (
    CreateRoomEvent, JoinRoomEvent, NextRoundEvent, OutboundEvent, PlaceBidEvent, PlayCardEvent,
    RejoinRoomEvent, RequestStateEvent, StartGameEvent, create_error_event,
    create_game_state_event, create_joined_room_event, parse_inbound_event,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open WebSockets by connection id."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        self.active_connections[connection_id] = websocket
        logger.info(f"Connection {connection_id} opened")
        return connection_id

    def disconnect(self, connection_id: str):
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]
            logger.info(f"Connection {connection_id} closed")

    async def send(self, connection_id: str, event: OutboundEvent) -> bool:
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(orjson.dumps(event.model_dump(mode="json")).decode())
            return True
        except Exception as e:
            logger.error(f"Error sending to {connection_id}: {e}")
            return False


class GameServer:
    """
    Routes inbound events to the coordinator and fans out masked state.

    A room's asyncio lock is held from the moment a command is applied until
    every member has been sent the resulting snapshot, so broadcasts for one
    room go out in commit order.
    """

    def __init__(self, coordinator: RoomCoordinator, connections: Optional[ConnectionManager] = None):
        self.coordinator = coordinator
        self.registry = coordinator.registry
        self.connections = connections or ConnectionManager()
        self.room_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def handle_websocket(self, websocket: WebSocket):
        connection_id = await self.connections.connect(websocket)

        try:
            while True:
                raw_data = await websocket.receive_text()

                try:
                    event = parse_inbound_event(orjson.loads(raw_data))
                except ValueError as e:
                    # orjson.JSONDecodeError is a ValueError too
                    await self.send_error(connection_id, errors.INVALID_EVENT, str(e))
                    continue

                try:
                    await self.handle_event(connection_id, event)
                except Exception as e:
                    logger.exception(f"Error handling {event.type.value} from {connection_id}: {e}")
                    await self.send_error(connection_id, errors.INTERNAL_ERROR, "Internal server error")

        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: {connection_id}")
        except Exception as e:
            logger.error(f"WebSocket error for {connection_id}: {e}")
        finally:
            self.connections.disconnect(connection_id)
            await self.handle_disconnect(connection_id)

    async def handle_event(self, connection_id: str, event):
        if isinstance(event, CreateRoomEvent):
            await self.handle_create_room(connection_id, event)
        elif isinstance(event, JoinRoomEvent):
            await self.handle_join_room(connection_id, event)
        elif isinstance(event, RejoinRoomEvent):
            await self.handle_rejoin_room(connection_id, event)
        elif isinstance(event, StartGameEvent):
            await self.handle_room_command(connection_id, self.coordinator.start_game)
        elif isinstance(event, PlaceBidEvent):
            await self.handle_room_command(
                connection_id, lambda cid: self.coordinator.place_bid(cid, event.bid)
            )
        elif isinstance(event, PlayCardEvent):
            await self.handle_room_command(
                connection_id, lambda cid: self.coordinator.play_card(cid, event.card_id)
            )
        elif isinstance(event, NextRoundEvent):
            await self.handle_room_command(connection_id, self.coordinator.next_round)
        elif isinstance(event, RequestStateEvent):
            await self.handle_request_state(connection_id)
        else:
            raise ValueError(f"Unhandled event type: {type(event)}")

    async def handle_create_room(self, connection_id: str, event: CreateRoomEvent):
        result = self.coordinator.create_room(connection_id, event.name, event.config)
        if not result.success:
            await self.send_rejection(connection_id, result)
            return

        async with self.room_locks[result.room_id]:
            await self.connections.send(
                connection_id, create_joined_room_event(result.room_id, result.player_id)
            )
            await self.broadcast_state(result.room_id, result.state)

    async def handle_join_room(self, connection_id: str, event: JoinRoomEvent):
        await self._seat(connection_id, event.room_id,
                         lambda: self.coordinator.join_room(connection_id, event.room_id, event.name))

    async def handle_rejoin_room(self, connection_id: str, event: RejoinRoomEvent):
        await self._seat(connection_id, event.room_id,
                         lambda: self.coordinator.rejoin_room(connection_id, event.room_id, event.player_id))

    async def _seat(self, connection_id: str, room_id: str, action):
        if not self.registry.has_room(room_id):
            await self.send_error(connection_id, errors.ROOM_NOT_FOUND, "Room not found")
            return

        async with self.room_locks[room_id]:
            result = action()
            if not result.success:
                await self.send_rejection(connection_id, result)
                return
            await self.connections.send(
                connection_id, create_joined_room_event(result.room_id, result.player_id)
            )
            await self.broadcast_state(result.room_id, result.state)

    async def handle_room_command(self, connection_id: str, action):
        binding = self.registry.binding(connection_id)
        if not binding:
            await self.send_error(connection_id, errors.NOT_IN_ROOM, "Not in a room")
            return
        room_id, _ = binding

        async with self.room_locks[room_id]:
            result = action(connection_id)
            if result.success:
                await self.broadcast_state(room_id, result.state)
            else:
                await self.send_rejection(connection_id, result)

    async def handle_request_state(self, connection_id: str):
        result = self.coordinator.request_state(connection_id)
        if not result.success:
            await self.send_rejection(connection_id, result)
            return
        await self.connections.send(
            connection_id,
            create_game_state_event(public_state(result.state, result.player_id)),
        )

    async def handle_disconnect(self, connection_id: str):
        binding = self.registry.binding(connection_id)
        if not binding:
            return
        room_id, _ = binding

        async with self.room_locks[room_id]:
            result = self.coordinator.disconnect(connection_id)
            if result.success:
                await self.broadcast_state(room_id, result.state)

    async def broadcast_state(self, room_id: str, state: GameState):
        """Send every connection in the room its own masked view of one snapshot."""
        for connection_id, player_id in self.registry.connections_in_room(room_id):
            view = public_state(state, player_id)
            await self.connections.send(connection_id, create_game_state_event(view))

    async def send_rejection(self, connection_id: str, result: ActionResult):
        await self.send_error(connection_id, result.error_code, result.error_message)

    async def send_error(self, connection_id: str, code: str, message: str):
        await self.connections.send(connection_id, create_error_event(code, message))


def create_app(
    settings: Optional[ServerSettings] = None,
    registry: Optional[RoomRegistry] = None
) -> FastAPI:
    """Build the FastAPI app around one RoomRegistry."""
    settings = settings or ServerSettings.from_env()
    configure_logging(settings.log_level)

    registry = registry or RoomRegistry()
    coordinator = RoomCoordinator(
        registry,
        min_players=settings.min_players,
        seed=settings.shuffle_seed,
    )
    game_server = GameServer(coordinator)

    app = FastAPI(title="Spades Room Server", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.game_server = game_server

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "rooms": len(registry.rooms),
            "connections": len(game_server.connections.active_connections),
        }

    @app.get("/rooms")
    async def list_rooms():
        return coordinator.list_rooms()

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await game_server.handle_websocket(websocket)

    return app
