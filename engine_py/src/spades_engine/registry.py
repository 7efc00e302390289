"""
In-memory room store.

One RoomRegistry is built at process start and handed to the coordinator and
the transport. It owns the room-id -> GameState map, the connection ->
(room, player) map and a lock per room.
"""

import threading
from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Tuple

from .models import GameState


class RoomRegistry:
    def __init__(self):
        self.rooms: Dict[str, GameState] = {}
        self.connections: Dict[str, Tuple[str, str]] = {}  # connection_id -> (room_id, player_id)
        self.room_locks = defaultdict(threading.Lock)

    def lock(self, room_id: str) -> threading.Lock:
        return self.room_locks[room_id]

    def get_room(self, room_id: str) -> Optional[GameState]:
        return self.rooms.get(room_id)

    def has_room(self, room_id: str) -> bool:
        return room_id in self.rooms

    def put_room(self, state: GameState):
        self.rooms[state.id] = state

    def iter_rooms(self) -> Iterator[GameState]:
        return iter(list(self.rooms.values()))

    def bind(self, connection_id: str, room_id: str, player_id: str):
        self.connections[connection_id] = (room_id, player_id)

    def unbind(self, connection_id: str) -> Optional[Tuple[str, str]]:
        return self.connections.pop(connection_id, None)

    def binding(self, connection_id: str) -> Optional[Tuple[str, str]]:
        return self.connections.get(connection_id)

    def connections_in_room(self, room_id: str) -> List[Tuple[str, str]]:
        """(connection_id, player_id) pairs bound to a room."""
        return [
            (connection_id, player_id)
            for connection_id, (rid, player_id) in list(self.connections.items())
            if rid == room_id
        ]

    def player_connections(self, room_id: str, player_id: str) -> List[str]:
        return [
            connection_id
            for connection_id, pid in self.connections_in_room(room_id)
            if pid == player_id
        ]
