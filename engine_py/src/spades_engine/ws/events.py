"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr, ValidationError


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    REJOIN_ROOM = "rejoin_room"
    START_GAME = "start_game"
    PLACE_BID = "place_bid"
    PLAY_CARD = "play_card"
    NEXT_ROUND = "next_round"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    JOINED_ROOM = "joined_room"
    GAME_STATE = "game_state"
    ERROR = "error"


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class CreateRoomEvent(BaseEvent):
    """Create a room and take its first seat."""
    type: EventType = EventType.CREATE_ROOM
    name: str = Field(..., min_length=1, max_length=30)
    config: Dict[str, Any] = Field(default_factory=dict)


class JoinRoomEvent(BaseEvent):
    """Join an existing room."""
    type: EventType = EventType.JOIN_ROOM
    room_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=30)


class RejoinRoomEvent(BaseEvent):
    """Reclaim a seat after a disconnect."""
    type: EventType = EventType.REJOIN_ROOM
    room_id: str = Field(..., min_length=1, max_length=50)
    player_id: str = Field(..., min_length=1)


class StartGameEvent(BaseEvent):
    type: EventType = EventType.START_GAME


class PlaceBidEvent(BaseEvent):
    """Place a bid: a trick count, 'nil' or 'blind_nil'."""
    type: EventType = EventType.PLACE_BID
    bid: Union[StrictInt, StrictStr]


class PlayCardEvent(BaseEvent):
    type: EventType = EventType.PLAY_CARD
    card_id: str = Field(..., min_length=1)


class NextRoundEvent(BaseEvent):
    type: EventType = EventType.NEXT_ROUND


class RequestStateEvent(BaseEvent):
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    RejoinRoomEvent,
    StartGameEvent,
    PlaceBidEvent,
    PlayCardEvent,
    NextRoundEvent,
    RequestStateEvent,
]


# Outbound event models
class JoinedRoomEvent(BaseModel):
    """Seat confirmation, sent only to the joining connection."""
    type: OutboundEventType = OutboundEventType.JOINED_ROOM
    room_id: str
    player_id: str
    timestamp: float


class GameStateEvent(BaseModel):
    """Masked state for one player."""
    type: OutboundEventType = OutboundEventType.GAME_STATE
    state: Dict[str, Any]
    timestamp: float


class ErrorEvent(BaseModel):
    """Rejection, sent only to the connection that caused it."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: str
    message: str
    timestamp: float


OutboundEvent = Union[JoinedRoomEvent, GameStateEvent, ErrorEvent]


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.REJOIN_ROOM: RejoinRoomEvent,
    EventType.START_GAME: StartGameEvent,
    EventType.PLACE_BID: PlaceBidEvent,
    EventType.PLAY_CARD: PlayCardEvent,
    EventType.NEXT_ROUND: NextRoundEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
}


def parse_inbound_event(data: Any) -> InboundEvent:
    """
    Parse raw event data into the matching event model.

    Raises:
        ValueError: If the event type is unknown or the payload is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_class = EVENT_MAP[event_type]
    try:
        return event_class(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: str, message: str) -> ErrorEvent:
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_joined_room_event(room_id: str, player_id: str) -> JoinedRoomEvent:
    return JoinedRoomEvent(room_id=room_id, player_id=player_id, timestamp=time.time())


def create_game_state_event(state: Dict[str, Any]) -> GameStateEvent:
    return GameStateEvent(state=state, timestamp=time.time())
