"""
Room coordination: turns client commands into validated engine transitions.

Every command for a room runs under that room's lock. A command is first
checked with the engine predicates; only if it passes is the mutator called and
the new snapshot committed to the registry. Rejected commands leave the stored
state untouched.
"""

import logging
import random
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from . import errors
from .constants import MIN_PLAYERS, PHASE_BIDDING, PHASE_PLAYING, PHASE_SCORING, PHASE_WAITING, ROOM_CODE_LENGTH
from .engine import (
    assign_teams, create_initial_state, deal_cards, get_team_count, is_valid_bid,
    is_valid_play, make_team_scores, place_bid, play_card, start_next_round, team_for_seat,
)
from .errors import GameError
from .models import GameState, Player
from .registry import RoomRegistry
from .rules import create_config
from .serialization import is_listed, public_room_info

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Outcome of a coordinator command."""
    success: bool
    state: Optional[GameState] = None
    room_id: Optional[str] = None
    player_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, state: GameState, player_id: Optional[str] = None) -> 'ActionResult':
        return cls(success=True, state=state, room_id=state.id, player_id=player_id)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ActionResult':
        return cls(success=False, error_code=error_code, error_message=error_message)


class RoomCoordinator:
    def __init__(
        self,
        registry: RoomRegistry,
        min_players: int = MIN_PLAYERS,
        seed: Optional[int] = None
    ):
        self.registry = registry
        self.min_players = min_players
        self.rng = random.Random(seed)

    # ── Lobby ────────────────────────────────────────────────────────────────

    def create_room(
        self,
        connection_id: str,
        player_name: str,
        config: Optional[Dict[str, Any]] = None
    ) -> ActionResult:
        if self.registry.binding(connection_id):
            return ActionResult.error(errors.ALREADY_IN_ROOM, "Already seated in a room")

        try:
            game_config = create_config(**(config or {}))
        except (ValidationError, TypeError) as e:
            return ActionResult.error(errors.INVALID_CONFIG, str(e))

        room_id = self._generate_room_code()
        with self.registry.lock(room_id):
            state = create_initial_state(room_id, game_config, game_config.player_count)
            player = self._new_player(state, player_name)
            state = replace(state, players=(player,))
            self.registry.put_room(state)
            self.registry.bind(connection_id, room_id, player.id)

        logger.info(f"Room {room_id} created by {player_name} ({player.id}) with {game_config}")
        return ActionResult.ok(state, player.id)

    def join_room(self, connection_id: str, room_id: str, player_name: str) -> ActionResult:
        if self.registry.binding(connection_id):
            return ActionResult.error(errors.ALREADY_IN_ROOM, "Already seated in a room")
        if not self.registry.has_room(room_id):
            return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")

        with self.registry.lock(room_id):
            state = self.registry.get_room(room_id)
            if state is None:
                return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")
            if state.phase != PHASE_WAITING:
                return ActionResult.error(errors.GAME_ALREADY_STARTED, "Game already in progress")
            if len(state.players) >= state.config.player_count:
                return ActionResult.error(errors.ROOM_FULL, "Room is full")

            player = self._new_player(state, player_name)
            state = replace(state, players=state.players + (player,))
            self.registry.put_room(state)
            self.registry.bind(connection_id, room_id, player.id)

        logger.info(f"{player_name} ({player.id}) joined room {room_id} at seat {player.seat_index}")
        return ActionResult.ok(state, player.id)

    def rejoin_room(self, connection_id: str, room_id: str, player_id: str) -> ActionResult:
        if not self.registry.has_room(room_id):
            return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")

        with self.registry.lock(room_id):
            state = self.registry.get_room(room_id)
            if state is None:
                return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")
            if state.player_index(player_id) < 0:
                return ActionResult.error(errors.PLAYER_NOT_FOUND, "Player not found")

            previous = self.registry.binding(connection_id)
            if previous and previous != (room_id, player_id):
                return ActionResult.error(errors.ALREADY_IN_ROOM, "Already seated in a room")

            state = self._set_connected(state, player_id, True)
            self.registry.put_room(state)
            self.registry.bind(connection_id, room_id, player_id)

        logger.info(f"Player {player_id} rejoined room {room_id}")
        return ActionResult.ok(state, player_id)

    def disconnect(self, connection_id: str) -> ActionResult:
        """Drop a connection; the seat stays and is only marked disconnected."""
        binding = self.registry.unbind(connection_id)
        if not binding:
            return ActionResult.error(errors.NOT_IN_ROOM, "Connection was not in a room")
        room_id, player_id = binding

        with self.registry.lock(room_id):
            state = self.registry.get_room(room_id)
            if state is None:
                return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")
            if self.registry.player_connections(room_id, player_id):
                # Still reachable through another connection
                return ActionResult.ok(state, player_id)
            state = self._set_connected(state, player_id, False)
            self.registry.put_room(state)

        logger.info(f"Player {player_id} disconnected from room {room_id}")
        return ActionResult.ok(state, player_id)

    def list_rooms(self) -> List[Dict[str, Any]]:
        return [public_room_info(state) for state in self.registry.iter_rooms() if is_listed(state)]

    def request_state(self, connection_id: str) -> ActionResult:
        binding = self.registry.binding(connection_id)
        if not binding:
            return ActionResult.error(errors.NOT_IN_ROOM, "Not in a room")
        room_id, player_id = binding
        state = self.registry.get_room(room_id)
        if state is None:
            return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")
        return ActionResult.ok(state, player_id)

    # ── Game commands ────────────────────────────────────────────────────────

    def start_game(self, connection_id: str) -> ActionResult:
        def transition(state: GameState, player_id: str) -> ActionResult:
            if state.phase != PHASE_WAITING:
                return ActionResult.error(errors.GAME_ALREADY_STARTED, "Game already started")
            player_count = len(state.players)
            if player_count < self.min_players:
                return ActionResult.error(
                    errors.NOT_ENOUGH_PLAYERS,
                    f"Need at least {self.min_players} players"
                )

            config = state.config
            players = assign_teams(state.players, config.team_mode, player_count, config.num_teams)
            team_count = get_team_count(config.team_mode, player_count, config.num_teams)
            prepared = replace(
                state,
                players=tuple(players),
                team_scores=make_team_scores(team_count),
            )
            new_state = deal_cards(prepared, rng=self.rng)
            logger.info(f"Game started in room {state.id} with {player_count} players, {team_count} teams")
            return ActionResult.ok(new_state, player_id)

        return self._apply(connection_id, transition)

    def place_bid(self, connection_id: str, bid: Any) -> ActionResult:
        def transition(state: GameState, player_id: str) -> ActionResult:
            if not is_valid_bid(state, player_id, bid):
                return self._rejection(state, player_id, PHASE_BIDDING, errors.INVALID_BID, f"Invalid bid: {bid!r}")
            new_state = place_bid(state, player_id, bid)
            if new_state.phase == PHASE_PLAYING:
                logger.info(f"Bidding complete in room {state.id}, round {state.round}")
            return ActionResult.ok(new_state, player_id)

        return self._apply(connection_id, transition)

    def play_card(self, connection_id: str, card_id: str) -> ActionResult:
        def transition(state: GameState, player_id: str) -> ActionResult:
            if not is_valid_play(state, player_id, card_id):
                return self._rejection(state, player_id, PHASE_PLAYING, errors.INVALID_PLAY, f"Invalid play: {card_id}")
            new_state = play_card(state, player_id, card_id)
            if new_state.phase != PHASE_PLAYING:
                scores = [team_score.score for team_score in new_state.team_scores]
                logger.info(f"Round {state.round} scored in room {state.id}: {scores} ({new_state.phase})")
            return ActionResult.ok(new_state, player_id)

        return self._apply(connection_id, transition)

    def next_round(self, connection_id: str) -> ActionResult:
        def transition(state: GameState, player_id: str) -> ActionResult:
            if state.phase != PHASE_SCORING:
                return ActionResult.error(errors.WRONG_PHASE, f"Cannot start next round during {state.phase}")
            new_state = start_next_round(state, rng=self.rng)
            logger.info(f"Room {state.id} moved to round {new_state.round}")
            return ActionResult.ok(new_state, player_id)

        return self._apply(connection_id, transition)

    # ── Internals ────────────────────────────────────────────────────────────

    def _apply(
        self,
        connection_id: str,
        transition: Callable[[GameState, str], ActionResult]
    ) -> ActionResult:
        binding = self.registry.binding(connection_id)
        if not binding:
            return ActionResult.error(errors.NOT_IN_ROOM, "Not in a room")
        room_id, player_id = binding

        with self.registry.lock(room_id):
            state = self.registry.get_room(room_id)
            if state is None:
                return ActionResult.error(errors.ROOM_NOT_FOUND, "Room not found")
            try:
                result = transition(state, player_id)
            except GameError as e:
                logger.error(f"Rejected structural error in room {room_id}: {e}")
                return ActionResult.error(errors.INTERNAL_ERROR, e.message)
            if result.success:
                self.registry.put_room(result.state)
            else:
                logger.info(f"Rejected command from {player_id} in room {room_id}: {result.error_code}")
            return result

    def _rejection(
        self,
        state: GameState,
        player_id: str,
        phase: str,
        code: str,
        message: str
    ) -> ActionResult:
        if state.phase != phase:
            return ActionResult.error(errors.WRONG_PHASE, f"Game is not in {phase} phase (current: {state.phase})")
        if state.player_index(player_id) != state.current_player_index:
            return ActionResult.error(errors.NOT_YOUR_TURN, "It's not your turn")
        return ActionResult.error(code, message)

    def _new_player(self, state: GameState, player_name: str) -> Player:
        seat_index = len(state.players)
        config = state.config
        team_count = get_team_count(config.team_mode, config.player_count, config.num_teams)
        return Player(
            id=str(uuid.uuid4()),
            name=player_name,
            seat_index=seat_index,
            team_index=team_for_seat(seat_index, config.team_mode, team_count),
        )

    def _set_connected(self, state: GameState, player_id: str, connected: bool) -> GameState:
        players = tuple(
            replace(player, connected=connected) if player.id == player_id else player
            for player in state.players
        )
        return replace(state, players=players)

    def _generate_room_code(self) -> str:
        while True:
            room_id = uuid.uuid4().hex[:ROOM_CODE_LENGTH].upper()
            if not self.registry.has_room(room_id):
                return room_id
