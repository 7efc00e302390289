"""
Shared fixtures for the Spades engine tests.
"""

import random
from dataclasses import replace
from typing import Dict, List

import pytest

from spades_engine.constants import PHASE_PLAYING
from spades_engine.coordinator import RoomCoordinator
from spades_engine.engine import assign_teams, create_initial_state
from spades_engine.models import Bid, GameState, Player, Trick
from spades_engine.registry import RoomRegistry
from spades_engine.rules import create_config
from spades_engine.shuffle import card_from_id


def build_state(player_count: int = 4, team_mode: str = "two_teams", **overrides) -> GameState:
    """A waiting-phase state with players p0..pN seated and teams assigned."""
    config = create_config(player_count=player_count, team_mode=team_mode, **overrides)
    state = create_initial_state("ROOM1", config, player_count)
    players = [Player(id=f"p{i}", name=f"Player {i}", seat_index=i) for i in range(player_count)]
    players = assign_teams(players, team_mode, player_count, config.num_teams)
    return replace(state, players=tuple(players))


def with_hands(state: GameState, hands: Dict[str, List[str]]) -> GameState:
    return replace(
        state,
        hands={player_id: tuple(card_from_id(card_id) for card_id in cards) for player_id, cards in hands.items()},
    )


def playing_state(state: GameState, hands: Dict[str, List[str]], current: int = 0, **changes) -> GameState:
    """Put a state straight into the playing phase with the given hands."""
    state = with_hands(state, hands)
    return replace(
        state,
        phase=PHASE_PLAYING,
        bids={player.id: Bid.numeric(0) for player in state.players},
        current_player_index=current,
        **changes,
    )


def tricks_taken(wins: Dict[str, int]) -> tuple:
    """Completed tricks with only the winners filled in, enough for scoring."""
    tricks = []
    for player_id, count in wins.items():
        tricks.extend(Trick(cards=(), winner_id=player_id, lead_suit=None) for _ in range(count))
    return tuple(tricks)


@pytest.fixture
def make_state():
    return build_state


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def coordinator(registry):
    return RoomCoordinator(registry, seed=11)


@pytest.fixture
def play_state():
    return playing_state


@pytest.fixture
def taken():
    return tricks_taken
