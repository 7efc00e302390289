"""Game models and data structures"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .constants import PHASE_WAITING, RANK_VALUES, SUIT_SYMBOLS
from .rules import GameConfig


@dataclass(frozen=True)
class Card:
    suit: str
    rank: str
    id: str = ''

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, 'id', f"{self.rank}-{self.suit}")

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    def __str__(self) -> str:
        return f"{self.rank}{SUIT_SYMBOLS[self.suit]}"


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    seat_index: int
    team_index: int = 0
    connected: bool = True


@dataclass(frozen=True)
class TrickCard:
    player_id: str
    card: Card


@dataclass(frozen=True)
class Trick:
    cards: Tuple[TrickCard, ...]
    winner_id: Optional[str]
    lead_suit: Optional[str]


@dataclass(frozen=True)
class TeamScore:
    score: int = 0
    bags: int = 0
    bids: int = 0    # team bid this round
    tricks: int = 0  # tricks won this round
    round_scores: Tuple[int, ...] = ()


class BidKind(str, Enum):
    NUMERIC = 'numeric'
    NIL = 'nil'
    BLIND_NIL = 'blind_nil'


BidValue = Union[int, str]


@dataclass(frozen=True)
class Bid:
    """A player's bid: a trick count, nil, or blind nil."""
    kind: BidKind
    tricks: int = 0

    @classmethod
    def numeric(cls, tricks: int) -> 'Bid':
        return cls(BidKind.NUMERIC, tricks)

    @classmethod
    def nil(cls) -> 'Bid':
        return cls(BidKind.NIL)

    @classmethod
    def blind_nil(cls) -> 'Bid':
        return cls(BidKind.BLIND_NIL)

    def to_wire(self) -> BidValue:
        if self.kind == BidKind.NUMERIC:
            return self.tricks
        return self.kind.value


def parse_bid(value: Any) -> Optional[Bid]:
    """
    Convert a wire bid (int, 'nil', 'blind_nil') or a Bid into a Bid.

    Returns None for anything else, including bools and negative numbers.
    """
    if isinstance(value, Bid):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Bid.numeric(value) if value >= 0 else None
    if value == BidKind.NIL.value:
        return Bid.nil()
    if value == BidKind.BLIND_NIL.value:
        return Bid.blind_nil()
    return None


@dataclass(frozen=True)
class GameState:
    id: str
    config: GameConfig
    phase: str = PHASE_WAITING
    players: Tuple[Player, ...] = ()
    hands: Dict[str, Tuple[Card, ...]] = field(default_factory=dict)  # never sent to other players
    bids: Dict[str, Optional[Bid]] = field(default_factory=dict)
    current_trick: Tuple[TrickCard, ...] = ()
    completed_tricks: Tuple[Trick, ...] = ()
    team_scores: Tuple[TeamScore, ...] = ()
    current_player_index: int = 0
    spades_broken: bool = False
    round: int = 1
    dealer_index: int = 0
    winner: Optional[int] = None
    winners: Tuple[int, ...] = ()

    def player_index(self, player_id: str) -> int:
        """Seat position of a player, or -1 when the id is not seated."""
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return -1

    def get_player(self, player_id: str) -> Optional[Player]:
        index = self.player_index(player_id)
        return self.players[index] if index >= 0 else None

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def hand_of(self, player_id: str) -> List[Card]:
        return list(self.hands.get(player_id, ()))
