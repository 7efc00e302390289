"""
Spades game engine.

Every function here is pure: it takes a GameState snapshot and returns a new
one, never mutating its input. Validation is done with the ``is_valid_*``
predicates; the matching mutators assume the predicate already passed and raise
GameError otherwise.
"""

import random
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import errors
from .constants import (
    BAG_PENALTY, BAGS_PER_PENALTY, BLIND_NIL_BONUS, DECK_SIZE, MIN_NIL_ROUND,
    NIL_BONUS, PHASE_BIDDING, PHASE_FINISHED, PHASE_PLAYING, PHASE_SCORING,
    POINTS_PER_BID_TRICK, SUIT_SPADES, TEAM_MODE_INDIVIDUAL, TEAM_MODE_TWO_TEAMS,
    TOTAL_ROUNDS,
)
from .errors import raise_error
from .models import Bid, BidKind, Card, GameState, Player, TeamScore, Trick, TrickCard, parse_bid
from .rules import GameConfig
from .shuffle import create_deck, shuffle_deck


# ── Helpers ──────────────────────────────────────────────────────────────────

def next_seat(current: int, total: int) -> int:
    return (current + 1) % total


def get_team_count(mode: str, player_count: int, num_teams: Optional[int] = None) -> int:
    """Number of score columns for a team mode and table size."""
    if mode == TEAM_MODE_INDIVIDUAL:
        return player_count
    if num_teams and num_teams > 0:
        return num_teams
    if mode == TEAM_MODE_TWO_TEAMS:
        return 2
    return 3


def make_team_scores(count: int) -> Tuple[TeamScore, ...]:
    return tuple(TeamScore() for _ in range(count))


def team_for_seat(seat_index: int, mode: str, team_count: int) -> int:
    if mode == TEAM_MODE_INDIVIDUAL:
        return seat_index
    return seat_index % team_count


def assign_teams(
    players: Sequence[Player],
    mode: str,
    player_count: int,
    num_teams: Optional[int] = None
) -> List[Player]:
    """
    Recompute every player's team from the current seat order.

    In individual mode each player is their own team; otherwise teams rotate
    around the table so that opposite seats end up together.
    """
    team_count = get_team_count(mode, player_count, num_teams)
    return [
        replace(
            player,
            team_index=index if mode == TEAM_MODE_INDIVIDUAL
            else team_for_seat(player.seat_index, mode, team_count),
        )
        for index, player in enumerate(players)
    ]


def tricks_won(state: GameState) -> Dict[str, int]:
    """Tricks taken so far this round, per player."""
    won = {player.id: 0 for player in state.players}
    for trick in state.completed_tricks:
        if trick.winner_id in won:
            won[trick.winner_id] += 1
    return won


def validate_deck_integrity(state: GameState) -> bool:
    """Check that no card is held, played or taken twice."""
    seen = set()
    in_play: List[Card] = []
    for hand in state.hands.values():
        in_play.extend(hand)
    in_play.extend(trick_card.card for trick_card in state.current_trick)
    for trick in state.completed_tricks:
        in_play.extend(trick_card.card for trick_card in trick.cards)

    deck_ids = {card.id for card in create_deck()}
    for card in in_play:
        if card.id in seen or card.id not in deck_ids:
            return False
        seen.add(card.id)
    return True


# ── Initial state ────────────────────────────────────────────────────────────

def create_initial_state(
    state_id: str,
    config: GameConfig,
    player_count: Optional[int] = None
) -> GameState:
    if player_count is None:
        player_count = config.player_count
    return GameState(
        id=state_id,
        config=config,
        team_scores=make_team_scores(
            get_team_count(config.team_mode, player_count, config.num_teams)
        ),
    )


# ── Deal ─────────────────────────────────────────────────────────────────────
#
# Dealer D, N players. Cards go out one at a time clockwise from seat D+1, so
# the dealer receives the last card of every pass. Bidding starts at D+1 and
# the same seat leads the first trick.

def deal_cards(state: GameState, rng: Optional[random.Random] = None) -> GameState:
    n = len(state.players)
    if n == 0:
        raise_error(errors.NOT_ENOUGH_PLAYERS, "Cannot deal to an empty table")

    cards_per_player = state.round
    if cards_per_player * n > DECK_SIZE:
        raise_error(
            errors.DECK_EXHAUSTED,
            f"Round {state.round} needs {cards_per_player * n} cards, deck has {DECK_SIZE}"
        )

    deck = shuffle_deck(create_deck(), rng=rng)
    hands: Dict[str, List[Card]] = {player.id: [] for player in state.players}
    index = 0
    for _ in range(cards_per_player):
        for offset in range(1, n + 1):
            player = state.players[(state.dealer_index + offset) % n]
            hands[player.id].append(deck[index])
            index += 1

    return replace(
        state,
        hands={player_id: tuple(cards) for player_id, cards in hands.items()},
        phase=PHASE_BIDDING,
        bids={player.id: None for player in state.players},
        current_trick=(),
        completed_tricks=(),
        spades_broken=False,
        winner=None,
        winners=(),
        current_player_index=next_seat(state.dealer_index, n),
    )


# ── Bidding ──────────────────────────────────────────────────────────────────

def is_valid_bid(state: GameState, player_id: str, bid: Any) -> bool:
    if state.phase != PHASE_BIDDING:
        return False
    if state.player_index(player_id) != state.current_player_index:
        return False

    parsed = parse_bid(bid)
    if parsed is None:
        return False
    if parsed.kind == BidKind.NUMERIC:
        # Cannot bid more tricks than cards in hand
        return 0 <= parsed.tricks <= state.round
    elif parsed.kind == BidKind.NIL:
        return state.config.allow_nil and state.round >= MIN_NIL_ROUND
    elif parsed.kind == BidKind.BLIND_NIL:
        return state.config.allow_blind_nil and state.round >= MIN_NIL_ROUND
    return False


def place_bid(state: GameState, player_id: str, bid: Any) -> GameState:
    parsed = parse_bid(bid)
    if parsed is None:
        raise_error(errors.INVALID_BID, f"Malformed bid: {bid!r}")
    if state.player_index(player_id) < 0:
        raise_error(errors.PLAYER_NOT_FOUND, f"Player {player_id} is not seated")
    if not is_valid_bid(state, player_id, parsed):
        raise_error(errors.INVALID_BID, f"Bid {parsed.to_wire()!r} from {player_id} is not allowed now")

    new_bids = dict(state.bids)
    new_bids[player_id] = parsed
    n = len(state.players)

    if all(new_bids.get(player.id) is not None for player in state.players):
        return replace(
            state,
            bids=new_bids,
            phase=PHASE_PLAYING,
            current_player_index=next_seat(state.dealer_index, n),
        )

    return replace(
        state,
        bids=new_bids,
        current_player_index=next_seat(state.current_player_index, n),
    )


# ── Playing ──────────────────────────────────────────────────────────────────

def get_playable_cards(state: GameState, player_id: str) -> List[Card]:
    hand = state.hand_of(player_id)

    if not state.current_trick:
        if not state.spades_broken:
            non_spades = [card for card in hand if card.suit != SUIT_SPADES]
            return non_spades if non_spades else hand
        return hand

    lead_suit = state.current_trick[0].card.suit
    follow_suit = [card for card in hand if card.suit == lead_suit]
    return follow_suit if follow_suit else hand


def is_valid_play(state: GameState, player_id: str, card_id: str) -> bool:
    if state.phase != PHASE_PLAYING:
        return False
    if state.player_index(player_id) != state.current_player_index:
        return False
    return any(card.id == card_id for card in get_playable_cards(state, player_id))


def determine_trick_winner(trick: Sequence[TrickCard]) -> str:
    """Highest spade wins if any was played, otherwise highest card of the led suit."""
    winner = trick[0]
    for trick_card in trick[1:]:
        best, card = winner.card, trick_card.card
        if card.suit == SUIT_SPADES and best.suit != SUIT_SPADES:
            winner = trick_card
        elif card.suit == best.suit and card.value > best.value:
            winner = trick_card
    return winner.player_id


def play_card(state: GameState, player_id: str, card_id: str) -> GameState:
    hand = state.hands.get(player_id, ())
    card = next((c for c in hand if c.id == card_id), None)
    if card is None:
        raise_error(errors.CARD_NOT_IN_HAND, f"Player {player_id} does not hold {card_id}")
    if not is_valid_play(state, player_id, card_id):
        raise_error(errors.INVALID_PLAY, f"{card_id} cannot be played by {player_id} now")

    new_hands = dict(state.hands)
    new_hands[player_id] = tuple(c for c in hand if c.id != card_id)
    new_trick = state.current_trick + (TrickCard(player_id=player_id, card=card),)
    spades_broken = state.spades_broken or card.suit == SUIT_SPADES
    n = len(state.players)

    if len(new_trick) < n:
        return replace(
            state,
            hands=new_hands,
            current_trick=new_trick,
            spades_broken=spades_broken,
            current_player_index=next_seat(state.current_player_index, n),
        )

    # Trick complete, the winner leads the next one
    winner_id = determine_trick_winner(new_trick)
    completed_tricks = state.completed_tricks + (
        Trick(cards=new_trick, winner_id=winner_id, lead_suit=new_trick[0].card.suit),
    )
    next_state = replace(
        state,
        hands=new_hands,
        current_trick=(),
        completed_tricks=completed_tricks,
        spades_broken=spades_broken,
        current_player_index=state.player_index(winner_id),
    )

    if all(len(cards) == 0 for cards in new_hands.values()):
        return calculate_round_score(next_state)
    return next_state


# ── Scoring ──────────────────────────────────────────────────────────────────
#
#   Made bid    ->  +bid x 10, plus 1 point per overtrick (bag)
#   Missed bid  ->  -bid x 10
#   Nil         ->  +50 / -50, blind nil +100 / -100; a failed nil's tricks
#                   count as bags for the team, never toward its bid
#   Every 3 bags -> -30, leftover bags carry over

def _score_team(
    team_score: TeamScore,
    members: Sequence[Player],
    bids: Dict[str, Optional[Bid]],
    won: Dict[str, int]
) -> TeamScore:
    team_bid = 0
    bid_tricks = 0
    nil_tricks = 0
    nil_delta = 0

    for player in members:
        bid = bids.get(player.id)
        taken = won.get(player.id, 0)
        if bid is None or bid.kind == BidKind.NUMERIC:
            team_bid += bid.tricks if bid is not None else 0
            bid_tricks += taken
        elif bid.kind in (BidKind.NIL, BidKind.BLIND_NIL):
            bonus = NIL_BONUS if bid.kind == BidKind.NIL else BLIND_NIL_BONUS
            nil_delta += bonus if taken == 0 else -bonus
            nil_tricks += taken
        else:
            raise ValueError(f"Unhandled bid kind: {bid.kind}")

    if bid_tricks >= team_bid:
        overtricks = bid_tricks - team_bid
        delta = team_bid * POINTS_PER_BID_TRICK + overtricks
    else:
        overtricks = 0
        delta = -(team_bid * POINTS_PER_BID_TRICK)
    delta += nil_tricks + nil_delta

    bags = team_score.bags + overtricks + nil_tricks
    penalty = (bags // BAGS_PER_PENALTY) * BAG_PENALTY
    bags %= BAGS_PER_PENALTY

    return TeamScore(
        score=team_score.score + delta - penalty,
        bags=bags,
        bids=team_bid,
        tricks=bid_tricks + nil_tricks,
        round_scores=team_score.round_scores + (delta,),
    )


def calculate_round_score(state: GameState) -> GameState:
    config = state.config
    team_count = get_team_count(config.team_mode, len(state.players), config.num_teams)
    won = tricks_won(state)

    team_scores = list(state.team_scores)
    if len(team_scores) < team_count:
        team_scores.extend(make_team_scores(team_count - len(team_scores)))

    for team_index in range(team_count):
        members = [player for player in state.players if player.team_index == team_index]
        team_scores[team_index] = _score_team(team_scores[team_index], members, state.bids, won)

    if state.round < TOTAL_ROUNDS:
        return replace(
            state,
            team_scores=tuple(team_scores),
            phase=PHASE_SCORING,
            winner=None,
            winners=(),
        )

    # Only teams with a seated member can win
    seated = {player.team_index for player in state.players}
    contenders = [index for index in range(len(team_scores)) if index in seated] or list(range(len(team_scores)))
    best = max(team_scores[index].score for index in contenders)
    winners = tuple(index for index in contenders if team_scores[index].score == best)
    return replace(
        state,
        team_scores=tuple(team_scores),
        phase=PHASE_FINISHED,
        winner=winners[0],
        winners=winners,
    )


# ── Next round ───────────────────────────────────────────────────────────────

def start_next_round(state: GameState, rng: Optional[random.Random] = None) -> GameState:
    if state.round >= TOTAL_ROUNDS:
        return state
    return deal_cards(
        replace(
            state,
            round=state.round + 1,
            dealer_index=next_seat(state.dealer_index, len(state.players)),
            completed_tricks=(),
            current_trick=(),
            bids={},
            hands={},
            spades_broken=False,
            winner=None,
            winners=(),
            phase=PHASE_BIDDING,
        ),
        rng=rng,
    )
