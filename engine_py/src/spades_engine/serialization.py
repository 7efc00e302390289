"""
State serialization and masking utilities.
"""

from typing import Any, Dict, Optional

from .constants import PHASE_WAITING
from .models import Card, GameState, Player, TeamScore, Trick, TrickCard


def public_state(state: GameState, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the masked view of a game state for one player.

    Every hand is dropped except the viewer's own, which is exposed as
    ``my_hand``. ``last_trick`` repeats the most recently finished trick of the
    round so clients can show it after the table clears. All other fields
    are shared verbatim. This must be recomputed from the committed state for
    every send.

    Args:
        state: Room state to mask
        viewer_id: ID of the player receiving the view

    Returns:
        JSON-safe dictionary
    """
    my_hand = state.hands.get(viewer_id, ()) if viewer_id else ()

    return {
        "id": state.id,
        "phase": state.phase,
        "config": state.config.model_dump(),
        "players": [serialize_player(player) for player in state.players],
        "bids": {
            player_id: bid.to_wire() if bid is not None else None
            for player_id, bid in state.bids.items()
        },
        "current_trick": [serialize_trick_card(trick_card) for trick_card in state.current_trick],
        "completed_tricks": [serialize_trick(trick) for trick in state.completed_tricks],
        "last_trick": serialize_trick(state.completed_tricks[-1]) if state.completed_tricks else None,
        "team_scores": [serialize_team_score(team_score) for team_score in state.team_scores],
        "current_player_index": state.current_player_index,
        "spades_broken": state.spades_broken,
        "round": state.round,
        "dealer_index": state.dealer_index,
        "winner": state.winner,
        "winners": list(state.winners),
        "my_hand": [serialize_card(card) for card in my_hand],
        "my_player_id": viewer_id,
    }


def serialize_card(card: Card) -> Dict[str, str]:
    return {"suit": card.suit, "rank": card.rank, "id": card.id}


def serialize_player(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "team_index": player.team_index,
        "seat_index": player.seat_index,
        "connected": player.connected,
    }


def serialize_trick_card(trick_card: TrickCard) -> Dict[str, Any]:
    return {"player_id": trick_card.player_id, "card": serialize_card(trick_card.card)}


def serialize_trick(trick: Trick) -> Dict[str, Any]:
    return {
        "cards": [serialize_trick_card(trick_card) for trick_card in trick.cards],
        "winner_id": trick.winner_id,
        "lead_suit": trick.lead_suit,
    }


def serialize_team_score(team_score: TeamScore) -> Dict[str, Any]:
    return {
        "score": team_score.score,
        "bags": team_score.bags,
        "bids": team_score.bids,
        "tricks": team_score.tricks,
        "round_scores": list(team_score.round_scores),
    }


def public_room_info(state: GameState) -> Dict[str, Any]:
    """Get public information about a room for the lobby listing."""
    return {
        "id": state.id,
        "player_count": len(state.players),
        "max_players": state.config.player_count,
        "phase": state.phase,
    }


def is_listed(state: GameState) -> bool:
    """Only rooms still gathering players show up in the lobby."""
    return state.phase == PHASE_WAITING
