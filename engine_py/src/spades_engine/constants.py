"""Game constants"""

from typing import Dict, List

SUIT_SPADES = 'spades'
SUIT_HEARTS = 'hearts'
SUIT_DIAMONDS = 'diamonds'
SUIT_CLUBS = 'clubs'

SUITS: List[str] = [SUIT_SPADES, SUIT_HEARTS, SUIT_DIAMONDS, SUIT_CLUBS]
RANKS: List[str] = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']
RANK_VALUES: Dict[str, int] = {rank: value for value, rank in enumerate(RANKS, start=2)}

SUIT_SYMBOLS = {
    SUIT_SPADES: '♠',
    SUIT_HEARTS: '♥',
    SUIT_DIAMONDS: '♦',
    SUIT_CLUBS: '♣',
}

DECK_SIZE = len(SUITS) * len(RANKS)
TOTAL_ROUNDS = 13

# Phases
PHASE_WAITING = 'waiting'
PHASE_BIDDING = 'bidding'
PHASE_PLAYING = 'playing'
PHASE_SCORING = 'scoring'
PHASE_FINISHED = 'finished'

# Team modes
TEAM_MODE_INDIVIDUAL = 'individual'
TEAM_MODE_TWO_TEAMS = 'two_teams'
TEAM_MODE_THREE_TEAMS = 'three_teams'

# Scoring
POINTS_PER_BID_TRICK = 10
NIL_BONUS = 50
BLIND_NIL_BONUS = 100
BAGS_PER_PENALTY = 3
BAG_PENALTY = 30
MIN_NIL_ROUND = 2

# Room limits
MIN_PLAYERS = 2
ROOM_CODE_LENGTH = 5
