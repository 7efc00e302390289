"""
Card deck creation and shuffling utilities.
"""

import random
from typing import Iterable, List, Optional

from .constants import RANK_VALUES, RANKS, SUITS
from .models import Card


def create_deck() -> List[Card]:
    """Create a standard 52-card deck, suit-major and rank-minor."""
    deck = []

    for suit in SUITS:
        for rank in RANKS:
            deck.append(Card(suit=suit, rank=rank))

    return deck


def shuffle_deck(
    deck: List[Card],
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None
) -> List[Card]:
    """
    Shuffle a deck, deterministically if a seed is provided.

    random.Random.shuffle is a Fisher-Yates shuffle: it walks from the last
    index down to 1 and swaps with a uniformly chosen index <= the current one.

    Args:
        deck: Cards to shuffle
        seed: Optional seed for deterministic shuffling
        rng: Optional random generator, takes precedence over seed

    Returns:
        Shuffled copy of the deck
    """
    deck_copy = list(deck)

    if rng is None:
        rng = random.Random(seed) if seed is not None else random.Random()
    rng.shuffle(deck_copy)

    return deck_copy


def compare_ranks(rank_a: str, rank_b: str) -> int:
    """Negative, zero or positive as rank_a is lower, equal or higher than rank_b."""
    return RANK_VALUES[rank_a] - RANK_VALUES[rank_b]


def card_from_id(card_id: str) -> Card:
    """Parse a card id such as '10-hearts'."""
    rank, sep, suit = card_id.partition('-')
    if not sep or rank not in RANK_VALUES or suit not in SUITS:
        raise ValueError(f"Invalid card id: {card_id}")
    return Card(suit=suit, rank=rank)


def sort_hand(hand: Iterable[Card]) -> List[Card]:
    """Sort a hand by suit, then by rank within a suit."""
    def sort_key(card: Card):
        return SUITS.index(card.suit), RANK_VALUES[card.rank]

    return sorted(hand, key=sort_key)
