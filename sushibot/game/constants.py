"""
Game constants for Sushi Go!.

This module defines the card types, canonical deck composition and the
round/hand-size structure used throughout the agent. The rules engine owns
these values; the agent only reads them.
"""

from enum import Enum
from typing import Dict, List, Tuple


class CardType(Enum):
    """Card types in the Sushi Go! deck. Cards of the same type are interchangeable."""

    TEMPURA = "Tempura"
    SASHIMI = "Sashimi"
    DUMPLING = "Dumpling"
    MAKI_1 = "Maki Roll (1)"
    MAKI_2 = "Maki Roll (2)"
    MAKI_3 = "Maki Roll (3)"
    SALMON_NIGIRI = "Salmon Nigiri"
    SQUID_NIGIRI = "Squid Nigiri"
    EGG_NIGIRI = "Egg Nigiri"
    PUDDING = "Pudding"
    WASABI = "Wasabi"
    CHOPSTICKS = "Chopsticks"

    def __str__(self) -> str:
        return self.value


# Deck composition (108 cards)
CARD_COPIES: Dict[CardType, int] = {
    CardType.TEMPURA: 14,
    CardType.SASHIMI: 14,
    CardType.DUMPLING: 14,
    CardType.MAKI_1: 6,
    CardType.MAKI_2: 12,
    CardType.MAKI_3: 8,
    CardType.SALMON_NIGIRI: 10,
    CardType.SQUID_NIGIRI: 5,
    CardType.EGG_NIGIRI: 5,
    CardType.PUDDING: 10,
    CardType.WASABI: 6,
    CardType.CHOPSTICKS: 4,
}

DECK_SIZE = sum(CARD_COPIES.values())

# Maki icons printed on each maki card
MAKI_ICONS: Dict[CardType, int] = {
    CardType.MAKI_1: 1,
    CardType.MAKI_2: 2,
    CardType.MAKI_3: 3,
}

NIGIRI_TYPES: Tuple[CardType, ...] = (
    CardType.SALMON_NIGIRI,
    CardType.SQUID_NIGIRI,
    CardType.EGG_NIGIRI,
)

# Cumulative dumpling payoff for 0..5 dumplings
DUMPLING_SCORES: List[int] = [0, 1, 3, 6, 10, 15]

# Game structure
NUM_ROUNDS = 3
MIN_PLAYERS = 2
MAX_PLAYERS = 5
HAND_SIZE_BY_PLAYERS: Dict[int, int] = {2: 10, 3: 9, 4: 8, 5: 7}


def cards_per_hand(num_players: int) -> int:
    """
    Starting hand size for a given player count.

    Args:
        num_players: Number of players in game (2-5)

    Returns:
        Number of cards dealt to each player at the start of a round

    Raises:
        ValueError: If num_players not in valid range [MIN_PLAYERS, MAX_PLAYERS]

    Examples:
        >>> cards_per_hand(4)
        8
        >>> cards_per_hand(2)
        10
    """
    if num_players < MIN_PLAYERS or num_players > MAX_PLAYERS:
        raise ValueError(
            f"num_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}, "
            f"got {num_players}"
        )
    return HAND_SIZE_BY_PLAYERS[num_players]


def card_type_from_name(name: str) -> CardType:
    """
    Resolve a CardType from its enum name or display value.

    Accepts 'WASABI', 'wasabi' or 'Wasabi' style names, which is how card
    types appear in JSON config files.

    Raises:
        ValueError: If the name matches no card type
    """
    key = name.strip()
    upper = key.upper().replace(" ", "_")
    if upper in CardType.__members__:
        return CardType[upper]
    for card_type in CardType:
        if card_type.value.lower() == key.lower():
            return card_type
    raise ValueError(f"Unknown card type: {name!r}")
