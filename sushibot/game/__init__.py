"""
Sushi Go! game model.

This package contains the card constants and the observed-state containers
the agent reads. Rules enforcement lives in the game engine, not here.
"""

from sushibot.game.constants import (
    CARD_COPIES,
    DECK_SIZE,
    DUMPLING_SCORES,
    HAND_SIZE_BY_PLAYERS,
    MAKI_ICONS,
    MAX_PLAYERS,
    MIN_PLAYERS,
    NIGIRI_TYPES,
    NUM_ROUNDS,
    CardType,
    card_type_from_name,
    cards_per_hand,
)
from sushibot.game.state import (
    GameStateException,
    ObservedState,
    SushiGoException,
    SushiGoState,
)

__all__ = [
    "CARD_COPIES",
    "DECK_SIZE",
    "DUMPLING_SCORES",
    "HAND_SIZE_BY_PLAYERS",
    "MAKI_ICONS",
    "MAX_PLAYERS",
    "MIN_PLAYERS",
    "NIGIRI_TYPES",
    "NUM_ROUNDS",
    "CardType",
    "card_type_from_name",
    "cards_per_hand",
    "GameStateException",
    "ObservedState",
    "SushiGoException",
    "SushiGoState",
]
