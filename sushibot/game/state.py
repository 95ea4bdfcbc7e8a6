"""
Game state containers for Sushi Go!.

The agent never enforces rules; it only needs to read what a player can
observe (own hand, every face-up board, every hand size, round counter,
banked scores) and to write hypothetical opponent hands into copies of the
state during determinization. ObservedState captures that capability so any
compatible game state can be plugged in without type checks, and SushiGoState
is the concrete implementation used by the agent and its tests.
"""

import copy
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from sushibot.game.constants import (
    CARD_COPIES,
    MAKI_ICONS,
    MAX_PLAYERS,
    MIN_PLAYERS,
    NIGIRI_TYPES,
    CardType,
    cards_per_hand,
)


# ============================================================================
# Custom Exceptions
# ============================================================================


class SushiGoException(Exception):
    """Base exception for Sushi Go state errors."""

    pass


class GameStateException(SushiGoException, ValueError):
    """Raised when a game state is constructed or modified inconsistently."""

    pass


# ============================================================================
# Observed-state capability
# ============================================================================


@runtime_checkable
class ObservedState(Protocol):
    """
    Accessors the agent needs from a game state.

    Opponent hand contents may be hidden (get_hand returns None) but hand
    sizes are always observable.
    """

    num_players: int
    current_player: int
    round_counter: int

    def get_hand(self, player_id: int) -> Optional[List[CardType]]: ...

    def get_hand_size(self, player_id: int) -> int: ...

    def get_played_cards(self, player_id: int) -> List[CardType]: ...

    def get_played_count(self, card_type: CardType, player_id: int) -> int: ...

    def get_game_score(self, player_id: int) -> float: ...

    def copy(self) -> "ObservedState": ...

    def set_player_hand(self, player_id: int, cards: Sequence[CardType]) -> None: ...


# ============================================================================
# SushiGoState Class
# ============================================================================


@dataclass
class SushiGoState:
    """
    Snapshot of a Sushi Go! game.

    Attributes:
        num_players: Number of players in game (2-5)
        current_player: Player whose decision is being made
        round_counter: 0-based round index (0, 1, 2)
        hands: Hand contents per player, None where hidden from the viewer
        hand_sizes: Number of cards in each player's hand
        played: Face-up cards each player has played this game
        scores: Points each player has banked so far
    """

    num_players: int
    current_player: int = 0
    round_counter: int = 0
    hands: List[Optional[List[CardType]]] = field(default_factory=list)
    hand_sizes: List[int] = field(default_factory=list)
    played: List[List[CardType]] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)

    def __post_init__(self):
        """Fill defaults and validate per-player lists."""
        if self.num_players < MIN_PLAYERS or self.num_players > MAX_PLAYERS:
            raise GameStateException(
                f"num_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}, "
                f"got {self.num_players}"
            )
        if not 0 <= self.current_player < self.num_players:
            raise GameStateException(
                f"current_player {self.current_player} out of range for "
                f"{self.num_players} players"
            )

        if not self.hands:
            self.hands = [[] for _ in range(self.num_players)]
        if not self.played:
            self.played = [[] for _ in range(self.num_players)]
        if not self.scores:
            self.scores = [0.0] * self.num_players
        if not self.hand_sizes:
            self.hand_sizes = [len(h) if h is not None else 0 for h in self.hands]

        for name in ("hands", "hand_sizes", "played", "scores"):
            if len(getattr(self, name)) != self.num_players:
                raise GameStateException(
                    f"{name} has {len(getattr(self, name))} entries, "
                    f"expected {self.num_players}"
                )

        for player_id, hand in enumerate(self.hands):
            if hand is not None and len(hand) != self.hand_sizes[player_id]:
                raise GameStateException(
                    f"Player {player_id} holds {len(hand)} cards but hand size "
                    f"is {self.hand_sizes[player_id]}"
                )

    @classmethod
    def new_round(
        cls,
        num_players: int,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        round_counter: int = 0,
        current_player: int = 0,
    ) -> "SushiGoState":
        """
        Deal a fresh round from the full deck.

        Args:
            num_players: Number of players (2-5)
            rng: Random generator to shuffle with (created from seed if None)
            seed: Seed used when rng is not given
            round_counter: Round index to stamp on the state
            current_player: Player to act

        Returns:
            New state with every hand dealt and empty boards
        """
        if rng is None:
            rng = np.random.default_rng(seed)

        deck = [card for card, count in CARD_COPIES.items() for _ in range(count)]
        order = rng.permutation(len(deck))
        hand_size = cards_per_hand(num_players)

        hands = []
        for player_id in range(num_players):
            start = player_id * hand_size
            hands.append([deck[i] for i in order[start:start + hand_size]])

        return cls(
            num_players=num_players,
            current_player=current_player,
            round_counter=round_counter,
            hands=hands,
        )

    # ------------------------------------------------------------------
    # ObservedState accessors
    # ------------------------------------------------------------------

    def get_hand(self, player_id: int) -> Optional[List[CardType]]:
        """Hand contents of a player, or None if hidden."""
        return self.hands[player_id]

    def get_hand_size(self, player_id: int) -> int:
        """Number of cards in a player's hand (always observable)."""
        return self.hand_sizes[player_id]

    def get_played_cards(self, player_id: int) -> List[CardType]:
        """Face-up cards on a player's board."""
        return self.played[player_id]

    def get_played_count(self, card_type: CardType, player_id: int) -> int:
        """Number of cards of one type on a player's board."""
        return sum(1 for card in self.played[player_id] if card == card_type)

    def get_game_score(self, player_id: int) -> float:
        """Points a player has banked so far."""
        return self.scores[player_id]

    def set_player_hand(self, player_id: int, cards: Sequence[CardType]) -> None:
        """Replace a player's hand; the hand size follows the new contents."""
        self.hands[player_id] = list(cards)
        self.hand_sizes[player_id] = len(cards)

    def copy(self) -> "SushiGoState":
        """Deep copy; no list is shared with the original."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def maki_icons(self, player_id: int) -> int:
        """Total maki icons on a player's board."""
        return sum(MAKI_ICONS.get(card, 0) for card in self.played[player_id])

    def nigiri_count(self, player_id: int) -> int:
        """Number of nigiri of any kind on a player's board."""
        return sum(1 for card in self.played[player_id] if card in NIGIRI_TYPES)

    def observed_by(self, player_id: int) -> "SushiGoState":
        """
        Copy of this state as seen by one player.

        Opponent hands are hidden (None) while their sizes stay visible.
        """
        view = self.copy()
        view.current_player = player_id
        for other in range(self.num_players):
            if other != player_id:
                view.hands[other] = None
        return view

    def __str__(self) -> str:
        lines = [f"SushiGoState(round={self.round_counter}, to_act={self.current_player})"]
        for player_id in range(self.num_players):
            hand = self.hands[player_id]
            shown = (
                ", ".join(str(c) for c in hand) if hand is not None
                else f"<{self.hand_sizes[player_id]} hidden>"
            )
            lines.append(
                f"  P{player_id}: score={self.scores[player_id]} hand=[{shown}] "
                f"played={len(self.played[player_id])}"
            )
        return "\n".join(lines)
