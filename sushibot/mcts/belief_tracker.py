"""
Unseen-card tracking for imperfect information play.

This module estimates which cards are still hidden from the deciding player.
In Sushi Go! a player sees their own hand and every face-up board, but not
what the opponents hold or what is left undrawn for later rounds. Because
cards of one type are interchangeable, the belief reduces to a count per
card type.

Core Concepts:
    - unseen(type) = total_copies(type) - seen_copies(type)
    - seen copies are those on any face-up board or in the observer's hand
    - P(type) = unseen(type) / total_unseen, the share of the hidden pool

Information Sources:
    1. Observer's own hand (known exactly)
    2. Every player's played board (public)
    3. Every player's hand size (public, used later by the determinizer)

Opponent hand contents are never read, even if the state object carries
them; the estimate must only depend on what the observer can see.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import numpy as np

from sushibot.game.constants import CARD_COPIES, CardType
from sushibot.game.state import ObservedState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnseenDistribution:
    """
    Estimated distribution of cards hidden from the observer.

    Attributes:
        probabilities: CardType -> fraction of the hidden pool of that type
        unseen_counts: CardType -> number of copies still hidden
        total_unseen: Size of the hidden pool
    """

    probabilities: Dict[CardType, float] = field(default_factory=dict)
    unseen_counts: Dict[CardType, int] = field(default_factory=dict)
    total_unseen: int = 0

    def probability(self, card_type: CardType) -> float:
        """Probability that a hidden card is of this type."""
        return self.probabilities.get(card_type, 0.0)

    def entropy(self) -> float:
        """
        Shannon entropy of the hidden-pool type distribution.

        High entropy = many plausible card types, low = pool dominated by few.

        Returns:
            Entropy in bits
        """
        probs = np.array([p for p in self.probabilities.values() if p > 0])
        if probs.size == 0:
            return 0.0
        return float(-(probs * np.log2(probs)).sum())

    def summary(self) -> str:
        """
        Human-readable summary of the distribution.

        Useful for debugging and explainability.

        Returns:
            Multi-line string with one line per card type
        """
        lines = ["Unseen Card Distribution:"]
        lines.append(f"Unseen cards: {self.total_unseen}")
        for card_type in CardType:
            count = self.unseen_counts.get(card_type, 0)
            prob = self.probability(card_type)
            lines.append(f"  {card_type.value:<14} {count:>3}  p={prob:.3f}")
        lines.append(f"Entropy: {self.entropy():.2f} bits")
        return "\n".join(lines)


class UnseenCardTracker:
    """
    Estimates the unseen-card distribution from an observed state.

    The tracker is deterministic: the same observation always gives the same
    distribution. update() keeps the latest estimate around for callers that
    want it between turns, but estimate() always recomputes from the live
    state.

    Attributes:
        card_copies: Canonical number of copies per card type
        last_distribution: Result of the most recent update(), if any
    """

    def __init__(self, card_copies: Optional[Mapping[CardType, int]] = None):
        """
        Initialize tracker.

        Args:
            card_copies: Deck composition (defaults to the canonical deck)
        """
        self.card_copies: Dict[CardType, int] = dict(card_copies or CARD_COPIES)
        self.last_distribution: Optional[UnseenDistribution] = None

    def seen_counts(self, state: ObservedState) -> Dict[CardType, int]:
        """
        Count cards visible to the deciding player.

        Counts every face-up board plus the deciding player's own hand.
        Counts are capped at the canonical total so a malformed board can
        never produce negative unseen counts.

        Args:
            state: Observed game state

        Returns:
            CardType -> number of visible copies
        """
        seen = {card_type: 0 for card_type in self.card_copies}
        observer = state.current_player

        for player_id in range(state.num_players):
            for card in state.get_played_cards(player_id):
                if card in seen:
                    seen[card] += 1

        own_hand = state.get_hand(observer) or []
        for card in own_hand:
            if card in seen:
                seen[card] += 1

        for card_type, count in seen.items():
            total = self.card_copies[card_type]
            if count > total:
                logger.warning(
                    f"Saw {count} copies of {card_type.value} but deck only has "
                    f"{total}; capping"
                )
                seen[card_type] = total

        return seen

    def unseen_counts(self, state: ObservedState) -> Dict[CardType, int]:
        """Number of copies of each card type still hidden from the observer."""
        seen = self.seen_counts(state)
        return {
            card_type: total - seen[card_type]
            for card_type, total in self.card_copies.items()
        }

    def estimate(self, state: ObservedState) -> UnseenDistribution:
        """
        Estimate the unseen-card distribution.

        Before anything is revealed this is the prior proportional to the
        canonical deck composition. A type with no unseen copies gets exactly
        0.0.

        Args:
            state: Observed game state

        Returns:
            UnseenDistribution for the deciding player
        """
        unseen = self.unseen_counts(state)
        total_unseen = sum(unseen.values())

        if total_unseen == 0:
            probabilities = {card_type: 0.0 for card_type in unseen}
        else:
            probabilities = {
                card_type: (count / total_unseen if count > 0 else 0.0)
                for card_type, count in unseen.items()
            }

        return UnseenDistribution(
            probabilities=probabilities,
            unseen_counts=unseen,
            total_unseen=total_unseen,
        )

    def update(self, state: ObservedState) -> UnseenDistribution:
        """
        Re-estimate from the live state and remember the result.

        Args:
            state: Observed game state

        Returns:
            The new distribution (also stored as last_distribution)
        """
        self.last_distribution = self.estimate(state)
        logger.debug(
            f"Unseen pool for player {state.current_player}: "
            f"{self.last_distribution.total_unseen} cards"
        )
        return self.last_distribution

    def reset(self) -> None:
        """Forget the last stored distribution."""
        self.last_distribution = None
