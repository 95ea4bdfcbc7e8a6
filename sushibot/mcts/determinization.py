"""
Determinization sampling for imperfect information search.

This module implements determinization - the process of sampling concrete
opponent hands so that a hidden-information game state becomes a fully
observed one. A perfect-information search can then be run on each sampled
world and the results aggregated.

Determinization Sampling Strategy:

Goal: Generate complete game states where opponent hands are filled in
      with cards from the unseen pool, consistent with every observable fact.

Approach: Pool Shuffle and Deal
    1. Build the unseen pool from the UnseenDistribution
       (round(p * total_unseen) copies per type, apportioned so the pool
       never exceeds the known unseen counts)
    2. Shuffle the pool with the determinizer's own random generator
    3. Deal contiguous runs to opponents in player order, skipping the
       observer, each opponent receiving their observable hand size
    4. If the pool runs out, under-fill the remaining hands (shortfall)

Invariants:
    - The true state is never mutated (every world is a deep copy)
    - Observer's hand and every face-up board are unchanged
    - No card is duplicated or invented; total dealt <= pool size

Biased Sampling:
    Each physical card in the pool is represented max(1, round(weight))
    times before shuffling. Dealing takes every physical card at most once,
    so favored types surface earlier in the deal (and land in opponent hands
    more often) without ever being duplicated.
"""

import logging
import math
import time
from typing import Dict, List, Mapping, Optional

import numpy as np

from sushibot.game.constants import CardType
from sushibot.game.state import ObservedState
from sushibot.mcts.belief_tracker import UnseenDistribution

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    """Round to nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _representation(weight: float) -> int:
    """Copies of a card in the biased deal; unusable weights count as no bias."""
    if not math.isfinite(weight) or weight <= 0:
        return 1
    return max(1, _round_half_up(weight))


class Determinizer:
    """
    Samples opponent hands for determinization.

    Owns its random generator so two agents (or two concurrent decision
    paths) never share random state, and so tests can reseed for
    reproducible samples.

    Attributes:
        rng: numpy Generator used for every shuffle
        last_shortfall: Hand slots left empty by the most recent sample
        shortfall_count: Number of samples so far that under-filled hands
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize determinizer.

        Args:
            seed: Seed for a fresh generator (ignored when rng is given)
            rng: Existing generator to take ownership of
        """
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.last_shortfall = 0
        self.shortfall_count = 0
        # Instrumentation toggle (module-level control functions below)
        self._profiling_enabled = _DET_PROFILING_ENABLED

    def reseed(self, seed: Optional[int]) -> None:
        """Replace the generator with a freshly seeded one."""
        self.rng = np.random.default_rng(seed)

    def build_pool(self, distribution: UnseenDistribution) -> List[CardType]:
        """
        Build the unseen-card pool from a distribution.

        Each type receives round(p * total_unseen) copies. Remainders are
        apportioned by largest fractional part so the pool size equals
        total_unseen when the probabilities sum to 1. A type with
        probability 0 gets no copies, and no type gets more copies than its
        known unseen count.

        Args:
            distribution: Estimated unseen distribution

        Returns:
            List of card types, grouped by type in enum order
        """
        total = distribution.total_unseen
        types = [t for t in CardType if distribution.probability(t) > 0.0]
        prob_sum = sum(distribution.probability(t) for t in types)

        if total <= 0 or prob_sum <= 0.0:
            return []

        caps = {t: distribution.unseen_counts.get(t, total) for t in types}
        quotas = {t: distribution.probability(t) / prob_sum * total for t in types}
        counts = {t: min(int(math.floor(quotas[t])), caps[t]) for t in types}

        # Largest remainder first; enum order breaks ties
        remainder = total - sum(counts.values())
        ranked = sorted(
            types,
            key=lambda t: quotas[t] - math.floor(quotas[t]),
            reverse=True,
        )
        for card_type in ranked:
            if remainder <= 0:
                break
            if counts[card_type] < caps[card_type]:
                counts[card_type] += 1
                remainder -= 1

        pool: List[CardType] = []
        for card_type in types:
            pool.extend([card_type] * counts[card_type])
        return pool

    def _deal_order(
        self,
        pool: List[CardType],
        bias_weights: Optional[Mapping[CardType, float]] = None,
    ) -> np.ndarray:
        """
        Shuffle the pool and return physical card indices in dealing order.

        With bias weights, each card is repeated max(1, round(weight)) times
        before the shuffle and only its first occurrence is kept. Weights that
        are not positive finite numbers leave the card unbiased.
        """
        if not bias_weights:
            return self.rng.permutation(len(pool))

        copies = np.array(
            [_representation(bias_weights.get(card, 1.0)) for card in pool],
            dtype=np.int64,
        )
        representation = np.repeat(np.arange(len(pool)), copies)
        self.rng.shuffle(representation)

        # Keep the first occurrence of each physical card
        _, first_positions = np.unique(representation, return_index=True)
        return representation[np.sort(first_positions)]

    def sample_hands(
        self,
        state: ObservedState,
        distribution: UnseenDistribution,
        bias_weights: Optional[Mapping[CardType, float]] = None,
    ) -> Dict[int, List[CardType]]:
        """
        Sample an assignment of unseen cards to opponent hands.

        Args:
            state: Current game state (opponent hands may be hidden)
            distribution: Unseen distribution for the deciding player
            bias_weights: Optional per-type weights for biased sampling

        Returns:
            Dictionary mapping player_id -> sampled hand, one entry per opponent
        """
        start_t = time.perf_counter() if self._profiling_enabled else 0.0
        if self._profiling_enabled:
            _DET_METRICS['sample_calls'] += 1

        pool = self.build_pool(distribution)
        order = self._deal_order(pool, bias_weights)

        observer = state.current_player
        sampled_hands: Dict[int, List[CardType]] = {}
        cursor = 0
        shortfall = 0

        # Fixed player order so a seeded generator reproduces the same deal
        for player_id in range(state.num_players):
            if player_id == observer:
                continue

            cards_needed = state.get_hand_size(player_id)
            indices = order[cursor:cursor + cards_needed]
            sampled_hands[player_id] = [pool[i] for i in indices]
            cursor += len(indices)
            shortfall += cards_needed - len(indices)

        self.last_shortfall = shortfall
        if shortfall > 0:
            self.shortfall_count += 1
            logger.debug(
                f"Sampling shortfall: pool of {len(pool)} cards left "
                f"{shortfall} opponent hand slots empty"
            )

        if self._profiling_enabled:
            _DET_METRICS['samples_succeeded'] += 1
            if shortfall > 0:
                _DET_METRICS['shortfall_samples'] += 1
                _DET_METRICS['cards_short'] += shortfall
            _DET_METRICS['sample_total_sec'] += time.perf_counter() - start_t

        return sampled_hands

    def create_determinized_state(
        self,
        state: ObservedState,
        sampled_hands: Mapping[int, List[CardType]],
    ) -> ObservedState:
        """
        Create a fully observed copy of the state with sampled opponent hands.

        The observer's hand and all boards come from the copy unchanged.

        Args:
            state: Original game state (with hidden hands)
            sampled_hands: Sampled hands for opponents

        Returns:
            New game state with revealed hands
        """
        world = state.copy()
        for player_id, hand in sampled_hands.items():
            world.set_player_hand(player_id, list(hand))
        return world

    def sample(
        self, state: ObservedState, distribution: UnseenDistribution
    ) -> ObservedState:
        """
        Sample one determinized world.

        Args:
            state: Current game state
            distribution: Unseen distribution for the deciding player

        Returns:
            Independent, fully observed copy of the state
        """
        sampled_hands = self.sample_hands(state, distribution)
        return self.create_determinized_state(state, sampled_hands)

    def sample_biased(
        self,
        state: ObservedState,
        distribution: UnseenDistribution,
        bias_weights: Mapping[CardType, float],
    ) -> ObservedState:
        """
        Sample one determinized world with per-type bias weights.

        Args:
            state: Current game state
            distribution: Unseen distribution for the deciding player
            bias_weights: CardType -> weight (missing types default to 1.0)

        Returns:
            Independent, fully observed copy of the state
        """
        sampled_hands = self.sample_hands(state, distribution, bias_weights)
        return self.create_determinized_state(state, sampled_hands)

    def sample_many(
        self,
        state: ObservedState,
        distribution: UnseenDistribution,
        count: int,
        bias_weights: Optional[Mapping[CardType, float]] = None,
    ) -> List[ObservedState]:
        """
        Sample multiple independent determinized worlds.

        Args:
            state: Current game state
            distribution: Unseen distribution for the deciding player
            count: Number of worlds to generate
            bias_weights: Optional per-type weights for biased sampling

        Returns:
            List of count worlds; none shares mutable state with another
        """
        worlds = []
        for _ in range(count):
            sampled_hands = self.sample_hands(state, distribution, bias_weights)
            worlds.append(self.create_determinized_state(state, sampled_hands))
        return worlds


# -------------------
# Lightweight metrics
# -------------------

# Module-level flag and store for determinization profiling metrics
_DET_PROFILING_ENABLED = False
_DET_METRICS = {
    'sample_calls': 0,
    'samples_succeeded': 0,
    'shortfall_samples': 0,
    'cards_short': 0,
    'sample_total_sec': 0.0,
}


def enable_metrics(enabled: bool = True) -> None:
    """Enable or disable determinization instrumentation for new Determinizers."""
    global _DET_PROFILING_ENABLED
    _DET_PROFILING_ENABLED = bool(enabled)


def reset_metrics() -> None:
    """Reset determinization metrics counters for this process."""
    for k in list(_DET_METRICS.keys()):
        _DET_METRICS[k] = 0.0 if k.endswith('_sec') else 0


def get_metrics() -> dict:
    """Return a shallow copy of current determinization metrics."""
    m = dict(_DET_METRICS)
    calls = m.get('sample_calls', 0) or 0
    m['shortfall_rate'] = (m['shortfall_samples'] / calls) if calls else 0.0
    m['avg_sample_ms'] = (m.get('sample_total_sec', 0.0) / (calls or 1)) * 1000.0
    return m
