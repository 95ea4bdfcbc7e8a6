"""
Determinization-based decision making for Sushi Go!.

This package turns a hidden-information decision into several
perfect-information ones:
- UnseenCardTracker: estimates which cards the deciding player cannot see
- Determinizer: samples opponent hands from the unseen pool
- DecisionEnsemble: searches each sampled world and takes a plurality vote

The tree search itself is supplied by the caller as a SearchOracle.

Example:
    >>> from sushibot.mcts import UnseenCardTracker, Determinizer, DecisionEnsemble
    >>> from sushibot.game import SushiGoState
    >>>
    >>> state = SushiGoState.new_round(num_players=3, seed=1).observed_by(0)
    >>> distribution = UnseenCardTracker().estimate(state)
    >>> worlds = Determinizer(seed=1).sample_many(state, distribution, count=5)
    >>>
    >>> ensemble = DecisionEnsemble(oracle, num_determinizations=5, seed=1)
    >>> action = ensemble.decide(state, legal_actions)
"""

from sushibot.mcts.belief_tracker import UnseenCardTracker, UnseenDistribution
from sushibot.mcts.determinization import Determinizer
from sushibot.mcts.ensemble import (
    DecisionEnsemble,
    EnsembleError,
    InvalidInputError,
    SearchError,
    SearchOracle,
    clamp_determinizations,
)

__all__ = [
    "UnseenCardTracker",
    "UnseenDistribution",
    "Determinizer",
    "DecisionEnsemble",
    "EnsembleError",
    "InvalidInputError",
    "SearchError",
    "SearchOracle",
    "clamp_determinizations",
]
