"""
Determinization ensemble for decisions under hidden information.

Runs an external perfect-information search on several sampled worlds and
picks the action most of them recommend.

Multi-World Algorithm:
    1. Estimate the unseen-card distribution from the live observed state
    2. Sample N determinized worlds (opponent hands filled in)
    3. Ask the Search Oracle for one action per world
    4. Count one vote per world for the returned action
    5. Return the action with the most votes (ties -> earliest legal action)

Key Insight:
    - A single world over-fits one guess about opponent hands
    - Actions that win across many guesses are robust to the uncertainty
    - Voting ignores the Oracle's internal scores, so noisy searches on one
      world cannot dominate the decision

Concurrency:
    Each Oracle call reads its own world and returns one action; the tally
    is reduced after all calls finish. With use_parallel the calls run on a
    thread pool. Worlds are always sampled up front, under a lock, from the
    ensemble's own sampler, so a fixed seed gives the same worlds in both
    modes and two concurrent decisions never interleave draws.

Oracle Failures:
    An Oracle exception on one world drops that world's vote (logged at
    WARNING) and the vote goes ahead with the rest. Only when every world
    fails is SearchError raised, chained to the last Oracle error.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np

from sushibot.game.constants import CardType
from sushibot.game.state import ObservedState
from sushibot.mcts.belief_tracker import UnseenCardTracker, UnseenDistribution
from sushibot.mcts.determinization import Determinizer

logger = logging.getLogger(__name__)

MIN_DETERMINIZATIONS = 1
MAX_DETERMINIZATIONS = 20
DEFAULT_DETERMINIZATIONS = 5


class EnsembleError(Exception):
    """Base exception for decision ensemble errors."""

    pass


class InvalidInputError(EnsembleError, ValueError):
    """Raised when a decision is requested with no legal actions."""

    pass


class SearchError(EnsembleError):
    """Raised when the Oracle failed on every sampled world."""

    pass


class SearchOracle(Protocol):
    """Perfect-information search: one recommended action for a fully observed world."""

    def search(self, world: ObservedState, legal_actions: Sequence[Any]) -> Any: ...


def clamp_determinizations(num: int) -> int:
    """Clamp a determinization count to [MIN_DETERMINIZATIONS, MAX_DETERMINIZATIONS]."""
    return max(MIN_DETERMINIZATIONS, min(MAX_DETERMINIZATIONS, int(num)))


class DecisionEnsemble:
    """
    Plurality vote over searches on determinized worlds.

    Stateless across decisions apart from the sampler: the unseen
    distribution is re-estimated on every call.

    Attributes:
        oracle: Search Oracle consulted once per world
        tracker: UnseenCardTracker used to estimate the hidden pool
        determinizer: Determinizer owning the random generator
        bias_weights: Optional per-type weights; when set every sample is biased
        use_parallel: Run Oracle calls on a thread pool
        max_workers: Thread pool size (None = executor default)

    Example:
        >>> ensemble = DecisionEnsemble(oracle, num_determinizations=5, seed=7)
        >>> action = ensemble.decide(observed_state, legal_actions)
    """

    def __init__(
        self,
        oracle: SearchOracle,
        tracker: Optional[UnseenCardTracker] = None,
        determinizer: Optional[Determinizer] = None,
        num_determinizations: int = DEFAULT_DETERMINIZATIONS,
        bias_weights: Optional[Mapping[CardType, float]] = None,
        seed: Optional[int] = None,
        use_parallel: bool = False,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize decision ensemble.

        Args:
            oracle: Object with search(world, legal_actions) -> action
            tracker: Unseen-card tracker (default: canonical deck)
            determinizer: Sampler (default: new Determinizer seeded with seed)
            num_determinizations: Worlds per decision, clamped to [1, 20]
            bias_weights: CardType -> weight for biased sampling
            seed: Seed for the default determinizer
            use_parallel: Run Oracle calls concurrently
            max_workers: Thread pool size for parallel mode
        """
        self.oracle = oracle
        self.tracker = tracker if tracker is not None else UnseenCardTracker()
        self.determinizer = (
            determinizer if determinizer is not None else Determinizer(seed=seed)
        )
        self.bias_weights: Dict[CardType, float] = dict(bias_weights or {})
        self.use_parallel = use_parallel
        self.max_workers = max_workers
        self._sampler_lock = threading.Lock()
        self.num_determinizations = num_determinizations

    @property
    def num_determinizations(self) -> int:
        return self._num_determinizations

    @num_determinizations.setter
    def num_determinizations(self, num: int) -> None:
        clamped = clamp_determinizations(num)
        if clamped != num:
            logger.warning(
                f"num_determinizations {num} out of range, clamping to {clamped}"
            )
        self._num_determinizations = clamped

    def reseed(self, seed: Optional[int]) -> None:
        """Reseed the sampler for reproducible decisions."""
        with self._sampler_lock:
            self.determinizer.reseed(seed)

    def decide(self, state: ObservedState, legal_actions: Sequence[Any]) -> Any:
        """
        Choose an action for the deciding player.

        Args:
            state: Observed game state (opponent hands hidden or not)
            legal_actions: Actions the rules engine allows

        Returns:
            Member of legal_actions with the most votes

        Raises:
            InvalidInputError: If legal_actions is empty
            SearchError: If the Oracle raised on every world
        """
        action, _ = self.decide_with_details(state, legal_actions)
        return action

    def decide_with_details(
        self, state: ObservedState, legal_actions: Sequence[Any]
    ) -> Tuple[Any, Dict[str, Any]]:
        """
        Choose an action and report how the vote went.

        Useful for debugging, analysis, and explainability.

        Returns:
            Tuple of (action, details_dict) where details contains:
            - votes: vote count per legal action, aligned with legal_actions
            - num_determinizations: number of worlds searched
            - agreement: share of valid votes won by the chosen action
            - shortfalls: samples whose pool could not fill every hand
            - discarded_votes: Oracle answers not in legal_actions
            - failed_searches: worlds on which the Oracle raised
            - belief_entropy: entropy of the unseen distribution (bits)

        Raises:
            InvalidInputError: If legal_actions is empty
            SearchError: If the Oracle raised on every world
        """
        legal = list(legal_actions)
        if not legal:
            raise InvalidInputError("decide() needs at least one legal action")

        if len(legal) == 1:
            return legal[0], {
                'votes': [0],
                'num_determinizations': 0,
                'agreement': 1.0,
                'shortfalls': 0,
                'discarded_votes': 0,
                'failed_searches': 0,
                'belief_entropy': 0.0,
            }

        distribution = self.tracker.estimate(state)
        worlds, shortfalls = self._sample_worlds(state, distribution)
        choices, failures = self._run_searches(worlds, legal)
        if not choices:
            raise SearchError(
                f"Oracle failed on all {len(worlds)} sampled worlds"
            ) from failures[-1]
        votes, discarded = self.tally_votes(legal, choices)

        valid_votes = sum(votes)
        # argmax returns the first maximum: ties go to the earliest legal action
        best_index = int(np.argmax(votes)) if valid_votes > 0 else 0
        action = legal[best_index]

        details = {
            'votes': votes,
            'num_determinizations': len(worlds),
            'agreement': votes[best_index] / valid_votes if valid_votes else 0.0,
            'shortfalls': shortfalls,
            'discarded_votes': discarded,
            'failed_searches': len(failures),
            'belief_entropy': distribution.entropy(),
        }
        logger.info(
            f"Player {state.current_player} chose {action!r} with "
            f"{votes[best_index]}/{len(worlds)} votes"
        )
        return action, details

    def _sample_worlds(
        self, state: ObservedState, distribution: UnseenDistribution
    ) -> Tuple[List[ObservedState], int]:
        """Sample one world per determinization, counting shortfalls."""
        worlds = []
        shortfalls = 0
        with self._sampler_lock:
            for _ in range(self.num_determinizations):
                hands = self.determinizer.sample_hands(
                    state, distribution, self.bias_weights or None
                )
                if self.determinizer.last_shortfall > 0:
                    shortfalls += 1
                worlds.append(self.determinizer.create_determinized_state(state, hands))
        return worlds, shortfalls

    def _search_world(
        self, world: ObservedState, legal: List[Any]
    ) -> Tuple[Any, Optional[Exception]]:
        """One Oracle call; an exception is returned instead of raised."""
        try:
            return self.oracle.search(world, list(legal)), None
        except Exception as e:
            logger.warning(f"Oracle failed on a sampled world, dropping its vote: {e!r}")
            return None, e

    def _run_searches(
        self, worlds: List[ObservedState], legal: List[Any]
    ) -> Tuple[List[Any], List[Exception]]:
        """
        Ask the Oracle for one action per world.

        Returns:
            Tuple of (choices from successful searches, errors from failed ones)
        """
        if self.use_parallel and len(worlds) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(
                    executor.map(lambda world: self._search_world(world, legal), worlds)
                )
        else:
            outcomes = [self._search_world(world, legal) for world in worlds]

        choices = [choice for choice, error in outcomes if error is None]
        failures = [error for _, error in outcomes if error is not None]
        return choices, failures

    @staticmethod
    def tally_votes(legal: Sequence[Any], choices: Sequence[Any]) -> Tuple[List[int], int]:
        """
        Count votes per legal action.

        Args:
            legal: Legal actions (defines tally order)
            choices: One chosen action per world

        Returns:
            Tuple of (votes aligned with legal, number of discarded choices)
        """
        votes = [0] * len(legal)
        discarded = 0
        for choice in choices:
            try:
                index = legal.index(choice)
            except ValueError:
                discarded += 1
                logger.warning(f"Oracle returned {choice!r}, not a legal action; vote discarded")
                continue
            votes[index] += 1
            logger.debug(f"Vote for {choice!r}")
        return votes, discarded
