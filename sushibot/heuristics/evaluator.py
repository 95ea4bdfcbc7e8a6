"""
State evaluation for search over determinized Sushi Go! worlds.

The evaluator is the value function handed to the Search Oracle. It scores a
fully observed state for one player as a weighted sum of named sub-features
(see sushibot.heuristics.features). Coefficient sets are chosen by named
presets and can be switched on a live evaluator.

Fault Tolerance:
    The Oracle must never see an exception from the value function. Each
    feature evaluation produces a FeatureResult that records either a value
    or the error that prevented it. A failed feature contributes 0 to the
    breakdown; if any weighted feature failed, score() falls back to the
    player's raw realized score. Each failing feature is logged once per
    evaluator so failures stay visible without flooding the log.

Presets:
    score-only  realized points only
    balanced    default mix
    aggressive  favors points now and contested tallies
    strategic   favors set building and future potential

Example:
    >>> evaluator = StateEvaluator("balanced")
    >>> value = evaluator.score(world, player_id=0)
    >>> evaluator.set_preset("aggressive")
    >>> blended = BlendedEvaluator(evaluator, StateEvaluator("score-only"), alpha=0.7)
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional, Set

from sushibot.game.state import ObservedState
from sushibot.heuristics.features import FEATURES

logger = logging.getLogger(__name__)

ValueFunction = Callable[[ObservedState, int], float]


@dataclass(frozen=True)
class FeatureWeights:
    """Coefficient per named feature."""

    immediate: float = 1.0
    set_progress: float = 0.0
    synergy: float = 0.0
    competitive: float = 0.0
    future_potential: float = 0.0
    blocking: float = 0.0
    risk: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


PRESETS: Dict[str, FeatureWeights] = {
    "score-only": FeatureWeights(immediate=1.0),
    "balanced": FeatureWeights(
        immediate=1.0,
        set_progress=0.8,
        synergy=0.6,
        competitive=0.7,
        future_potential=0.5,
        blocking=1.0,
        risk=1.0,
    ),
    "aggressive": FeatureWeights(
        immediate=1.2,
        set_progress=0.5,
        synergy=0.4,
        competitive=0.9,
        future_potential=0.3,
        blocking=0.8,
        risk=1.0,
    ),
    "strategic": FeatureWeights(
        immediate=0.8,
        set_progress=1.2,
        synergy=1.0,
        competitive=0.6,
        future_potential=0.9,
        blocking=1.0,
        risk=1.0,
    ),
}


def get_preset(name: str) -> FeatureWeights:
    """
    Look up a weight preset by name.

    Raises:
        ValueError: If the preset is unknown
    """
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown heuristic preset {name!r}; expected one of {sorted(PRESETS)}"
        ) from None


def realized_score(state: ObservedState, player_id: int) -> float:
    """Raw banked score, or 0.0 if even that cannot be read."""
    try:
        value = float(state.get_game_score(player_id))
    except Exception as e:
        logger.warning(f"Could not read realized score for player {player_id}: {e}")
        return 0.0
    if not math.isfinite(value):
        logger.warning(f"Realized score for player {player_id} is {value}, using 0.0")
        return 0.0
    return value


@dataclass(frozen=True)
class FeatureResult:
    """Outcome of evaluating one feature: a value, or the error that prevented it."""

    name: str
    value: float = 0.0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StateEvaluator:
    """
    Weighted multi-feature evaluator for fully observed states.

    Attributes:
        weights: Active FeatureWeights
    """

    def __init__(self, preset: str = "balanced", weights: Optional[FeatureWeights] = None):
        """
        Initialize evaluator.

        Args:
            preset: Name of the weight preset (ignored when weights is given)
            weights: Custom coefficients
        """
        self._preset: Optional[str] = None
        self._logged_failures: Set[str] = set()
        if weights is not None:
            self.weights = weights
        else:
            self.set_preset(preset)

    @property
    def preset(self) -> Optional[str]:
        """Name of the active preset, None for custom weights."""
        return self._preset

    def set_preset(self, name: str) -> None:
        """Switch coefficients in place."""
        self.weights = get_preset(name)
        self._preset = name

    def evaluate_feature(
        self, name: str, state: ObservedState, player_id: int
    ) -> FeatureResult:
        """
        Evaluate one named feature.

        Any error raised while reading the state is recorded on the result
        rather than propagated, so score() can fall back and the search never
        sees it.
        """
        try:
            value = float(FEATURES[name](state, player_id))
        except Exception as e:
            if name not in self._logged_failures:
                self._logged_failures.add(name)
                logger.warning(f"Feature '{name}' failed, scoring it as 0: {e!r}")
            return FeatureResult(name=name, error=e)
        return FeatureResult(name=name, value=value)

    def evaluate_features(
        self, state: ObservedState, player_id: int, active_only: bool = True
    ) -> List[FeatureResult]:
        """
        Evaluate features for one player.

        Args:
            state: Fully observed state
            player_id: Player to score
            active_only: Skip features whose weight is zero

        Returns:
            One FeatureResult per evaluated feature
        """
        weights = self.weights.as_dict()
        return [
            self.evaluate_feature(name, state, player_id)
            for name in FEATURES
            if not active_only or weights[name] != 0.0
        ]

    def breakdown(self, state: ObservedState, player_id: int) -> Dict[str, float]:
        """Unweighted value of every feature (0.0 for failed ones)."""
        return {
            result.name: result.value
            for result in self.evaluate_features(state, player_id, active_only=False)
        }

    def score(self, state: ObservedState, player_id: int) -> float:
        """
        Score a state for one player. Never raises.

        Args:
            state: Fully observed state
            player_id: Player to score

        Returns:
            Weighted feature sum, or the raw realized score if any weighted
            feature failed or the sum is not finite
        """
        results = self.evaluate_features(state, player_id)
        if not all(result.ok for result in results):
            return realized_score(state, player_id)

        weights = self.weights.as_dict()
        total = sum(weights[result.name] * result.value for result in results)
        if not math.isfinite(total):
            logger.warning(f"Non-finite evaluation {total} for player {player_id}")
            return realized_score(state, player_id)
        return total

    def as_value_function(self) -> ValueFunction:
        """Plain callable (state, player_id) -> score for the Search Oracle."""
        return self.score

    def __call__(self, state: ObservedState, player_id: int) -> float:
        return self.score(state, player_id)

    def __repr__(self) -> str:
        label = self._preset if self._preset is not None else "custom"
        return f"StateEvaluator({label})"


class BlendedEvaluator:
    """
    Convex combination of two evaluators.

    score = alpha * primary + (1 - alpha) * secondary, alpha fixed at
    construction and clamped to [0, 1].
    """

    def __init__(self, primary, secondary, alpha: float = 0.5):
        """
        Initialize blended evaluator.

        Args:
            primary: Evaluator weighted by alpha
            secondary: Evaluator weighted by 1 - alpha
            alpha: Blend factor in [0, 1]
        """
        if not 0.0 <= alpha <= 1.0:
            clamped = min(1.0, max(0.0, alpha))
            logger.warning(f"blend alpha {alpha} out of range, clamping to {clamped}")
            alpha = clamped
        self.primary = primary
        self.secondary = secondary
        self._alpha = float(alpha)

    @property
    def alpha(self) -> float:
        """Blend factor, fixed at construction."""
        return self._alpha

    @staticmethod
    def _safe_score(evaluator, state: ObservedState, player_id: int) -> float:
        try:
            value = float(evaluator.score(state, player_id))
        except Exception as e:
            logger.warning(f"{evaluator!r} failed, using realized score: {e!r}")
            return realized_score(state, player_id)
        if not math.isfinite(value):
            return realized_score(state, player_id)
        return value

    def score(self, state: ObservedState, player_id: int) -> float:
        """Blend both evaluators. Never raises."""
        return (
            self.alpha * self._safe_score(self.primary, state, player_id)
            + (1.0 - self.alpha) * self._safe_score(self.secondary, state, player_id)
        )

    def as_value_function(self) -> ValueFunction:
        return self.score

    def __call__(self, state: ObservedState, player_id: int) -> float:
        return self.score(state, player_id)

    def __repr__(self) -> str:
        return f"BlendedEvaluator({self.primary!r}, {self.secondary!r}, alpha={self.alpha})"
