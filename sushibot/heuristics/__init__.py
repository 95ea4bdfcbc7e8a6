"""
Heuristic state evaluation for Sushi Go!.

- StateEvaluator: weighted multi-feature value function with named presets
- BlendedEvaluator: convex combination of two evaluators
- FeatureWeights / PRESETS: coefficient sets
"""

from sushibot.heuristics.evaluator import (
    PRESETS,
    BlendedEvaluator,
    FeatureResult,
    FeatureWeights,
    StateEvaluator,
    get_preset,
    realized_score,
)

__all__ = [
    "PRESETS",
    "BlendedEvaluator",
    "FeatureResult",
    "FeatureWeights",
    "StateEvaluator",
    "get_preset",
    "realized_score",
]
