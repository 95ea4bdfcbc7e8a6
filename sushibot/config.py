"""
Agent Configuration System

Centralized configuration for the determinization agent.
"""

import json
import logging
import math
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional

from sushibot.game.constants import CardType, card_type_from_name
from sushibot.heuristics.evaluator import PRESETS
from sushibot.mcts.ensemble import clamp_determinizations

logger = logging.getLogger(__name__)


@dataclass
class AgentConfig:
    """Configuration for the determinization agent."""

    # Determinization settings
    num_determinizations: int = 5  # Clamped to [1, 20]
    bias_weights: Dict[str, float] = field(default_factory=dict)  # Card type name -> weight (1.0 = no bias)
    seed: Optional[int] = None

    # Heuristic settings
    heuristic_preset: str = "balanced"
    secondary_preset: Optional[str] = None  # When set, blend with the primary preset
    blend_alpha: float = 1.0  # Weight of the primary preset in the blend

    # Parallel search
    use_parallel: bool = False
    max_workers: Optional[int] = None

    # Search parameters forwarded to the oracle factory
    exploration_constant: float = math.sqrt(2)  # UCB constant
    rollout_length: int = 12  # A round is at most 10 picks
    max_tree_depth: int = 10
    epsilon: float = 1e-6  # Tie-breaking noise

    def get_bias_weights(self) -> Dict[CardType, float]:
        """
        Return bias weights keyed by CardType.

        Raises:
            ValueError: If a key names no card type
        """
        return {
            card_type_from_name(name): float(weight)
            for name, weight in self.bias_weights.items()
        }

    def search_params(self) -> Dict[str, Any]:
        """Parameters the oracle factory receives."""
        return {
            'exploration_constant': self.exploration_constant,
            'rollout_length': self.rollout_length,
            'max_tree_depth': self.max_tree_depth,
            'epsilon': self.epsilon,
        }

    def clamped(self) -> 'AgentConfig':
        """
        Return a copy with out-of-range numbers clamped.

        Determinization count goes to [1, 20], blend alpha to [0, 1] and
        non-positive or non-finite bias weights to 1.0. Each adjustment is logged.
        """
        num = clamp_determinizations(self.num_determinizations)
        if num != self.num_determinizations:
            logger.warning(
                f"num_determinizations {self.num_determinizations} out of range, "
                f"clamping to {num}"
            )

        alpha = min(1.0, max(0.0, self.blend_alpha))
        if alpha != self.blend_alpha:
            logger.warning(f"blend_alpha {self.blend_alpha} out of range, clamping to {alpha}")

        weights = {}
        for name, weight in self.bias_weights.items():
            if not (math.isfinite(weight) and weight > 0):
                logger.warning(f"bias weight {weight} for {name} must be a positive finite number, using 1.0")
                weight = 1.0
            weights[name] = weight

        return replace(
            self,
            num_determinizations=num,
            blend_alpha=alpha,
            bias_weights=weights,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Dictionary representation of config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AgentConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            AgentConfig instance
        """
        # Filter out keys that aren't valid config fields
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, filepath: str) -> 'AgentConfig':
        """
        Load config from JSON file.

        Args:
            filepath: Path to JSON config file

        Returns:
            AgentConfig instance
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def save(self, filepath: str):
        """
        Save config to JSON file.

        Args:
            filepath: Path to save config to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Numbers that can be clamped are not rejected here (see clamped()).

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if self.heuristic_preset not in PRESETS:
            raise ValueError(
                f"heuristic_preset must be one of {sorted(PRESETS)}, "
                f"got {self.heuristic_preset!r}"
            )

        if self.secondary_preset is not None and self.secondary_preset not in PRESETS:
            raise ValueError(
                f"secondary_preset must be one of {sorted(PRESETS)}, "
                f"got {self.secondary_preset!r}"
            )

        # Raises ValueError on unknown card names
        self.get_bias_weights()

        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

        if self.rollout_length <= 0:
            raise ValueError(f"rollout_length must be positive, got {self.rollout_length}")

        if self.max_tree_depth <= 0:
            raise ValueError(f"max_tree_depth must be positive, got {self.max_tree_depth}")

        return True

    def __str__(self) -> str:
        """String representation of config."""
        lines = ["Agent Configuration:"]
        lines.append(f"  Determinization: {self.num_determinizations} worlds, seed={self.seed}")
        lines.append(f"  Bias: {self.bias_weights or 'none'}")
        heuristic = self.heuristic_preset
        if self.secondary_preset is not None:
            heuristic += f" x{self.blend_alpha} + {self.secondary_preset}"
        lines.append(f"  Heuristic: {heuristic}")
        lines.append(f"  Parallel: {self.use_parallel}, workers={self.max_workers}")
        lines.append(
            f"  Search: c={self.exploration_constant:.3f}, rollout={self.rollout_length}, "
            f"depth={self.max_tree_depth}"
        )
        return "\n".join(lines)


def get_fast_config() -> AgentConfig:
    """
    Get a fast config for testing/debugging.

    Returns:
        AgentConfig with few worlds and the cheapest heuristic
    """
    return AgentConfig(
        num_determinizations=3,
        heuristic_preset="score-only",
        rollout_length=6,
        max_tree_depth=5,
    )


def get_strong_config() -> AgentConfig:
    """
    Get a stronger, slower config.

    Returns:
        AgentConfig with more worlds and the strategic heuristic
    """
    return AgentConfig(
        num_determinizations=10,
        heuristic_preset="strategic",
    )
