"""
Determinization agent for Sushi Go!.

Wires the configuration, the heuristic evaluator, the caller's search and
the decision ensemble into one player object the game loop can query each
turn.

The search is supplied as an oracle factory: a callable that receives the
evaluator's value function and the search parameters from the config and
returns an object with search(world, legal_actions) -> action.

Example:
    >>> def make_oracle(value_fn, params):
    ...     return MyMCTS(value_fn, **params)
    >>> agent = DeterminizationAgent(make_oracle, AgentConfig(seed=3))
    >>> action = agent.get_action(observed_state, legal_actions)
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence

from sushibot.config import AgentConfig
from sushibot.game.state import ObservedState
from sushibot.heuristics.evaluator import (
    BlendedEvaluator,
    StateEvaluator,
    ValueFunction,
)
from sushibot.mcts.ensemble import DecisionEnsemble, SearchOracle

logger = logging.getLogger(__name__)

OracleFactory = Callable[[ValueFunction, Dict[str, Any]], SearchOracle]


class DeterminizationAgent:
    """
    Player that decides by voting over searches on sampled worlds.

    Attributes:
        config: Clamped, validated AgentConfig
        evaluator: Primary StateEvaluator (presets switch here)
        value_function: Evaluator handed to the oracle (blended when configured)
        oracle: Search Oracle built by the factory
        ensemble: DecisionEnsemble running the vote
    """

    def __init__(self, oracle_factory: OracleFactory, config: Optional[AgentConfig] = None):
        """
        Initialize agent.

        Args:
            oracle_factory: Builds the Search Oracle from (value_function, search_params)
            config: Agent configuration (defaults to AgentConfig())

        Raises:
            ValueError: If the config names an unknown preset or card type
        """
        config = (config or AgentConfig()).clamped()
        config.validate()
        self.config = config
        self.oracle_factory = oracle_factory

        self.evaluator = StateEvaluator(config.heuristic_preset)
        if config.secondary_preset is not None:
            self.value_function = BlendedEvaluator(
                self.evaluator,
                StateEvaluator(config.secondary_preset),
                alpha=config.blend_alpha,
            )
        else:
            self.value_function = self.evaluator

        self.oracle = oracle_factory(
            self.value_function.as_value_function(), config.search_params()
        )
        self.ensemble = DecisionEnsemble(
            self.oracle,
            num_determinizations=config.num_determinizations,
            bias_weights=config.get_bias_weights(),
            seed=config.seed,
            use_parallel=config.use_parallel,
            max_workers=config.max_workers,
        )
        logger.debug(f"Created {self} with\n{config}")

    def get_action(self, state: ObservedState, legal_actions: Sequence[Any]) -> Any:
        """
        Choose an action for the player to move.

        Args:
            state: Observed game state
            legal_actions: Actions the rules engine allows

        Returns:
            Chosen member of legal_actions

        Raises:
            InvalidInputError: If legal_actions is empty
        """
        return self.ensemble.decide(state, legal_actions)

    @property
    def num_determinizations(self) -> int:
        return self.ensemble.num_determinizations

    def set_num_determinizations(self, num: int) -> None:
        """Set worlds per decision (clamped to [1, 20])."""
        self.ensemble.num_determinizations = num
        self.config.num_determinizations = self.ensemble.num_determinizations

    def set_preset(self, name: str) -> None:
        """Switch the primary heuristic preset without rebuilding the agent."""
        self.evaluator.set_preset(name)
        self.config.heuristic_preset = name

    def copy(self) -> "DeterminizationAgent":
        """Fresh agent with the same configuration and oracle factory."""
        return DeterminizationAgent(self.oracle_factory, AgentConfig.from_dict(self.config.to_dict()))

    def __str__(self) -> str:
        return "DeterminizationAgent"
