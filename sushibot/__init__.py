"""
sushibot: determinization-ensemble agent for Sushi Go!.

Subpackages:
- sushibot.game: card constants and observed-state containers
- sushibot.mcts: unseen-card tracking, determinization, ensemble voting
- sushibot.heuristics: state evaluators for the search
"""

__version__ = "0.1.0"
