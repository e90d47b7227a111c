"""
Perudo Plus AI Strategies.

The four difficulty tiers and the helpers they share.
"""

from src.ai.strategies.base import Strategy, heuristic_decision, minimal_raise
from src.ai.strategies.easy import EasyStrategy
from src.ai.strategies.hard import HardStrategy
from src.ai.strategies.normal import NormalStrategy
from src.ai.strategies.solver import SolverStrategy

__all__ = [
    # Contract
    "Strategy",
    "heuristic_decision",
    "minimal_raise",
    # Tiers
    "EasyStrategy",
    "NormalStrategy",
    "HardStrategy",
    "SolverStrategy",
]
