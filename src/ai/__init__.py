"""
Perudo Plus AI.

Probability engine, opponent models and the AI context. Strategies, the
search engine and the factory live in their own modules
(src.ai.strategies, src.ai.search, src.ai.factory).
"""

from src.ai.context import AIGameContext, build_context
from src.ai.opponent_model import OpponentModel, OpponentModelBook
from src.ai.probability import ProbabilityEngine
from src.ai.types import (
    AI_DIFFICULTY_DESCRIPTIONS,
    AI_DIFFICULTY_NAMES,
    AIActionType,
    AIDecision,
    AIDifficulty,
    KnownDie,
)

__all__ = [
    # Data Classes
    "AIDecision",
    "AIGameContext",
    "KnownDie",
    "OpponentModel",
    # Enums
    "AIActionType",
    "AIDifficulty",
    "AI_DIFFICULTY_NAMES",
    "AI_DIFFICULTY_DESCRIPTIONS",
    # Engines
    "OpponentModelBook",
    "ProbabilityEngine",
    # Context
    "build_context",
]
