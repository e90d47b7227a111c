"""
Perudo Plus Game Engine.

Pure Python game logic with zero transport/UI dependencies.
Handles dice, cards, bid legality, challenges, elimination and rounds.
"""

from src.engine.base import (
    ActiveEffects,
    Bid,
    Card,
    CardTiming,
    CardType,
    ChallengeResult,
    Die,
    DieType,
    ExactClaimResult,
    GameMode,
    GamePhase,
    GameSettings,
    GameState,
    Player,
    RevealedHand,
)
from src.engine.effects import CardEffects, CardPlayResult, CardTarget, DieRef
from src.engine.errors import (
    CardPlayError,
    GameRuleError,
    GameSetupError,
    InvalidBidError,
    InvalidPhaseError,
    InvariantViolation,
    NoBidToChallengeError,
    NotYourTurnError,
    PlayerNotFoundError,
)
from src.engine.rules import RulesEngine

__all__ = [
    # Data Classes
    "ActiveEffects",
    "Bid",
    "Card",
    "CardPlayResult",
    "CardTarget",
    "ChallengeResult",
    "Die",
    "DieRef",
    "ExactClaimResult",
    "GameSettings",
    "GameState",
    "Player",
    "RevealedHand",
    # Enums
    "CardTiming",
    "CardType",
    "DieType",
    "GameMode",
    "GamePhase",
    # Errors
    "CardPlayError",
    "GameRuleError",
    "GameSetupError",
    "InvalidBidError",
    "InvalidPhaseError",
    "InvariantViolation",
    "NoBidToChallengeError",
    "NotYourTurnError",
    "PlayerNotFoundError",
    # Engines
    "CardEffects",
    "RulesEngine",
]
