"""
Perudo Plus - AI Types

Difficulty tiers, decisions and the small value objects shared by the
strategies, the probability engine and the search worker.
"""

from dataclasses import dataclass
from enum import Enum

from src.engine.base import CardType, DieType
from src.engine.effects import CardTarget


class AIDifficulty(Enum):
    """Strategy tiers, weakest first."""
    EASY = "easy"      # stochastic
    NORMAL = "normal"  # d6 heuristics
    HARD = "hard"      # exact probabilities + opponent models
    SOLVER = "solver"  # information-set MCTS


AI_DIFFICULTY_NAMES: dict[AIDifficulty, str] = {
    AIDifficulty.EASY: "Easy (The Town Drunk)",
    AIDifficulty.NORMAL: "Normal (The Casual)",
    AIDifficulty.HARD: "Hard (The Mathematician)",
    AIDifficulty.SOLVER: "Solver (The Machine)",
}

AI_DIFFICULTY_DESCRIPTIONS: dict[AIDifficulty, str] = {
    AIDifficulty.EASY: "Makes random decisions with occasional hand-based bids. Uses cards randomly.",
    AIDifficulty.NORMAL: "Uses simple heuristics assuming all dice are d6. Reactive card usage.",
    AIDifficulty.HARD: "Calculates exact probabilities and tracks opponent bidding patterns.",
    AIDifficulty.SOLVER: "Runs a time-boxed Monte Carlo tree search over sampled hidden hands.",
}


class AIActionType(Enum):
    BID = "bid"
    CHALLENGE = "challenge"
    EXACT_CLAIM = "exact_claim"
    PLAY_CARD = "play_card"


@dataclass(frozen=True)
class BidProposal:
    quantity: int
    face_value: int


@dataclass(frozen=True)
class CardPlay:
    """A card the AI wants to play and how to aim it."""
    card_id: str
    card_type: CardType
    target: CardTarget = CardTarget()


@dataclass(frozen=True)
class AIDecision:
    """
    What a strategy wants to do.

    Attributes:
        action: Kind of action
        confidence: 0-1 estimate that the action works out
        bid: Proposed bid for BID
        card_play: Card and target for PLAY_CARD
        target_bid_index: Previous-bid index for a late challenge
        reasoning: Short explanation for logs
    """
    action: AIActionType
    confidence: float = 0.5
    bid: BidProposal | None = None
    card_play: CardPlay | None = None
    target_bid_index: int | None = None
    reasoning: str = ""

    def __post_init__(self) -> None:
        if self.action == AIActionType.BID and self.bid is None:
            raise ValueError("A bid decision needs a bid.")
        if self.action == AIActionType.PLAY_CARD and self.card_play is None:
            raise ValueError("A card decision needs a card play.")

    @classmethod
    def bid_on(cls, quantity: int, face_value: int, confidence: float, reasoning: str = "") -> "AIDecision":
        return cls(
            action=AIActionType.BID,
            bid=BidProposal(quantity, face_value),
            confidence=confidence,
            reasoning=reasoning,
        )

    @classmethod
    def challenge(cls, confidence: float, reasoning: str = "", target_bid_index: int | None = None) -> "AIDecision":
        return cls(
            action=AIActionType.CHALLENGE,
            confidence=confidence,
            target_bid_index=target_bid_index,
            reasoning=reasoning,
        )

    @classmethod
    def exact_claim(cls, confidence: float, reasoning: str = "") -> "AIDecision":
        return cls(action=AIActionType.EXACT_CLAIM, confidence=confidence, reasoning=reasoning)

    @classmethod
    def play(
        cls,
        card_id: str,
        card_type: CardType,
        confidence: float,
        reasoning: str = "",
        target: CardTarget | None = None,
    ) -> "AIDecision":
        return cls(
            action=AIActionType.PLAY_CARD,
            card_play=CardPlay(card_id, card_type, target or CardTarget()),
            confidence=confidence,
            reasoning=reasoning,
        )


@dataclass(frozen=True)
class AIPlayerInfo:
    """Public facts about a seat."""
    id: str
    name: str
    dice_count: int
    card_count: int
    is_eliminated: bool


@dataclass(frozen=True)
class KnownDie:
    """
    A die the AI has learned about through a card.

    Attributes:
        player_id: Owner
        die_id: Die identity
        die_type: Known size
        face_value: Known face, None when only the size was seen (gauge)
        round_number: Round the information was gathered in
        die_index: Position in the owner's hand when last checked
    """
    player_id: str
    die_id: str
    die_type: DieType
    face_value: int | None
    round_number: int
    die_index: int | None = None


@dataclass(frozen=True)
class ProbabilityResult:
    probability: float
    expected_count: float
    variance: float
