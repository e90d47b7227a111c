"""
Perudo Plus - AI Factory

Builds strategies from a difficulty tier, names AI seats, and wraps a
strategy with the per-seat knowledge it accumulates during a round.
"""

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Iterable

from src.ai.context import build_context
from src.ai.opponent_model import OpponentModel
from src.ai.probability import ProbabilityEngine
from src.ai.search.worker import SearchWorker
from src.ai.strategies import EasyStrategy, HardStrategy, NormalStrategy, SolverStrategy, Strategy
from src.ai.types import AIDecision, AIDifficulty, AI_DIFFICULTY_NAMES, KnownDie
from src.config import Settings, get_settings
from src.engine.base import GameState
from src.engine.dice import new_id

logger = logging.getLogger(__name__)

AI_NAME_SUFFIX = " [AI]"

AI_NAMES: dict[AIDifficulty, tuple[str, ...]] = {
    AIDifficulty.EASY: ("Tipsy Tim", "Wobbly Walter", "Dizzy Dave", "Stumbling Steve", "Groggy Greg"),
    AIDifficulty.NORMAL: ("Casual Carl", "Regular Rick", "Average Andy", "Standard Stan", "Typical Tom"),
    AIDifficulty.HARD: ("Professor Pi", "Dr. Probability", "Stats Master", "The Calculator", "Odds Oracle"),
    AIDifficulty.SOLVER: ("The Terminator", "Deep Blue", "AlphaPerudo", "The Machine", "Chuck Norris"),
}

_DIFFICULTY_ALIASES: dict[str, AIDifficulty] = {
    "easy": AIDifficulty.EASY,
    "normal": AIDifficulty.NORMAL,
    "hard": AIDifficulty.HARD,
    "solver": AIDifficulty.SOLVER,
    "chuck_norris": AIDifficulty.SOLVER,
    "chucknorris": AIDifficulty.SOLVER,
    "chuck": AIDifficulty.SOLVER,
}


def parse_difficulty(value: str | None) -> AIDifficulty:
    """Difficulty from user input; unknown values mean normal."""
    if not value:
        return AIDifficulty.NORMAL
    return _DIFFICULTY_ALIASES.get(value.strip().lower(), AIDifficulty.NORMAL)


def available_difficulties() -> list[tuple[AIDifficulty, str]]:
    return [(d, AI_DIFFICULTY_NAMES[d]) for d in AIDifficulty]


def generate_ai_name(difficulty: AIDifficulty, index: int = 0) -> str:
    """Tier-flavoured seat name, e.g. "Tipsy Tim [AI]"."""
    names = AI_NAMES[difficulty]
    return names[index % len(names)] + AI_NAME_SUFFIX


def create_strategy(
    difficulty: AIDifficulty,
    settings: Settings | None = None,
    probability: ProbabilityEngine | None = None,
    worker: SearchWorker | None = None,
    rng: random.Random | None = None,
) -> Strategy:
    """
    Build the strategy for a tier.

    Args:
        difficulty: Tier to build
        settings: Thresholds and search limits (application settings by default)
        probability: Engine for the Hard and Solver tiers; one is created if omitted
        worker: Search dispatcher for the Solver tier; None searches in-process
        rng: Random source
    """
    settings = settings or get_settings()

    if difficulty == AIDifficulty.EASY:
        return EasyStrategy(rng=rng)

    if difficulty == AIDifficulty.NORMAL:
        return NormalStrategy(rng=rng)

    probability = probability or ProbabilityEngine(settings.probability_cache_size)
    hard = HardStrategy(
        probability=probability,
        bid_safe_threshold=settings.bid_safe_threshold,
        challenge_success_threshold=settings.challenge_success_threshold,
        exact_claim_threshold=settings.exact_claim_threshold,
        rng=rng,
    )
    if difficulty == AIDifficulty.HARD:
        return hard

    return SolverStrategy(
        worker=worker,
        time_budget_ms=settings.search_time_budget_ms,
        target_iterations=settings.search_target_iterations,
        fallback_time_ms=settings.search_fallback_time_ms,
        fallback_iterations=settings.search_fallback_iterations,
        exploration=settings.search_exploration,
        rollout_depth=settings.search_rollout_depth,
        fallback=hard,
        rng=rng,
    )


@dataclass
class AIPlayer:
    """
    An AI seat: identity, tier and what it has learned this round.

    Opponent models are owned by the session and passed in per decision.
    """
    name: str
    difficulty: AIDifficulty
    strategy: Strategy
    id: str = field(default_factory=new_id)
    known_dice: list[KnownDie] = field(default_factory=list)

    @property
    def strategy_name(self) -> str:
        return self.strategy.name

    def decide(
        self,
        state: GameState,
        opponent_models: dict[str, OpponentModel] | None = None,
    ) -> AIDecision:
        context = build_context(state, self.id, opponent_models, self.known_dice)
        decision = self.strategy.decide(context)
        logger.debug(
            "%s (%s) decided %s: %s",
            self.name, self.strategy.name, decision.action.value, decision.reasoning,
        )
        return decision

    def learn(self, dice: Iterable[KnownDie]) -> None:
        """Remember dice revealed to this seat; repeated dice replace older entries."""
        for info in dice:
            self.known_dice = [k for k in self.known_dice if k.die_id != info.die_id]
            self.known_dice.append(info)

    def revalidate(self, state: GameState) -> None:
        """
        Drop knowledge the table has since invalidated.

        A die that changed hands, changed size or shows a different face is
        forgotten. Surviving entries get their current position.
        """
        owners = {p.id: p for p in state.players}
        kept = []
        for info in self.known_dice:
            owner = owners.get(info.player_id)
            if owner is None:
                continue
            index = next((i for i, d in enumerate(owner.dice) if d.id == info.die_id), None)
            if index is None:
                continue
            die = owner.dice[index]
            if die.type != info.die_type:
                continue
            if info.face_value is not None and die.face_value != info.face_value:
                continue
            kept.append(replace(info, die_index=index))
        if len(kept) < len(self.known_dice):
            logger.debug("%s forgot %d stale dice", self.name, len(self.known_dice) - len(kept))
        self.known_dice = kept

    def forget(self) -> None:
        self.known_dice.clear()


def create_ai_player(
    difficulty: AIDifficulty,
    name: str | None = None,
    index: int = 0,
    **strategy_options,
) -> AIPlayer:
    """AI seat with a generated name unless one is given."""
    return AIPlayer(
        name=name or generate_ai_name(difficulty, index),
        difficulty=difficulty,
        strategy=create_strategy(difficulty, **strategy_options),
    )
