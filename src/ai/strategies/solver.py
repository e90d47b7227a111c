"""
Perudo Plus - Solver Strategy ("The Machine")

Delegates to information-set Monte Carlo tree search. Degrades step by step
when the search cannot finish:

1. full search in the worker process
2. reduced synchronous search with a tighter time cap
3. exact-probability reasoning (the Hard tier)
4. the no-computation heuristic
"""

import logging
import random

from src.ai.context import AIGameContext
from src.ai.probability import ProbabilityEngine
from src.ai.search.ismcts import ISMCTSEngine
from src.ai.search.worker import SearchWorker
from src.ai.strategies.base import armed_challenge, heuristic_decision
from src.ai.strategies.hard import HardStrategy
from src.ai.types import AIDecision, AIDifficulty
from src.engine.errors import SearchError
from src.protocol.search import SearchRequest

logger = logging.getLogger(__name__)


class SolverStrategy:
    """
    Search-based tier.

    Args:
        worker: Search process dispatcher; None searches in-process only
        probability: Engine shared with the Hard fallback
        time_budget_ms: Budget for the worker search
        target_iterations: Iteration target for the worker search
        fallback_time_ms: Budget for the synchronous search
        fallback_iterations: Iteration target for the synchronous search
        exploration: UCB1 exploration constant
        rollout_depth: Plies simulated after a bid
        fallback: Strategy used when no search completes
        rng: Random source for the synchronous search
    """

    difficulty = AIDifficulty.SOLVER
    name = "The Machine"

    def __init__(
        self,
        worker: SearchWorker | None = None,
        probability: ProbabilityEngine | None = None,
        time_budget_ms: int = 5000,
        target_iterations: int = 100_000,
        fallback_time_ms: int = 2000,
        fallback_iterations: int = 10_000,
        exploration: float = 0.7,
        rollout_depth: int = 5,
        fallback: HardStrategy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.worker = worker
        self.time_budget_ms = time_budget_ms
        self.target_iterations = target_iterations
        self.fallback_time_ms = fallback_time_ms
        self.fallback_iterations = fallback_iterations
        self.exploration = exploration
        self.rollout_depth = rollout_depth
        self.fallback = fallback or HardStrategy(probability=probability, rng=rng)
        self._rng = rng or random.Random()

    def decide(self, context: AIGameContext) -> AIDecision:
        armed = armed_challenge(context)
        if armed:
            return armed

        if self.worker is not None:
            try:
                return self._worker_search(context)
            except SearchError:
                logger.exception("Worker search failed for %s, running a reduced search", context.own_player_id)

        try:
            return self._sync_search(context)
        except Exception:
            logger.exception("Reduced search failed for %s, using exact probabilities", context.own_player_id)

        try:
            return self.fallback.decide(context)
        except Exception:
            logger.exception("Probability fallback failed for %s, using heuristic", context.own_player_id)

        return heuristic_decision(context)

    def _worker_search(self, context: AIGameContext) -> AIDecision:
        request = SearchRequest(
            context=context,
            time_budget_ms=self.time_budget_ms,
            target_iterations=self.target_iterations,
            exploration=self.exploration,
            rollout_depth=self.rollout_depth,
        )
        response = self.worker.search(request)
        logger.info(
            "Solver search: %d iterations in %dms",
            response.iterations_completed, response.time_spent_ms,
        )
        return response.decision

    def _sync_search(self, context: AIGameContext) -> AIDecision:
        engine = ISMCTSEngine(
            context,
            time_budget_ms=self.fallback_time_ms,
            target_iterations=self.fallback_iterations,
            exploration=self.exploration,
            rollout_depth=self.rollout_depth,
            rng=self._rng,
        )
        outcome = engine.run()
        logger.info("Reduced search: %d iterations in %dms", outcome.iterations, outcome.time_spent_ms)
        return outcome.decision
