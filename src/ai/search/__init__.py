"""
Perudo Plus Search.

Information-set Monte Carlo tree search and its worker-process dispatcher.
"""

from src.ai.search.ismcts import (
    ActionStats,
    ISMCTSEngine,
    SearchOutcome,
    select_action,
    ucb1,
)
from src.ai.search.worker import SearchWorker, run_search_job

__all__ = [
    # Engine
    "ActionStats",
    "ISMCTSEngine",
    "SearchOutcome",
    "select_action",
    "ucb1",
    # Worker
    "SearchWorker",
    "run_search_job",
]
