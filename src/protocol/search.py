"""
Perudo Plus - Search Worker Protocol

Request and response exchanged with the search worker process. Both are
serialized with model_dump(mode="json") so they cross the process boundary
as plain dicts.
"""

from pydantic import BaseModel, Field

from src.ai.context import AIGameContext
from src.ai.types import AIDecision


class SearchRequest(BaseModel):
    """Game and belief snapshot plus the search limits."""

    context: AIGameContext
    time_budget_ms: int = Field(default=5000, gt=0)
    target_iterations: int = Field(default=100_000, gt=0)
    exploration: float = Field(default=0.7, ge=0)
    rollout_depth: int = Field(default=5, ge=0)


class SearchResponse(BaseModel):
    """The chosen action and how much search backed it."""

    decision: AIDecision
    iterations_completed: int = Field(default=0, ge=0)
    time_spent_ms: int = Field(default=0, ge=0)
