"""
Perudo Plus - Application Settings

Loads configuration from environment variables (and an optional .env file)
using Pydantic Settings. Every field has a default, so no environment is
required to run a game.
"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # Game defaults
    default_game_mode: str = "tactical"
    max_players: int = 6
    starting_dice: int = 5
    max_hand_size: int = 3

    # AI thresholds
    bid_safe_threshold: float = 0.45
    challenge_success_threshold: float = 0.55
    exact_claim_threshold: float = 0.25

    # Opponent model
    opponent_bluff_alpha: float = 0.3
    opponent_aggression_alpha: float = 0.2
    opponent_history_limit: int = 50

    # Probability engine
    probability_cache_size: int = 10_000

    # Search
    search_time_budget_ms: int = 5000
    search_target_iterations: int = 100_000
    search_exploration: float = 0.7
    search_rollout_depth: int = 5
    search_worker_grace_ms: int = 1000
    search_fallback_time_ms: int = 2000
    search_fallback_iterations: int = 10_000
    search_use_worker: bool = True

    # Session
    max_ai_actions_per_turn: int = 6

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached singleton settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from settings; DEBUG wins when debug is on."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("src").setLevel(level)
