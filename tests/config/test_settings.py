"""
Perudo Plus - Settings Tests
"""

import logging

import pytest
from src.config import Settings, configure_logging, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.default_game_mode == "tactical"
        assert s.starting_dice == 5
        assert s.max_ai_actions_per_turn == 6
        assert s.search_time_budget_ms == 5000
        assert s.search_use_worker is True
        assert s.debug is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SEARCH_TIME_BUDGET_MS", "750")
        monkeypatch.setenv("DEFAULT_GAME_MODE", "chaos")
        monkeypatch.setenv("SEARCH_USE_WORKER", "false")
        s = Settings(_env_file=None)
        assert s.search_time_budget_ms == 750
        assert s.default_game_mode == "chaos"
        assert s.search_use_worker is False

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestConfigureLogging:
    def test_debug_wins(self):
        configure_logging(Settings(_env_file=None, debug=True, log_level="WARNING"))
        assert logging.getLogger("src").level == logging.DEBUG

    def test_log_level(self):
        configure_logging(Settings(_env_file=None, log_level="warning"))
        assert logging.getLogger("src").level == logging.WARNING

    def test_unknown_level_means_info(self):
        configure_logging(Settings(_env_file=None, log_level="chatty"))
        assert logging.getLogger("src").level == logging.INFO
