"""
Perudo Plus Session.

Command intake and the AI turn loop for one game.
"""

from src.session.game_session import CommandResult, GameSession

__all__ = ["CommandResult", "GameSession"]
