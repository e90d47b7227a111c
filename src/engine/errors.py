"""
Perudo Plus - Engine Errors

Rule violations subclass ValueError, like every other validation failure in
the engine, and carry a stable code for the session layer to report back to
the acting player. Programming errors and compute failures are kept apart
from them so they can never be mistaken for a bad move.
"""


class GameRuleError(ValueError):
    """A command broke the rules. State is unchanged."""

    code = "RULE_VIOLATION"


class NotYourTurnError(GameRuleError):
    code = "NOT_YOUR_TURN"


class InvalidBidError(GameRuleError):
    code = "INVALID_BID"


class InvalidPhaseError(GameRuleError):
    code = "INVALID_PHASE"


class NoBidToChallengeError(GameRuleError):
    code = "NO_BID"


class CardPlayError(GameRuleError):
    code = "CARD_ERROR"


class GameSetupError(GameRuleError):
    code = "SETUP_ERROR"


class PlayerNotFoundError(GameRuleError):
    code = "PLAYER_NOT_FOUND"


class InvariantViolation(RuntimeError):
    """Internal inconsistency with no safe default. Indicates a bug."""


class SearchError(RuntimeError):
    """The search worker could not produce a decision."""


class SearchTimeoutError(SearchError):
    """The worker did not answer within its hard timeout."""


class SearchUnavailableError(SearchError):
    """The worker pool could not be started or has died."""
