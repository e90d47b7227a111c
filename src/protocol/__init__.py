"""
Perudo Plus Protocol.

Boundary contracts: state projections, command intake and the search
worker request/response.
"""

from src.protocol.commands import (
    CallChallengeCommand,
    CallExactClaimCommand,
    Command,
    NextRoundCommand,
    PauseCommand,
    PlaceBidCommand,
    PlayCardCommand,
    ResetCommand,
    ResumeCommand,
    RollForRoundCommand,
    StartCommand,
    parse_command,
)
from src.protocol.models import PrivatePlayerView, PublicGameState, PublicPlayerInfo
from src.protocol.search import SearchRequest, SearchResponse

__all__ = [
    # Commands
    "Command",
    "StartCommand",
    "RollForRoundCommand",
    "PlaceBidCommand",
    "CallChallengeCommand",
    "CallExactClaimCommand",
    "PlayCardCommand",
    "NextRoundCommand",
    "PauseCommand",
    "ResumeCommand",
    "ResetCommand",
    "parse_command",
    # Projections
    "PublicPlayerInfo",
    "PublicGameState",
    "PrivatePlayerView",
    # Search worker
    "SearchRequest",
    "SearchResponse",
]
