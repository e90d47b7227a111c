"""
Perudo Plus - Game Event Definitions

Event types and payloads for game state changes, and the classification of
a state transition into the events it implies.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from src.engine.base import ChallengeResult, ExactClaimResult, GamePhase, GameState


class GameEvent(Enum):
    """Events that can occur during a game."""

    GAME_STARTED = auto()
    DICE_ROLLED = auto()
    BID_PLACED = auto()
    CHALLENGE_RESOLVED = auto()
    EXACT_CLAIM_RESOLVED = auto()
    CARD_PLAYED = auto()
    CARD_DRAWN = auto()
    PLAYER_ELIMINATED = auto()
    ROUND_STARTED = auto()
    GAME_WON = auto()
    GAME_PAUSED = auto()
    GAME_RESUMED = auto()
    GAME_RESET = auto()
    COMMAND_REJECTED = auto()
    STATE_UPDATED = auto()


@dataclass
class EventPayload:
    """Wrapper for event data sent to subscribers."""

    event: GameEvent
    game_id: str
    player_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


# Phase changes that map directly to an event
_PHASE_EVENT_MAP: dict[tuple[GamePhase, GamePhase], GameEvent] = {
    (GamePhase.LOBBY, GamePhase.ROLLING): GameEvent.GAME_STARTED,
    (GamePhase.ROLLING, GamePhase.BIDDING): GameEvent.DICE_ROLLED,
    (GamePhase.ROUND_END, GamePhase.ROLLING): GameEvent.ROUND_STARTED,
}


def classify_phase_change(old_phase: GamePhase, new_phase: GamePhase) -> GameEvent | None:
    """Determine the event implied by a phase change alone."""
    if old_phase == new_phase:
        return None
    if new_phase == GamePhase.PAUSED:
        return GameEvent.GAME_PAUSED
    if old_phase == GamePhase.PAUSED:
        return GameEvent.GAME_RESUMED
    if new_phase == GamePhase.LOBBY:
        return GameEvent.GAME_RESET
    return _PHASE_EVENT_MAP.get((old_phase, new_phase))


def classify_transition(old: GameState, new: GameState) -> list[GameEvent]:
    """
    Derive the events implied by a state change, in the order they happened.

    Returns:
        Events for the transition; [STATE_UPDATED] if nothing specific changed
    """
    events: list[GameEvent] = []

    phase_event = classify_phase_change(old.phase, new.phase)
    if phase_event:
        events.append(phase_event)

    if new.current_bid is not None and (
        old.current_bid is None or len(new.previous_bids) > len(old.previous_bids)
    ):
        events.append(GameEvent.BID_PLACED)

    if new.last_result is not None and new.last_result is not old.last_result:
        if isinstance(new.last_result, ChallengeResult):
            events.append(GameEvent.CHALLENGE_RESOLVED)
        elif isinstance(new.last_result, ExactClaimResult):
            events.append(GameEvent.EXACT_CLAIM_RESOLVED)

    old_players = {p.id: p for p in old.players}
    for player in new.players:
        before = old_players.get(player.id)
        if before is None:
            continue
        if player.is_eliminated and not before.is_eliminated:
            events.append(GameEvent.PLAYER_ELIMINATED)
        if len(player.cards) > len(before.cards):
            events.append(GameEvent.CARD_DRAWN)

    if new.winner_id is not None and new.winner_id != old.winner_id:
        events.append(GameEvent.GAME_WON)

    return events or [GameEvent.STATE_UPDATED]
