"""
Perudo Plus Events.

Event types emitted to subscribers after each applied command.
"""

from src.events.events import (
    EventPayload,
    GameEvent,
    classify_phase_change,
    classify_transition,
)

__all__ = [
    "EventPayload",
    "GameEvent",
    "classify_phase_change",
    "classify_transition",
]
