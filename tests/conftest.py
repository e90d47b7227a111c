"""
Perudo Plus - Test Configuration and Fixtures

Common fixtures and table builders for all test modules.
"""

import random
from typing import Callable

import pytest

from src.config import Settings
from src.engine.base import (
    Bid,
    Card,
    CardType,
    Die,
    DieType,
    GameMode,
    GamePhase,
    GameSettings,
    GameState,
    Player,
)


# =============================================================================
# RANDOMNESS
# =============================================================================

@pytest.fixture
def rng() -> random.Random:
    """Seeded random source so dice and AI choices are reproducible."""
    return random.Random(1234)


# =============================================================================
# DICE AND CARDS
# =============================================================================

def make_dice(*faces: int, die_type: DieType = DieType.D6, prefix: str = "d") -> tuple[Die, ...]:
    """Dice with the given faces and predictable ids (d0, d1, ...)."""
    return tuple(Die(id=f"{prefix}{i}", type=die_type, face_value=f) for i, f in enumerate(faces))


def make_card(card_type: CardType, card_id: str | None = None) -> Card:
    return Card(id=card_id or f"card-{card_type.value}", type=card_type)


@pytest.fixture
def dice() -> Callable[..., tuple[Die, ...]]:
    return make_dice


@pytest.fixture
def card() -> Callable[..., Card]:
    return make_card


# =============================================================================
# GAME STATE FIXTURES
# =============================================================================

def make_state(
    hands: dict[str, tuple[Die, ...]],
    mode: GameMode = GameMode.CLASSIC,
    phase: GamePhase = GamePhase.BIDDING,
    current_bid: Bid | None = None,
    previous_bids: tuple[Bid, ...] = (),
    turn_index: int = 0,
    cards: dict[str, tuple[Card, ...]] | None = None,
    deck: tuple[Card, ...] = (),
) -> GameState:
    """
    A game mid-round with fixed hands.

    Args:
        hands: Player id -> dice, in seating order; names are the ids capitalised
        mode: Game mode
        phase: Phase to start in
        current_bid: Standing bid
        previous_bids: Superseded bids this round
        turn_index: Index of the player to act
        cards: Player id -> cards held
        deck: Undrawn cards
    """
    cards = cards or {}
    players = tuple(
        Player(id=pid, name=pid.capitalize(), dice=dice, cards=cards.get(pid, ()))
        for pid, dice in hands.items()
    )
    return GameState(
        id="game-1",
        settings=GameSettings(mode=mode),
        phase=phase,
        players=players,
        current_turn_index=turn_index,
        current_bid=current_bid,
        previous_bids=previous_bids,
        round_number=1,
        deck=deck,
    )


@pytest.fixture
def table() -> Callable[..., GameState]:
    return make_state


@pytest.fixture
def two_player_state() -> GameState:
    """
    Two players with two d6 each, bidding open, p1 to act.

    The table holds one 4 and one wild 1, so a bid of 2x4 is exactly right.
    """
    return make_state({
        "p1": make_dice(4, 2, prefix="a"),
        "p2": make_dice(1, 3, prefix="b"),
    })


@pytest.fixture
def three_player_state() -> GameState:
    """Three players in tactical mode with mixed dice, p1 to act."""
    return make_state(
        {
            "p1": make_dice(2, 2, 5, prefix="a"),
            "p2": (
                Die("b0", DieType.D6, 3),
                Die("b1", DieType.D8, 1),
                Die("b2", DieType.D4, 4),
            ),
            "p3": (
                Die("c0", DieType.D3, 2),
                Die("c1", DieType.D10, 6),
            ),
        },
        mode=GameMode.TACTICAL,
    )


# =============================================================================
# SETTINGS
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings with in-process search and short budgets."""
    return Settings(
        _env_file=None,
        search_use_worker=False,
        search_time_budget_ms=200,
        search_target_iterations=500,
        search_fallback_time_ms=200,
        search_fallback_iterations=300,
    )
