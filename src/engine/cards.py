"""
Perudo Plus - Card Catalogue and Deck

Card definitions, deck composition per mode, and deck operations. Decks are
tuples; drawing returns the card and the remaining deck.
"""

import random
from dataclasses import dataclass
from typing import Iterable

from src.engine.base import Card, CardTiming, CardType
from src.engine.dice import new_id

@dataclass(frozen=True)
class CardDefinition:
    name: str
    description: str
    timing: CardTiming


CARD_DEFINITIONS: dict[CardType, CardDefinition] = {
    # Information
    CardType.PEEK: CardDefinition(
        "Peek", "Privately view one die (size and face) of another player.", CardTiming.ON_TURN
    ),
    CardType.GAUGE: CardDefinition(
        "Gauge", "View the sizes (not faces) of two dice from any players.", CardTiming.ON_TURN
    ),
    CardType.FALSE_TELL: CardDefinition(
        "False Tell", "Announce you peeked at a die, even if you didn't.", CardTiming.ANY
    ),
    # Bid manipulation
    CardType.INFLATION: CardDefinition(
        "Inflation", "Increase the current bid by +1 quantity.", CardTiming.REACTION
    ),
    CardType.WILD_SHIFT: CardDefinition(
        "Wild Shift", "Change the face value of the current bid, quantity unchanged.", CardTiming.REACTION
    ),
    CardType.PHANTOM_BID: CardDefinition(
        "Phantom Bid", "Make one bid ignoring the normal increment rules.", CardTiming.ON_TURN
    ),
    # Challenge interaction
    CardType.INSURANCE: CardDefinition(
        "Insurance", "If your challenge fails, you lose no dice this round.", CardTiming.ON_CHALLENGE
    ),
    CardType.DOUBLE_STAKES: CardDefinition(
        "Double Stakes", "The loser of your next challenge loses 2 dice.", CardTiming.ON_CHALLENGE
    ),
    CardType.LATE_CHALLENGE: CardDefinition(
        "Late Challenge", "Challenge a previous bid, not just the current one.", CardTiming.ON_TURN
    ),
    # Dice manipulation (rare)
    CardType.REROLL_ONE: CardDefinition(
        "Re-roll One", "Re-roll one of your own dice.", CardTiming.ON_TURN
    ),
    CardType.BLIND_SWAP: CardDefinition(
        "Blind Swap", "Swap one of your dice with a random die from another player.", CardTiming.ON_TURN
    ),
    CardType.POLISH: CardDefinition(
        "Polish", "Upgrade one of your dice (d4 to d6, d6 to d8, ...).", CardTiming.ON_TURN
    ),
    CardType.CRACK: CardDefinition(
        "Crack", "Downgrade one of an opponent's dice.", CardTiming.ON_TURN
    ),
}

TURN_BOUND_TIMINGS = frozenset({CardTiming.ON_TURN, CardTiming.ON_CHALLENGE})

CARD_FREQUENCY: dict[CardType, int] = {
    CardType.PEEK: 4,
    CardType.GAUGE: 3,
    CardType.FALSE_TELL: 2,
    CardType.INFLATION: 3,
    CardType.WILD_SHIFT: 2,
    CardType.PHANTOM_BID: 2,
    CardType.INSURANCE: 3,
    CardType.DOUBLE_STAKES: 2,
    CardType.LATE_CHALLENGE: 2,
    CardType.REROLL_ONE: 2,
    CardType.BLIND_SWAP: 1,
    CardType.POLISH: 1,
    CardType.CRACK: 1,
}

CHAOS_CARD_FREQUENCY: dict[CardType, int] = {
    **CARD_FREQUENCY,
    CardType.REROLL_ONE: 4,
    CardType.BLIND_SWAP: 3,
    CardType.POLISH: 2,
    CardType.CRACK: 2,
}


def card_definition(card_type: CardType) -> CardDefinition:
    return CARD_DEFINITIONS[card_type]


def create_card(card_type: CardType) -> Card:
    return Card(id=new_id(), type=card_type)


def shuffle_deck(deck: Iterable[Card], rng: random.Random | None = None) -> tuple[Card, ...]:
    """Return a shuffled copy of a deck."""
    rng = rng or random
    cards = list(deck)
    rng.shuffle(cards)
    return tuple(cards)


def create_deck(chaos: bool = False, rng: random.Random | None = None) -> tuple[Card, ...]:
    """Build and shuffle a full deck for the standard or chaos frequencies."""
    frequency = CHAOS_CARD_FREQUENCY if chaos else CARD_FREQUENCY
    cards = [create_card(card_type) for card_type, count in frequency.items() for _ in range(count)]
    return shuffle_deck(cards, rng)


def draw_card(deck: tuple[Card, ...]) -> tuple[Card | None, tuple[Card, ...]]:
    """Take the top card. Returns (None, ()) for an empty deck."""
    if not deck:
        return None, ()
    return deck[0], deck[1:]


def can_play_card(card: Card, on_turn: bool) -> bool:
    """Turn-bound cards need the holder to be on turn; reactions and any-time cards do not."""
    return on_turn or CARD_DEFINITIONS[card.type].timing not in TURN_BOUND_TIMINGS
