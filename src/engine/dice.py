"""
Perudo Plus - Dice Model

Die variants, their mapping onto the 1..6 face domain, and the dice
operations used by the rules engine and by card effects.

Small dice repeat nothing; large dice repeat low faces, which biases them
toward the wild face (1).
"""

import random
import uuid
from typing import Iterable, Sequence

from src.engine.base import Die, DieType, GameMode

DICE_FACES: dict[DieType, tuple[int, ...]] = {
    DieType.D3: (1, 2, 3),
    DieType.D4: (1, 2, 3, 4),
    DieType.D6: (1, 2, 3, 4, 5, 6),
    DieType.D8: (1, 2, 3, 4, 5, 6, 1, 2),
    DieType.D10: (1, 2, 3, 4, 5, 6, 1, 2, 3, 4),
}

# Upgrade/downgrade order
DICE_ORDER: tuple[DieType, ...] = (
    DieType.D3,
    DieType.D4,
    DieType.D6,
    DieType.D8,
    DieType.D10,
)

BASE_DIE_TYPE = DieType.D6
WILD_FACE = 1


def new_id() -> str:
    return str(uuid.uuid4())


def roll_face(die_type: DieType, rng: random.Random | None = None) -> int:
    """Roll a die of the given type and return its face in the 1..6 domain."""
    rng = rng or random
    return rng.choice(DICE_FACES[die_type])


def create_die(die_type: DieType, rng: random.Random | None = None) -> Die:
    """Create a freshly rolled die."""
    return Die(id=new_id(), type=die_type, face_value=roll_face(die_type, rng))


def reroll_die(die: Die, rng: random.Random | None = None) -> Die:
    """Roll an existing die again, keeping its identity and type."""
    return Die(id=die.id, type=die.type, face_value=roll_face(die.type, rng))


def upgrade_die(die: Die) -> Die | None:
    """Move a die one step up DICE_ORDER. None if it is already the largest."""
    index = DICE_ORDER.index(die.type)
    if index >= len(DICE_ORDER) - 1:
        return None
    return Die(id=die.id, type=DICE_ORDER[index + 1], face_value=die.face_value)


def downgrade_die(die: Die) -> Die | None:
    """Move a die one step down DICE_ORDER. None if it is already the smallest."""
    index = DICE_ORDER.index(die.type)
    if index <= 0:
        return None
    return Die(id=die.id, type=DICE_ORDER[index - 1], face_value=die.face_value)


def random_die_type(
    exclude: Iterable[DieType] = (BASE_DIE_TYPE,),
    rng: random.Random | None = None,
) -> DieType:
    """Pick a random die type outside the excluded set."""
    rng = rng or random
    excluded = set(exclude)
    available = [t for t in DICE_ORDER if t not in excluded]
    return rng.choice(available)


def create_starting_dice(
    mode: GameMode,
    count: int = 5,
    rng: random.Random | None = None,
) -> tuple[Die, ...]:
    """
    Deal a starting loadout.

    Classic mode deals all d6. The card modes deal d6 for all but the last
    two dice, which are random non-d6 types.

    Args:
        mode: Game mode
        count: Number of dice per player
        rng: Random source (module random if omitted)

    Returns:
        Tuple of rolled dice
    """
    if mode == GameMode.CLASSIC or count <= 2:
        types = [BASE_DIE_TYPE] * count
    else:
        types = [BASE_DIE_TYPE] * (count - 2)
        types += [random_die_type(rng=rng), random_die_type(rng=rng)]
    return tuple(create_die(t, rng) for t in types)


def roll_all(dice: Sequence[Die], rng: random.Random | None = None) -> tuple[Die, ...]:
    """Re-roll every die in a hand."""
    return tuple(reroll_die(d, rng) for d in dice)


def matches_face(die_face: int, target_face: int, include_wilds: bool = True) -> bool:
    """Whether a die face counts toward a bid on target_face."""
    if die_face == target_face:
        return True
    return include_wilds and target_face != WILD_FACE and die_face == WILD_FACE


def count_matching(
    dice: Iterable[Die],
    target_face: int,
    include_wilds: bool = True,
) -> int:
    """Count dice showing target_face, with wild 1s unless bidding on 1s."""
    return sum(1 for d in dice if matches_face(d.face_value, target_face, include_wilds))


def count_table(
    hands: Iterable[Iterable[Die]],
    target_face: int,
    include_wilds: bool = True,
) -> int:
    """Count matching dice across several hands."""
    return sum(count_matching(hand, target_face, include_wilds) for hand in hands)


def face_probability(die_type: DieType, face_value: int) -> float:
    """Probability that a die of this type shows face_value."""
    faces = DICE_FACES[die_type]
    return faces.count(face_value) / len(faces)


def effective_probability(die_type: DieType, face_value: int) -> float:
    """Probability that a die of this type counts toward a bid on face_value."""
    if face_value == WILD_FACE:
        return face_probability(die_type, WILD_FACE)
    return face_probability(die_type, face_value) + face_probability(die_type, WILD_FACE)


def is_valid_face_value(face_value: int) -> bool:
    return isinstance(face_value, int) and not isinstance(face_value, bool) and 1 <= face_value <= 6
