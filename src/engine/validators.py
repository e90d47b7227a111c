"""
Perudo Plus - Input Validation Utilities

Provides validation functions for game engine inputs and the bid-raising
rules shared by the rules engine and every AI tier. All validators either
return validated data or raise descriptive ValueError subclasses.
"""

import math
from typing import Iterator

from src.engine.base import Bid
from src.engine.errors import GameSetupError, InvalidBidError

MIN_PLAYERS = 2
MAX_PLAYERS = 6


def validate_face_value(face_value: int) -> int:
    """
    Validate a bid face.

    Args:
        face_value: Face to validate

    Returns:
        Validated face

    Raises:
        InvalidBidError: If the face is not an integer in 1-6
    """
    if not isinstance(face_value, int) or isinstance(face_value, bool):
        raise InvalidBidError(f"Face value must be an integer, got {type(face_value).__name__}.")

    if not (1 <= face_value <= 6):
        raise InvalidBidError(f"Face value must be between 1 and 6, got {face_value}.")

    return face_value


def validate_quantity(quantity: int) -> int:
    """
    Validate a bid quantity.

    Args:
        quantity: Claimed count

    Returns:
        Validated quantity

    Raises:
        InvalidBidError: If the quantity is not a positive integer
    """
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise InvalidBidError(f"Quantity must be an integer, got {type(quantity).__name__}.")

    if quantity < 1:
        raise InvalidBidError(f"Quantity must be at least 1, got {quantity}.")

    return quantity


def validate_player_count(count: int) -> int:
    """
    Validate number of players.

    Args:
        count: Number of players

    Returns:
        Validated count

    Raises:
        GameSetupError: If count is not 2-6
    """
    if not isinstance(count, int):
        raise GameSetupError(f"Player count must be an integer, got {type(count).__name__}.")

    if not (MIN_PLAYERS <= count <= MAX_PLAYERS):
        raise GameSetupError(f"Player count must be {MIN_PLAYERS}-{MAX_PLAYERS}, got {count}.")

    return count


def minimum_raise_quantity(current: Bid | None, face_value: int) -> int:
    """
    Smallest legal quantity for a bid on face_value over the current bid.

    Switching into 1s halves the count (rounded up); switching out of 1s
    doubles it plus one. Within the same kind a higher face may keep the
    quantity, anything else must raise it.

    Args:
        current: Standing bid, None for an opening bid
        face_value: Face of the proposed bid

    Returns:
        Minimum quantity that makes the bid legal
    """
    if current is None:
        return 1

    if face_value == 1 and current.face_value != 1:
        return math.ceil(current.quantity / 2)

    if current.face_value == 1 and face_value != 1:
        return current.quantity * 2 + 1

    if face_value > current.face_value:
        return current.quantity

    return current.quantity + 1


def is_valid_raise(current: Bid | None, quantity: int, face_value: int) -> bool:
    """Whether (quantity, face_value) is a legal bid over current."""
    if not isinstance(quantity, int) or quantity < 1:
        return False
    if not isinstance(face_value, int) or not (1 <= face_value <= 6):
        return False
    return quantity >= minimum_raise_quantity(current, face_value)


def legal_raises(current: Bid | None, max_quantity: int) -> Iterator[tuple[int, int]]:
    """
    Enumerate every legal (quantity, face) bid up to max_quantity.

    Args:
        current: Standing bid, None for an opening bid
        max_quantity: Upper bound on quantity (usually total dice in play)

    Yields:
        (quantity, face_value) pairs, grouped by face
    """
    for face in range(1, 7):
        for quantity in range(max(1, minimum_raise_quantity(current, face)), max_quantity + 1):
            yield quantity, face
