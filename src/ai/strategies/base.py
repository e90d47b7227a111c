"""
Perudo Plus - Strategy Contract

The interface every AI tier implements, plus the small decision helpers the
tiers share. Strategies hold configuration and a random source only; all
game knowledge arrives in the context.
"""

import math
from typing import Protocol

from src.ai.context import AIGameContext
from src.ai.types import AIDecision, AIDifficulty
from src.engine.validators import minimum_raise_quantity

# Simple heuristic: challenge once the bid claims more than this share of the table
HEURISTIC_CHALLENGE_RATIO = 0.6


class Strategy(Protocol):
    difficulty: AIDifficulty
    name: str

    def decide(self, context: AIGameContext) -> AIDecision:
        ...


def minimal_raise(context: AIGameContext, faces: range = range(2, 7)) -> tuple[int, int] | None:
    """
    Cheapest legal raise on the given faces, or None if every raise
    would exceed the dice in play.

    Returns:
        Tuple of (quantity, face_value)
    """
    cap = max(1, context.total_dice_count)
    options = [
        (minimum_raise_quantity(context.current_bid, face), face)
        for face in faces
    ]
    options = [(q, f) for q, f in options if q <= cap]
    if not options:
        return None
    return min(options)


def armed_challenge(context: AIGameContext) -> AIDecision | None:
    """Follow through on insurance or double stakes armed earlier this turn."""
    effects = context.own_effects
    if context.current_bid is None:
        return None
    if effects.insurance or effects.double_stakes:
        return AIDecision.challenge(0.6, "Challenge backed by an armed card")
    return None


def late_challenge_targets(context: AIGameContext) -> list[int]:
    """Previous-bid indices this player could late-challenge."""
    if not context.own_effects.late_challenge:
        return []
    return [
        i for i, bid in enumerate(context.previous_bids)
        if bid.player_id != context.own_player_id
    ]


def heuristic_decision(context: AIGameContext) -> AIDecision:
    """
    Last-resort decision that needs no computation.

    Opens with a modest bid, challenges a bid claiming more than 60% of the
    table, otherwise makes the cheapest raise.
    """
    total = max(1, context.total_dice_count)
    bid = context.current_bid

    if bid is None:
        quantity = max(1, math.floor(total / 3))
        return AIDecision.bid_on(quantity, 2, 0.5, "Heuristic opening bid")

    if bid.quantity > total * HEURISTIC_CHALLENGE_RATIO:
        return AIDecision.challenge(0.6, "Heuristic challenge on a high bid")

    raise_to = minimal_raise(context)
    if raise_to is None:
        return AIDecision.challenge(0.5, "Heuristic challenge, no raise left")
    return AIDecision.bid_on(raise_to[0], raise_to[1], 0.4, "Heuristic minimal raise")
