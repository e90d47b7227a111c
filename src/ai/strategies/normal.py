"""
Perudo Plus - Normal Strategy ("The Casual")

Treats every unknown die as a d6, so any face (wilds included) shows up
with probability 1/3:

    expected = own matching count + unknown dice / 3

Cards are mostly reactive, insurance before a doubtful challenge being the
typical play, with a few cheap proactive plays early in the game.
"""

import math
import random

from src.ai.context import AIGameContext, best_face, face_counts
from src.ai.strategies.base import armed_challenge, late_challenge_targets, minimal_raise
from src.ai.types import AIDecision, AIDifficulty
from src.engine.base import Bid, CardType, DieType
from src.engine.dice import DICE_ORDER, count_matching
from src.engine.effects import CardTarget
from src.engine.validators import is_valid_raise

ASSUMED_PROBABILITY = 1 / 3


class NormalStrategy:
    """d6 heuristics with reactive card use."""

    difficulty = AIDifficulty.NORMAL
    name = "The Casual"

    CHALLENGE_RATIO = 0.7
    INSURED_CHALLENGE_RATIO = 0.5
    CONFIDENT_RATIO = 1.2
    MARGINAL_CHALLENGE_CHANCE = 0.4

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def decide(self, context: AIGameContext) -> AIDecision:
        armed = armed_challenge(context)
        if armed:
            return armed

        late = self._late_challenge(context)
        if late:
            return late

        if context.uses_cards:
            card_decision = self._proactive_card(context)
            if card_decision:
                return card_decision

        bid = context.current_bid
        if bid is None:
            return self._opening_bid(context)

        expected = self.expected_total(context, bid.face_value)

        if expected < bid.quantity * self.CHALLENGE_RATIO:
            return self._challenge(context, expected)

        if expected >= bid.quantity * self.CONFIDENT_RATIO:
            return self._confident_bid(context, bid)

        return self._marginal(context)

    def expected_total(self, context: AIGameContext, face_value: int) -> float:
        own = count_matching(context.own_dice, face_value)
        return own + context.unknown_dice_count * ASSUMED_PROBABILITY

    # -- Bids ------------------------------------------------------------

    def _opening_bid(self, context: AIGameContext) -> AIDecision:
        face, count = best_face(context.own_dice)
        from_unknown = context.unknown_dice_count * ASSUMED_PROBABILITY
        quantity = max(1, math.floor(count + from_unknown))
        return AIDecision.bid_on(
            quantity,
            face,
            0.6,
            "Opening bid on %d in hand + %.1f expected" % (count, from_unknown),
        )

    def _confident_bid(self, context: AIGameContext, bid: Bid) -> AIDecision:
        counts = face_counts(context.own_dice)
        from_unknown = context.unknown_dice_count * ASSUMED_PROBABILITY

        for face in range(2, 7):
            count = counts[face] + counts[1]
            if count < 2:
                continue
            expected = count + from_unknown
            if face > bid.face_value:
                quantity = max(bid.quantity, math.floor(expected))
            else:
                quantity = bid.quantity + 1
            if quantity > context.total_dice_count or quantity > expected + 1:
                continue
            if is_valid_raise(bid, quantity, face):
                return AIDecision.bid_on(quantity, face, 0.7, "Confident bid on %d with %d in hand" % (face, count))

        return self._minimal_increment(context)

    def _minimal_increment(self, context: AIGameContext) -> AIDecision:
        raise_to = minimal_raise(context)
        if raise_to is None:
            return AIDecision.challenge(0.6, "No valid bids remaining")
        return AIDecision.bid_on(raise_to[0], raise_to[1], 0.5, "Minimal increment")

    # -- Challenges ------------------------------------------------------

    def _challenge(self, context: AIGameContext, expected: float) -> AIDecision:
        bid = context.current_bid
        insurance = context.cards_of(CardType.INSURANCE)
        if insurance and expected < bid.quantity * self.INSURED_CHALLENGE_RATIO:
            return AIDecision.play(insurance[0].id, CardType.INSURANCE, 0.7, "Insurance before a risky challenge")
        return AIDecision.challenge(0.6, "Expected %.1f vs bid of %d" % (expected, bid.quantity))

    def _marginal(self, context: AIGameContext) -> AIDecision:
        if self._rng.random() < self.MARGINAL_CHALLENGE_CHANCE:
            insurance = context.cards_of(CardType.INSURANCE) if context.uses_cards else []
            if insurance:
                return AIDecision.play(insurance[0].id, CardType.INSURANCE, 0.5, "Insurance for a marginal challenge")
            return AIDecision.challenge(0.4, "Marginal challenge")
        return self._minimal_increment(context)

    def _late_challenge(self, context: AIGameContext) -> AIDecision | None:
        targets = late_challenge_targets(context)
        if not targets:
            return None
        index = targets[-1]
        return AIDecision.challenge(0.5, "Late challenge on a suspicious bid", index)

    # -- Cards -----------------------------------------------------------

    def _proactive_card(self, context: AIGameContext) -> AIDecision | None:
        if not context.own_cards:
            return None
        opponents = context.opponents()
        if not opponents:
            return None
        leader = max(opponents, key=lambda p: p.dice_count)

        peek = context.cards_of(CardType.PEEK)
        if peek and context.round_number <= 3 and self._rng.random() < 0.4:
            index = self._rng.randrange(leader.dice_count)
            return AIDecision.play(
                peek[0].id, CardType.PEEK, 0.6, "Early peek for information",
                CardTarget(player_id=leader.id, die_index=index),
            )

        reroll = context.cards_of(CardType.REROLL_ONE)
        if reroll:
            high = next((d for d in context.own_dice if d.face_value >= 5), None)
            if high and self._rng.random() < 0.35:
                return AIDecision.play(
                    reroll[0].id, CardType.REROLL_ONE, 0.5, "Reroll a high die",
                    CardTarget(die_id=high.id),
                )

        polish = context.cards_of(CardType.POLISH)
        if polish and self._rng.random() < 0.3:
            upgradable = [d for d in context.own_dice if d.type != DieType.D10]
            if upgradable:
                lowest = min(upgradable, key=lambda d: DICE_ORDER.index(d.type))
                return AIDecision.play(
                    polish[0].id, CardType.POLISH, 0.5, "Upgrade a low die",
                    CardTarget(die_id=lowest.id),
                )

        crack = context.cards_of(CardType.CRACK)
        if crack and leader.dice_count >= 3 and self._rng.random() < 0.25:
            index = self._rng.randrange(leader.dice_count)
            return AIDecision.play(
                crack[0].id, CardType.CRACK, 0.5, "Crack the leading opponent",
                CardTarget(player_id=leader.id, die_index=index),
            )

        late = context.cards_of(CardType.LATE_CHALLENGE)
        if late and not context.own_effects.late_challenge and self._rng.random() < 0.2:
            theirs = [b for b in context.previous_bids if b.player_id != context.own_player_id]
            expected = context.unknown_dice_count * ASSUMED_PROBABILITY
            if theirs and theirs[-1].quantity > expected * 1.5:
                return AIDecision.play(
                    late[0].id, CardType.LATE_CHALLENGE, 0.5, "Late challenge on a suspicious previous bid",
                )

        return None
