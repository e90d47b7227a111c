"""
Perudo Plus - Hard Strategy ("The Mathematician")

Exact probabilities from the Poisson Binomial engine, adjusted by the
opponent models the session keeps:

- raise only to bids that hold with probability >= bid_safe_threshold
- challenge when the standing bid holds with probability below
  1 - challenge_success_threshold
- claim exact when P(exact) beats a threshold that tightens as our own
  dice run out and loosens when we are ahead of the table
"""

import logging
import random

from src.ai.context import AIGameContext, face_counts
from src.ai.probability import ProbabilityEngine
from src.ai.strategies.base import armed_challenge, late_challenge_targets
from src.ai.types import AIDecision, AIDifficulty
from src.engine.base import Bid, CardType, DieType
from src.engine.dice import DICE_ORDER
from src.engine.effects import CardTarget
from src.engine.validators import legal_raises

logger = logging.getLogger(__name__)

# Opponent model weights
BLUFF_WEIGHT = 0.15
PREFERENCE_WEIGHT = 0.1

EXACT_THRESHOLD_MIN = 0.1
EXACT_THRESHOLD_MAX = 0.6


class HardStrategy:
    """
    Probability-driven tier.

    Args:
        probability: Engine used for every PBD query (one per game or worker)
        bid_safe_threshold: Minimum hold probability for our own bids
        challenge_success_threshold: Challenge when the bid fails this often
        exact_claim_threshold: Base exact-claim threshold before adjustment
        rng: Random source, only used to pick among equal card targets
    """

    difficulty = AIDifficulty.HARD
    name = "The Mathematician"

    def __init__(
        self,
        probability: ProbabilityEngine | None = None,
        bid_safe_threshold: float = 0.45,
        challenge_success_threshold: float = 0.55,
        exact_claim_threshold: float = 0.25,
        rng: random.Random | None = None,
    ) -> None:
        self.probability = probability or ProbabilityEngine()
        self.bid_safe_threshold = bid_safe_threshold
        self.challenge_success_threshold = challenge_success_threshold
        self.exact_claim_threshold = exact_claim_threshold
        self._rng = rng or random.Random()

    def decide(self, context: AIGameContext) -> AIDecision:
        armed = armed_challenge(context)
        if armed:
            return armed

        late = self._late_challenge(context)
        if late:
            return late

        if context.uses_cards:
            card_decision = self._card_play(context)
            if card_decision:
                return card_decision

        bid = context.current_bid
        if bid is None:
            return self._opening_bid(context)

        hold = self.bid_probability(context, bid.quantity, bid.face_value)
        adjusted = self.adjust_for_opponent(hold, context, bid)

        exact = self.exact_probability(context, bid.quantity, bid.face_value)
        threshold = self.exact_threshold(context)
        if exact > threshold:
            logger.debug("Exact claim: P=%.3f over threshold %.3f", exact, threshold)
            return AIDecision.exact_claim(exact, "Exact claim at %.1f%%" % (exact * 100))

        if adjusted < 1 - self.challenge_success_threshold:
            return self._challenge(context, adjusted)

        return self._calculated_bid(context, bid)

    # -- Probabilities ---------------------------------------------------

    def bid_probability(self, context: AIGameContext, quantity: int, face_value: int) -> float:
        known, pool = context.visible_dice()
        return self.probability.bid_probability(known, pool, quantity, face_value)

    def exact_probability(self, context: AIGameContext, quantity: int, face_value: int) -> float:
        known, pool = context.visible_dice()
        return self.probability.exact_probability(known, pool, quantity, face_value)

    def adjust_for_opponent(self, probability: float, context: AIGameContext, bid: Bid) -> float:
        """
        Shade a hold probability by what we know about the bidder.

        Frequent bluffers lower it; bids on a face the bidder favours raise
        it slightly.
        """
        model = context.opponent_models.get(bid.player_id)
        if model is None:
            return probability
        adjustment = -model.bluff_frequency * BLUFF_WEIGHT
        adjustment += (model.preference(bid.face_value) - 1) * PREFERENCE_WEIGHT
        return max(0.0, min(1.0, probability + adjustment))

    def exact_threshold(self, context: AIGameContext) -> float:
        """Exact-claim threshold for our current position."""
        threshold = self.exact_claim_threshold
        own = len(context.own_dice)
        if own <= 1:
            threshold += 0.15
        elif own == 2:
            threshold += 0.08

        active = [p for p in context.players if not p.is_eliminated and p.dice_count > 0]
        if active:
            average = sum(p.dice_count for p in active) / len(active)
            if own > average:
                threshold -= 0.05

        return max(EXACT_THRESHOLD_MIN, min(EXACT_THRESHOLD_MAX, threshold))

    # -- Bids ------------------------------------------------------------

    def _opening_bid(self, context: AIGameContext) -> AIDecision:
        known, pool = context.visible_dice()
        counts = face_counts(known)

        face, best = 2, None
        for candidate in range(2, 7):
            result = self.probability.expected_value(pool, candidate, counts[candidate] + counts[1])
            if best is None or result.expected_count > best.expected_count:
                face, best = candidate, result

        quantity = int(best.expected_count)
        while quantity > 1 and self.bid_probability(context, quantity, face) < self.bid_safe_threshold:
            quantity -= 1
        quantity = max(1, quantity)

        confidence = self.bid_probability(context, quantity, face)
        return AIDecision.bid_on(quantity, face, confidence, "Opening bid at %.1f%%" % (confidence * 100))

    def _calculated_bid(self, context: AIGameContext, current: Bid) -> AIDecision:
        """Safest-looking raise, with a small penalty for raising further than needed."""
        best_bid, best_score, best_prob = None, -1.0, 0.0

        for quantity, face in legal_raises(current, context.total_dice_count):
            prob = self.bid_probability(context, quantity, face)
            if prob < self.bid_safe_threshold:
                continue
            step = quantity - current.quantity + (face - current.face_value) * 0.1
            score = prob - step * 0.05
            if score > best_score:
                best_bid, best_score, best_prob = (quantity, face), score, prob

        if best_bid is None:
            return AIDecision.challenge(0.6, "No safe bids available")

        return AIDecision.bid_on(
            best_bid[0], best_bid[1], best_prob, "Calculated bid at %.1f%%" % (best_prob * 100)
        )

    # -- Challenges ------------------------------------------------------

    def _challenge(self, context: AIGameContext, hold: float) -> AIDecision:
        success = 1 - hold
        effects = context.own_effects

        double = context.cards_of(CardType.DOUBLE_STAKES)
        if double and not effects.double_stakes and success > 0.75:
            return AIDecision.play(
                double[0].id, CardType.DOUBLE_STAKES, success,
                "Double stakes at %.1f%% success" % (success * 100),
            )

        insurance = context.cards_of(CardType.INSURANCE)
        if insurance and not effects.insurance and 0.55 < success < 0.7:
            return AIDecision.play(
                insurance[0].id, CardType.INSURANCE, success,
                "Insured challenge at %.1f%% success" % (success * 100),
            )

        return AIDecision.challenge(success, "Challenge at %.1f%% success" % (success * 100))

    def _late_challenge(self, context: AIGameContext) -> AIDecision | None:
        """Late-challenge the least likely previous bid, if it is likely enough to fail."""
        best_index, best_success = None, 0.0
        for index in late_challenge_targets(context):
            old = context.previous_bids[index]
            success = 1 - self.bid_probability(context, old.quantity, old.face_value)
            if success > best_success:
                best_index, best_success = index, success

        if best_index is None or best_success <= self.challenge_success_threshold:
            return None
        return AIDecision.challenge(best_success, "Late challenge at %.1f%% success" % (best_success * 100), best_index)

    # -- Cards -----------------------------------------------------------

    def _card_play(self, context: AIGameContext) -> AIDecision | None:
        if not context.own_cards:
            return None
        opponents = context.opponents()
        bid = context.current_bid

        peek = context.cards_of(CardType.PEEK)
        if peek and opponents and context.round_number <= 2:
            target = max(opponents, key=lambda p: p.dice_count)
            seen = {k.die_id for k in context.known_dice if k.player_id == target.id}
            if len(seen) < target.dice_count:
                index = self._rng.randrange(target.dice_count)
                return AIDecision.play(
                    peek[0].id, CardType.PEEK, 0.7, "Early peek for information",
                    CardTarget(player_id=target.id, die_index=index),
                )

        if bid and bid.player_id != context.own_player_id:
            decision = self._disruption(context, bid)
            if decision:
                return decision

        reroll = context.cards_of(CardType.REROLL_ONE)
        if reroll and bid is None:
            junk = self._junk_die(context)
            if junk:
                return AIDecision.play(
                    reroll[0].id, CardType.REROLL_ONE, 0.5, "Reroll a die that supports nothing",
                    CardTarget(die_id=junk.id),
                )

        polish = context.cards_of(CardType.POLISH)
        if polish:
            upgradable = [d for d in context.own_dice if d.type not in (DieType.D6, DieType.D10)]
            if upgradable:
                weakest = min(upgradable, key=lambda d: DICE_ORDER.index(d.type))
                return AIDecision.play(
                    polish[0].id, CardType.POLISH, 0.55, "Upgrade the weakest die",
                    CardTarget(die_id=weakest.id),
                )

        crack = context.cards_of(CardType.CRACK)
        if crack and opponents:
            for target in sorted(opponents, key=lambda p: p.dice_count):
                index = self._crackable_index(context, target.id, target.dice_count)
                if index is not None:
                    return AIDecision.play(
                        crack[0].id, CardType.CRACK, 0.55, "Crack the opponent closest to elimination",
                        CardTarget(player_id=target.id, die_index=index),
                    )

        late = context.cards_of(CardType.LATE_CHALLENGE)
        if late and not context.own_effects.late_challenge:
            for old in context.previous_bids:
                if old.player_id == context.own_player_id:
                    continue
                success = 1 - self.bid_probability(context, old.quantity, old.face_value)
                if success > self.challenge_success_threshold:
                    return AIDecision.play(
                        late[0].id, CardType.LATE_CHALLENGE, success, "Arm a late challenge on a weak earlier bid",
                    )

        return None

    def _disruption(self, context: AIGameContext, bid: Bid) -> AIDecision | None:
        """Inflation or wild shift when they push the table into a low-probability corner."""
        inflation = context.cards_of(CardType.INFLATION)
        if inflation:
            inflated = self.bid_probability(context, bid.quantity + 1, bid.face_value)
            if inflated < 0.35:
                return AIDecision.play(
                    inflation[0].id, CardType.INFLATION, 0.6,
                    "Inflation to a %.1f%% bid" % (inflated * 100),
                )

        shift = context.cards_of(CardType.WILD_SHIFT)
        if shift:
            known, _ = context.visible_dice()
            counts = face_counts(known)
            face = max(
                (f for f in range(2, 7) if f != bid.face_value),
                key=lambda f: (counts[f] + counts[1], -f),
            )
            before = self.bid_probability(context, bid.quantity, bid.face_value)
            after = self.bid_probability(context, bid.quantity, face)
            if after > before + 0.15:
                return AIDecision.play(
                    shift[0].id, CardType.WILD_SHIFT, after,
                    "Shift the bid to face %d" % face, CardTarget(face_value=face),
                )

        return None

    def _junk_die(self, context: AIGameContext):
        """A non-wild die showing a face nothing else in hand supports."""
        counts = face_counts(context.own_dice)
        singles = [
            d for d in context.own_dice
            if d.face_value != 1 and counts[d.face_value] == 1
        ]
        if not singles:
            return None
        return max(singles, key=lambda d: d.face_value)

    @staticmethod
    def _crackable_index(context: AIGameContext, player_id: str, dice_count: int) -> int | None:
        """First die of a player not already known to be the smallest size."""
        smallest = {
            k.die_index for k in context.known_dice
            if k.player_id == player_id and k.die_type == DICE_ORDER[0]
        }
        return next((i for i in range(dice_count) if i not in smallest), None)
