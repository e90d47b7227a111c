"""
Perudo Plus - Easy Strategy ("The Town Drunk")

Stochastic play with no probability math:
- 60% of bids are random legal raises, 40% follow the best face in hand
- challenge chance grows with how much of the table the bid claims
- cards are played at random now and then
"""

import math
import random

from src.ai.context import AIGameContext, best_face, face_counts
from src.ai.strategies.base import armed_challenge, late_challenge_targets
from src.ai.types import AIDecision, AIDifficulty
from src.engine.base import CardType, DieType, GameMode
from src.engine.effects import CardTarget, DieRef
from src.engine.validators import minimum_raise_quantity


class EasyStrategy:
    """Random-leaning tier. Holds nothing but its random source."""

    difficulty = AIDifficulty.EASY
    name = "The Town Drunk"

    RANDOM_BID_CHANCE = 0.6
    CARD_PLAY_CHANCE = {GameMode.TACTICAL: 0.2, GameMode.CHAOS: 0.35}
    BASE_CHALLENGE_CHANCE = 0.1
    MAX_CHALLENGE_CHANCE = 0.6

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def decide(self, context: AIGameContext) -> AIDecision:
        armed = armed_challenge(context)
        if armed:
            return armed

        targets = late_challenge_targets(context)
        if targets and self._rng.random() < 0.5:
            return AIDecision.challenge(0.4, "Random late challenge", self._rng.choice(targets))

        chance = self.CARD_PLAY_CHANCE.get(context.game_mode, 0.0)
        if context.uses_cards and context.own_cards and self._rng.random() < chance:
            decision = self._random_card(context)
            if decision:
                return decision

        if context.current_bid is None:
            return self._opening_bid(context)

        if self._rng.random() < self.challenge_chance(context):
            return AIDecision.challenge(0.3 + self._rng.random() * 0.3, "Random challenge")

        return self._raise(context)

    def challenge_chance(self, context: AIGameContext) -> float:
        """10% base, plus half the share of the table the bid claims, capped at 60%."""
        bid = context.current_bid
        if bid is None:
            return 0.0
        if context.total_dice_count <= 0:
            return self.MAX_CHALLENGE_CHANCE
        ratio = bid.quantity / context.total_dice_count
        return min(self.MAX_CHALLENGE_CHANCE, self.BASE_CHALLENGE_CHANCE + ratio * 0.5)

    # -- Bids ------------------------------------------------------------

    def _opening_bid(self, context: AIGameContext) -> AIDecision:
        total = max(1, context.total_dice_count)

        if self._rng.random() < self.RANDOM_BID_CHANCE:
            quantity = self._rng.randint(1, max(1, math.ceil(total / 3)))
            face = self._rng.randint(1, 6)
            return AIDecision.bid_on(quantity, face, 0.2 + self._rng.random() * 0.3, "Random opening bid")

        face, count = best_face(context.own_dice)
        quantity = max(1, count + self._rng.randint(0, 1))
        return AIDecision.bid_on(quantity, face, 0.4 + self._rng.random() * 0.2, "Hand-based opening bid")

    def _raise(self, context: AIGameContext) -> AIDecision:
        if self._rng.random() < self.RANDOM_BID_CHANCE:
            return self._random_raise(context)

        counts = face_counts(context.own_dice)
        total = context.total_dice_count
        for face in range(2, 7):
            if counts[face] + counts[1] == 0:
                continue
            minimum = minimum_raise_quantity(context.current_bid, face)
            if minimum <= total:
                quantity = min(total, minimum + self._rng.randint(0, 1))
                return AIDecision.bid_on(quantity, face, 0.4 + self._rng.random() * 0.2, "Hand-based bid")

        return self._random_raise(context)

    def _random_raise(self, context: AIGameContext) -> AIDecision:
        """Pick among the cheapest and next-cheapest raise on each face."""
        total = context.total_dice_count
        options = []
        for face in range(1, 7):
            minimum = minimum_raise_quantity(context.current_bid, face)
            for quantity in (minimum, minimum + 1):
                if quantity <= total:
                    options.append((quantity, face))

        if not options:
            return AIDecision.challenge(0.5, "No valid bids available")

        quantity, face = self._rng.choice(options)
        return AIDecision.bid_on(quantity, face, 0.3 + self._rng.random() * 0.3, "Random valid bid")

    # -- Cards -----------------------------------------------------------

    def _random_card(self, context: AIGameContext) -> AIDecision | None:
        card = self._rng.choice(context.own_cards)
        opponents = context.opponents()
        effects = context.own_effects
        bid = context.current_bid

        def play(reason: str, target: CardTarget | None = None) -> AIDecision:
            return AIDecision.play(card.id, card.type, 0.3, reason, target)

        if card.type in (CardType.PEEK, CardType.CRACK) and opponents:
            opponent = self._rng.choice(opponents)
            index = self._rng.randrange(opponent.dice_count)
            return play("Random card play", CardTarget(player_id=opponent.id, die_index=index))

        if card.type == CardType.BLIND_SWAP and opponents and context.own_dice:
            opponent = self._rng.choice(opponents)
            die = self._rng.choice(context.own_dice)
            return play("Random blind swap", CardTarget(player_id=opponent.id, die_id=die.id))

        if card.type == CardType.REROLL_ONE and context.own_dice:
            die = self._rng.choice(context.own_dice)
            return play("Random card play on own die", CardTarget(die_id=die.id))

        if card.type == CardType.POLISH:
            candidates = [d for d in context.own_dice if d.type != DieType.D10]
            if candidates:
                die = self._rng.choice(candidates)
                return play("Random polish", CardTarget(die_id=die.id))

        if card.type == CardType.FALSE_TELL:
            return play("Random false tell")

        if card.type == CardType.GAUGE:
            refs = [DieRef(p.id, i) for p in opponents for i in range(p.dice_count)]
            if len(refs) >= 2:
                picked = self._rng.sample(refs, 2)
                return play("Random gauge", CardTarget(dice=tuple(picked)))

        if card.type == CardType.INFLATION and bid:
            return play("Random inflation")

        if card.type == CardType.WILD_SHIFT and bid:
            face = self._rng.choice([f for f in range(1, 7) if f != bid.face_value])
            return play("Random wild shift", CardTarget(face_value=face))

        if card.type == CardType.PHANTOM_BID and not effects.phantom_bid:
            return play("Random phantom bid activation")

        if card.type == CardType.INSURANCE and bid and not effects.insurance and self._rng.random() < 0.3:
            return play("Random insurance activation")

        if card.type == CardType.DOUBLE_STAKES and bid and not effects.double_stakes and self._rng.random() < 0.2:
            return play("Random double stakes activation")

        if (
            card.type == CardType.LATE_CHALLENGE
            and not effects.late_challenge
            and any(b.player_id != context.own_player_id for b in context.previous_bids)
            and self._rng.random() < 0.25
        ):
            return play("Random late challenge activation")

        return None
