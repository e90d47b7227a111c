"""
Perudo Plus - Information-Set Monte Carlo Tree Search

Flat ISMCTS over the acting player's legal actions. Each iteration:

1. samples one concrete world consistent with what the AI knows
   (determinization: unknown dice drawn from the shared size pool, faces
   weighted by the opponent's face preferences, known dice pinned)
2. picks an action by UCB1, unvisited actions first
3. scores the action in that world (exact tally for challenges and exact
   claims, a short rollout for bids, a fixed estimate for cards)
4. backpropagates the score to the action

The search stops at the iteration target or the time budget, whichever
comes first, and returns the most visited action.
"""

import itertools
import logging
import math
import random
import time
from dataclasses import dataclass, replace
from typing import Callable, Sequence

from src.ai.context import AIGameContext
from src.ai.types import AIActionType, AIDecision
from src.engine.base import Bid, CardType, Die, DieType
from src.engine.dice import DICE_FACES, count_matching
from src.engine.effects import CardTarget, DieRef
from src.engine.validators import legal_raises, minimum_raise_quantity

logger = logging.getLogger(__name__)

DEFAULT_EXPLORATION = 0.7
DEFAULT_ROLLOUT_DEPTH = 5

# Iterations between clock checks
BATCH_SIZE = 100

# Score when an insured challenge fails
INSURED_LOSS_VALUE = 0.5

CARD_VALUES: dict[CardType, float] = {
    CardType.INSURANCE: 0.65,
    CardType.PEEK: 0.6,
    CardType.GAUGE: 0.55,
    CardType.CRACK: 0.55,
    CardType.INFLATION: 0.55,
    CardType.POLISH: 0.55,
    CardType.WILD_SHIFT: 0.5,
    CardType.REROLL_ONE: 0.5,
    CardType.BLIND_SWAP: 0.5,
    CardType.PHANTOM_BID: 0.5,
    CardType.LATE_CHALLENGE: 0.5,
    CardType.FALSE_TELL: 0.45,
}


@dataclass
class ActionStats:
    """Visit count and cumulative score for one root action."""
    decision: AIDecision
    wins: float = 0.0
    visits: int = 0

    @property
    def win_rate(self) -> float:
        return self.wins / self.visits if self.visits else 0.0


@dataclass(frozen=True)
class SearchOutcome:
    decision: AIDecision
    iterations: int
    time_spent_ms: int


def ucb1(stats: ActionStats, total_visits: int, exploration: float = DEFAULT_EXPLORATION) -> float:
    """
    Upper confidence bound of an action.

    Unvisited actions score infinity so every action is tried once before
    any is tried twice.
    """
    if stats.visits == 0:
        return math.inf
    return stats.win_rate + exploration * math.sqrt(math.log(max(1, total_visits)) / stats.visits)


def select_action(
    stats: Sequence[ActionStats],
    total_visits: int,
    exploration: float = DEFAULT_EXPLORATION,
) -> int:
    """Index of the action with the highest UCB1 score; first wins ties."""
    best_index, best_score = 0, -math.inf
    for index, entry in enumerate(stats):
        score = ucb1(entry, total_visits, exploration)
        if score == math.inf:
            return index
        if score > best_score:
            best_index, best_score = index, score
    return best_index


class ISMCTSEngine:
    """
    One search over one decision.

    Args:
        context: What the acting AI knows
        time_budget_ms: Wall-clock limit
        target_iterations: Iteration limit
        exploration: UCB1 exploration constant
        rollout_depth: Opponent-response plies simulated after a bid
        rng: Random source for determinization and rollouts
        clock: Monotonic clock in seconds
    """

    def __init__(
        self,
        context: AIGameContext,
        time_budget_ms: int = 5000,
        target_iterations: int = 100_000,
        exploration: float = DEFAULT_EXPLORATION,
        rollout_depth: int = DEFAULT_ROLLOUT_DEPTH,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.context = context
        self.time_budget_ms = time_budget_ms
        self.target_iterations = target_iterations
        self.exploration = exploration
        self.rollout_depth = rollout_depth
        self._rng = rng or random.Random()
        self._clock = clock

    @classmethod
    def from_request(cls, request, **kwargs) -> "ISMCTSEngine":
        """Build an engine from a SearchRequest."""
        return cls(
            request.context,
            time_budget_ms=request.time_budget_ms,
            target_iterations=request.target_iterations,
            exploration=request.exploration,
            rollout_depth=request.rollout_depth,
            **kwargs,
        )

    # =========================================================================
    # Action generation
    # =========================================================================

    def generate_actions(self) -> list[AIDecision]:
        """Every legal root action: bids, challenges, exact claim and card plays."""
        context = self.context
        bid = context.current_bid
        actions: list[AIDecision] = []

        if bid is not None:
            actions.append(AIDecision.challenge(0.0))
            actions.append(AIDecision.exact_claim(0.0))

        if context.own_effects.late_challenge:
            for index, old in enumerate(context.previous_bids):
                if old.player_id != context.own_player_id:
                    actions.append(AIDecision.challenge(0.0, target_bid_index=index))

        for quantity, face in legal_raises(bid, context.total_dice_count):
            actions.append(AIDecision.bid_on(quantity, face, 0.0))

        if context.uses_cards:
            seen = set()
            for card in context.own_cards:
                # Identical cards have identical parameterizations
                if card.type in seen:
                    continue
                seen.add(card.type)
                actions.extend(self._card_actions(card))

        return actions

    def _card_actions(self, card) -> list[AIDecision]:
        context = self.context
        bid = context.current_bid
        effects = context.own_effects
        opponents = context.opponents()

        def play(target: CardTarget | None = None) -> AIDecision:
            return AIDecision.play(card.id, card.type, 0.0, target=target)

        if card.type in (CardType.PEEK, CardType.CRACK):
            return [
                play(CardTarget(player_id=p.id, die_index=i))
                for p in opponents for i in range(p.dice_count)
            ]

        if card.type == CardType.GAUGE:
            refs = []
            for p in opponents:
                if p.dice_count >= 2:
                    refs.append((DieRef(p.id, 0), DieRef(p.id, 1)))
            for a, b in itertools.combinations(opponents, 2):
                refs.append((DieRef(a.id, 0), DieRef(b.id, 0)))
            return [play(CardTarget(dice=pair)) for pair in refs]

        if card.type == CardType.REROLL_ONE:
            return [play(CardTarget(die_id=d.id)) for d in context.own_dice]

        if card.type == CardType.POLISH:
            return [play(CardTarget(die_id=d.id)) for d in context.own_dice if d.type != DieType.D10]

        if card.type == CardType.BLIND_SWAP:
            return [
                play(CardTarget(player_id=p.id, die_id=d.id))
                for p in opponents for d in context.own_dice
            ]

        if card.type == CardType.WILD_SHIFT:
            if bid is None:
                return []
            return [play(CardTarget(face_value=f)) for f in range(1, 7) if f != bid.face_value]

        if card.type == CardType.INFLATION:
            return [play()] if bid is not None else []

        if card.type == CardType.INSURANCE:
            return [play()] if bid is not None and not effects.insurance else []

        if card.type == CardType.DOUBLE_STAKES:
            return [play()] if bid is not None and not effects.double_stakes else []

        if card.type == CardType.PHANTOM_BID:
            return [play()] if not effects.phantom_bid else []

        if card.type == CardType.LATE_CHALLENGE:
            theirs = any(b.player_id != context.own_player_id for b in context.previous_bids)
            return [play()] if theirs and not effects.late_challenge else []

        if card.type == CardType.FALSE_TELL:
            return [play()]

        return []

    # =========================================================================
    # Determinization
    # =========================================================================

    def determinize(self) -> dict[str, list[Die]]:
        """
        Sample one hand per opponent.

        Known dice keep their type and, where seen, their face. The rest
        are drawn without replacement from the unknown size pool.
        """
        context = self.context
        pool = list(context.unknown_dice_types)
        self._rng.shuffle(pool)

        pinned: dict[str, list] = {}
        for known in context.known_dice:
            if known.die_type in pool:
                pool.remove(known.die_type)
                pinned.setdefault(known.player_id, []).append(known)

        hands: dict[str, list[Die]] = {}
        for player in context.opponents():
            model = context.opponent_models.get(player.id)
            hand = []
            for known in pinned.get(player.id, [])[: player.dice_count]:
                face = known.face_value or self._sample_face(known.die_type, model)
                hand.append(Die(id=known.die_id, type=known.die_type, face_value=face))
            while len(hand) < player.dice_count and pool:
                die_type = pool.pop()
                hand.append(Die(id="", type=die_type, face_value=self._sample_face(die_type, model)))
            hands[player.id] = hand
        return hands

    def _sample_face(self, die_type: DieType, model) -> int:
        faces = DICE_FACES[die_type]
        if model is None:
            return self._rng.choice(faces)
        weights = [model.preference(face) for face in faces]
        return self._rng.choices(faces, weights=weights)[0]

    # =========================================================================
    # Simulation
    # =========================================================================

    def tally(self, hands: dict[str, list[Die]], face_value: int) -> int:
        count = count_matching(self.context.own_dice, face_value)
        for hand in hands.values():
            count += count_matching(hand, face_value)
        return count

    def simulate(self, action: AIDecision, hands: dict[str, list[Die]]) -> float:
        """Score an action in one sampled world, 0 (loss) to 1 (win)."""
        context = self.context

        if action.action == AIActionType.CHALLENGE:
            bid = context.current_bid
            if action.target_bid_index is not None:
                bid = context.previous_bids[action.target_bid_index]
            if bid is None:
                return 0.5
            if self.tally(hands, bid.face_value) < bid.quantity:
                return 1.0
            return INSURED_LOSS_VALUE if context.own_effects.insurance else 0.0

        if action.action == AIActionType.EXACT_CLAIM:
            bid = context.current_bid
            if bid is None:
                return 0.0
            return 1.0 if self.tally(hands, bid.face_value) == bid.quantity else 0.0

        if action.action == AIActionType.BID:
            return self._rollout(Bid(context.own_player_id, action.bid.quantity, action.bid.face_value), hands)

        if action.action == AIActionType.PLAY_CARD:
            return self._card_value(action.card_play.card_type, hands)

        return 0.5

    def _rollout(self, bid: Bid, hands: dict[str, list[Die]]) -> float:
        """
        Play a few plies of simplified opponent responses after our bid.

        Opponents challenge with a probability that rises with the share of
        the table the bid claims, and falls for habitual bluffers (who expect
        others to bluff too); otherwise they nudge the bid up. We challenge
        back once a bid clearly exceeds what our hand suggests.
        """
        context = self.context
        total = max(1, context.total_dice_count)
        opponents = context.opponents()
        if not opponents:
            return 1.0 if self.tally(hands, bid.face_value) >= bid.quantity else 0.0

        current = bid
        # Last bid we made; the score is about that bid holding
        ours = bid
        for _ in range(self.rollout_depth):
            for opponent in opponents:
                model = context.opponent_models.get(opponent.id)
                bluff = model.bluff_frequency if model else 0.3
                challenge_chance = min(0.9, current.quantity / total * 1.5 - bluff * 0.2)

                if self._rng.random() < challenge_chance or current.quantity >= total:
                    holds = self.tally(hands, current.face_value) >= current.quantity
                    if current is ours:
                        return 1.0 if holds else 0.0
                    return 0.5

                face = current.face_value
                if face < 6 and self._rng.random() < 0.3:
                    face += 1
                quantity = minimum_raise_quantity(current, face)
                if self._rng.random() < 0.5:
                    quantity += 1
                if quantity > total:
                    holds = self.tally(hands, current.face_value) >= current.quantity
                    if current is ours:
                        return 1.0 if holds else 0.0
                    return 0.5
                current = Bid(opponent.id, quantity, face)

            own = count_matching(context.own_dice, current.face_value)
            expected = own + (total - len(context.own_dice)) / 3
            if current.quantity > expected * 1.3:
                return 1.0 if self.tally(hands, current.face_value) < current.quantity else 0.0

            if current.quantity + 1 > total:
                break
            current = Bid(context.own_player_id, current.quantity + 1, current.face_value)
            ours = current

        return 0.6 if self.tally(hands, current.face_value) >= current.quantity else 0.4

    def _card_value(self, card_type: CardType, hands: dict[str, list[Die]]) -> float:
        if card_type == CardType.DOUBLE_STAKES:
            bid = self.context.current_bid
            if bid is None:
                return 0.5
            return 0.9 if self.tally(hands, bid.face_value) < bid.quantity else 0.1
        return CARD_VALUES.get(card_type, 0.5)

    # =========================================================================
    # Search loop
    # =========================================================================

    def run(self) -> SearchOutcome:
        """Search until the iteration target or the time budget runs out."""
        start = self._clock()
        actions = self.generate_actions()

        if not actions:
            return SearchOutcome(AIDecision.challenge(0.5, "No valid actions available"), 0, 0)
        if len(actions) == 1:
            return SearchOutcome(_with_confidence(actions[0], 0.5, "Only one legal action"), 0, 0)

        stats = [ActionStats(a) for a in actions]
        budget = self.time_budget_ms / 1000
        total_visits = 0

        while total_visits < self.target_iterations:
            if total_visits % BATCH_SIZE == 0 and self._clock() - start >= budget:
                break
            index = select_action(stats, total_visits, self.exploration)
            value = self.simulate(stats[index].decision, self.determinize())
            stats[index].visits += 1
            stats[index].wins += value
            total_visits += 1

        elapsed_ms = int((self._clock() - start) * 1000)
        best = max(stats, key=lambda s: s.visits)
        logger.debug(
            "ISMCTS: %d iterations over %d actions in %dms, best %s at %.3f",
            total_visits, len(stats), elapsed_ms, best.decision.action.value, best.win_rate,
        )

        reasoning = "Search with %d iterations, %.1f%% win rate" % (total_visits, best.win_rate * 100)
        return SearchOutcome(
            _with_confidence(best.decision, best.win_rate, reasoning),
            total_visits,
            elapsed_ms,
        )


def _with_confidence(decision: AIDecision, confidence: float, reasoning: str) -> AIDecision:
    return replace(decision, confidence=max(0.0, min(1.0, confidence)), reasoning=reasoning)
