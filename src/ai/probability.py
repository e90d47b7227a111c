"""
Perudo Plus - Probability Engine

Exact Poisson Binomial Distribution (PBD) over heterogeneous dice.

Each unknown die is one Bernoulli trial whose success probability is the
chance that it counts toward the bid face (wild 1s included for faces other
than 1). The distribution of the number of successes is built by repeated
convolution with [1 - p, p], which is exact and O(n^2) in the number of dice.

Engines are explicit objects with their own bounded cache; create one per
game or per worker rather than sharing a global.
"""

from typing import Iterable, Sequence

import numpy as np

from src.ai.types import ProbabilityResult
from src.engine.base import Die, DieType
from src.engine.dice import DICE_FACES, count_matching

DEFAULT_CACHE_SIZE = 10_000
CACHE_KEY_DECIMALS = 4


def _face_table() -> dict[DieType, tuple[float, ...]]:
    table = {}
    for die_type, faces in DICE_FACES.items():
        table[die_type] = tuple(faces.count(face) / len(faces) for face in range(1, 7))
    return table


class ProbabilityEngine:
    """
    PBD calculator with a bounded PMF cache.

    The cache is keyed by the success-probability vector rounded to four
    decimals. When it fills up the oldest half of the entries is dropped.
    """

    def __init__(self, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        self._cache_size = max(2, cache_size)
        self._cache: dict[tuple[float, ...], np.ndarray] = {}
        self._face_table = _face_table()
        self.hits = 0
        self.misses = 0

    # -- Per-die probabilities -------------------------------------------

    def face_probability(self, die_type: DieType, face_value: int) -> float:
        """P(die shows face_value). 0 for faces outside 1-6."""
        if not (1 <= face_value <= 6):
            return 0.0
        return self._face_table[die_type][face_value - 1]

    def effective_probability(self, die_type: DieType, face_value: int) -> float:
        """P(die counts toward a bid on face_value), wild 1s included."""
        if face_value == 1:
            return self.face_probability(die_type, 1)
        return self.face_probability(die_type, face_value) + self.face_probability(die_type, 1)

    def success_probabilities(self, dice_types: Iterable[DieType], face_value: int) -> list[float]:
        return [self.effective_probability(t, face_value) for t in dice_types]

    # -- Distribution ----------------------------------------------------

    def pmf(self, probabilities: Sequence[float]) -> np.ndarray:
        """
        Probability mass function of the number of successes.

        Args:
            probabilities: Per-trial success probabilities

        Returns:
            Read-only array of length len(probabilities) + 1
        """
        key = tuple(round(float(p), CACHE_KEY_DECIMALS) for p in probabilities)
        cached = self._cache.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        pmf = np.ones(1)
        for p in probabilities:
            p = min(1.0, max(0.0, float(p)))
            pmf = np.convolve(pmf, (1.0 - p, p))
        pmf.setflags(write=False)

        if len(self._cache) >= self._cache_size:
            self._evict()
        self._cache[key] = pmf
        return pmf

    def _evict(self) -> None:
        """Drop the oldest half of the cache (insertion order)."""
        stale = list(self._cache)[: len(self._cache) // 2]
        for key in stale:
            del self._cache[key]

    def clear_cache(self) -> None:
        self._cache.clear()
        self.hits = 0
        self.misses = 0

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # -- Queries ---------------------------------------------------------

    def probability_at_least(self, dice_types: Sequence[DieType], face_value: int, k: int) -> float:
        """
        P(at least k of the given dice count toward face_value).

        Quantities at or below zero are always met; quantities above the
        number of dice never are.
        """
        if k <= 0:
            return 1.0
        n = len(dice_types)
        if n == 0 or k > n:
            return 0.0
        pmf = self.pmf(self.success_probabilities(dice_types, face_value))
        return float(min(1.0, max(0.0, pmf[k:].sum())))

    def probability_exactly(self, dice_types: Sequence[DieType], face_value: int, k: int) -> float:
        """P(exactly k of the given dice count toward face_value)."""
        n = len(dice_types)
        if k < 0 or k > n:
            return 0.0
        if n == 0:
            return 1.0 if k == 0 else 0.0
        pmf = self.pmf(self.success_probabilities(dice_types, face_value))
        return float(min(1.0, max(0.0, pmf[k])))

    def expected_value(
        self,
        dice_types: Sequence[DieType],
        face_value: int,
        own_count: int = 0,
    ) -> ProbabilityResult:
        """
        Expected matching count across known and unknown dice.

        Args:
            dice_types: Unknown dice
            face_value: Face being counted
            own_count: Matching dice already known

        Returns:
            ProbabilityResult whose probability is P(total >= floor(expected))
        """
        probs = self.success_probabilities(dice_types, face_value)
        expected_unknown = sum(probs)
        variance = sum(p * (1.0 - p) for p in probs)
        expected = own_count + expected_unknown
        needed = int(np.floor(expected)) - own_count
        probability = self.probability_at_least(dice_types, face_value, needed)
        return ProbabilityResult(probability=probability, expected_count=expected, variance=variance)

    def bid_probability(
        self,
        own_dice: Iterable[Die],
        unknown_types: Sequence[DieType],
        quantity: int,
        face_value: int,
    ) -> float:
        """P(a bid of quantity x face_value holds), given our own hand."""
        own = count_matching(own_dice, face_value)
        return self.probability_at_least(unknown_types, face_value, quantity - own)

    def exact_probability(
        self,
        own_dice: Iterable[Die],
        unknown_types: Sequence[DieType],
        quantity: int,
        face_value: int,
    ) -> float:
        """P(the table holds exactly quantity x face_value), given our own hand."""
        own = count_matching(own_dice, face_value)
        return self.probability_exactly(unknown_types, face_value, quantity - own)
