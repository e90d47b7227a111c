"""
Perudo Plus - Opponent Model

Per-opponent beliefs learned from revealed rounds: how often they bluff,
how aggressively they bid relative to the dice on the table, and which
faces they favour. Models are plain state owned by the game session and
passed to strategies inside the AI context.
"""

import time
from dataclasses import dataclass, field
from typing import Iterable

from src.engine.base import Bid, ChallengeResult, ExactClaimResult

DEFAULT_BLUFF_FREQUENCY = 0.3
DEFAULT_AGGRESSIVENESS = 0.5
FACE_PREFERENCE_STEP = 0.1


@dataclass(frozen=True)
class BidHistoryEntry:
    bid: Bid
    was_bluff: bool
    round_number: int
    total_dice_in_play: int


@dataclass
class OpponentModel:
    """
    Beliefs about one opponent.

    Attributes:
        player_id: Opponent identity
        bluff_frequency: EMA of revealed bluffs, 0-1
        aggressiveness: EMA of quantity / dice in play, 0-1
        face_preferences: Weights for faces 1..6 (index 0 is face 1), mean 1
        bid_history: Most recent bids, oldest first
        last_updated: Unix time of the last update
    """
    player_id: str
    bluff_frequency: float = DEFAULT_BLUFF_FREQUENCY
    aggressiveness: float = DEFAULT_AGGRESSIVENESS
    face_preferences: list[float] = field(default_factory=lambda: [1.0] * 6)
    bid_history: list[BidHistoryEntry] = field(default_factory=list)
    last_updated: float = 0.0

    def preference(self, face_value: int) -> float:
        if 1 <= face_value <= 6:
            return self.face_preferences[face_value - 1]
        return 1.0


class OpponentModelBook:
    """
    The set of opponent models for one game.

    Updated once per resolved challenge or exact claim, from the bids made
    during the round that just ended.
    """

    def __init__(
        self,
        bluff_alpha: float = 0.3,
        aggression_alpha: float = 0.2,
        history_limit: int = 50,
    ) -> None:
        self.bluff_alpha = bluff_alpha
        self.aggression_alpha = aggression_alpha
        self.history_limit = history_limit
        self._models: dict[str, OpponentModel] = {}

    def get(self, player_id: str) -> OpponentModel:
        """Model for a player, created with default beliefs on first use."""
        model = self._models.get(player_id)
        if model is None:
            model = OpponentModel(player_id=player_id)
            self._models[player_id] = model
        return model

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._models

    def __len__(self) -> int:
        return len(self._models)

    def snapshot(self, exclude: str | None = None) -> dict[str, OpponentModel]:
        """Independent copies of every model, optionally without one player."""
        return {
            pid: OpponentModel(
                player_id=m.player_id,
                bluff_frequency=m.bluff_frequency,
                aggressiveness=m.aggressiveness,
                face_preferences=list(m.face_preferences),
                bid_history=list(m.bid_history),
                last_updated=m.last_updated,
            )
            for pid, m in self._models.items()
            if pid != exclude
        }

    def reset(self) -> None:
        self._models.clear()

    def record_round(
        self,
        bids: Iterable[Bid],
        result: ChallengeResult | ExactClaimResult,
        round_number: int,
        total_dice: int,
    ) -> None:
        """
        Learn from every bid of a resolved round.

        Args:
            bids: Previous bids followed by the bid that was called
            result: The resolution that revealed the table
            round_number: Round the bids were made in
            total_dice: Dice in play when the bids were made
        """
        for bid in bids:
            was_bluff = bid == result.bid and result.bid_was_bluff
            self.update(bid, was_bluff, round_number, total_dice)

    def update(self, bid: Bid, was_bluff: bool, round_number: int, total_dice: int) -> OpponentModel:
        """Fold one observed bid into its bidder's model."""
        model = self.get(bid.player_id)

        model.bluff_frequency = (
            self.bluff_alpha * (1.0 if was_bluff else 0.0)
            + (1 - self.bluff_alpha) * model.bluff_frequency
        )

        if total_dice > 0:
            ratio = min(1.0, bid.quantity / total_dice)
            model.aggressiveness = (
                self.aggression_alpha * ratio + (1 - self.aggression_alpha) * model.aggressiveness
            )

        if 1 <= bid.face_value <= 6:
            model.face_preferences[bid.face_value - 1] += FACE_PREFERENCE_STEP
            mean = sum(model.face_preferences) / 6
            model.face_preferences = [w / mean for w in model.face_preferences]

        model.bid_history.append(BidHistoryEntry(bid, was_bluff, round_number, total_dice))
        if len(model.bid_history) > self.history_limit:
            del model.bid_history[: len(model.bid_history) - self.history_limit]

        model.last_updated = time.time()
        return model
