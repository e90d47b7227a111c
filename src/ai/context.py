"""
Perudo Plus - AI Context

Everything an AI participant is allowed to know when it acts: its own dice
and cards, the public table, what it learned from cards, and the opponent
models the session keeps for it.
"""

from dataclasses import dataclass, field
from typing import Iterable

from src.ai.opponent_model import OpponentModel
from src.ai.types import AIPlayerInfo, KnownDie
from src.engine.base import ActiveEffects, Bid, Card, CardType, Die, DieType, GameMode, GameState
from src.engine.dice import DICE_ORDER
from src.engine.rules import RulesEngine


@dataclass(frozen=True)
class AIGameContext:
    """
    Read-only snapshot handed to a strategy.

    Attributes:
        own_player_id: The acting AI
        own_dice: Its dice, faces included
        own_cards: Its cards
        own_effects: Its armed effects
        current_bid: Standing bid, None for the opening bid
        previous_bids: Superseded bids this round
        round_number: Current round
        game_mode: Mode, classic has no cards
        players: Public info for every seat
        current_turn_player_id: Who is to act
        total_dice_count: Dice in play across all active players
        unknown_dice_types: Sizes of every opponent die, in size order
        known_dice: Dice learned about through cards this round
        opponent_models: Beliefs about the other players
    """
    own_player_id: str
    own_dice: tuple[Die, ...]
    own_cards: tuple[Card, ...] = ()
    own_effects: ActiveEffects = field(default_factory=ActiveEffects)
    current_bid: Bid | None = None
    previous_bids: tuple[Bid, ...] = ()
    round_number: int = 1
    game_mode: GameMode = GameMode.TACTICAL
    players: tuple[AIPlayerInfo, ...] = ()
    current_turn_player_id: str = ""
    total_dice_count: int = 0
    unknown_dice_types: tuple[DieType, ...] = ()
    known_dice: tuple[KnownDie, ...] = ()
    opponent_models: dict[str, OpponentModel] = field(default_factory=dict)

    @property
    def unknown_dice_count(self) -> int:
        return max(0, self.total_dice_count - len(self.own_dice))

    @property
    def uses_cards(self) -> bool:
        return self.game_mode != GameMode.CLASSIC

    def opponents(self) -> list[AIPlayerInfo]:
        """Other players still in the game."""
        return [
            p for p in self.players
            if p.id != self.own_player_id and not p.is_eliminated and p.dice_count > 0
        ]

    def own_player(self) -> AIPlayerInfo | None:
        return next((p for p in self.players if p.id == self.own_player_id), None)

    def cards_of(self, card_type: CardType) -> list[Card]:
        return [c for c in self.own_cards if c.type == card_type]

    def visible_dice(self) -> tuple[list[Die], list[DieType]]:
        """
        Split the table into dice with known faces and the unknown pool.

        Own dice and peeked dice have known faces; every other opponent die
        stays in the pool.

        Returns:
            Tuple of (known_face_dice, unknown_types)
        """
        known = list(self.own_dice)
        pool = list(self.unknown_dice_types)
        for info in self.known_dice:
            if info.face_value is None:
                continue
            if info.die_type in pool:
                pool.remove(info.die_type)
                known.append(Die(id=info.die_id, type=info.die_type, face_value=info.face_value))
        return known, pool


def face_counts(dice: Iterable[Die]) -> list[int]:
    """Count dice per face; index 0 is unused so counts[f] is face f."""
    counts = [0] * 7
    for die in dice:
        counts[die.face_value] += 1
    return counts


def best_face(dice: Iterable[Die]) -> tuple[int, int]:
    """
    Face 2-6 with the most support in a hand, wilds included.

    Returns:
        Tuple of (face_value, count); ties go to the lower face
    """
    counts = face_counts(dice)
    face, best = 2, 0
    for candidate in range(2, 7):
        count = counts[candidate] + counts[1]
        if count > best:
            face, best = candidate, count
    return face, best


def build_context(
    state: GameState,
    player_id: str,
    opponent_models: dict[str, OpponentModel] | None = None,
    known_dice: Iterable[KnownDie] = (),
) -> AIGameContext:
    """
    Project the game state onto what one AI participant may see.

    Other players' dice are reduced to counts and an unordered pool of
    sizes; only the acting player's faces are included.
    """
    me = RulesEngine.get_player(state, player_id)
    active = RulesEngine.active_players(state)
    current = RulesEngine.current_player(state)

    pool = [d.type for p in active if p.id != player_id for d in p.dice]
    pool.sort(key=DICE_ORDER.index)

    players = tuple(
        AIPlayerInfo(
            id=p.id,
            name=p.name,
            dice_count=p.dice_count,
            card_count=len(p.cards),
            is_eliminated=p.is_eliminated,
        )
        for p in state.players
    )

    return AIGameContext(
        own_player_id=player_id,
        own_dice=me.dice,
        own_cards=me.cards,
        own_effects=me.effects,
        current_bid=state.current_bid,
        previous_bids=state.previous_bids,
        round_number=state.round_number,
        game_mode=state.settings.mode,
        players=players,
        current_turn_player_id=current.id if current else "",
        total_dice_count=RulesEngine.total_dice(state),
        unknown_dice_types=tuple(pool),
        known_dice=tuple(k for k in known_dice if k.round_number == state.round_number),
        opponent_models=dict(opponent_models or {}),
    )
