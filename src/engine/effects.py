"""
Perudo Plus - Card Effects

Resolves a played card against the game state. Effects either change the
table (bid, dice, armed effects) or return private information to the
player who played the card. The card only leaves the hand when its effect
applied.

All methods are stateless class methods operating on immutable data.
"""

import random
from dataclasses import dataclass, replace

from src.engine.base import (
    Bid,
    Card,
    CardType,
    Die,
    DieType,
    GamePhase,
    GameState,
    Player,
)
from src.engine.cards import can_play_card, card_definition
from src.engine.dice import downgrade_die, is_valid_face_value, reroll_die, upgrade_die
from src.engine.errors import CardPlayError, NotYourTurnError
from src.engine.rules import RulesEngine


@dataclass(frozen=True)
class DieRef:
    """Points at a die by owner and position."""
    player_id: str
    die_index: int


@dataclass(frozen=True)
class CardTarget:
    """
    Parameters for a card play. Which fields are needed depends on the card.

    Attributes:
        player_id: Opponent targeted (peek, crack, blind_swap)
        die_id: Die targeted; own die for reroll_one/polish/blind_swap,
            opponent die for peek/crack
        die_index: Alternative to die_id for opponent dice
        face_value: New face for wild_shift
        dice: Two die references for gauge
    """
    player_id: str | None = None
    die_id: str | None = None
    die_index: int | None = None
    face_value: int | None = None
    dice: tuple[DieRef, ...] = ()


@dataclass(frozen=True)
class GaugedDie:
    player_id: str
    die_index: int
    die_type: DieType


@dataclass(frozen=True)
class CardPlayResult:
    """
    What a card play produced.

    Attributes:
        card: The card that was spent
        player_id: Who played it
        message: Public description of the play
        peeked_die: Die revealed privately by peek
        peeked_player_id: Owner of the peeked die
        gauged: Die types revealed privately by gauge
    """
    card: Card
    player_id: str
    message: str
    peeked_die: Die | None = None
    peeked_player_id: str | None = None
    gauged: tuple[GaugedDie, ...] = ()


class CardEffects:
    """Stateless resolver for card plays."""

    @classmethod
    def play_card(
        cls,
        state: GameState,
        player_id: str,
        card_id: str,
        target: CardTarget | None = None,
        rng: random.Random | None = None,
    ) -> tuple[GameState, CardPlayResult]:
        """
        Play a held card.

        Cards timed for the player's own turn or a challenge need it to be
        their turn; reaction and any-time cards can be played out of turn.

        Args:
            state: Current game state (must be bidding)
            player_id: Player playing the card
            card_id: Card in that player's hand
            target: Card parameters
            rng: Random source for rerolls and swaps

        Returns:
            Tuple of (new_state, result)

        Raises:
            CardPlayError: Card missing or parameters invalid
            NotYourTurnError: Turn-bound card played out of turn
        """
        target = target or CardTarget()
        if state.phase != GamePhase.BIDDING:
            raise CardPlayError(f"Cards cannot be played during {state.phase.value}.")

        player = RulesEngine.get_player(state, player_id)
        if not player.is_active:
            raise CardPlayError("Eliminated players cannot play cards.")
        card = next((c for c in player.cards if c.id == card_id), None)
        if card is None:
            raise CardPlayError("Card not found.")

        current = RulesEngine.current_player(state)
        if not can_play_card(card, on_turn=current is not None and current.id == player_id):
            raise NotYourTurnError(f"{card_definition(card.type).name} can only be played on your turn.")

        handler = _HANDLERS[card.type]
        state, result = handler(state, player, card, target, rng)

        state = RulesEngine.with_player(
            state, player_id, lambda p: replace(p, cards=tuple(c for c in p.cards if c.id != card_id))
        )
        return state, result

    # -- Shared lookups --------------------------------------------------

    @classmethod
    def own_die(cls, player: Player, die_id: str | None) -> tuple[int, Die]:
        if die_id is None:
            raise CardPlayError("Must specify one of your dice.")
        for index, die in enumerate(player.dice):
            if die.id == die_id:
                return index, die
        raise CardPlayError("Die not found in your hand.")

    @classmethod
    def opponent(cls, state: GameState, player: Player, target: CardTarget) -> Player:
        if target.player_id is None:
            raise CardPlayError("Must specify a target player.")
        if target.player_id == player.id:
            raise CardPlayError("Must target another player.")
        opponent = RulesEngine.get_player(state, target.player_id)
        if not opponent.is_active:
            raise CardPlayError(f"{opponent.name} has no dice.")
        return opponent

    @classmethod
    def opponent_die(cls, opponent: Player, target: CardTarget) -> tuple[int, Die]:
        if target.die_id is not None:
            for index, die in enumerate(opponent.dice):
                if die.id == target.die_id:
                    return index, die
            raise CardPlayError("Die not found.")
        if target.die_index is not None:
            if 0 <= target.die_index < len(opponent.dice):
                return target.die_index, opponent.dice[target.die_index]
            raise CardPlayError(f"{opponent.name} has no die at position {target.die_index}.")
        raise CardPlayError("Must specify a target die.")


def _replace_die(player: Player, index: int, die: Die) -> Player:
    dice = list(player.dice)
    dice[index] = die
    return replace(player, dice=tuple(dice))


def _arm(effect: str, message: str):
    def handler(state, player, card, target, rng):
        if getattr(player.effects, effect):
            raise CardPlayError(f"{card_definition(card.type).name} is already active.")
        state = RulesEngine.with_player(
            state, player.id, lambda p: replace(p, effects=replace(p.effects, **{effect: True}))
        )
        return state, CardPlayResult(card=card, player_id=player.id, message=message)
    return handler


def _peek(state, player, card, target, rng):
    opponent = CardEffects.opponent(state, player, target)
    _, die = CardEffects.opponent_die(opponent, target)
    return state, CardPlayResult(
        card=card,
        player_id=player.id,
        message=f"{player.name} peeked at one of {opponent.name}'s dice.",
        peeked_die=die,
        peeked_player_id=opponent.id,
    )


def _gauge(state, player, card, target, rng):
    if len(target.dice) != 2:
        raise CardPlayError("Must specify exactly 2 dice to gauge.")
    gauged = []
    for ref in target.dice:
        owner = RulesEngine.get_player(state, ref.player_id)
        if not (0 <= ref.die_index < len(owner.dice)):
            raise CardPlayError(f"{owner.name} has no die at position {ref.die_index}.")
        gauged.append(GaugedDie(owner.id, ref.die_index, owner.dice[ref.die_index].type))
    return state, CardPlayResult(
        card=card,
        player_id=player.id,
        message=f"{player.name} gauged two dice.",
        gauged=tuple(gauged),
    )


def _false_tell(state, player, card, target, rng):
    return state, CardPlayResult(
        card=card, player_id=player.id, message=f"{player.name} claims to have peeked at a die!"
    )


def _inflation(state, player, card, target, rng):
    bid = state.current_bid
    if bid is None:
        raise CardPlayError("No current bid to inflate.")
    inflated = Bid(bid.player_id, bid.quantity + 1, bid.face_value)
    return replace(state, current_bid=inflated), CardPlayResult(
        card=card,
        player_id=player.id,
        message=f"Bid inflated to {inflated.quantity}x{inflated.face_value}.",
    )


def _wild_shift(state, player, card, target, rng):
    bid = state.current_bid
    if bid is None:
        raise CardPlayError("No current bid to shift.")
    face = target.face_value
    if not is_valid_face_value(face):
        raise CardPlayError(f"Invalid face value {face}.")
    if face == bid.face_value:
        raise CardPlayError("Wild Shift must change the face value.")
    shifted = Bid(bid.player_id, bid.quantity, face)
    return replace(state, current_bid=shifted), CardPlayResult(
        card=card,
        player_id=player.id,
        message=f"Bid shifted to {shifted.quantity}x{shifted.face_value}.",
    )


def _reroll_one(state, player, card, target, rng):
    index, die = CardEffects.own_die(player, target.die_id)
    updated = _replace_die(player, index, reroll_die(die, rng))
    state = RulesEngine.with_player(state, player.id, lambda _: updated)
    return state, CardPlayResult(card=card, player_id=player.id, message=f"{player.name} re-rolled a die.")


def _polish(state, player, card, target, rng):
    index, die = CardEffects.own_die(player, target.die_id)
    upgraded = upgrade_die(die)
    if upgraded is None:
        raise CardPlayError("Die is already at maximum size.")
    updated = _replace_die(player, index, upgraded)
    state = RulesEngine.with_player(state, player.id, lambda _: updated)
    return state, CardPlayResult(card=card, player_id=player.id, message=f"{player.name} polished a die.")


def _crack(state, player, card, target, rng):
    opponent = CardEffects.opponent(state, player, target)
    index, die = CardEffects.opponent_die(opponent, target)
    downgraded = downgrade_die(die)
    if downgraded is None:
        raise CardPlayError("Die is already at minimum size.")
    updated = _replace_die(opponent, index, downgraded)
    state = RulesEngine.with_player(state, opponent.id, lambda _: updated)
    return state, CardPlayResult(
        card=card, player_id=player.id, message=f"{player.name} cracked one of {opponent.name}'s dice."
    )


def _blind_swap(state, player, card, target, rng):
    own_index, own = CardEffects.own_die(player, target.die_id)
    opponent = CardEffects.opponent(state, player, target)
    their_index = (rng or random).randrange(len(opponent.dice))
    theirs = opponent.dice[their_index]

    mine = _replace_die(player, own_index, theirs)
    their_hand = _replace_die(opponent, their_index, own)
    state = RulesEngine.with_player(state, player.id, lambda _: mine)
    state = RulesEngine.with_player(state, opponent.id, lambda _: their_hand)
    return state, CardPlayResult(
        card=card, player_id=player.id, message=f"{player.name} swapped a die with {opponent.name}."
    )


_HANDLERS = {
    CardType.PEEK: _peek,
    CardType.GAUGE: _gauge,
    CardType.FALSE_TELL: _false_tell,
    CardType.INFLATION: _inflation,
    CardType.WILD_SHIFT: _wild_shift,
    CardType.PHANTOM_BID: _arm("phantom_bid", "Phantom bid armed: the next bid ignores raise rules."),
    CardType.INSURANCE: _arm("insurance", "Insurance armed: a failed challenge costs no dice."),
    CardType.DOUBLE_STAKES: _arm("double_stakes", "Double stakes armed: the next challenge costs 2 dice."),
    CardType.LATE_CHALLENGE: _arm("late_challenge", "Late challenge armed: an earlier bid can be challenged."),
    CardType.REROLL_ONE: _reroll_one,
    CardType.BLIND_SWAP: _blind_swap,
    CardType.POLISH: _polish,
    CardType.CRACK: _crack,
}
