"""
Perudo Plus - Rules Engine

The authoritative state machine: lobby, dealing, rolling, bidding,
challenges, exact claims, dice loss, elimination and round progression.

    lobby -> rolling -> bidding -> challenge_called -> round_end -> rolling ...
                                                   `-> game_over
    paused is reachable from rolling, bidding, challenge_called, round_end.

All methods are stateless class methods operating on immutable data.
State is passed in and returned, never stored, so a rejected command leaves
the caller holding the last valid state.
"""

import random
from dataclasses import replace
from typing import Callable

from src.engine.base import (
    ActiveEffects,
    Bid,
    ChallengeResult,
    Die,
    ExactClaimResult,
    GameMode,
    GamePhase,
    GameSettings,
    GameState,
    Player,
    RevealedHand,
)
from src.engine.cards import create_deck, draw_card
from src.engine.dice import BASE_DIE_TYPE, count_table, create_starting_dice, new_id, roll_all
from src.engine.errors import (
    GameSetupError,
    InvalidBidError,
    InvalidPhaseError,
    InvariantViolation,
    NoBidToChallengeError,
    NotYourTurnError,
    PlayerNotFoundError,
)
from src.engine.validators import (
    is_valid_raise,
    minimum_raise_quantity,
    validate_face_value,
    validate_player_count,
    validate_quantity,
)

PAUSABLE_PHASES = frozenset({
    GamePhase.ROLLING,
    GamePhase.BIDDING,
    GamePhase.CHALLENGE_CALLED,
    GamePhase.ROUND_END,
})


class RulesEngine:
    """
    Stateless engine for the bidding game.

    All methods are class methods operating on immutable data.
    """

    # -- Setup -----------------------------------------------------------

    @classmethod
    def create_game(
        cls,
        settings: GameSettings | None = None,
        game_id: str | None = None,
    ) -> GameState:
        """Create an empty game in the lobby."""
        return GameState(id=game_id or new_id(), settings=settings or GameSettings())

    @classmethod
    def create_player(
        cls,
        name: str,
        is_host: bool = False,
        is_ai: bool = False,
        player_id: str | None = None,
    ) -> Player:
        return Player(id=player_id or new_id(), name=name, is_host=is_host, is_ai=is_ai)

    @classmethod
    def add_player(cls, state: GameState, player: Player) -> GameState:
        """Seat a player. Only allowed in the lobby and while seats remain."""
        if state.phase != GamePhase.LOBBY:
            raise InvalidPhaseError("Cannot join a game in progress.")
        if len(state.players) >= state.settings.max_players:
            raise GameSetupError(f"Game is full ({state.settings.max_players} players).")
        if any(p.id == player.id for p in state.players):
            raise GameSetupError(f"Player {player.id} is already seated.")
        return replace(state, players=state.players + (player,))

    @classmethod
    def remove_player(cls, state: GameState, player_id: str) -> GameState:
        cls.get_player(state, player_id)
        return replace(state, players=tuple(p for p in state.players if p.id != player_id))

    # -- Queries ---------------------------------------------------------

    @classmethod
    def get_player(cls, state: GameState, player_id: str) -> Player:
        for player in state.players:
            if player.id == player_id:
                return player
        raise PlayerNotFoundError(f"Unknown player {player_id}.")

    @classmethod
    def active_players(cls, state: GameState) -> tuple[Player, ...]:
        """Players still in the game (not eliminated, holding dice)."""
        return tuple(p for p in state.players if p.is_active)

    @classmethod
    def current_player(cls, state: GameState) -> Player | None:
        active = cls.active_players(state)
        if not active:
            return None
        return active[state.current_turn_index % len(active)]

    @classmethod
    def total_dice(cls, state: GameState) -> int:
        return sum(p.dice_count for p in cls.active_players(state))

    @classmethod
    def tally(cls, state: GameState, face_value: int) -> int:
        """Count dice matching face_value across all active hands (wilds included)."""
        return count_table((p.dice for p in cls.active_players(state)), face_value)

    # -- Lifecycle -------------------------------------------------------

    @classmethod
    def start_game(cls, state: GameState, rng: random.Random | None = None) -> GameState:
        """
        Deal dice and move to the first round.

        Raises:
            GameSetupError: Not 2-6 players seated
            InvalidPhaseError: Game is not in the lobby
        """
        if state.phase != GamePhase.LOBBY:
            raise InvalidPhaseError("Game already started.")
        validate_player_count(len(state.players))

        settings = state.settings
        players = tuple(
            replace(
                p,
                dice=create_starting_dice(settings.mode, settings.starting_dice, rng),
                cards=(),
                is_eliminated=False,
                effects=ActiveEffects(),
            )
            for p in state.players
        )
        deck = create_deck(settings.mode == GameMode.CHAOS, rng) if settings.uses_cards else ()

        return replace(
            state,
            players=players,
            phase=GamePhase.ROLLING,
            round_number=1,
            current_turn_index=0,
            current_bid=None,
            previous_bids=(),
            winner_id=None,
            last_result=None,
            deck=deck,
        )

    @classmethod
    def roll_for_round(cls, state: GameState, rng: random.Random | None = None) -> GameState:
        """Re-roll every active player's dice and open bidding."""
        cls._require_phase(state, GamePhase.ROLLING, "roll dice")
        players = tuple(
            replace(p, dice=roll_all(p.dice, rng)) if p.is_active else p
            for p in state.players
        )
        return replace(state, players=players, phase=GamePhase.BIDDING)

    @classmethod
    def start_new_round(cls, state: GameState) -> GameState:
        """
        Reset the table for the next round.

        The loser of the last challenge opens, if still in the game.
        """
        cls._require_phase(state, GamePhase.ROUND_END, "start a new round")

        loser_id = state.last_result.loser_id if state.last_result else None
        cleared = cls.with_players(state, lambda p: replace(p, effects=ActiveEffects()))
        active = cls.active_players(cleared)
        start_index = next((i for i, p in enumerate(active) if p.id == loser_id), 0)

        return replace(
            cleared,
            phase=GamePhase.ROLLING,
            round_number=state.round_number + 1,
            current_turn_index=start_index,
            current_bid=None,
            previous_bids=(),
            last_result=None,
            paused_from_phase=None,
        )

    @classmethod
    def pause(cls, state: GameState) -> GameState:
        if state.phase not in PAUSABLE_PHASES:
            raise InvalidPhaseError(f"Cannot pause game in phase {state.phase.value}.")
        return replace(state, paused_from_phase=state.phase, phase=GamePhase.PAUSED)

    @classmethod
    def resume(cls, state: GameState) -> GameState:
        if state.phase != GamePhase.PAUSED:
            raise InvalidPhaseError("Game is not paused.")
        if state.paused_from_phase is None:
            raise InvalidPhaseError("No phase to resume to.")
        return replace(state, phase=state.paused_from_phase, paused_from_phase=None)

    @classmethod
    def reset_game(cls, state: GameState) -> GameState:
        """Send everyone back to the lobby, keeping the seats."""
        players = tuple(
            replace(p, dice=(), cards=(), is_eliminated=False, effects=ActiveEffects())
            for p in state.players
        )
        return replace(
            state,
            phase=GamePhase.LOBBY,
            players=players,
            current_turn_index=0,
            current_bid=None,
            previous_bids=(),
            round_number=0,
            winner_id=None,
            last_result=None,
            paused_from_phase=None,
            deck=(),
        )

    # -- Bidding ---------------------------------------------------------

    @classmethod
    def is_valid_bid(
        cls,
        state: GameState,
        quantity: int,
        face_value: int,
        phantom: bool = False,
    ) -> bool:
        """Whether a bid is legal against the current bid."""
        if phantom:
            return isinstance(quantity, int) and quantity >= 1 and 1 <= face_value <= 6
        return is_valid_raise(state.current_bid, quantity, face_value)

    @classmethod
    def place_bid(
        cls,
        state: GameState,
        player_id: str,
        quantity: int,
        face_value: int,
    ) -> GameState:
        """
        Make a bid for the player whose turn it is.

        A phantom-bid effect lets one bid skip the raise rules and is spent
        by that bid.

        Raises:
            InvalidPhaseError: Not bidding
            NotYourTurnError: Someone else must act
            InvalidBidError: Malformed or too low
        """
        cls._require_phase(state, GamePhase.BIDDING, "bid")
        player = cls._require_turn(state, player_id)
        validate_quantity(quantity)
        validate_face_value(face_value)

        phantom = player.effects.phantom_bid
        if not cls.is_valid_bid(state, quantity, face_value, phantom=phantom):
            minimum = minimum_raise_quantity(state.current_bid, face_value)
            raise InvalidBidError(
                f"Bid of {quantity}x{face_value} is too low; need at least {minimum}x{face_value}."
            )

        if phantom:
            state = cls.with_player(
                state, player_id, lambda p: replace(p, effects=replace(p.effects, phantom_bid=False))
            )

        previous = state.previous_bids
        if state.current_bid is not None:
            previous = previous + (state.current_bid,)

        active_count = len(cls.active_players(state))
        return replace(
            state,
            current_bid=Bid(player_id=player_id, quantity=quantity, face_value=face_value),
            previous_bids=previous,
            current_turn_index=(state.current_turn_index + 1) % active_count,
        )

    # -- Challenges ------------------------------------------------------

    @classmethod
    def call_challenge(
        cls,
        state: GameState,
        caller_id: str,
        target_bid_index: int | None = None,
    ) -> tuple[GameState, ChallengeResult]:
        """
        Challenge a bid as an overstatement.

        Without an index the current bid is challenged. With an index the
        caller must hold an armed late-challenge effect and the index selects
        an entry of the previous-bids log; the effect is spent.

        Returns:
            Tuple of (new_state, result)
        """
        cls._require_phase(state, GamePhase.BIDDING, "challenge")
        caller = cls._require_turn(state, caller_id)
        if state.current_bid is None:
            raise NoBidToChallengeError("No bid to challenge.")

        is_late = target_bid_index is not None
        if is_late:
            if not caller.effects.late_challenge:
                raise InvalidPhaseError("Late challenge effect not active.")
            if not state.previous_bids:
                raise NoBidToChallengeError("No previous bids to challenge.")
            if not (-len(state.previous_bids) <= target_bid_index < len(state.previous_bids)):
                raise NoBidToChallengeError(f"No previous bid at index {target_bid_index}.")
            bid = state.previous_bids[target_bid_index]
            if bid.player_id == caller_id:
                raise NoBidToChallengeError("Cannot challenge your own bid.")
            state = cls.with_player(
                state, caller_id, lambda p: replace(p, effects=replace(p.effects, late_challenge=False))
            )
        else:
            bid = state.current_bid

        actual = cls.tally(state, bid.face_value)
        success = actual < bid.quantity
        result = ChallengeResult(
            caller_id=caller_id,
            target_player_id=bid.player_id,
            bid=bid,
            actual_count=actual,
            success=success,
            loser_id=bid.player_id if success else caller_id,
            revealed=cls._reveal(state),
            is_late=is_late,
        )
        return replace(state, phase=GamePhase.CHALLENGE_CALLED, last_result=result), result

    @classmethod
    def apply_challenge_outcome(
        cls,
        state: GameState,
        result: ChallengeResult,
        insurance_active: bool = False,
        double_stakes_active: bool = False,
        rng: random.Random | None = None,
    ) -> GameState:
        """
        Take dice from the loser of a challenge.

        The loser gives up 1 die, or 2 under double stakes. Insurance only
        covers a caller whose own challenge failed, and then no die is lost
        even under double stakes. A player who loses dice in a card mode
        draws a card while their hand has room.
        """
        cls._require_phase(state, GamePhase.CHALLENGE_CALLED, "resolve a challenge")

        dice_lost = 2 if double_stakes_active else 1
        if insurance_active and result.loser_id == result.caller_id:
            dice_lost = 0

        if dice_lost:
            state = cls._take_dice(state, result.loser_id, dice_lost, rng)
        return cls._settle(state)

    @classmethod
    def resolve_challenge(
        cls,
        state: GameState,
        caller_id: str,
        target_bid_index: int | None = None,
        rng: random.Random | None = None,
    ) -> tuple[GameState, ChallengeResult]:
        """
        Call and settle a challenge in one step using armed effects.

        Insurance is the caller's. Double stakes counts if either the caller
        or the challenged bidder armed it. The effects that applied are spent.
        """
        state, result = cls.call_challenge(state, caller_id, target_bid_index)
        caller = cls.get_player(state, caller_id)
        target = cls.get_player(state, result.target_player_id)

        insurance = caller.effects.insurance
        double_stakes = caller.effects.double_stakes or target.effects.double_stakes

        def spend(p: Player) -> Player:
            return replace(p, effects=replace(p.effects, insurance=False, double_stakes=False))

        state = cls.with_player(state, caller_id, spend)
        if target.effects.double_stakes:
            state = cls.with_player(state, target.id, spend)

        state = cls.apply_challenge_outcome(state, result, insurance, double_stakes, rng)
        return state, result

    @classmethod
    def call_exact_claim(
        cls,
        state: GameState,
        caller_id: str,
    ) -> tuple[GameState, ExactClaimResult]:
        """
        Claim the current bid is exactly right.

        On success the caller gains a fresh base die; on failure the caller
        loses their lowest-index die.

        Returns:
            Tuple of (new_state, result)
        """
        cls._require_phase(state, GamePhase.BIDDING, "make an exact claim")
        cls._require_turn(state, caller_id)
        bid = state.current_bid
        if bid is None:
            raise NoBidToChallengeError("No bid to claim against.")

        actual = cls.tally(state, bid.face_value)
        success = actual == bid.quantity
        result = ExactClaimResult(
            caller_id=caller_id,
            target_player_id=bid.player_id,
            bid=bid,
            actual_count=actual,
            success=success,
            loser_id=None if success else caller_id,
            revealed=cls._reveal(state),
        )

        if success:
            fresh = Die(id=new_id(), type=BASE_DIE_TYPE, face_value=1)
            state = cls.with_player(state, caller_id, lambda p: replace(p, dice=p.dice + (fresh,)))
        else:
            state = cls.with_player(state, caller_id, lambda p: replace(p, dice=p.dice[1:]))

        state = replace(state, last_result=result)
        return cls._settle(state), result

    # -- Internals -------------------------------------------------------

    @classmethod
    def _require_phase(cls, state: GameState, phase: GamePhase, action: str) -> None:
        if state.phase != phase:
            raise InvalidPhaseError(f"Cannot {action} during {state.phase.value}.")

    @classmethod
    def _require_turn(cls, state: GameState, player_id: str) -> Player:
        player = cls.get_player(state, player_id)
        current = cls.current_player(state)
        if current is None or current.id != player_id:
            raise NotYourTurnError(f"It is not {player.name}'s turn.")
        return player

    @classmethod
    def _reveal(cls, state: GameState) -> tuple[RevealedHand, ...]:
        return tuple(RevealedHand(player_id=p.id, dice=p.dice) for p in cls.active_players(state))

    @classmethod
    def with_player(
        cls,
        state: GameState,
        player_id: str,
        update: Callable[[Player], Player],
    ) -> GameState:
        return replace(
            state,
            players=tuple(update(p) if p.id == player_id else p for p in state.players),
        )

    @classmethod
    def with_players(cls, state: GameState, update: Callable[[Player], Player]) -> GameState:
        return replace(state, players=tuple(update(p) for p in state.players))

    @classmethod
    def _take_dice(
        cls,
        state: GameState,
        player_id: str,
        count: int,
        rng: random.Random | None,
    ) -> GameState:
        """Remove dice from the front of a hand and deal the loser a card if allowed."""
        player = cls.get_player(state, player_id)
        player = replace(player, dice=player.dice[count:])
        deck = state.deck

        if state.settings.uses_cards and len(player.cards) < state.settings.max_hand_size:
            if not deck:
                deck = create_deck(state.settings.mode == GameMode.CHAOS, rng)
            card, deck = draw_card(deck)
            if card is not None:
                player = replace(player, cards=player.cards + (card,))

        state = replace(state, deck=deck)
        return cls.with_player(state, player_id, lambda _: player)

    @classmethod
    def _settle(cls, state: GameState) -> GameState:
        """Mark empty hands as eliminated and decide between round_end and game_over."""
        state = cls.with_players(
            state,
            lambda p: replace(p, is_eliminated=True) if not p.dice and not p.is_eliminated else p,
        )
        remaining = [p for p in state.players if not p.is_eliminated]
        if not remaining:
            raise InvariantViolation("Settled a round with no players left in the game.")
        if len(remaining) == 1:
            return replace(state, phase=GamePhase.GAME_OVER, winner_id=remaining[0].id)
        return replace(state, phase=GamePhase.ROUND_END)
