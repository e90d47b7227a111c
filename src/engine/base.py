"""
Perudo Plus - Game Engine Base Classes

This module defines the foundational data structures and enums used throughout
the game engine. All classes are immutable (frozen dataclasses) and can be
shared with AI code and search workers.
"""

from dataclasses import dataclass, field
from enum import Enum


class DieType(Enum):
    """Face-count variant of a die."""
    D3 = "d3"
    D4 = "d4"
    D6 = "d6"
    D8 = "d8"
    D10 = "d10"


class GamePhase(Enum):
    """Phases of the rules state machine."""
    LOBBY = "lobby"
    ROLLING = "rolling"
    BIDDING = "bidding"
    CHALLENGE_CALLED = "challenge_called"
    ROUND_END = "round_end"
    GAME_OVER = "game_over"
    PAUSED = "paused"


class GameMode(Enum):
    """Available game modes."""
    CLASSIC = "classic"    # 5 x d6, no cards
    TACTICAL = "tactical"  # 3 x d6 + 2 mixed dice, standard deck
    CHAOS = "chaos"        # as tactical, deck heavy on dice manipulation


class CardType(Enum):
    """Effect cards a player can hold."""
    # Information
    PEEK = "peek"
    GAUGE = "gauge"
    FALSE_TELL = "false_tell"
    # Bid manipulation
    INFLATION = "inflation"
    WILD_SHIFT = "wild_shift"
    PHANTOM_BID = "phantom_bid"
    # Challenge interaction
    INSURANCE = "insurance"
    DOUBLE_STAKES = "double_stakes"
    LATE_CHALLENGE = "late_challenge"
    # Dice manipulation
    REROLL_ONE = "reroll_one"
    BLIND_SWAP = "blind_swap"
    POLISH = "polish"
    CRACK = "crack"


class CardTiming(Enum):
    """When a card may be played."""
    ON_TURN = "on_turn"
    REACTION = "reaction"
    ON_CHALLENGE = "on_challenge"
    ANY = "any"


@dataclass(frozen=True)
class Die:
    """
    A single die.

    Attributes:
        id: Stable identity, survives rerolls and upgrades
        type: Face-count variant
        face_value: Current face in the 1..6 domain (1 is wild)
    """
    id: str
    type: DieType
    face_value: int

    def __post_init__(self) -> None:
        if not (1 <= self.face_value <= 6):
            raise ValueError(f"Face value must be 1-6, got {self.face_value}.")


@dataclass(frozen=True)
class Card:
    """A held effect card. Name, description and timing come from the catalogue."""
    id: str
    type: CardType


@dataclass(frozen=True)
class Bid:
    """
    A public claim about the table.

    Attributes:
        player_id: Who made the claim
        quantity: Claimed number of matching dice (>= 1)
        face_value: Claimed face (1-6)
    """
    player_id: str
    quantity: int
    face_value: int


@dataclass(frozen=True)
class ActiveEffects:
    """One-shot effects armed by cards, each consumed by a single action."""
    insurance: bool = False
    double_stakes: bool = False
    phantom_bid: bool = False
    late_challenge: bool = False


@dataclass(frozen=True)
class RevealedHand:
    """A player's dice as shown when a challenge is resolved."""
    player_id: str
    dice: tuple[Die, ...]


@dataclass(frozen=True)
class ChallengeResult:
    """
    Outcome of an "at-least" challenge.

    Attributes:
        caller_id: Player who challenged
        target_player_id: Player who made the challenged bid
        bid: The challenged bid
        actual_count: Matching dice on the table (wilds included for face != 1)
        success: True if the bid overstated the table
        loser_id: Bidder on success, caller on failure
        revealed: Every active player's dice
        is_late: Whether the challenge targeted an earlier bid
    """
    caller_id: str
    target_player_id: str
    bid: Bid
    actual_count: int
    success: bool
    loser_id: str
    revealed: tuple[RevealedHand, ...] = ()
    is_late: bool = False

    @property
    def bid_was_bluff(self) -> bool:
        return self.success


@dataclass(frozen=True)
class ExactClaimResult:
    """
    Outcome of an exact claim.

    Attributes:
        caller_id: Player who claimed the bid is exactly right
        target_player_id: Player who made the bid
        bid: The bid in question
        actual_count: Matching dice on the table
        success: True if actual_count equals the bid quantity
        loser_id: The caller on failure, None on success
        revealed: Every active player's dice
    """
    caller_id: str
    target_player_id: str
    bid: Bid
    actual_count: int
    success: bool
    loser_id: str | None
    revealed: tuple[RevealedHand, ...] = ()

    @property
    def bid_was_bluff(self) -> bool:
        return self.actual_count < self.bid.quantity


@dataclass(frozen=True)
class GameSettings:
    """Per-game configuration."""
    mode: GameMode = GameMode.TACTICAL
    max_players: int = 6
    starting_dice: int = 5
    max_hand_size: int = 3

    def __post_init__(self) -> None:
        if not (2 <= self.max_players <= 6):
            raise ValueError(f"Max players must be 2-6, got {self.max_players}.")
        if self.starting_dice < 1:
            raise ValueError(f"Starting dice must be positive, got {self.starting_dice}.")
        if self.max_hand_size < 0:
            raise ValueError(f"Max hand size cannot be negative, got {self.max_hand_size}.")

    @property
    def uses_cards(self) -> bool:
        return self.mode != GameMode.CLASSIC


@dataclass(frozen=True)
class Player:
    """
    A seat at the table.

    Attributes:
        id: Player identity
        name: Display name
        dice: Owned dice, in order (index 0 is lost first)
        cards: Held effect cards
        is_connected: Transport flag, carried but not interpreted
        is_host: Transport flag, carried but not interpreted
        is_ai: Whether a strategy acts for this player
        is_eliminated: True once the player has no dice
        effects: Armed one-shot effects
    """
    id: str
    name: str
    dice: tuple[Die, ...] = ()
    cards: tuple[Card, ...] = ()
    is_connected: bool = True
    is_host: bool = False
    is_ai: bool = False
    is_eliminated: bool = False
    effects: ActiveEffects = field(default_factory=ActiveEffects)

    @property
    def dice_count(self) -> int:
        return len(self.dice)

    @property
    def is_active(self) -> bool:
        return not self.is_eliminated and len(self.dice) > 0


@dataclass(frozen=True)
class GameState:
    """
    Aggregate root for one game.

    Only the rules engine produces new instances; everything else reads it
    or a projection of it.

    Attributes:
        id: Game identity
        settings: Mode and limits
        phase: Current phase
        players: Seats in turn order
        current_turn_index: Index into the active players (modulo their count)
        current_bid: Standing bid, None at the start of a round
        previous_bids: Superseded bids this round, oldest first
        round_number: 0 in the lobby, 1 for the first round
        winner_id: Set when the game is over
        last_result: Last challenge or exact claim result this round
        paused_from_phase: Phase to restore on resume
        deck: Undrawn cards
    """
    id: str
    settings: GameSettings = field(default_factory=GameSettings)
    phase: GamePhase = GamePhase.LOBBY
    players: tuple[Player, ...] = ()
    current_turn_index: int = 0
    current_bid: Bid | None = None
    previous_bids: tuple[Bid, ...] = ()
    round_number: int = 0
    winner_id: str | None = None
    last_result: ChallengeResult | ExactClaimResult | None = None
    paused_from_phase: GamePhase | None = None
    deck: tuple[Card, ...] = ()
