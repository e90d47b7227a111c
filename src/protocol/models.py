"""
Perudo Plus - State Projections

Pydantic views of a GameState for anything outside the rules engine.
The public view redacts every player's dice to a count; the private view
adds one player's own dice and cards on top of it.
"""

from pydantic import BaseModel, Field

from src.engine.base import (
    ActiveEffects,
    Bid,
    Card,
    ChallengeResult,
    Die,
    ExactClaimResult,
    GameMode,
    GamePhase,
    GameState,
    Player,
)
from src.engine.rules import RulesEngine


class PublicPlayerInfo(BaseModel):
    """What every viewer may know about a seat."""

    id: str
    name: str
    dice_count: int = Field(ge=0)
    card_count: int = Field(ge=0)
    is_connected: bool = True
    is_host: bool = False
    is_ai: bool = False
    is_eliminated: bool = False
    effects: ActiveEffects = Field(default_factory=ActiveEffects)

    model_config = {"from_attributes": True}

    @classmethod
    def from_player(cls, player: Player) -> "PublicPlayerInfo":
        return cls(
            id=player.id,
            name=player.name,
            dice_count=player.dice_count,
            card_count=len(player.cards),
            is_connected=player.is_connected,
            is_host=player.is_host,
            is_ai=player.is_ai,
            is_eliminated=player.is_eliminated,
            effects=player.effects,
        )


class PublicGameState(BaseModel):
    """Read-only public view of a game. Hidden dice appear only as counts."""

    id: str
    mode: GameMode
    phase: GamePhase
    players: list[PublicPlayerInfo] = Field(default_factory=list)
    current_turn_index: int = 0
    current_turn_player_id: str | None = None
    current_bid: Bid | None = None
    previous_bids: list[Bid] = Field(default_factory=list)
    round_number: int = 0
    total_dice: int = 0
    winner_id: str | None = None
    # Resolved results reveal the table, so they are public
    last_result: ChallengeResult | ExactClaimResult | None = None
    deck_size: int = 0

    model_config = {"from_attributes": True}

    @classmethod
    def from_state(cls, state: GameState) -> "PublicGameState":
        current = RulesEngine.current_player(state)
        return cls(
            id=state.id,
            mode=state.settings.mode,
            phase=state.phase,
            players=[PublicPlayerInfo.from_player(p) for p in state.players],
            current_turn_index=state.current_turn_index,
            current_turn_player_id=current.id if current else None,
            current_bid=state.current_bid,
            previous_bids=list(state.previous_bids),
            round_number=state.round_number,
            total_dice=RulesEngine.total_dice(state),
            winner_id=state.winner_id,
            last_result=state.last_result,
            deck_size=len(state.deck),
        )


class PrivatePlayerView(BaseModel):
    """The public view plus one player's own hand."""

    player_id: str
    dice: list[Die] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)
    effects: ActiveEffects = Field(default_factory=ActiveEffects)
    game: PublicGameState

    @classmethod
    def from_state(cls, state: GameState, player_id: str) -> "PrivatePlayerView":
        player = RulesEngine.get_player(state, player_id)
        return cls(
            player_id=player.id,
            dice=list(player.dice),
            cards=list(player.cards),
            effects=player.effects,
            game=PublicGameState.from_state(state),
        )
