"""
Perudo Plus - Command Intake

Commands a player (or the transport acting for one) can send to a game.
They form a discriminated union on `type`; `parse_command` validates a raw
dict into the matching model.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from src.engine.effects import CardTarget


class StartCommand(BaseModel):
    type: Literal["start"] = "start"


class RollForRoundCommand(BaseModel):
    type: Literal["roll_for_round"] = "roll_for_round"


class PlaceBidCommand(BaseModel):
    type: Literal["place_bid"] = "place_bid"
    quantity: int = Field(ge=1)
    face_value: int = Field(ge=1, le=6)


class CallChallengeCommand(BaseModel):
    """Challenge the standing bid, or an earlier one with a late challenge."""

    type: Literal["call_challenge"] = "call_challenge"
    target_bid_index: int | None = None


class CallExactClaimCommand(BaseModel):
    type: Literal["call_exact_claim"] = "call_exact_claim"


class PlayCardCommand(BaseModel):
    type: Literal["play_card"] = "play_card"
    card_id: str
    target: CardTarget | None = None


class NextRoundCommand(BaseModel):
    type: Literal["next_round"] = "next_round"


class PauseCommand(BaseModel):
    type: Literal["pause"] = "pause"


class ResumeCommand(BaseModel):
    type: Literal["resume"] = "resume"


class ResetCommand(BaseModel):
    type: Literal["reset"] = "reset"


Command = Annotated[
    Union[
        StartCommand,
        RollForRoundCommand,
        PlaceBidCommand,
        CallChallengeCommand,
        CallExactClaimCommand,
        PlayCardCommand,
        NextRoundCommand,
        PauseCommand,
        ResumeCommand,
        ResetCommand,
    ],
    Field(discriminator="type"),
]

COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)


def parse_command(data: dict[str, Any]) -> Command:
    """
    Validate a raw command.

    Raises:
        pydantic.ValidationError: Unknown type or bad fields
    """
    return COMMAND_ADAPTER.validate_python(data)
