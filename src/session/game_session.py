"""
Perudo Plus - Game Session

Owns one game: its current state, the AI seats, the opponent models and
the event subscribers. Commands are applied one at a time under a lock;
a rejected command leaves the state untouched and is reported to the
caller only.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from pydantic import ValidationError

from src.ai.context import build_context
from src.ai.factory import AIPlayer, create_ai_player
from src.ai.opponent_model import OpponentModelBook
from src.ai.probability import ProbabilityEngine
from src.ai.search.worker import SearchWorker
from src.ai.strategies.base import heuristic_decision
from src.ai.types import AIActionType, AIDecision, AIDifficulty, KnownDie
from src.config import Settings, get_settings
from src.engine.base import (
    ChallengeResult,
    ExactClaimResult,
    GameMode,
    GamePhase,
    GameSettings,
    GameState,
    Player,
)
from src.engine.effects import CardEffects, CardPlayResult
from src.engine.errors import GameRuleError
from src.engine.rules import RulesEngine
from src.events.events import EventPayload, GameEvent, classify_transition
from src.protocol.commands import (
    CallChallengeCommand,
    CallExactClaimCommand,
    Command,
    PlaceBidCommand,
    PlayCardCommand,
    parse_command,
)
from src.protocol.models import PrivatePlayerView, PublicGameState

logger = logging.getLogger(__name__)

INVALID_COMMAND = "INVALID_COMMAND"

Subscriber = Callable[[EventPayload], None]


@dataclass
class CommandResult:
    """
    Outcome of one command, returned to the caller only.

    Attributes:
        accepted: Whether the command was applied
        events: Events the command produced (COMMAND_REJECTED if refused)
        error_code: Stable code of the rule that refused it
        message: Human-readable reason for a refusal
        result: Challenge or exact-claim resolution
        card_result: Card outcome, including privately revealed dice
    """
    accepted: bool
    events: list[GameEvent] = field(default_factory=list)
    error_code: str | None = None
    message: str = ""
    result: ChallengeResult | ExactClaimResult | None = None
    card_result: CardPlayResult | None = None

    @classmethod
    def rejected(cls, code: str, message: str) -> CommandResult:
        return cls(accepted=False, events=[GameEvent.COMMAND_REJECTED], error_code=code, message=message)


class GameSession:
    """
    One running game.

    Args:
        settings: Application settings (defaults and AI limits)
        game_settings: Mode and table limits; built from settings if omitted
        game_id: Identity for the game
        rng: Random source for dice, cards and AI choices
        worker: Search dispatcher for solver seats; created on demand when
            settings.search_use_worker is set
    """

    def __init__(
        self,
        settings: Settings | None = None,
        game_settings: GameSettings | None = None,
        game_id: str | None = None,
        rng: random.Random | None = None,
        worker: SearchWorker | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if game_settings is None:
            game_settings = GameSettings(
                mode=GameMode(self.settings.default_game_mode),
                max_players=self.settings.max_players,
                starting_dice=self.settings.starting_dice,
                max_hand_size=self.settings.max_hand_size,
            )

        self._state = RulesEngine.create_game(game_settings, game_id)
        self._lock = threading.RLock()
        self._rng = rng or random.Random()
        self._subscribers: list[Subscriber] = []
        self._worker = worker

        self.ai_players: dict[str, AIPlayer] = {}
        self.opponent_models = OpponentModelBook(
            bluff_alpha=self.settings.opponent_bluff_alpha,
            aggression_alpha=self.settings.opponent_aggression_alpha,
            history_limit=self.settings.opponent_history_limit,
        )
        self.probability = ProbabilityEngine(self.settings.probability_cache_size)

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def game_id(self) -> str:
        return self._state.id

    def public_state(self) -> PublicGameState:
        return PublicGameState.from_state(self._state)

    def private_view(self, player_id: str) -> PrivatePlayerView:
        return PrivatePlayerView.from_state(self._state, player_id)

    # =========================================================================
    # Seats
    # =========================================================================

    def add_player(self, name: str, is_host: bool = False, player_id: str | None = None) -> Player:
        """Seat a human player in the lobby."""
        player = RulesEngine.create_player(name, is_host=is_host, player_id=player_id)
        with self._lock:
            self._state = RulesEngine.add_player(self._state, player)
        logger.info("Player %s joined game %s", name, self.game_id)
        return player

    def add_ai_player(self, difficulty: AIDifficulty, name: str | None = None) -> AIPlayer:
        """Seat an AI player of the given tier in the lobby."""
        with self._lock:
            worker = self._search_worker() if difficulty == AIDifficulty.SOLVER else None
            ai = create_ai_player(
                difficulty,
                name=name,
                index=len(self.ai_players),
                settings=self.settings,
                probability=self.probability,
                worker=worker,
                rng=self._rng,
            )
            player = RulesEngine.create_player(ai.name, is_ai=True, player_id=ai.id)
            self._state = RulesEngine.add_player(self._state, player)
            self.ai_players[ai.id] = ai
        logger.info("AI %s (%s) joined game %s", ai.name, ai.strategy_name, self.game_id)
        return ai

    def remove_player(self, player_id: str) -> None:
        with self._lock:
            self._state = RulesEngine.remove_player(self._state, player_id)
            self.ai_players.pop(player_id, None)

    def _search_worker(self) -> SearchWorker | None:
        if self._worker is None and self.settings.search_use_worker:
            self._worker = SearchWorker(grace_ms=self.settings.search_worker_grace_ms)
        return self._worker

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Receive every event this game emits.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, payload: EventPayload) -> None:
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber failed on %s for game %s", payload.event.name, self.game_id)

    # =========================================================================
    # Commands
    # =========================================================================

    def handle_command(self, player_id: str, command: Command | dict[str, Any]) -> CommandResult:
        """
        Validate and apply one command from a player.

        Rule violations are returned, not raised, and never change state.
        """
        if isinstance(command, dict):
            try:
                command = parse_command(command)
            except ValidationError as exc:
                logger.info("Malformed command from %s: %s", player_id, exc)
                return CommandResult.rejected(INVALID_COMMAND, str(exc))

        with self._lock:
            old = self._state
            try:
                new, outcome = self._apply(old, player_id, command)
            except GameRuleError as exc:
                logger.info("Rejected %s from %s: %s", command.type, player_id, exc)
                return CommandResult.rejected(exc.code, str(exc))

            self._state = new
            self._learn(old, new, outcome)

            events = classify_transition(old, new)
            if isinstance(outcome, CardPlayResult):
                events.insert(0, GameEvent.CARD_PLAYED)
            self._broadcast(events, player_id, command, outcome)

        result = CommandResult(accepted=True, events=events)
        if isinstance(outcome, (ChallengeResult, ExactClaimResult)):
            result.result = outcome
        elif isinstance(outcome, CardPlayResult):
            result.card_result = outcome
        return result

    def _apply(self, state: GameState, player_id: str, command: Command) -> tuple[GameState, Any]:
        RulesEngine.get_player(state, player_id)

        if command.type == "start":
            return RulesEngine.start_game(state, self._rng), None
        if command.type == "roll_for_round":
            return RulesEngine.roll_for_round(state, self._rng), None
        if command.type == "place_bid":
            return RulesEngine.place_bid(state, player_id, command.quantity, command.face_value), None
        if command.type == "call_challenge":
            return RulesEngine.resolve_challenge(state, player_id, command.target_bid_index, self._rng)
        if command.type == "call_exact_claim":
            return RulesEngine.call_exact_claim(state, player_id)
        if command.type == "play_card":
            return CardEffects.play_card(state, player_id, command.card_id, command.target, self._rng)
        if command.type == "next_round":
            return RulesEngine.start_new_round(state), None
        if command.type == "pause":
            return RulesEngine.pause(state), None
        if command.type == "resume":
            return RulesEngine.resume(state), None
        if command.type == "reset":
            return RulesEngine.reset_game(state), None

        raise GameRuleError(f"Unknown command {command.type}.")

    def _learn(self, old: GameState, new: GameState, outcome: Any) -> None:
        """Update opponent models and AI knowledge after an applied command."""
        if isinstance(outcome, (ChallengeResult, ExactClaimResult)):
            bids = old.previous_bids + ((old.current_bid,) if old.current_bid else ())
            self.opponent_models.record_round(bids, outcome, old.round_number, RulesEngine.total_dice(old))

        if isinstance(outcome, CardPlayResult):
            ai = self.ai_players.get(outcome.player_id)
            if ai is not None:
                ai.learn(self._revealed_dice(new, outcome))

        for ai in self.ai_players.values():
            ai.revalidate(new)

        if new.round_number != old.round_number:
            for ai in self.ai_players.values():
                ai.forget()

        if new.phase == GamePhase.LOBBY and old.phase != GamePhase.LOBBY:
            self.opponent_models.reset()

    def _revealed_dice(self, state: GameState, outcome: CardPlayResult) -> list[KnownDie]:
        known = []
        if outcome.peeked_die is not None and outcome.peeked_player_id is not None:
            die = outcome.peeked_die
            known.append(KnownDie(outcome.peeked_player_id, die.id, die.type, die.face_value, state.round_number))
        for gauged in outcome.gauged:
            owner = RulesEngine.get_player(state, gauged.player_id)
            if 0 <= gauged.die_index < owner.dice_count:
                die_id = owner.dice[gauged.die_index].id
                known.append(
                    KnownDie(gauged.player_id, die_id, gauged.die_type, None, state.round_number, gauged.die_index)
                )
        return known

    def _broadcast(self, events: list[GameEvent], player_id: str, command: Command, outcome: Any) -> None:
        public = self.public_state().model_dump(mode="json")
        for event in events:
            data: dict[str, Any] = {"command": command.type, "state": public}
            if isinstance(outcome, CardPlayResult) and event == GameEvent.CARD_PLAYED:
                # Only the public part of a card play is broadcast
                data["card_type"] = outcome.card.type.value
                data["message"] = outcome.message
            self.emit(EventPayload(event=event, game_id=self.game_id, player_id=player_id, data=data))

    # =========================================================================
    # AI turns
    # =========================================================================

    def run_ai_turns(self) -> list[CommandResult]:
        """
        Let AI seats act while it is an AI's turn to bid.

        Stops when a human must act or bidding ends. A refused card play
        sends the AI back to decide without that card. Any other refused
        decision is replaced by a heuristic move, and only if that is
        refused too does the AI fall back to a challenge or opening bid.
        An AI that keeps playing cards is forced into that same move once
        it reaches max_ai_actions_per_turn.
        """
        results: list[CommandResult] = []
        limit = self.settings.max_ai_actions_per_turn
        actor, actions, refused_cards = None, 0, set()

        with self._lock:
            while self._state.phase == GamePhase.BIDDING:
                current = RulesEngine.current_player(self._state)
                ai = self.ai_players.get(current.id) if current else None
                if ai is None:
                    break

                if current.id != actor:
                    actor, actions, refused_cards = current.id, 0, set()
                actions += 1
                models = self.opponent_models.snapshot(exclude=ai.id)

                if actions > limit:
                    logger.warning("%s hit %d actions this turn, forcing a move", ai.name, limit)
                    command = self._forced_command()
                else:
                    decision = ai.decide(self._without_cards(ai.id, refused_cards), models)
                    command = self.decision_to_command(decision)

                result = self.handle_command(ai.id, command)
                if not result.accepted and command.type == "play_card":
                    logger.warning(
                        "%s's card %s was refused (%s), deciding again", ai.name, command.card_id, result.error_code,
                    )
                    refused_cards.add(command.card_id)
                    continue

                if not result.accepted:
                    logger.warning(
                        "%s's %s was refused (%s), making a heuristic move", ai.name, command.type, result.error_code,
                    )
                    context = build_context(self._state, ai.id, models, ai.known_dice)
                    result = self.handle_command(ai.id, self.decision_to_command(heuristic_decision(context)))

                if not result.accepted:
                    logger.warning("Heuristic move for %s refused (%s), forcing a move", ai.name, result.error_code)
                    result = self.handle_command(ai.id, self._forced_command())
                    if not result.accepted:
                        logger.error("Forced move for %s refused: %s", ai.name, result.message)
                        results.append(result)
                        break

                results.append(result)

        return results

    def _without_cards(self, player_id: str, card_ids: set[str]) -> GameState:
        """The current state with some of one player's cards hidden from its view."""
        if not card_ids:
            return self._state
        return RulesEngine.with_player(
            self._state, player_id, lambda p: replace(p, cards=tuple(c for c in p.cards if c.id not in card_ids)),
        )

    @staticmethod
    def decision_to_command(decision: AIDecision) -> Command:
        if decision.action == AIActionType.BID:
            return PlaceBidCommand(quantity=decision.bid.quantity, face_value=decision.bid.face_value)
        if decision.action == AIActionType.CHALLENGE:
            return CallChallengeCommand(target_bid_index=decision.target_bid_index)
        if decision.action == AIActionType.EXACT_CLAIM:
            return CallExactClaimCommand()
        return PlayCardCommand(card_id=decision.card_play.card_id, target=decision.card_play.target)

    def _forced_command(self) -> Command:
        if self._state.current_bid is None:
            return PlaceBidCommand(quantity=1, face_value=2)
        return CallChallengeCommand()

    def close(self) -> None:
        """Release the search worker, if one was started."""
        if self._worker is not None:
            self._worker.shutdown()
