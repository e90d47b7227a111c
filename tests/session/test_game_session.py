"""Tests for src/session/game_session.py: command intake, broadcasts and AI turns."""

import random
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from src.ai.types import AIDecision, AIDifficulty
from src.engine.base import Bid, Card, CardType, DieType, GameMode, GamePhase, GameSettings
from src.engine.effects import CardTarget
from src.engine.rules import RulesEngine
from src.events.events import GameEvent
from src.protocol.commands import (
    CallChallengeCommand,
    CallExactClaimCommand,
    PlaceBidCommand,
    PlayCardCommand,
)
from src.session.game_session import INVALID_COMMAND, GameSession


class CrackThenBid:
    """Cracks the first die of bob's hand while it holds Crack, then bids five 2s."""

    difficulty = AIDifficulty.HARD
    name = "Cracker"

    def decide(self, context):
        crack = context.cards_of(CardType.CRACK)
        if crack:
            return AIDecision.play(
                crack[0].id, CardType.CRACK, 0.5, target=CardTarget(player_id="bob", die_index=0),
            )
        return AIDecision.bid_on(5, 2, 0.9)


@pytest.fixture
def session(settings):
    s = GameSession(
        settings=settings,
        game_settings=GameSettings(mode=GameMode.CLASSIC),
        game_id="game-1",
        rng=random.Random(21),
    )
    yield s
    s.close()


@pytest.fixture
def bidding(session):
    """Two humans, dice rolled, alice to bid."""
    session.add_player("Alice", is_host=True, player_id="alice")
    session.add_player("Bob", player_id="bob")
    session.handle_command("alice", {"type": "start"})
    session.handle_command("alice", {"type": "roll_for_round"})
    return session


@pytest.fixture
def events(session):
    received = []
    session.subscribe(received.append)
    return received


# ── Seats ──────────────────────────────────────────────────────────────

class TestSeats:
    def test_add_players(self, session):
        session.add_player("Alice", player_id="alice")
        ai = session.add_ai_player(AIDifficulty.EASY)
        assert [p.id for p in session.state.players] == ["alice", ai.id]
        assert ai.name == "Tipsy Tim [AI]"
        assert session.state.players[1].is_ai

    def test_remove_ai_player(self, session):
        ai = session.add_ai_player(AIDifficulty.NORMAL)
        session.remove_player(ai.id)
        assert ai.id not in session.ai_players
        assert session.state.players == ()

    def test_private_view_shows_own_hand(self, session):
        session.add_player("Alice", player_id="alice")
        session.add_player("Bob", player_id="bob")
        session.handle_command("alice", {"type": "start"})
        view = session.private_view("bob")
        assert view.player_id == "bob"
        assert [d.id for d in view.dice] == [d.id for d in session.state.players[1].dice]

    def test_defaults_from_settings(self, settings):
        s = GameSession(settings=settings)
        assert s.state.settings.mode == GameMode.TACTICAL
        assert s.state.settings.starting_dice == settings.starting_dice

    def test_solver_without_worker(self, session):
        ai = session.add_ai_player(AIDifficulty.SOLVER)
        assert ai.strategy.worker is None


# ── Commands ───────────────────────────────────────────────────────────

class TestHandleCommand:
    def test_start_and_roll(self, session, events):
        session.add_player("Alice", player_id="alice")
        session.add_player("Bob", player_id="bob")
        started = session.handle_command("alice", {"type": "start"})
        rolled = session.handle_command("alice", {"type": "roll_for_round"})
        assert started.events == [GameEvent.GAME_STARTED]
        assert rolled.events == [GameEvent.DICE_ROLLED]
        assert session.state.phase == GamePhase.BIDDING
        assert [e.event for e in events] == [GameEvent.GAME_STARTED, GameEvent.DICE_ROLLED]

    def test_bid_and_challenge(self, bidding):
        before = RulesEngine.total_dice(bidding.state)
        bid = bidding.handle_command("alice", PlaceBidCommand(quantity=3, face_value=4))
        assert bid.accepted
        challenge = bidding.handle_command("bob", CallChallengeCommand())
        assert challenge.accepted
        assert GameEvent.CHALLENGE_RESOLVED in challenge.events
        assert challenge.result.loser_id in {"alice", "bob"}
        assert RulesEngine.total_dice(bidding.state) == before - 1
        assert bidding.state.phase == GamePhase.ROUND_END

    def test_next_round(self, bidding):
        bidding.handle_command("alice", PlaceBidCommand(quantity=3, face_value=4))
        result = bidding.handle_command("bob", CallChallengeCommand())
        next_round = bidding.handle_command("alice", {"type": "next_round"})
        assert next_round.events == [GameEvent.ROUND_STARTED]
        assert bidding.state.round_number == 2
        assert RulesEngine.current_player(bidding.state).id == result.result.loser_id

    def test_exact_claim(self, bidding):
        bidding.handle_command("alice", PlaceBidCommand(quantity=2, face_value=3))
        result = bidding.handle_command("bob", CallExactClaimCommand())
        assert result.accepted
        assert result.events == [GameEvent.EXACT_CLAIM_RESOLVED]

    def test_out_of_turn_rejected(self, bidding, events):
        before = bidding.state
        result = bidding.handle_command("bob", PlaceBidCommand(quantity=1, face_value=3))
        assert not result.accepted
        assert result.error_code == "NOT_YOUR_TURN"
        assert result.events == [GameEvent.COMMAND_REJECTED]
        assert bidding.state is before
        assert events == []

    def test_low_bid_rejected(self, bidding):
        bidding.handle_command("alice", PlaceBidCommand(quantity=3, face_value=4))
        result = bidding.handle_command("bob", PlaceBidCommand(quantity=2, face_value=4))
        assert result.error_code == "INVALID_BID"

    def test_malformed_command(self, bidding):
        result = bidding.handle_command("alice", {"type": "place_bid", "quantity": 0, "face_value": 3})
        assert not result.accepted
        assert result.error_code == INVALID_COMMAND

    def test_unknown_player(self, bidding):
        result = bidding.handle_command("mallory", {"type": "pause"})
        assert result.error_code == "PLAYER_NOT_FOUND"

    def test_pause_resume(self, bidding):
        assert bidding.handle_command("bob", {"type": "pause"}).events == [GameEvent.GAME_PAUSED]
        rejected = bidding.handle_command("alice", PlaceBidCommand(quantity=1, face_value=3))
        assert rejected.error_code == "INVALID_PHASE"
        assert bidding.handle_command("bob", {"type": "resume"}).events == [GameEvent.GAME_RESUMED]

    def test_reset_clears_models(self, bidding):
        bidding.handle_command("alice", PlaceBidCommand(quantity=3, face_value=4))
        bidding.handle_command("bob", CallChallengeCommand())
        assert "alice" in bidding.opponent_models
        result = bidding.handle_command("alice", {"type": "reset"})
        assert result.events == [GameEvent.GAME_RESET]
        assert len(bidding.opponent_models) == 0


# ── Broadcasts ─────────────────────────────────────────────────────────

class TestBroadcast:
    def test_payload_has_public_state_only(self, bidding, events):
        bidding.handle_command("alice", PlaceBidCommand(quantity=1, face_value=3))
        payload = events[-1]
        assert payload.event == GameEvent.BID_PLACED
        assert payload.game_id == "game-1"
        assert payload.player_id == "alice"
        assert payload.data["command"] == "place_bid"
        for player in payload.data["state"]["players"]:
            assert "dice" not in player

    def test_failing_subscriber_isolated(self, bidding, events):
        bidding.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        result = bidding.handle_command("alice", PlaceBidCommand(quantity=1, face_value=3))
        assert result.accepted
        assert len(events) == 1

    def test_unsubscribe(self, bidding):
        callback = MagicMock()
        unsubscribe = bidding.subscribe(callback)
        unsubscribe()
        bidding.handle_command("alice", PlaceBidCommand(quantity=1, face_value=3))
        callback.assert_not_called()

    def test_card_play_keeps_peek_private(self, bidding, events):
        bidding._state = RulesEngine.with_player(
            bidding.state, "alice", lambda p: replace(p, cards=(Card("peek-1", CardType.PEEK),))
        )
        result = bidding.handle_command(
            "alice", PlayCardCommand(card_id="peek-1", target=CardTarget(player_id="bob", die_index=0)),
        )
        assert result.accepted
        assert result.events[0] == GameEvent.CARD_PLAYED
        assert result.card_result.peeked_die == bidding.state.players[1].dice[0]
        payload = events[0]
        assert payload.data["card_type"] == "peek"
        assert "peeked_die" not in payload.data


# ── AI turns ───────────────────────────────────────────────────────────

class TestAITurns:
    def _ai_table(self, session, *tiers):
        seats = [session.add_ai_player(tier) for tier in tiers]
        first = seats[0].id
        session.handle_command(first, {"type": "start"})
        session.handle_command(first, {"type": "roll_for_round"})
        return seats

    @pytest.mark.parametrize("tiers", [
        (AIDifficulty.EASY, AIDifficulty.NORMAL),
        (AIDifficulty.HARD, AIDifficulty.NORMAL, AIDifficulty.EASY),
        (AIDifficulty.SOLVER, AIDifficulty.HARD),
    ], ids=["easy-normal", "hard-normal-easy", "solver-hard"])
    def test_ai_round_completes(self, session, tiers):
        self._ai_table(session, *tiers)
        results = session.run_ai_turns()
        assert results
        assert all(r.accepted for r in results)
        assert session.state.phase in (GamePhase.ROUND_END, GamePhase.GAME_OVER)

    def test_stops_for_human(self, session):
        session.add_player("Alice", player_id="alice")
        session.add_ai_player(AIDifficulty.EASY)
        session.handle_command("alice", {"type": "start"})
        session.handle_command("alice", {"type": "roll_for_round"})
        assert session.run_ai_turns() == []

    def test_human_then_ai(self, session):
        session.add_player("Alice", player_id="alice")
        ai = session.add_ai_player(AIDifficulty.HARD)
        session.handle_command("alice", {"type": "start"})
        session.handle_command("alice", {"type": "roll_for_round"})
        session.handle_command("alice", PlaceBidCommand(quantity=1, face_value=2))
        results = session.run_ai_turns()
        assert len(results) == 1
        assert results[0].accepted
        current = RulesEngine.current_player(session.state)
        assert session.state.phase != GamePhase.BIDDING or current.id == "alice"
        assert ai.id in session.ai_players

    def test_action_cap_forces_move(self, settings):
        capped = settings.model_copy(update={"max_ai_actions_per_turn": 0})
        session = GameSession(settings=capped, game_settings=GameSettings(mode=GameMode.CLASSIC), rng=random.Random(3))
        self._ai_table(session, AIDifficulty.EASY, AIDifficulty.EASY)
        results = session.run_ai_turns()
        assert [r.events[0] for r in results] == [GameEvent.BID_PLACED, GameEvent.CHALLENGE_RESOLVED]
        assert session.state.last_result.bid.quantity == 1

    def test_refused_decision_is_replaced(self, session, monkeypatch):
        seats = self._ai_table(session, AIDifficulty.EASY, AIDifficulty.EASY)
        monkeypatch.setattr(
            type(seats[0].strategy), "decide", lambda self, context: AIDecision.bid_on(1, 6, 0.5)
        )
        # Every AI repeats 1x6; each refusal becomes a minimal raise until a challenge is cheaper
        results = session.run_ai_turns()
        assert all(r.accepted for r in results)
        assert results[1].events == [GameEvent.BID_PLACED]
        assert (session.state.last_result.bid.quantity, session.state.last_result.bid.face_value) == (7, 2)
        assert GameEvent.CHALLENGE_RESOLVED in results[-1].events

    def test_refused_card_play_costs_no_die(self, settings, dice, card):
        session = GameSession(settings=settings, game_settings=GameSettings(mode=GameMode.TACTICAL))
        ai = session.add_ai_player(AIDifficulty.HARD)
        session.add_player("Bob", player_id="bob")
        session.handle_command("bob", {"type": "start"})
        session.handle_command("bob", {"type": "roll_for_round"})
        ai.strategy = CrackThenBid()
        me, bob = session.state.players
        session._state = replace(
            session.state,
            players=(
                replace(me, dice=dice(2, 2, 2, 1, 1, prefix="a"), cards=(card(CardType.CRACK),)),
                replace(bob, dice=dice(3, die_type=DieType.D3, prefix="b") + dice(5, prefix="c")),
            ),
            current_bid=Bid("bob", 1, 2),
            current_turn_index=0,
        )

        results = session.run_ai_turns()

        assert [r.events for r in results] == [[GameEvent.BID_PLACED]]
        me = RulesEngine.get_player(session.state, ai.id)
        assert me.dice_count == 5
        assert [c.type for c in me.cards] == [CardType.CRACK]
        assert session.state.current_bid == Bid(ai.id, 5, 2)

    def test_swapped_die_is_forgotten(self, session, dice, card):
        ai, other = self._ai_table(session, AIDifficulty.EASY, AIDifficulty.EASY)
        session._state = RulesEngine.with_player(
            session.state, ai.id,
            lambda p: replace(p, dice=dice(2, 3, prefix="a"), cards=(card(CardType.PEEK), card(CardType.BLIND_SWAP))),
        )
        session._state = RulesEngine.with_player(session.state, other.id, lambda p: replace(p, dice=dice(4, prefix="b")))

        session.handle_command(
            ai.id, PlayCardCommand(card_id="card-peek", target=CardTarget(player_id=other.id, die_index=0)),
        )
        assert [(k.die_id, k.die_index) for k in ai.known_dice] == [("b0", 0)]

        swapped = session.handle_command(
            ai.id, PlayCardCommand(card_id="card-blind_swap", target=CardTarget(player_id=other.id, die_id="a0")),
        )
        assert swapped.accepted
        assert "b0" in [d.id for d in RulesEngine.get_player(session.state, ai.id).dice]
        assert ai.known_dice == []

    def test_ai_learns_from_peek(self, session):
        seats = self._ai_table(session, AIDifficulty.EASY, AIDifficulty.EASY)
        ai, other = seats
        session._state = RulesEngine.with_player(
            session.state, ai.id, lambda p: replace(p, cards=(Card("peek-1", CardType.PEEK),))
        )
        session.handle_command(
            ai.id, PlayCardCommand(card_id="peek-1", target=CardTarget(player_id=other.id, die_index=2)),
        )
        assert len(ai.known_dice) == 1
        assert ai.known_dice[0].player_id == other.id
        assert ai.known_dice[0].face_value is not None

    def test_decision_to_command(self):
        command = GameSession.decision_to_command(AIDecision.challenge(0.5, target_bid_index=1))
        assert command == CallChallengeCommand(target_bid_index=1)
        command = GameSession.decision_to_command(AIDecision.play("c1", CardType.INFLATION, 0.5))
        assert isinstance(command, PlayCardCommand)
        assert command.card_id == "c1"


class TestClose:
    def test_close_shuts_worker(self, settings):
        worker = MagicMock()
        session = GameSession(settings=settings, worker=worker)
        session.close()
        worker.shutdown.assert_called_once()
