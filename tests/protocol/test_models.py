"""
Perudo Plus - State Projection Tests

Tests that the public view hides dice and the private view shows only the
viewer's own hand.
"""

from dataclasses import replace

import pytest
from src.engine.base import CardType, GamePhase
from src.engine.errors import PlayerNotFoundError
from src.engine.rules import RulesEngine
from src.protocol.models import PrivatePlayerView, PublicGameState, PublicPlayerInfo


class TestPublicGameState:
    def test_counts_only(self, three_player_state):
        view = PublicGameState.from_state(three_player_state)
        assert [p.dice_count for p in view.players] == [3, 3, 2]
        assert view.total_dice == 8
        assert view.current_turn_player_id == "p1"

    def test_no_faces_in_json(self, three_player_state):
        data = PublicGameState.from_state(three_player_state).model_dump(mode="json")
        for player in data["players"]:
            assert "dice" not in player
            assert "cards" not in player
        assert "deck" not in data

    def test_card_counts(self, three_player_state, card):
        state = RulesEngine.with_player(
            three_player_state, "p2", lambda p: replace(p, cards=(card(CardType.PEEK),))
        )
        view = PublicGameState.from_state(state)
        assert view.players[1].card_count == 1

    def test_bids_and_phase(self, two_player_state):
        state = RulesEngine.place_bid(two_player_state, "p1", 2, 4)
        data = PublicGameState.from_state(state).model_dump(mode="json")
        assert data["phase"] == "bidding"
        assert data["mode"] == "classic"
        assert data["current_bid"] == {"player_id": "p1", "quantity": 2, "face_value": 4}

    def test_resolved_result_is_public(self, two_player_state):
        state = RulesEngine.place_bid(two_player_state, "p1", 2, 4)
        state, _ = RulesEngine.resolve_challenge(state, "p2")
        view = PublicGameState.from_state(state)
        assert view.phase == GamePhase.ROUND_END
        assert view.last_result.actual_count == 2

    def test_player_info_from_attributes(self, two_player_state):
        info = PublicPlayerInfo.from_player(two_player_state.players[0])
        assert info.id == "p1"
        assert info.dice_count == 2


class TestPrivatePlayerView:
    def test_own_dice_only(self, three_player_state):
        view = PrivatePlayerView.from_state(three_player_state, "p2")
        assert [d.id for d in view.dice] == ["b0", "b1", "b2"]
        data = view.model_dump(mode="json")
        ids = {d["id"] for d in data["dice"]}
        assert ids.isdisjoint({"a0", "a1", "a2", "c0", "c1"})

    def test_unknown_player(self, three_player_state):
        with pytest.raises(PlayerNotFoundError):
            PrivatePlayerView.from_state(three_player_state, "ghost")
