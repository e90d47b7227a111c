"""
Perudo Plus - AI Context Tests

Tests for projecting the game state onto one AI seat.
"""

from src.ai.context import best_face, build_context, face_counts
from src.ai.opponent_model import OpponentModel
from src.ai.types import KnownDie
from src.engine.base import Bid, DieType
from src.engine.rules import RulesEngine


class TestBuildContext:
    def test_own_dice_only(self, three_player_state):
        context = build_context(three_player_state, "p2")
        assert [d.id for d in context.own_dice] == ["b0", "b1", "b2"]
        assert context.total_dice_count == 8
        assert context.unknown_dice_count == 5

    def test_unknown_pool_is_sorted_sizes(self, three_player_state):
        context = build_context(three_player_state, "p1")
        assert context.unknown_dice_types == (
            DieType.D3, DieType.D4, DieType.D6, DieType.D8, DieType.D10,
        )

    def test_public_info(self, three_player_state):
        state = RulesEngine.place_bid(three_player_state, "p1", 2, 3)
        context = build_context(state, "p2")
        assert context.current_bid == Bid("p1", 2, 3)
        assert context.current_turn_player_id == "p2"
        assert [p.dice_count for p in context.players] == [3, 3, 2]
        assert {p.id for p in context.opponents()} == {"p1", "p3"}
        assert context.own_player().id == "p2"

    def test_known_dice_filtered_to_round(self, three_player_state):
        known = [
            KnownDie("p2", "b1", DieType.D8, 1, round_number=1),
            KnownDie("p3", "c0", DieType.D3, 2, round_number=0),
        ]
        context = build_context(three_player_state, "p1", known_dice=known)
        assert [k.die_id for k in context.known_dice] == ["b1"]

    def test_models_are_copied(self, three_player_state):
        models = {"p2": OpponentModel("p2")}
        context = build_context(three_player_state, "p1", models)
        assert context.opponent_models == models
        assert context.opponent_models is not models

    def test_uses_cards(self, three_player_state, two_player_state):
        assert build_context(three_player_state, "p1").uses_cards
        assert not build_context(two_player_state, "p1").uses_cards


class TestVisibleDice:
    def test_peeked_face_moves_out_of_pool(self, three_player_state):
        known = [KnownDie("p2", "b1", DieType.D8, 1, round_number=1)]
        context = build_context(three_player_state, "p1", known_dice=known)
        faces, pool = context.visible_dice()
        assert len(faces) == 4
        assert DieType.D8 not in pool
        assert len(pool) == 4

    def test_gauged_size_stays_in_pool(self, three_player_state):
        known = [KnownDie("p2", "b1", DieType.D8, None, round_number=1)]
        context = build_context(three_player_state, "p1", known_dice=known)
        faces, pool = context.visible_dice()
        assert len(faces) == 3
        assert len(pool) == 5


class TestHandHelpers:
    def test_face_counts(self, dice):
        counts = face_counts(dice(1, 4, 4, 6))
        assert counts[1] == 1
        assert counts[4] == 2
        assert counts[5] == 0

    def test_best_face_includes_wilds(self, dice):
        assert best_face(dice(1, 1, 5, 3)) == (3, 3)

    def test_best_face_tie_goes_low(self, dice):
        assert best_face(dice(2, 6)) == (2, 1)
