"""
Perudo Plus - AI Factory Tests
"""

import pytest
from src.ai.factory import (
    AIPlayer,
    available_difficulties,
    create_ai_player,
    create_strategy,
    generate_ai_name,
    parse_difficulty,
)
from src.ai.probability import ProbabilityEngine
from src.ai.strategies import EasyStrategy, HardStrategy, NormalStrategy, SolverStrategy
from src.ai.types import AIActionType, AIDifficulty, KnownDie
from src.engine.base import DieType
from src.engine.rules import RulesEngine


class TestParseDifficulty:
    @pytest.mark.parametrize("value,expected", [
        ("easy", AIDifficulty.EASY),
        ("Hard", AIDifficulty.HARD),
        ("  normal ", AIDifficulty.NORMAL),
        ("solver", AIDifficulty.SOLVER),
        ("chuck_norris", AIDifficulty.SOLVER),
        ("ChuckNorris", AIDifficulty.SOLVER),
        ("chuck", AIDifficulty.SOLVER),
    ])
    def test_known(self, value, expected):
        assert parse_difficulty(value) == expected

    @pytest.mark.parametrize("value", [None, "", "impossible"])
    def test_unknown_means_normal(self, value):
        assert parse_difficulty(value) == AIDifficulty.NORMAL

    def test_available(self):
        tiers = [d for d, _ in available_difficulties()]
        assert tiers == list(AIDifficulty)


class TestNames:
    def test_first_name(self):
        assert generate_ai_name(AIDifficulty.EASY) == "Tipsy Tim [AI]"

    def test_index_picks_name(self):
        assert generate_ai_name(AIDifficulty.EASY, 1) == "Wobbly Walter [AI]"

    def test_wraps_around(self):
        assert generate_ai_name(AIDifficulty.SOLVER, 9) == "Chuck Norris [AI]"
        assert generate_ai_name(AIDifficulty.SOLVER, 4) == generate_ai_name(AIDifficulty.SOLVER, 9)


class TestCreateStrategy:
    @pytest.mark.parametrize("difficulty,cls", [
        (AIDifficulty.EASY, EasyStrategy),
        (AIDifficulty.NORMAL, NormalStrategy),
        (AIDifficulty.HARD, HardStrategy),
        (AIDifficulty.SOLVER, SolverStrategy),
    ])
    def test_tier_types(self, settings, difficulty, cls):
        assert isinstance(create_strategy(difficulty, settings=settings), cls)

    def test_shared_probability_engine(self, settings):
        engine = ProbabilityEngine(16)
        hard = create_strategy(AIDifficulty.HARD, settings=settings, probability=engine)
        assert hard.probability is engine

    def test_solver_falls_back_to_hard(self, settings):
        solver = create_strategy(AIDifficulty.SOLVER, settings=settings)
        assert isinstance(solver.fallback, HardStrategy)
        assert solver.worker is None


class TestAIPlayer:
    def test_create_with_generated_name(self, settings):
        ai = create_ai_player(AIDifficulty.HARD, index=2, settings=settings)
        assert ai.name == "Stats Master [AI]"
        assert ai.strategy_name == "The Mathematician"
        assert ai.id

    def test_explicit_name(self, settings):
        ai = create_ai_player(AIDifficulty.EASY, name="Bert", settings=settings)
        assert ai.name == "Bert"

    def test_learn_replaces_same_die(self):
        ai = AIPlayer(name="Bot", difficulty=AIDifficulty.EASY, strategy=EasyStrategy())
        ai.learn([KnownDie("p2", "b0", DieType.D6, None, 1)])
        ai.learn([KnownDie("p2", "b0", DieType.D6, 4, 1), KnownDie("p2", "b1", DieType.D8, None, 1)])
        assert [(k.die_id, k.face_value) for k in ai.known_dice] == [("b0", 4), ("b1", None)]

    def test_forget(self):
        ai = AIPlayer(name="Bot", difficulty=AIDifficulty.EASY, strategy=EasyStrategy())
        ai.learn([KnownDie("p2", "b0", DieType.D6, 4, 1)])
        ai.forget()
        assert ai.known_dice == []

    def test_decide_from_state(self, two_player_state, rng):
        ai = AIPlayer(name="Bot", difficulty=AIDifficulty.NORMAL, strategy=NormalStrategy(rng=rng), id="p2")
        state = RulesEngine.place_bid(two_player_state, "p1", 4, 6)
        decision = ai.decide(state)
        assert decision.action in (AIActionType.BID, AIActionType.CHALLENGE, AIActionType.EXACT_CLAIM)


class TestRevalidate:
    def _ai(self, *known):
        ai = AIPlayer(name="Bot", difficulty=AIDifficulty.EASY, strategy=EasyStrategy(), id="p1")
        ai.learn(known)
        return ai

    def test_keeps_valid_and_records_position(self, table, dice):
        ai = self._ai(KnownDie("p2", "b1", DieType.D6, 5, 1))
        ai.revalidate(table({"p1": dice(2, prefix="a"), "p2": dice(3, 5, prefix="b")}))
        assert [(k.die_id, k.die_index) for k in ai.known_dice] == [("b1", 1)]

    def test_die_that_changed_hands(self, table, dice):
        ai = self._ai(KnownDie("p2", "b0", DieType.D6, 4, 1))
        ai.revalidate(table({"p1": dice(4, prefix="b"), "p2": dice(2, prefix="a")}))
        assert ai.known_dice == []

    def test_cracked_die(self, table, dice):
        ai = self._ai(KnownDie("p2", "b0", DieType.D8, None, 1))
        ai.revalidate(table({"p1": dice(2, prefix="a"), "p2": dice(3, prefix="b")}))
        assert ai.known_dice == []

    def test_rerolled_face(self, table, dice):
        ai = self._ai(KnownDie("p2", "b0", DieType.D6, 4, 1), KnownDie("p2", "b1", DieType.D6, None, 1))
        ai.revalidate(table({"p1": dice(2, prefix="a"), "p2": dice(6, 1, prefix="b")}))
        assert [k.die_id for k in ai.known_dice] == ["b1"]

    def test_lost_die(self, table, dice):
        ai = self._ai(KnownDie("p2", "b1", DieType.D6, 4, 1))
        ai.revalidate(table({"p1": dice(2, prefix="a"), "p2": dice(4, prefix="b")}))
        assert ai.known_dice == []
