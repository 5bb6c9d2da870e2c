from __future__ import annotations

import random

import pytest

from procrastination.cli import run_match
from procrastination.engine.ai import AIPolicy, ai_respond_to_weapon, ai_take_turn
from procrastination.engine.match import new_game
from procrastination.engine.state import MatchConfig
from procrastination.paths import get_paths
from procrastination.services.content import ContentService


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def test_tier_weights() -> None:
    assert (AIPolicy("easy").aggressiveness, AIPolicy("easy").risk_tolerance) == (0.3, 0.2)
    assert (AIPolicy("medium").aggressiveness, AIPolicy("medium").risk_tolerance) == (0.5, 0.5)
    assert (AIPolicy("expert").aggressiveness, AIPolicy("expert").risk_tolerance) == (0.7, 0.6)
    assert (AIPolicy("nightmare").aggressiveness, AIPolicy("nightmare").risk_tolerance) == (0.9, 0.8)


def test_evaluate_play_scores() -> None:
    assert AIPolicy("easy").evaluate_play("weapon", True, True) == 1.0

    medium = AIPolicy("medium")
    assert medium.evaluate_play("play", True, False) == 5.0
    assert medium.evaluate_play("weapon", False, False) == 4.0
    assert medium.evaluate_play("helper", True, True) == 3.0
    assert medium.evaluate_play("hour", True, False) == 2.0
    assert medium.evaluate_play("play", True, True) == 0.0

    assert AIPolicy("expert").evaluate_play("weapon", False, False) == pytest.approx(4.9)
    nightmare = AIPolicy("nightmare")
    assert nightmare.evaluate_play("play", True, False) == 8.0
    assert nightmare.evaluate_play("helper", True, True) == 5.0
    assert nightmare.evaluate_play("hour", True, False) == 4.0


def test_should_discard_without_valid_play() -> None:
    rng = random.Random(0)
    for tier in ("easy", "medium", "expert", "nightmare"):
        assert AIPolicy(tier).should_discard("play", False, rng)  # type: ignore[arg-type]
    assert not AIPolicy("easy").should_discard("helper", True, rng)
    assert not AIPolicy("nightmare").should_discard("play", True, rng)


def test_weapon_target_is_never_self() -> None:
    rng = random.Random(5)
    for tier in ("easy", "expert"):
        policy = AIPolicy(tier)  # type: ignore[arg-type]
        for _ in range(50):
            assert policy.select_weapon_target([1, 2, 0, 3], 2, rng) != 2


def test_threat_based_targeting() -> None:
    rng = random.Random(0)
    assert AIPolicy("medium").select_weapon_target([3, 1, 2, 0], 0, rng) == 2
    assert AIPolicy("nightmare").select_weapon_target([0, 4, 4, 1], 3, rng) == 1


def test_draw_source_choice() -> None:
    rng = random.Random(0)
    medium = AIPolicy("medium")
    assert medium.choose_draw_source(5, 1, 0, rng) is True
    assert medium.choose_draw_source(5, 4, 0, rng) is False

    expert = AIPolicy("expert")
    assert expert.choose_draw_source(5, 0, 3, rng) is True
    assert expert.choose_draw_source(5, 3, 0, rng) is False


def test_nightmare_always_deflects() -> None:
    rng = random.Random(0)
    assert all(AIPolicy("nightmare").should_deflect(rng) for _ in range(20))


def test_ai_takes_a_full_turn() -> None:
    cards = _content().load_catalog()
    deck = ["on_the_clock"] * 30 + ["professional"] * 10 + ["scammer"] * 10
    state = new_game(cards, deck, seed=3)

    ai_take_turn(state, 0, AIPolicy("expert"))

    assert state.current_player == 1
    assert state.turn.phase == "awaiting_draw"
    kinds = {type(a).__name__ for a in state.action_log}
    assert "DrawCardAction" in kinds
    assert "EndTurnAction" in kinds


def test_respond_without_pending_weapon() -> None:
    cards = _content().load_catalog()
    state = new_game(cards, ["on_the_clock"] * 40, seed=4)
    assert ai_respond_to_weapon(state) is None


def test_ai_match_runs_to_completion() -> None:
    content = _content()
    cards = content.load_catalog()
    deck = content.load_deck("standard")
    config = MatchConfig(ai_tiers=("easy", "medium", "expert", "nightmare"))

    state = run_match(cards, deck, config, seed=11)

    assert state.turn.game_over
    assert state.end_reason in ("last_standing", "victory_hours", "round_limit")
    assert all(lg.hour_balance >= 0 for lg in state.ledgers)
