from __future__ import annotations

import json

from procrastination.cli import main, run_match
from procrastination.engine.match import replay
from procrastination.engine.serialize import action_from_dict, action_to_dict, snapshot
from procrastination.engine.state import MatchConfig
from procrastination.paths import get_paths
from procrastination.services.content import ContentService


def _load():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_catalog(), content.load_deck("standard")


def test_engine_determinism_replay() -> None:
    cards, deck = _load()
    config = MatchConfig(max_rounds=8, ai_tiers=("medium", "expert", "easy", "nightmare"))

    seed = 424242
    state1 = run_match(cards, deck, config, seed=seed)
    snap1 = snapshot(state1)

    state2 = replay(cards, deck, seed=seed, actions=state1.action_log, config=config)
    snap2 = snapshot(state2)

    assert snap1 == snap2
    assert state2.event_log == state1.event_log


def test_same_seed_same_match() -> None:
    cards, deck = _load()
    config = MatchConfig(max_rounds=6)

    a = run_match(cards, deck, config, seed=99)
    b = run_match(cards, deck, config, seed=99)
    assert snapshot(a) == snapshot(b)


def test_snapshot_is_json_and_actions_round_trip() -> None:
    cards, deck = _load()
    state = run_match(cards, deck, MatchConfig(max_rounds=3), seed=5)

    snap = snapshot(state)
    assert json.loads(json.dumps(snap)) == snap

    restored = [action_from_dict(action_to_dict(a)) for a in state.action_log]
    assert restored == state.action_log


def test_cli_writes_match_results(tmp_path) -> None:
    out = tmp_path / "telemetry.jsonl"
    code = main(["--games", "2", "--seed", "7", "--rounds", "4", "--telemetry", str(out)])
    assert code == 0

    records = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    results = [r for r in records if r["type"] == "match_result"]
    assert [r["payload"]["seed"] for r in results] == [7, 8]
    assert all(r["payload"]["rounds"] <= 4 for r in results)


def test_cli_rejects_bad_tiers() -> None:
    assert main(["--players", "3", "--tiers", "easy,easy"]) == 2
