from __future__ import annotations

import json

import pytest

from procrastination.engine.types import ALL_CARD_IDS
from procrastination.paths import get_paths
from procrastination.services.content import ContentError, ContentService


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def test_content_schemas_validate() -> None:
    _content().validate_all()


def test_catalog_is_the_closed_card_set() -> None:
    cards = _content().load_catalog()
    assert sorted(cards.all_ids()) == sorted(ALL_CARD_IDS)
    assert len(cards.by_category("play")) == 5
    assert len(cards.by_category("weapon")) == 8
    assert len(cards.by_category("helper")) == 4
    assert len(cards.by_category("alert")) == 4


def test_play_weapon_flag_matches_expiry() -> None:
    cards = _content().load_catalog()
    for cid in cards.all_ids():
        card = cards.get(cid)
        assert card.is_play_weapon == (card.is_weapon_card and card.expires_after_rounds > 0)
    assert cards.get("downsizing").is_rolling_weapon
    assert cards.get("parasite").has_parasite_mechanic


def test_standard_deck_has_eighty_cards() -> None:
    deck = _content().load_deck("standard")
    assert deck.size() == 80
    assert len(deck.expand()) == 80


def test_unknown_deck_is_content_error() -> None:
    with pytest.raises(ContentError):
        _content().load_deck("missing")


def test_malformed_cards_file_is_rejected(tmp_path) -> None:
    paths = get_paths()
    (tmp_path / "cards.json").write_text(
        json.dumps({"version": 1, "cards": [{"id": "tardy", "name": "Tardy"}]}), encoding="utf-8"
    )
    content = ContentService(tmp_path, paths.schema_dir)
    with pytest.raises(ContentError) as exc:
        content.load_catalog()
    assert "Schema validation failed" in str(exc.value)


def test_incomplete_catalog_is_rejected(tmp_path) -> None:
    paths = get_paths()
    raw = json.loads((paths.data_dir / "cards.json").read_text(encoding="utf-8"))
    raw["cards"] = [c for c in raw["cards"] if c["id"] != "newbie"]
    (tmp_path / "cards.json").write_text(json.dumps(raw), encoding="utf-8")
    content = ContentService(tmp_path, paths.schema_dir)
    with pytest.raises(ContentError) as exc:
        content.load_catalog()
    assert "newbie" in str(exc.value)


def test_missing_file_is_content_error(tmp_path) -> None:
    content = ContentService(tmp_path, get_paths().schema_dir)
    with pytest.raises(ContentError):
        content.load_catalog()


def test_match_config_loads(tmp_path) -> None:
    path = tmp_path / "match.json"
    path.write_text(
        json.dumps({"player_count": 3, "max_rounds": 10, "ai_tiers": [None, "expert", "nightmare"]}),
        encoding="utf-8",
    )
    cfg = _content().load_match_config(path)
    assert cfg.player_count == 3
    assert cfg.max_rounds == 10
    assert cfg.starting_hours == 100
    assert cfg.ai_tiers == (None, "expert", "nightmare")
    assert cfg.tier_for(0) is None


def test_match_config_outside_schema_is_rejected(tmp_path) -> None:
    path = tmp_path / "match.json"
    path.write_text(json.dumps({"player_count": 1}), encoding="utf-8")
    with pytest.raises(ContentError):
        _content().load_match_config(path)


def test_paths_point_at_bundled_content() -> None:
    paths = get_paths()
    assert (paths.data_dir / "cards.json").is_file()
    assert (paths.schema_dir / "cards.schema.json").is_file()
    assert paths.schema_dir.parent == paths.data_dir
