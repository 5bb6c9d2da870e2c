from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from procrastination.engine.state import MatchConfig
from procrastination.engine.types import (
    ALL_CARD_IDS,
    CardCatalog,
    CardDefinition,
    DeckEntry,
    DeckList,
)

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _parse_card(item: Mapping[str, object]) -> CardDefinition:
    card = CardDefinition(
        id=_require_str(item, "id"),  # type: ignore[arg-type]
        name=_require_str(item, "name"),
        category=_require_str(item, "category"),  # type: ignore[arg-type]
        hours_per_round=_require_int(item, "hours_per_round"),
        immediate_hours=_require_int(item, "immediate_hours"),
        expires_after_rounds=_require_int(item, "expires_after_rounds"),
        mechanic=_require_str(item, "mechanic"),  # type: ignore[arg-type]
        rules_text=_require_str(item, "rules_text"),
    )
    # rolling and parasite effects need the card to stay on a board
    if card.mechanic in ("rolling", "parasite") and not card.is_play_weapon:
        raise ContentError(f"{card.id}: {card.mechanic} cards must be weapons that stay in play")
    if card.is_alert_card and card.expires_after_rounds != 0:
        raise ContentError(f"{card.id}: alert cards never enter play")
    return card


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, filename: str, schema_name: str) -> object:
        path = self._data_dir / filename
        raw = _load_json(path)
        validate_json(raw, _load_json(self._schema_dir / schema_name), context=str(path))
        return raw

    def load_catalog(self) -> CardCatalog:
        raw = self._load_validated("cards.json", "cards.schema.json")
        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[str, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card = _parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card

        missing = [cid for cid in ALL_CARD_IDS if cid not in cards]
        if missing:
            raise ContentError(f"cards.json is missing: {', '.join(missing)}")
        logger.debug("loaded %d card definitions", len(cards))
        return CardCatalog(cards=cards)  # type: ignore[arg-type]

    def load_decks(self) -> dict[str, DeckList]:
        raw = self._load_validated("decks.json", "decks.schema.json")
        if not isinstance(raw, dict):
            raise ContentError("decks.json must be an object")
        raw_decks = raw.get("decks")
        if not isinstance(raw_decks, list):
            raise ContentError("decks.json.decks must be a list")

        decks: dict[str, DeckList] = {}
        for d in raw_decks:
            if not isinstance(d, dict):
                continue
            entries: list[DeckEntry] = []
            raw_entries = d.get("entries")
            if not isinstance(raw_entries, list):
                raise ContentError("deck.entries must be a list")
            for e in raw_entries:
                if not isinstance(e, dict):
                    continue
                entries.append(
                    DeckEntry(
                        card_id=_require_str(e, "card_id"),  # type: ignore[arg-type]
                        count=_require_int(e, "count"),
                    )
                )
            deck = DeckList(id=_require_str(d, "id"), name=_require_str(d, "name"), entries=tuple(entries))
            decks[deck.id] = deck
        return decks

    def load_deck(self, deck_id: str = "standard") -> DeckList:
        decks = self.load_decks()
        try:
            return decks[deck_id]
        except KeyError as e:
            raise ContentError(f"Unknown deck: {deck_id}") from e

    def load_match_config(self, path: Path) -> MatchConfig:
        raw = _load_json(path)
        validate_json(raw, _load_json(self._schema_dir / "match_config.schema.json"), context=str(path))
        if not isinstance(raw, dict):
            raise ContentError("match config must be an object")
        fields = dict(raw)
        tiers = fields.pop("ai_tiers", None)
        if tiers is not None:
            fields["ai_tiers"] = tuple(tiers)
        elif "player_count" in fields:
            fields["ai_tiers"] = (None,) + ("easy",) * (int(fields["player_count"]) - 1)
        return MatchConfig(**fields)

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        cards = self.load_catalog()
        for deck in self.load_decks().values():
            unknown = sorted({e.card_id for e in deck.entries if e.card_id not in cards.cards})
            if unknown:
                raise ContentError(f"Deck {deck.id} references unknown cards: {', '.join(unknown)}")
