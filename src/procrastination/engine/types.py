from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, get_args

CardCategory = Literal["play", "weapon", "helper", "alert"]

CardId = Literal[
    # play
    "on_the_clock",
    "professional",
    "risky",
    "sharing_is_caring",
    "unpredictable",
    # weapon
    "tardy",
    "deadline",
    "stock_market",
    "scammer",
    "quit",
    "parasite",
    "downsizing",
    "foreign_exchange",
    # helper
    "excused",
    "extension",
    "nepotism",
    "newbie",
    # alert
    "amnesia",
    "fired",
    "performance_review",
    "recession",
]

Mechanic = Literal[
    "standard",
    "professional",
    "risky",
    "alternating",
    "sharing",
    "parasite",
    "rolling",
]

ALL_CARD_IDS: tuple[CardId, ...] = get_args(CardId)

# Hour stock cards are plain On the Clock copies.
HOUR_CARD_ID: CardId = "on_the_clock"


@dataclass(frozen=True)
class CardDefinition:
    id: CardId
    name: str
    category: CardCategory
    hours_per_round: int
    immediate_hours: int
    expires_after_rounds: int
    mechanic: Mechanic
    rules_text: str

    @property
    def is_play_card(self) -> bool:
        return self.category == "play"

    @property
    def is_weapon_card(self) -> bool:
        return self.category == "weapon"

    @property
    def is_helper_card(self) -> bool:
        return self.category == "helper"

    @property
    def is_alert_card(self) -> bool:
        return self.category == "alert"

    @property
    def is_play_weapon(self) -> bool:
        """Weapons that stay on the target's board instead of resolving at once."""
        return self.is_weapon_card and self.expires_after_rounds > 0

    @property
    def is_rolling_weapon(self) -> bool:
        return self.mechanic == "rolling"

    @property
    def has_sharing_mechanic(self) -> bool:
        return self.mechanic == "sharing"

    @property
    def has_alternating_mechanic(self) -> bool:
        return self.mechanic == "alternating"

    @property
    def has_professional_bonus(self) -> bool:
        return self.mechanic == "professional"

    @property
    def has_risky_bonus(self) -> bool:
        return self.mechanic == "risky"

    @property
    def has_parasite_mechanic(self) -> bool:
        return self.mechanic == "parasite"


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card catalog used by the engine."""

    cards: dict[CardId, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]  # type: ignore[index]

    def all_ids(self) -> Sequence[CardId]:
        return list(self.cards.keys())

    def by_category(self, category: CardCategory) -> list[CardDefinition]:
        return [c for c in self.cards.values() if c.category == category]


@dataclass(frozen=True)
class DeckEntry:
    card_id: CardId
    count: int


@dataclass(frozen=True)
class DeckList:
    id: str
    name: str
    entries: tuple[DeckEntry, ...]

    def size(self) -> int:
        return sum(e.count for e in self.entries)

    def expand(self) -> list[CardId]:
        out: list[CardId] = []
        for e in self.entries:
            out.extend([e.card_id] * e.count)
        return out
