from __future__ import annotations

from dataclasses import dataclass

from .types import CardDefinition

PROFESSIONAL_BONUS_ROUND = 8
PROFESSIONAL_BONUS = 10
RISKY_BONUS_ROUND = 8
RISKY_BONUS = 8


def hours_for_round(definition: CardDefinition, rounds_in_play: int) -> int:
    """Per-round hour gain of a card that has just reached `rounds_in_play`."""
    if definition.has_professional_bonus:
        return PROFESSIONAL_BONUS if rounds_in_play == PROFESSIONAL_BONUS_ROUND else 0
    if definition.has_risky_bonus:
        gained = definition.hours_per_round
        if rounds_in_play == RISKY_BONUS_ROUND:
            gained += RISKY_BONUS
        return gained
    if definition.has_alternating_mechanic:
        cycle = rounds_in_play % 3
        if cycle == 1:
            return 1
        if cycle == 2:
            return -1
        return 0
    if definition.has_sharing_mechanic:
        # resolved by the round processor's sharing pass
        return 0
    return definition.hours_per_round


@dataclass
class PlayedCard:
    """A card sitting in one of a player's slots.

    States: active -> expired (auto-discarded at the end of the round) or
    active -> expired while protected by Nepotism (frozen value, stays in the
    slot until discarded by hand).
    """

    uid: int
    definition: CardDefinition
    owner_index: int
    rounds_in_play: int = 0
    current_hour_value: int = 0
    protected_by_nepotism: bool = False
    has_expired: bool = False
    expiry_extension: int = 0
    linked_player_index: int | None = None
    linked_card_uid: int | None = None
    attacker_player_index: int | None = None

    @staticmethod
    def create(
        uid: int,
        definition: CardDefinition,
        owner_index: int,
        attacker_player_index: int | None = None,
    ) -> "PlayedCard":
        return PlayedCard(
            uid=uid,
            definition=definition,
            owner_index=owner_index,
            current_hour_value=definition.immediate_hours,
            attacker_player_index=attacker_player_index,
        )

    @property
    def card_id(self) -> str:
        return self.definition.id

    @property
    def expires_after_rounds(self) -> int:
        base = self.definition.expires_after_rounds
        if base <= 0:
            return 0
        return base + self.expiry_extension

    @property
    def is_frozen(self) -> bool:
        return self.has_expired and self.protected_by_nepotism

    def _check_expiry(self) -> None:
        limit = self.expires_after_rounds
        if not self.protected_by_nepotism and limit > 0 and self.rounds_in_play >= limit:
            self.has_expired = True

    def process_round(self) -> int:
        """Advance one round; returns the hours gained (or lost) this round."""
        self.rounds_in_play += 1
        if self.is_frozen:
            return 0
        gained = hours_for_round(self.definition, self.rounds_in_play)
        self.current_hour_value += gained
        self._check_expiry()
        return gained

    def add_round(self) -> None:
        self.rounds_in_play += 1
        limit = self.expires_after_rounds
        if limit > 0 and self.rounds_in_play >= limit:
            self.has_expired = True

    def force_expire(self) -> None:
        self.has_expired = True

    def void(self) -> None:
        """Expire and wipe the accrued value (sharing card lost its link)."""
        self.has_expired = True
        self.current_hour_value = 0

    def extend_expiration(self, additional_rounds: int) -> None:
        if self.definition.expires_after_rounds <= 0:
            return
        self.expiry_extension += additional_rounds
        self.has_expired = False

    def reset(self) -> None:
        self.rounds_in_play = 0
        self.current_hour_value = self.definition.immediate_hours
        self.has_expired = False
        self.expiry_extension = 0

    def add_hours(self, hours: int) -> None:
        if self.is_frozen:
            return
        self.current_hour_value += hours

    def should_auto_discard(self) -> bool:
        return self.has_expired and not self.protected_by_nepotism

    def final_hour_value(self) -> int:
        """Hours settled into the owner's balance when the card leaves play.

        Only an auto-discarded card can hand back a loss; anywhere else a
        negative value is simply forfeited.
        """
        if self.should_auto_discard() and self.current_hour_value < 0:
            return self.current_hour_value
        return max(0, self.current_hour_value)

    def rounds_until_expiry(self) -> int:
        limit = self.expires_after_rounds
        if limit == 0:
            return -1
        return max(0, limit - self.rounds_in_play)

    def to_event(self) -> dict[str, object]:
        return {
            "type": "INSTANCE_UPDATED",
            "uid": self.uid,
            "card_id": self.card_id,
            "player": self.owner_index,
            "hour_value": self.current_hour_value,
            "rounds": self.rounds_in_play,
            "expired": self.has_expired,
            "protected": self.protected_by_nepotism,
        }
