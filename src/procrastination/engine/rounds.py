from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .instance import PlayedCard

logger = logging.getLogger(__name__)

Event = dict[str, object]

DEFAULT_MAX_ROUNDS = 25
DEFAULT_SLOTS = 3


@dataclass
class PlayerLedger:
    player_index: int
    slots: list[PlayedCard | None]
    hour_balance: int = 0
    pending_round_hours: int = 0

    @property
    def cards_in_play(self) -> list[PlayedCard]:
        return [c for c in self.slots if c is not None]

    def card_count(self) -> int:
        return sum(1 for c in self.slots if c is not None)

    def is_full(self) -> bool:
        return all(c is not None for c in self.slots)

    def first_empty_slot(self) -> int | None:
        for i, c in enumerate(self.slots):
            if c is None:
                return i
        return None

    def slot_of(self, uid: int) -> int | None:
        for i, c in enumerate(self.slots):
            if c is not None and c.uid == uid:
                return i
        return None

    def find(self, uid: int) -> PlayedCard | None:
        slot = self.slot_of(uid)
        return None if slot is None else self.slots[slot]

    def adjust_hours(self, amount: int) -> int:
        """Apply `amount` to the balance, clamped at zero. Returns the applied delta."""
        before = self.hour_balance
        self.hour_balance = max(0, self.hour_balance + amount)
        return self.hour_balance - before

    def apply_pending(self) -> int:
        applied = self.adjust_hours(self.pending_round_hours)
        self.pending_round_hours = 0
        return applied


@dataclass
class RoundReport:
    round_number: int
    gains: list[tuple[int, int, int]] = field(default_factory=list)  # (player, uid, hours)
    shared: list[tuple[int, int, int]] = field(default_factory=list)
    expired: list[PlayedCard] = field(default_factory=list)
    voided: list[PlayedCard] = field(default_factory=list)
    balance_deltas: dict[int, int] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)

    @property
    def removed(self) -> list[PlayedCard]:
        return self.expired + self.voided


class RoundManager:
    """Round counter plus the per-player ledgers the round passes run over."""

    def __init__(
        self,
        player_count: int,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        slots_per_player: int = DEFAULT_SLOTS,
        starting_hours: int = 0,
    ) -> None:
        self.current_round = 0
        self.max_rounds = max_rounds
        self.ledgers = [
            PlayerLedger(
                player_index=i,
                slots=[None for _ in range(slots_per_player)],
                hour_balance=max(0, starting_hours),
            )
            for i in range(player_count)
        ]

    @property
    def player_count(self) -> int:
        return len(self.ledgers)

    def has_reached_round_limit(self) -> bool:
        return self.current_round >= self.max_rounds

    def ledger(self, player_index: int) -> PlayerLedger | None:
        if 0 <= player_index < len(self.ledgers):
            return self.ledgers[player_index]
        return None

    def cards_in_play(self, player_index: int) -> list[PlayedCard]:
        ledger = self.ledger(player_index)
        return [] if ledger is None else ledger.cards_in_play

    def card_count_in_play(self, player_index: int) -> int:
        ledger = self.ledger(player_index)
        return 0 if ledger is None else ledger.card_count()

    def find_card(self, uid: int) -> PlayedCard | None:
        for ledger in self.ledgers:
            card = ledger.find(uid)
            if card is not None:
                return card
        return None

    def add_card_to_play(self, player_index: int, card: PlayedCard, slot: int | None = None) -> int | None:
        ledger = self.ledger(player_index)
        if ledger is None:
            return None
        if slot is None:
            slot = ledger.first_empty_slot()
        if slot is None or not (0 <= slot < len(ledger.slots)) or ledger.slots[slot] is not None:
            return None
        ledger.slots[slot] = card
        return slot

    def remove_card_from_play(self, player_index: int, card: PlayedCard) -> int | None:
        ledger = self.ledger(player_index)
        if ledger is None:
            return None
        slot = ledger.slot_of(card.uid)
        if slot is not None:
            ledger.slots[slot] = None
        return slot

    # ---- round passes -------------------------------------------------

    def advance_round(self) -> RoundReport:
        self.current_round += 1
        report = RoundReport(round_number=self.current_round)
        logger.debug("round %d begins", self.current_round)

        self._tick_pass(report)
        self._sharing_pass(report)
        self._expiration_pass(report)
        self._voiding_pass(report)

        for ledger in self.ledgers:
            for card in ledger.cards_in_play:
                report.events.append(card.to_event())

        for ledger in self.ledgers:
            pending = ledger.pending_round_hours
            applied = ledger.apply_pending()
            if pending != 0:
                report.balance_deltas[ledger.player_index] = applied
                report.events.append(
                    {
                        "type": "HOURS_CHANGED",
                        "player": ledger.player_index,
                        "amount": pending,
                        "applied": applied,
                        "balance": ledger.hour_balance,
                        "reason": "round_settlement",
                    }
                )

        report.events.append({"type": "ROUND_ADVANCED", "round": self.current_round})
        return report

    def _tick_pass(self, report: RoundReport) -> None:
        for ledger in self.ledgers:
            for card in ledger.cards_in_play:
                if card.should_auto_discard():
                    continue
                gained = card.process_round()
                if gained != 0:
                    report.gains.append((ledger.player_index, card.uid, gained))
                    logger.debug(
                        "player %d gained %+d from %s", ledger.player_index, gained, card.definition.name
                    )

    def _sharing_pass(self, report: RoundReport) -> None:
        for ledger in self.ledgers:
            for card in ledger.cards_in_play:
                if not card.definition.has_sharing_mechanic or card.linked_player_index is None:
                    continue
                linked = self.ledger(card.linked_player_index)
                if linked is None:
                    continue
                total = 0
                for other in linked.cards_in_play:
                    # equal rounds_in_play == ticked alongside the sharing card
                    if other.rounds_in_play == card.rounds_in_play:
                        total += other.definition.hours_per_round
                if total > 0 and not card.is_frozen:
                    card.add_hours(total)
                    report.shared.append((ledger.player_index, card.uid, total))
                    logger.debug(
                        "player %d shared %+d from player %d",
                        ledger.player_index,
                        total,
                        card.linked_player_index,
                    )

    def _expiration_pass(self, report: RoundReport) -> None:
        for ledger in self.ledgers:
            to_expire = [c for c in ledger.cards_in_play if c.should_auto_discard()]
            for card in to_expire:
                final = card.final_hour_value()
                ledger.pending_round_hours += final
                self.remove_card_from_play(ledger.player_index, card)
                report.expired.append(card)
                report.events.append(
                    {
                        "type": "CARD_EXPIRED",
                        "player": ledger.player_index,
                        "uid": card.uid,
                        "card_id": card.card_id,
                        "final_hours": final,
                    }
                )

    def _voiding_pass(self, report: RoundReport) -> None:
        for ledger in self.ledgers:
            to_void: list[PlayedCard] = []
            for card in ledger.cards_in_play:
                if not card.definition.has_sharing_mechanic or card.linked_card_uid is None:
                    continue
                linked = self.find_card(card.linked_card_uid)
                if linked is None or linked.has_expired:
                    to_void.append(card)
            for card in to_void:
                card.void()
                self.remove_card_from_play(ledger.player_index, card)
                report.voided.append(card)
                report.events.append(
                    {
                        "type": "CARD_VOIDED",
                        "player": ledger.player_index,
                        "uid": card.uid,
                        "card_id": card.card_id,
                    }
                )
                logger.debug("player %d sharing card voided", ledger.player_index)

    # ---- bulk effects used by alerts -------------------------------------

    def reset_all_cards(self) -> list[PlayedCard]:
        touched: list[PlayedCard] = []
        for ledger in self.ledgers:
            for card in ledger.cards_in_play:
                card.reset()
                touched.append(card)
        return touched

    def settle_card(self, player_index: int, card: PlayedCard, *, force: bool = True) -> int:
        """Remove `card` from play and credit its final value immediately."""
        ledger = self.ledgers[player_index]
        if force:
            card.force_expire()
        final = card.final_hour_value()
        self.remove_card_from_play(player_index, card)
        ledger.adjust_hours(final)
        return final

    def expire_all_cards_for_player(self, player_index: int) -> list[tuple[PlayedCard, int]]:
        ledger = self.ledger(player_index)
        if ledger is None:
            return []
        return [(card, self.settle_card(player_index, card)) for card in ledger.cards_in_play]

    def expire_all_cards(self) -> list[tuple[PlayedCard, int]]:
        out: list[tuple[PlayedCard, int]] = []
        for ledger in self.ledgers:
            out.extend(self.expire_all_cards_for_player(ledger.player_index))
        return out
