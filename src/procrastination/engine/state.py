from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from typing import Literal

from .actions import Action
from .rounds import DEFAULT_MAX_ROUNDS, DEFAULT_SLOTS, PlayerLedger, RoundManager
from .types import CardCatalog, CardDefinition, CardId

Event = dict[str, object]

AITier = Literal["easy", "medium", "expert", "nightmare"]

ErrorReason = Literal["invalid_target", "illegal_phase", "no_legal_target", "game_already_over"]


class ConfigurationError(ValueError):
    """A match cannot be built from the given catalog, deck or settings."""


@dataclass(frozen=True)
class MatchConfig:
    player_count: int = 4
    starting_hours: int = 100
    max_rounds: int = DEFAULT_MAX_ROUNDS
    victory_hours: int | None = None
    hand_size: int = 5
    slots_per_player: int = DEFAULT_SLOTS
    extension_rounds: int = 5
    hour_stock: bool = True
    # One entry per seat; None marks a human seat.
    ai_tiers: tuple[AITier | None, ...] = (None, "easy", "easy", "easy")

    def tier_for(self, player: int) -> AITier | None:
        if 0 <= player < len(self.ai_tiers):
            return self.ai_tiers[player]
        return None


@dataclass(frozen=True)
class HandCard:
    uid: int
    card_id: CardId


@dataclass
class TurnState:
    current_player: int = 0
    has_drawn: bool = False
    has_played: bool = False
    can_skip: bool = False
    game_over: bool = False

    @property
    def phase(self) -> str:
        if not self.has_drawn:
            return "awaiting_draw"
        if not self.has_played:
            return "awaiting_play"
        return "turn_complete"


@dataclass(frozen=True)
class PendingWeapon:
    """A targeted weapon waiting for the defender to decide on Excused."""

    attacker: int
    target: int
    card: HandCard
    target_slot: int | None


@dataclass(frozen=True)
class RollingReplay:
    card_id: CardId
    attacker: int | None
    target: int


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None
    reason: ErrorReason | None = None


@dataclass
class MatchState:
    cards: CardCatalog
    config: MatchConfig
    seed: int
    rng: random.Random
    # drives AI decisions only; step() never touches it
    ai_rng: random.Random
    rounds: RoundManager
    hands: list[list[HandCard]]
    draw_pile: list[HandCard]
    discard_pile: list[HandCard] = field(default_factory=list)
    turn: TurnState = field(default_factory=TurnState)
    winner: int | None = None
    end_reason: str | None = None
    pending_weapon: PendingWeapon | None = None
    rolling_queue: deque[RollingReplay] = field(default_factory=deque)
    next_uid: int = 0
    action_log: list[Action] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    @property
    def player_count(self) -> int:
        return self.config.player_count

    @property
    def current_player(self) -> int:
        return self.turn.current_player

    @property
    def ledgers(self) -> list[PlayerLedger]:
        return self.rounds.ledgers

    def ledger(self, player: int) -> PlayerLedger:
        return self.rounds.ledgers[player]

    def balance(self, player: int) -> int:
        return self.rounds.ledgers[player].hour_balance

    def definition(self, card: HandCard) -> CardDefinition:
        return self.cards.get(card.card_id)

    def is_valid_player(self, player: int) -> bool:
        return 0 <= player < self.config.player_count

    def next_player(self, player: int) -> int:
        return (player + 1) % self.config.player_count

    def new_uid(self) -> int:
        self.next_uid += 1
        return self.next_uid

    def emit(self, event: Event) -> None:
        self.event_log.append(event)

    def find_in_hand(self, player: int, uid: int) -> HandCard | None:
        for c in self.hands[player]:
            if c.uid == uid:
                return c
        return None

    def take_from_hand(self, player: int, uid: int) -> HandCard | None:
        hand = self.hands[player]
        for i, c in enumerate(hand):
            if c.uid == uid:
                return hand.pop(i)
        return None

    def has_reached_round_limit(self) -> bool:
        return self.rounds.has_reached_round_limit()
