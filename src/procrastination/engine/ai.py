from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from .actions import (
    Action,
    DiscardHandCardAction,
    DrawCardAction,
    EndTurnAction,
    PlayCardAction,
    PlayWeaponAction,
    RespondToWeaponAction,
    SkipTurnAction,
    UseHelperAction,
)
from .match import holds_card, step
from .state import AITier, HandCard, MatchState, StepResult
from .types import HOUR_CARD_ID, CardDefinition

logger = logging.getLogger(__name__)

# "hour" is the On the Clock card, scored apart from other play cards.
CardKind = Literal["play", "weapon", "helper", "alert", "hour"]

_TIER_WEIGHTS: dict[AITier, tuple[float, float]] = {
    "easy": (0.3, 0.2),
    "medium": (0.5, 0.5),
    "expert": (0.7, 0.6),
    "nightmare": (0.9, 0.8),
}


def card_kind(card: CardDefinition) -> CardKind:
    if card.id == HOUR_CARD_ID:
        return "hour"
    return card.category


@dataclass(frozen=True)
class AIPolicy:
    """Decision functions for a computer seat.

    tier:
      easy      = random draws and targets, plays the first legal card
      medium    = prefers building its own board, hits the busiest opponent
      expert    = weighted scoring with a little noise in targeting
      nightmare = same scoring, no noise

    Every function is pure given its inputs and the injected `rng`.
    """

    tier: AITier = "medium"

    @property
    def aggressiveness(self) -> float:
        return _TIER_WEIGHTS[self.tier][0]

    @property
    def risk_tolerance(self) -> float:
        return _TIER_WEIGHTS[self.tier][1]

    def choose_draw_source(self, hand_size: int, play_count: int, hour_count: int, rng: random.Random) -> bool:
        """True to draw from the action deck, False for the hour stock."""
        if self.tier == "easy":
            return rng.random() < 0.7
        if self.tier == "medium":
            if play_count < 2:
                return True
            if play_count > 3:
                return False
            return rng.random() < 0.6
        if hand_size <= 0:
            return True
        play_ratio = play_count / hand_size
        hour_ratio = hour_count / hand_size
        if play_ratio < 0.3:
            return True
        if play_ratio > 0.5 and hour_ratio < 0.2:
            return False
        return rng.random() < (0.7 - play_ratio)

    def evaluate_play(self, category: CardKind, target_is_own: bool, target_occupied: bool) -> float:
        """Score a candidate play; higher is better.

        `target_occupied` says whether the slot the card acts on already holds
        a card. Weapons that never land in a slot pass False.
        """
        if self.tier == "easy":
            return 1.0
        if self.tier == "medium":
            if category == "play" and target_is_own and not target_occupied:
                return 5.0
            if category == "weapon" and not target_is_own and not target_occupied:
                return 4.0
            if category == "helper" and target_is_own and target_occupied:
                return 3.0
            if category == "hour" and target_is_own:
                return 2.0
            return 0.0

        if category == "play":
            return 8.0 if target_is_own and not target_occupied else 0.0
        if category == "weapon":
            return 7.0 * self.aggressiveness if not target_is_own and not target_occupied else 0.0
        if category == "helper":
            return 5.0 if target_is_own and target_occupied else 0.0
        if category == "hour":
            return 4.0 if target_is_own else 0.0
        return 0.0

    def risk_weight(self, immediate_hours: int) -> float:
        """Damping applied to plays that cost hours up front."""
        if immediate_hours >= 0 or self.tier == "easy":
            return 1.0
        return self.risk_tolerance

    def select_weapon_target(self, threat_counts: Sequence[int], self_index: int, rng: random.Random) -> int:
        opponents = [i for i in range(len(threat_counts)) if i != self_index]
        if not opponents:
            raise ValueError("No opponent to target.")
        if self.tier == "easy":
            return opponents[rng.randrange(len(opponents))]
        if self.tier == "medium":
            return max(opponents, key=lambda i: (threat_counts[i], -i))

        best_target = opponents[0]
        best_score = -1.0
        for i in opponents:
            score = threat_counts[i] * 2.0
            if self.tier == "expert":
                score += rng.random() * 2.0
            if score > best_score:
                best_score = score
                best_target = i
        return best_target

    def should_discard(self, category: CardKind, has_valid_play: bool, rng: random.Random) -> bool:
        if not has_valid_play:
            return True
        if self.tier == "easy":
            return False
        if self.tier == "medium":
            return category == "helper" and rng.random() < 0.3
        if category == "helper":
            return rng.random() < 0.4
        if category == "weapon":
            return rng.random() < 0.2 * (1 - self.aggressiveness)
        return False

    def should_deflect(self, rng: random.Random) -> bool:
        """Whether to spend Excused on an incoming weapon."""
        if self.tier == "nightmare":
            return True
        return rng.random() < 1.0 - self.risk_tolerance / 2


# ---------------------------------------------------------------------------
# Turn driver


def _candidate_for(
    state: MatchState, player: int, card: HandCard, policy: AIPolicy
) -> tuple[float, Action] | None:
    """Best legal use of a single hand card, or None when it has no use."""
    definition = state.definition(card)
    kind = card_kind(definition)
    own = state.ledger(player)

    if definition.is_play_card:
        slot = own.first_empty_slot()
        if slot is None:
            return None
        score = policy.evaluate_play(kind, True, False) * policy.risk_weight(definition.immediate_hours)
        return score, PlayCardAction(player=player, card_uid=card.uid, slot=slot)

    if definition.is_weapon_card:
        threats = [state.rounds.card_count_in_play(p) for p in range(state.player_count)]
        target = policy.select_weapon_target(threats, player, state.ai_rng)
        theirs = state.ledger(target)
        occupied = False
        slot: int | None = None
        if definition.is_play_weapon:
            slot = theirs.first_empty_slot()
            occupied = slot is None
        elif card.card_id in ("tardy", "deadline"):
            if not theirs.cards_in_play:
                return None
            # hit their most valuable card
            best = max(theirs.cards_in_play, key=lambda c: c.current_hour_value)
            slot = theirs.slot_of(best.uid)
        elif card.card_id == "scammer" and state.balance(target) <= 0:
            return None
        elif card.card_id == "quit" and not state.hands[target]:
            return None
        elif card.card_id == "foreign_exchange" and (len(state.hands[player]) < 2 or not state.hands[target]):
            return None
        score = policy.evaluate_play(kind, False, occupied)
        return score, PlayWeaponAction(player=player, card_uid=card.uid, target_player=target, target_slot=slot)

    if definition.is_helper_card:
        mine = own.cards_in_play
        if card.card_id == "newbie":
            return policy.evaluate_play(kind, True, False), UseHelperAction(player=player, card_uid=card.uid)
        if card.card_id == "excused":
            weapons = [c for c in mine if c.definition.is_weapon_card]
            if not weapons:
                return None
            chosen = min(weapons, key=lambda c: c.current_hour_value)
        elif card.card_id == "extension":
            expiring = [c for c in mine if c.expires_after_rounds > 0 and c.current_hour_value > 0]
            if not expiring:
                return None
            chosen = min(expiring, key=lambda c: c.rounds_until_expiry())
        else:
            unprotected = [c for c in mine if not c.protected_by_nepotism and c.current_hour_value > 0]
            if not unprotected:
                return None
            chosen = max(unprotected, key=lambda c: c.current_hour_value)
        score = policy.evaluate_play(kind, True, True)
        return score, UseHelperAction(player=player, card_uid=card.uid, target_slot=own.slot_of(chosen.uid))

    return None


def _draw(state: MatchState, player: int, policy: AIPolicy) -> StepResult:
    hand = state.hands[player]
    play_count = sum(1 for c in hand if state.definition(c).is_play_card and c.card_id != HOUR_CARD_ID)
    hour_count = sum(1 for c in hand if c.card_id == HOUR_CARD_ID)
    wants_action = policy.choose_draw_source(len(hand), play_count, hour_count, state.ai_rng)
    source = "action" if wants_action else "hour"
    if not state.config.hour_stock:
        source = "action"
    result = step(state, DrawCardAction(player=player, source=source))
    if not result.ok and source == "action" and state.config.hour_stock:
        result = step(state, DrawCardAction(player=player, source="hour"))
    return result


def _act(state: MatchState, player: int, policy: AIPolicy) -> StepResult:
    best: tuple[float, Action] | None = None
    discard: HandCard | None = None
    for card in list(state.hands[player]):
        cand = _candidate_for(state, player, card, policy)
        kind = card_kind(state.definition(card))
        if policy.should_discard(kind, cand is not None, state.ai_rng):
            if discard is None:
                discard = card
            continue
        assert cand is not None
        if best is None or cand[0] > best[0]:
            best = cand

    if best is not None:
        return step(state, best[1])
    if discard is None and state.hands[player]:
        discard = state.hands[player][0]
    if discard is not None:
        return step(state, DiscardHandCardAction(player=player, card_uid=discard.uid))
    return step(state, SkipTurnAction(player=player))


def ai_take_turn(state: MatchState, player: int, policy: AIPolicy | None = None) -> None:
    """Advance the match through the AI player's turn.

    Returns early when a weapon is left waiting for the defender's response;
    calling again afterwards picks the turn up where it stopped. Randomness
    comes from `state.ai_rng`, kept apart from the engine stream, so replaying
    the action log reproduces the match.
    """
    policy = policy or AIPolicy()
    while (
        not state.turn.game_over
        and state.current_player == player
        and state.pending_weapon is None
    ):
        turn = state.turn
        if turn.can_skip:
            result = step(state, SkipTurnAction(player=player))
        elif not turn.has_drawn:
            result = _draw(state, player, policy)
        elif not turn.has_played:
            result = _act(state, player, policy)
        else:
            step(state, EndTurnAction(player=player))
            break

        if result.ok:
            continue
        logger.warning("AI player %d action refused: %s", player, result.error)
        hand = state.hands[player]
        if not (turn.has_drawn and not turn.has_played and hand):
            break
        if not step(state, DiscardHandCardAction(player=player, card_uid=hand[0].uid)).ok:
            break


def ai_respond_to_weapon(state: MatchState, policy: AIPolicy | None = None) -> StepResult | None:
    """Answer the pending weapon on behalf of its target, if one is waiting."""
    pending = state.pending_weapon
    if pending is None:
        return None
    policy = policy or AIPolicy()
    use = holds_card(state, pending.target, "excused") is not None and policy.should_deflect(state.ai_rng)
    return step(state, RespondToWeaponAction(player=pending.target, use_excused=use))
