"""Card effects: weapons, helpers, alerts, and the card movements they need.

Every function here mutates the match in place, appends events to
``state.event_log`` and returns an outcome code. Validation of who may act and
when belongs to the turn controller in ``match.py``; by the time a function in
this module runs, the command has been accepted.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Literal

from .actions import DrawSource
from .instance import PlayedCard
from .state import HandCard, MatchState, PendingWeapon, RollingReplay
from .types import HOUR_CARD_ID, CardId

logger = logging.getLogger(__name__)

EffectOutcome = Literal["applied", "no_target", "blocked", "deflected"]


# ---------------------------------------------------------------------------
# Hours and card movement


def adjust_hours(state: MatchState, player: int, amount: int, reason: str) -> int:
    if amount == 0:
        return 0
    ledger = state.ledger(player)
    applied = ledger.adjust_hours(amount)
    state.emit(
        {
            "type": "HOURS_CHANGED",
            "player": player,
            "amount": amount,
            "applied": applied,
            "balance": ledger.hour_balance,
            "reason": reason,
        }
    )
    return applied


def discard_hand_card(state: MatchState, player: int, card: HandCard, reason: str) -> None:
    state.discard_pile.append(card)
    state.emit({"type": "CARD_DISCARDED", "player": player, "uid": card.uid, "card_id": card.card_id, "reason": reason})


def _take_from_stock(state: MatchState, source: DrawSource) -> HandCard | None:
    if source == "hour":
        return HandCard(uid=state.new_uid(), card_id=HOUR_CARD_ID)
    if not state.draw_pile and state.discard_pile:
        state.draw_pile = list(state.discard_pile)
        state.discard_pile.clear()
        state.rng.shuffle(state.draw_pile)
        state.emit({"type": "DECK_RESHUFFLED", "size": len(state.draw_pile)})
    if not state.draw_pile:
        return None
    return state.draw_pile.pop()


def stock_available(state: MatchState, source: DrawSource) -> bool:
    if source == "hour":
        return state.config.hour_stock
    return bool(state.draw_pile or state.discard_pile)


def hand_card_available(state: MatchState) -> bool:
    """True while some stock can still put a card into a hand. Alerts never
    reach the hand, so a pile holding nothing else does not count."""
    if state.config.hour_stock:
        return True
    return any(not state.definition(c).is_alert_card for c in (*state.draw_pile, *state.discard_pile))


def draw_one(state: MatchState, player: int, source: DrawSource = "action") -> HandCard | None:
    """Draw a single card. Alert cards are resolved on the spot and returned
    without entering the hand; the caller can tell them apart by category."""
    card = _take_from_stock(state, source)
    if card is None:
        return None
    definition = state.definition(card)
    if definition.is_alert_card:
        state.emit({"type": "ALERT_DRAWN", "player": player, "uid": card.uid, "card_id": card.card_id})
        resolve_alerts(state, deque([(player, card)]))
        return card
    state.hands[player].append(card)
    state.emit({"type": "CARD_DRAWN", "player": player, "uid": card.uid, "card_id": card.card_id})
    return card


def refill_hand(state: MatchState, player: int, count: int) -> None:
    """Draw `count` non-alert cards into the hand; alerts drawn on the way
    resolve after the refill, in draw order."""
    alerts = _draw_hand_cards(state, player, count)
    if alerts:
        resolve_alerts(state, alerts)


def _draw_hand_cards(state: MatchState, player: int, count: int) -> deque[tuple[int, HandCard]]:
    alerts: deque[tuple[int, HandCard]] = deque()
    drawn = 0
    attempts = len(state.draw_pile) + len(state.discard_pile)
    while drawn < count and attempts > 0:
        attempts -= 1
        card = _take_from_stock(state, "action")
        if card is None:
            break
        if state.definition(card).is_alert_card:
            state.emit({"type": "ALERT_DRAWN", "player": player, "uid": card.uid, "card_id": card.card_id})
            alerts.append((player, card))
            continue
        state.hands[player].append(card)
        state.emit({"type": "CARD_DRAWN", "player": player, "uid": card.uid, "card_id": card.card_id})
        drawn += 1
    return alerts


def settle_and_remove(
    state: MatchState,
    player: int,
    card: PlayedCard,
    reason: str,
    *,
    force: bool = True,
) -> int:
    """Take `card` off the board, credit its final value, and route it onward:
    rolling weapons go back into the rolling queue, everything else to the
    discard pile."""
    final = state.rounds.settle_card(player, card, force=force)
    ledger = state.ledger(player)
    state.emit(
        {
            "type": "CARD_SETTLED",
            "player": player,
            "uid": card.uid,
            "card_id": card.card_id,
            "final_hours": final,
            "balance": ledger.hour_balance,
            "reason": reason,
        }
    )
    after_removal(state, player, card)
    return final


def after_removal(state: MatchState, player: int, card: PlayedCard) -> None:
    if card.definition.is_rolling_weapon:
        state.rolling_queue.append(
            RollingReplay(
                card_id=card.definition.id,
                attacker=card.attacker_player_index,
                target=state.next_player(player),
            )
        )
        return
    state.discard_pile.append(HandCard(uid=card.uid, card_id=card.definition.id))


# ---------------------------------------------------------------------------
# Placing cards into slots


def place_play_card(
    state: MatchState,
    player: int,
    card: HandCard,
    slot: int,
    linked_player: int | None = None,
    linked_slot: int | None = None,
) -> PlayedCard:
    definition = state.definition(card)
    instance = PlayedCard.create(card.uid, definition, player)
    if definition.has_sharing_mechanic:
        link_to = linked_player if linked_player is not None else state.next_player(player)
        instance.linked_player_index = link_to
        linked_ledger = state.ledger(link_to)
        target: PlayedCard | None = None
        if linked_slot is not None:
            target = linked_ledger.slots[linked_slot]
        elif linked_ledger.cards_in_play:
            target = linked_ledger.cards_in_play[0]
        instance.linked_card_uid = None if target is None else target.uid
        state.emit(
            {
                "type": "CARD_LINKED",
                "player": player,
                "uid": instance.uid,
                "linked_player": link_to,
                "linked_uid": instance.linked_card_uid,
            }
        )
    state.rounds.add_card_to_play(player, instance, slot)
    state.emit({"type": "CARD_PLAYED", "player": player, "uid": card.uid, "card_id": card.card_id, "slot": slot})
    adjust_hours(state, player, definition.immediate_hours, "immediate")
    state.emit(instance.to_event())
    return instance


def place_play_weapon(
    state: MatchState,
    attacker: int | None,
    target: int,
    card_id: CardId,
    uid: int,
    slot: int | None = None,
) -> EffectOutcome:
    definition = state.cards.get(card_id)
    ledger = state.ledger(target)
    if slot is None or ledger.slots[slot] is not None:
        slot = ledger.first_empty_slot()
    if slot is None:
        victim = next((c for c in ledger.cards_in_play if not c.definition.is_rolling_weapon), None)
        if victim is None:
            state.emit({"type": "WEAPON_BLOCKED", "target": target, "card_id": card_id, "uid": uid})
            return "blocked"
        slot = ledger.slot_of(victim.uid)
        state.emit({"type": "FORCED_DISCARD", "player": target, "uid": victim.uid, "card_id": victim.card_id})
        settle_and_remove(state, target, victim, "forced_discard", force=False)

    instance = PlayedCard.create(uid, definition, target, attacker_player_index=attacker)
    state.rounds.add_card_to_play(target, instance, slot)
    state.emit(
        {
            "type": "WEAPON_PLAYED",
            "attacker": attacker,
            "target": target,
            "uid": uid,
            "card_id": card_id,
            "slot": slot,
        }
    )
    if definition.has_parasite_mechanic and attacker is not None:
        adjust_hours(state, target, -definition.immediate_hours, "parasite")
        adjust_hours(state, attacker, definition.immediate_hours, "parasite")
    else:
        adjust_hours(state, target, definition.immediate_hours, "immediate")
    state.emit(instance.to_event())
    return "applied"


def drain_rolling_queue(state: MatchState) -> int:
    """Re-play every queued rolling weapon. Re-plays that force further
    removals feed the same queue, so this is a loop rather than recursion."""
    replayed = 0
    while state.rolling_queue:
        replay = state.rolling_queue.popleft()
        uid = state.new_uid()
        outcome = place_play_weapon(state, replay.attacker, replay.target, replay.card_id, uid)
        if outcome == "applied":
            replayed += 1
            state.emit(
                {
                    "type": "ROLLING_REPLAYED",
                    "attacker": replay.attacker,
                    "target": replay.target,
                    "uid": uid,
                    "card_id": replay.card_id,
                }
            )
            logger.debug("rolling weapon %s passes to player %d", replay.card_id, replay.target)
        else:
            state.emit({"type": "ROLLING_BLOCKED", "target": replay.target, "card_id": replay.card_id})
            state.discard_pile.append(HandCard(uid=uid, card_id=replay.card_id))
    return replayed


# ---------------------------------------------------------------------------
# Weapons


def _target_card(state: MatchState, target: int, slot: int | None) -> PlayedCard | None:
    ledger = state.ledger(target)
    if slot is not None:
        return ledger.slots[slot]
    cards = ledger.cards_in_play
    return cards[0] if cards else None


def apply_tardy(state: MatchState, attacker: int, target: int, slot: int | None) -> EffectOutcome:
    card = _target_card(state, target, slot)
    if card is None:
        return "no_target"
    card.add_round()
    state.emit(card.to_event())
    return "applied"


def apply_deadline(state: MatchState, attacker: int, target: int, slot: int | None) -> EffectOutcome:
    card = _target_card(state, target, slot)
    if card is None:
        return "no_target"
    card.force_expire()
    state.emit({"type": "CARD_EXPIRED", "player": target, "uid": card.uid, "card_id": card.card_id})
    settle_and_remove(state, target, card, "deadline")
    return "applied"


def apply_scammer(state: MatchState, attacker: int, target: int) -> EffectOutcome:
    if state.balance(target) <= 0:
        return "no_target"
    adjust_hours(state, target, -1, "scammer")
    adjust_hours(state, attacker, 1, "scammer")
    return "applied"


def apply_quit(state: MatchState, attacker: int, target: int) -> EffectOutcome:
    hand = state.hands[target]
    if not hand:
        return "no_target"
    card = hand.pop(state.rng.randrange(len(hand)))
    discard_hand_card(state, target, card, "quit")
    return "applied"


def apply_foreign_exchange(state: MatchState, attacker: int, target: int) -> EffectOutcome:
    mine = state.hands[attacker]
    theirs = state.hands[target]
    if not mine or not theirs:
        return "no_target"
    give = mine.pop(state.rng.randrange(len(mine)))
    take = theirs.pop(state.rng.randrange(len(theirs)))
    mine.append(take)
    theirs.append(give)
    state.emit(
        {
            "type": "CARDS_EXCHANGED",
            "attacker": attacker,
            "target": target,
            "given_uid": give.uid,
            "taken_uid": take.uid,
        }
    )
    return "applied"


def resolve_weapon(state: MatchState, attacker: int, target: int, card: HandCard, slot: int | None) -> EffectOutcome:
    """Commit a weapon that has already left the attacker's hand."""
    definition = state.definition(card)
    if definition.is_play_weapon:
        outcome = place_play_weapon(state, attacker, target, card.card_id, card.uid, slot)
        if outcome != "applied":
            state.discard_pile.append(card)
        return outcome

    state.emit({"type": "WEAPON_USED", "attacker": attacker, "target": target, "uid": card.uid, "card_id": card.card_id})
    state.discard_pile.append(card)
    if card.card_id == "tardy":
        outcome = apply_tardy(state, attacker, target, slot)
    elif card.card_id == "deadline":
        outcome = apply_deadline(state, attacker, target, slot)
    elif card.card_id == "scammer":
        outcome = apply_scammer(state, attacker, target)
    elif card.card_id == "quit":
        outcome = apply_quit(state, attacker, target)
    elif card.card_id == "foreign_exchange":
        outcome = apply_foreign_exchange(state, attacker, target)
    else:
        raise ValueError(f"Unhandled weapon: {card.card_id}")
    if outcome == "no_target":
        state.emit({"type": "NO_TARGET", "player": attacker, "card_id": card.card_id})
    return outcome


def deflect_weapon(state: MatchState, pending: PendingWeapon, excused: HandCard) -> EffectOutcome:
    state.discard_pile.append(pending.card)
    discard_hand_card(state, pending.target, excused, "excused")
    state.emit(
        {
            "type": "WEAPON_DEFLECTED",
            "attacker": pending.attacker,
            "target": pending.target,
            "uid": pending.card.uid,
            "card_id": pending.card.card_id,
        }
    )
    return "deflected"


# ---------------------------------------------------------------------------
# Helpers


def apply_extension(state: MatchState, player: int, slot: int | None, rounds: int) -> EffectOutcome:
    card = _target_card(state, player, slot)
    if card is None:
        return "no_target"
    card.extend_expiration(rounds)
    state.emit(card.to_event())
    return "applied"


def apply_nepotism(state: MatchState, player: int, slot: int | None) -> EffectOutcome:
    card = _target_card(state, player, slot)
    if card is None:
        return "no_target"
    card.protected_by_nepotism = True
    state.emit(card.to_event())
    return "applied"


def apply_newbie(state: MatchState, player: int, newbie: HandCard) -> EffectOutcome:
    # Newbie is already out of the hand here, so it is never part of the
    # discarded hand cards; it goes to the pile after the redraw.
    hand = state.hands[player]
    while hand:
        discard_hand_card(state, player, hand.pop(0), "newbie")
    refill_hand(state, player, state.config.hand_size)
    discard_hand_card(state, player, newbie, "used")
    return "applied"


# ---------------------------------------------------------------------------
# Alerts


def _apply_alert(state: MatchState, player: int, card: HandCard, queue: deque[tuple[int, HandCard]]) -> None:
    state.emit({"type": "ALERT_RESOLVED", "player": player, "uid": card.uid, "card_id": card.card_id})
    logger.info("alert %s drawn by player %d", card.card_id, player)
    if card.card_id == "amnesia":
        for instance in state.rounds.reset_all_cards():
            state.emit(instance.to_event())
    elif card.card_id == "fired":
        for instance in state.ledger(player).cards_in_play:
            settle_and_remove(state, player, instance, "fired")
    elif card.card_id == "recession":
        for ledger in state.ledgers:
            for instance in ledger.cards_in_play:
                settle_and_remove(state, ledger.player_index, instance, "recession")
    elif card.card_id == "performance_review":
        hand = state.hands[player]
        while hand:
            discard_hand_card(state, player, hand.pop(0), "performance_review")
        queue.extend(_draw_hand_cards(state, player, state.config.hand_size))
    else:
        raise ValueError(f"Unhandled alert: {card.card_id}")
    state.discard_pile.append(card)


def resolve_alerts(state: MatchState, queue: deque[tuple[int, HandCard]]) -> None:
    while queue:
        player, card = queue.popleft()
        _apply_alert(state, player, card, queue)
