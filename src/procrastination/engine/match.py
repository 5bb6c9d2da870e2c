from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence

from . import effects
from .actions import (
    Action,
    DiscardHandCardAction,
    DiscardPlayedCardAction,
    DrawCardAction,
    EndTurnAction,
    PlayCardAction,
    PlayWeaponAction,
    RespondToWeaponAction,
    SkipTurnAction,
    UseHelperAction,
)
from .rounds import RoundManager
from .state import (
    ConfigurationError,
    ErrorReason,
    HandCard,
    MatchConfig,
    MatchState,
    PendingWeapon,
    StepResult,
    TurnState,
)
from .types import ALL_CARD_IDS, CardCatalog, CardId, DeckList

logger = logging.getLogger(__name__)

VALID_TIERS = ("easy", "medium", "expert", "nightmare")
AI_SEED_OFFSET = 0x5EED


def _refuse(reason: ErrorReason, msg: str) -> StepResult:
    return StepResult(ok=False, events=[], error=msg, reason=reason)


def _validate_config(cfg: MatchConfig) -> None:
    if cfg.player_count < 2:
        raise ConfigurationError("A match needs at least two players.")
    if cfg.starting_hours < 0:
        raise ConfigurationError("starting_hours cannot be negative.")
    if cfg.max_rounds < 1:
        raise ConfigurationError("max_rounds must be at least 1.")
    if cfg.hand_size < 1 or cfg.slots_per_player < 1:
        raise ConfigurationError("hand_size and slots_per_player must be positive.")
    if cfg.victory_hours is not None and cfg.victory_hours <= 0:
        raise ConfigurationError("victory_hours must be positive when set.")
    for tier in cfg.ai_tiers:
        if tier is not None and tier not in VALID_TIERS:
            raise ConfigurationError(f"Unknown AI tier: {tier}")


def _validate_deck(cards: CardCatalog, deck: Sequence[str], cfg: MatchConfig) -> None:
    missing = [cid for cid in ALL_CARD_IDS if cid not in cards.cards]
    if missing:
        raise ConfigurationError(f"Catalog is missing cards: {', '.join(missing)}")
    unknown = sorted({cid for cid in deck if cid not in cards.cards})
    if unknown:
        raise ConfigurationError(f"Deck contains unknown cards: {', '.join(unknown)}")
    dealable = sum(1 for cid in deck if not cards.get(cid).is_alert_card)
    if dealable < cfg.hand_size * cfg.player_count:
        raise ConfigurationError(
            f"Deck has {dealable} non-alert cards; {cfg.hand_size * cfg.player_count} are needed to deal."
        )


# ---------------------------------------------------------------------------
# Queries shared with the AI


def holds_card(state: MatchState, player: int, card_id: CardId) -> HandCard | None:
    for c in state.hands[player]:
        if c.card_id == card_id:
            return c
    return None


def _update_can_skip(state: MatchState) -> None:
    turn = state.turn
    if not turn.has_drawn:
        turn.can_skip = not effects.hand_card_available(state)
    else:
        turn.can_skip = not turn.has_played and not state.hands[turn.current_player]


# ---------------------------------------------------------------------------
# Victory


def _end_game(state: MatchState, winner: int | None, reason: str) -> None:
    state.turn.game_over = True
    state.winner = winner
    state.end_reason = reason
    state.emit({"type": "GAME_ENDED", "winner": winner, "reason": reason, "round": state.rounds.current_round})
    logger.info("match over: winner=%s reason=%s", winner, reason)


def check_victory(state: MatchState) -> int | None:
    """Evaluate the end conditions; returns the winner, if any."""
    if state.turn.game_over:
        return state.winner
    standing = [lg.player_index for lg in state.ledgers if lg.hour_balance > 0]
    if len(standing) == 1:
        _end_game(state, standing[0], "last_standing")
        return state.winner
    target = state.config.victory_hours
    if target is not None:
        for lg in state.ledgers:
            if lg.hour_balance >= target:
                _end_game(state, lg.player_index, "victory_hours")
                return state.winner
    if state.rounds.has_reached_round_limit():
        _end_game(state, None, "round_limit")
    return None


# ---------------------------------------------------------------------------
# Turn / round advance


def _advance_round(state: MatchState) -> None:
    report = state.rounds.advance_round()
    state.event_log.extend(report.events)
    for card in report.removed:
        effects.after_removal(state, card.owner_index, card)
    effects.drain_rolling_queue(state)
    logger.debug("round %d settled: %s", report.round_number, report.balance_deltas)


def _advance_turn(state: MatchState) -> None:
    turn = state.turn
    state.emit({"type": "TURN_ENDED", "player": turn.current_player})
    turn.current_player = state.next_player(turn.current_player)
    turn.has_drawn = False
    turn.has_played = False

    if turn.current_player == 0:
        _advance_round(state)

    check_victory(state)
    if turn.game_over:
        return
    state.emit({"type": "TURN_STARTED", "player": turn.current_player, "round": state.rounds.current_round})


# ---------------------------------------------------------------------------
# Commands


def _require_turn(state: MatchState, player: int, *, needs_draw: bool = True) -> StepResult | None:
    turn = state.turn
    if player != turn.current_player:
        return _refuse("illegal_phase", "Not your turn.")
    if needs_draw and not turn.has_drawn:
        return _refuse("illegal_phase", "Draw a card first.")
    if turn.has_played:
        return _refuse("illegal_phase", "Already played this turn.")
    return None


def _draw(state: MatchState, action: DrawCardAction) -> StepResult:
    if action.player != state.current_player:
        return _refuse("illegal_phase", "Not your turn.")
    if state.turn.has_drawn:
        return _refuse("illegal_phase", "Already drew this turn.")
    if action.source not in ("action", "hour"):
        return _refuse("invalid_target", "Unknown draw source.")
    if not effects.stock_available(state, action.source):
        return _refuse("invalid_target", "Nothing left to draw from that stock.")

    card = effects.draw_one(state, action.player, action.source)
    if card is None:
        return _refuse("invalid_target", "Nothing left to draw.")
    if not state.definition(card).is_alert_card:
        state.turn.has_drawn = True
    return StepResult(ok=True, events=[])


def _play_card(state: MatchState, action: PlayCardAction) -> StepResult:
    chk = _require_turn(state, action.player)
    if chk:
        return chk
    card = state.find_in_hand(action.player, action.card_uid)
    if card is None:
        return _refuse("invalid_target", "Card is not in your hand.")
    definition = state.definition(card)
    if not definition.is_play_card:
        return _refuse("invalid_target", "Only play cards go into your own slots.")
    ledger = state.ledger(action.player)
    if not (0 <= action.slot < len(ledger.slots)):
        return _refuse("invalid_target", "Invalid slot.")
    if ledger.is_full():
        return _refuse("invalid_target", f"Cannot have more than {len(ledger.slots)} cards in play.")
    if ledger.slots[action.slot] is not None:
        return _refuse("invalid_target", "Slot is occupied.")
    if definition.has_sharing_mechanic:
        if action.linked_player is not None and (
            not state.is_valid_player(action.linked_player) or action.linked_player == action.player
        ):
            return _refuse("invalid_target", "Link to another player.")
        if action.linked_slot is not None:
            linked = action.linked_player if action.linked_player is not None else state.next_player(action.player)
            linked_slots = state.ledger(linked).slots
            if not (0 <= action.linked_slot < len(linked_slots)) or linked_slots[action.linked_slot] is None:
                return _refuse("invalid_target", "Linked slot has no card.")

    state.take_from_hand(action.player, card.uid)
    effects.place_play_card(state, action.player, card, action.slot, action.linked_player, action.linked_slot)
    state.turn.has_played = True
    return StepResult(ok=True, events=[])


def _play_weapon(state: MatchState, action: PlayWeaponAction) -> StepResult:
    chk = _require_turn(state, action.player)
    if chk:
        return chk
    card = state.find_in_hand(action.player, action.card_uid)
    if card is None:
        return _refuse("invalid_target", "Card is not in your hand.")
    definition = state.definition(card)
    if not definition.is_weapon_card:
        return _refuse("invalid_target", "That is not a weapon.")
    if not state.is_valid_player(action.target_player) or action.target_player == action.player:
        return _refuse("invalid_target", "Target another player.")
    target_ledger = state.ledger(action.target_player)
    slot = action.target_slot
    if slot is not None:
        if not (0 <= slot < len(target_ledger.slots)):
            return _refuse("invalid_target", "Invalid slot.")
        occupied = target_ledger.slots[slot] is not None
        if definition.is_play_weapon and occupied and not target_ledger.is_full():
            return _refuse("invalid_target", "Slot is occupied.")
        if card.card_id in ("tardy", "deadline") and not occupied:
            return _refuse("invalid_target", "No card in that slot.")

    state.take_from_hand(action.player, card.uid)
    state.turn.has_played = True

    if holds_card(state, action.target_player, "excused") is not None:
        state.pending_weapon = PendingWeapon(
            attacker=action.player, target=action.target_player, card=card, target_slot=slot
        )
        state.emit(
            {
                "type": "WEAPON_PENDING",
                "attacker": action.player,
                "target": action.target_player,
                "uid": card.uid,
                "card_id": card.card_id,
            }
        )
        return StepResult(ok=True, events=[])

    outcome = effects.resolve_weapon(state, action.player, action.target_player, card, slot)
    if outcome in ("no_target", "blocked"):
        return StepResult(ok=True, events=[], reason="no_legal_target")
    return StepResult(ok=True, events=[])


def _respond_to_weapon(state: MatchState, action: RespondToWeaponAction) -> StepResult:
    pending = state.pending_weapon
    if pending is None:
        return _refuse("illegal_phase", "No weapon is waiting for a response.")
    if action.player != pending.target:
        return _refuse("illegal_phase", "Only the targeted player may respond.")
    excused = holds_card(state, pending.target, "excused")
    if action.use_excused and excused is None:
        return _refuse("invalid_target", "You have no Excused card.")

    state.pending_weapon = None
    if action.use_excused and excused is not None:
        state.take_from_hand(pending.target, excused.uid)
        effects.deflect_weapon(state, pending, excused)
        return StepResult(ok=True, events=[])

    outcome = effects.resolve_weapon(state, pending.attacker, pending.target, pending.card, pending.target_slot)
    if outcome in ("no_target", "blocked"):
        return StepResult(ok=True, events=[], reason="no_legal_target")
    return StepResult(ok=True, events=[])


def _use_helper(state: MatchState, action: UseHelperAction) -> StepResult:
    if not state.is_valid_player(action.player):
        return _refuse("invalid_target", "Unknown player.")
    on_turn = action.player == state.current_player
    if on_turn:
        chk = _require_turn(state, action.player)
        if chk:
            return chk
    card = state.find_in_hand(action.player, action.card_uid)
    if card is None:
        return _refuse("invalid_target", "Card is not in your hand.")
    definition = state.definition(card)
    if not definition.is_helper_card:
        return _refuse("invalid_target", "That is not a helper card.")
    ledger = state.ledger(action.player)
    slot = action.target_slot
    if slot is not None:
        if not (0 <= slot < len(ledger.slots)) or ledger.slots[slot] is None:
            return _refuse("invalid_target", "No card of yours in that slot.")
        if card.card_id == "excused" and not ledger.slots[slot].definition.is_weapon_card:  # type: ignore[union-attr]
            return _refuse("invalid_target", "Excused only removes weapons.")

    state.take_from_hand(action.player, card.uid)
    state.emit({"type": "HELPER_USED", "player": action.player, "uid": card.uid, "card_id": card.card_id})
    if on_turn:
        state.turn.has_played = True

    if card.card_id == "newbie":
        effects.apply_newbie(state, action.player, card)
        return StepResult(ok=True, events=[])

    if card.card_id == "extension":
        outcome = effects.apply_extension(state, action.player, slot, state.config.extension_rounds)
    elif card.card_id == "nepotism":
        outcome = effects.apply_nepotism(state, action.player, slot)
    elif card.card_id == "excused":
        outcome = _excuse_own_weapon(state, action.player, slot)
    else:
        raise ValueError(f"Unhandled helper: {card.card_id}")
    effects.discard_hand_card(state, action.player, card, "used")
    if outcome == "no_target":
        state.emit({"type": "NO_TARGET", "player": action.player, "card_id": card.card_id})
        return StepResult(ok=True, events=[], reason="no_legal_target")
    return StepResult(ok=True, events=[])


def _excuse_own_weapon(state: MatchState, player: int, slot: int | None) -> effects.EffectOutcome:
    ledger = state.ledger(player)
    if slot is None:
        slot = next((i for i, c in enumerate(ledger.slots) if c is not None and c.definition.is_weapon_card), None)
    if slot is None:
        return "no_target"
    weapon = ledger.slots[slot]
    assert weapon is not None
    effects.settle_and_remove(state, player, weapon, "excused", force=False)
    return "applied"


def _discard_hand_card(state: MatchState, action: DiscardHandCardAction) -> StepResult:
    chk = _require_turn(state, action.player)
    if chk:
        return chk
    card = state.take_from_hand(action.player, action.card_uid)
    if card is None:
        return _refuse("invalid_target", "Card is not in your hand.")
    effects.discard_hand_card(state, action.player, card, "discarded")
    state.turn.has_played = True
    return StepResult(ok=True, events=[])


def _discard_played_card(state: MatchState, action: DiscardPlayedCardAction) -> StepResult:
    chk = _require_turn(state, action.player)
    if chk:
        return chk
    ledger = state.ledger(action.player)
    if not (0 <= action.slot < len(ledger.slots)):
        return _refuse("invalid_target", "Invalid slot.")
    card = ledger.slots[action.slot]
    if card is None:
        return _refuse("invalid_target", "No card in that slot.")
    effects.settle_and_remove(state, action.player, card, "discarded", force=False)
    state.turn.has_played = True
    return StepResult(ok=True, events=[])


def _skip_turn(state: MatchState, action: SkipTurnAction) -> StepResult:
    if action.player != state.current_player:
        return _refuse("illegal_phase", "Not your turn.")
    if not state.turn.can_skip:
        return _refuse("illegal_phase", "You cannot skip this turn.")
    state.turn.has_drawn = True
    state.turn.has_played = True
    state.emit({"type": "TURN_SKIPPED", "player": action.player})
    _advance_turn(state)
    return StepResult(ok=True, events=[])


def _end_turn(state: MatchState, action: EndTurnAction) -> StepResult:
    if action.player != state.current_player:
        return _refuse("illegal_phase", "Not your turn.")
    if not (state.turn.has_drawn and state.turn.has_played):
        return _refuse("illegal_phase", "Draw and play before ending the turn.")
    _advance_turn(state)
    return StepResult(ok=True, events=[])


def step(state: MatchState, action: Action) -> StepResult:
    """Apply a single command to the match state.

    This mutates `state` in-place but remains deterministic for a given
    (seed, deck, action sequence). The returned events are everything the
    command appended to the event log, rolling re-plays included.
    """
    if state.turn.game_over:
        return _refuse("game_already_over", "Match already ended.")

    # Log first so replay has a full record of attempted actions
    state.action_log.append(action)
    start = len(state.event_log)

    if state.pending_weapon is not None and not isinstance(action, RespondToWeaponAction):
        return _refuse("illegal_phase", "Waiting for the targeted player to respond.")

    if isinstance(action, DrawCardAction):
        result = _draw(state, action)
    elif isinstance(action, PlayCardAction):
        result = _play_card(state, action)
    elif isinstance(action, PlayWeaponAction):
        result = _play_weapon(state, action)
    elif isinstance(action, RespondToWeaponAction):
        result = _respond_to_weapon(state, action)
    elif isinstance(action, UseHelperAction):
        result = _use_helper(state, action)
    elif isinstance(action, DiscardHandCardAction):
        result = _discard_hand_card(state, action)
    elif isinstance(action, DiscardPlayedCardAction):
        result = _discard_played_card(state, action)
    elif isinstance(action, SkipTurnAction):
        result = _skip_turn(state, action)
    elif isinstance(action, EndTurnAction):
        result = _end_turn(state, action)
    else:
        return _refuse("invalid_target", "Unknown action.")

    if result.ok:
        effects.drain_rolling_queue(state)
        _update_can_skip(state)
        result.events = state.event_log[start:]
    return result


def new_match(
    cards: CardCatalog,
    deck: DeckList | Sequence[str],
    seed: int,
    config: MatchConfig | None = None,
) -> MatchState:
    cfg = config or MatchConfig()
    _validate_config(cfg)
    deck_ids = deck.expand() if isinstance(deck, DeckList) else list(deck)
    _validate_deck(cards, deck_ids, cfg)

    rng = random.Random(seed)
    rounds = RoundManager(
        player_count=cfg.player_count,
        max_rounds=cfg.max_rounds,
        slots_per_player=cfg.slots_per_player,
        starting_hours=cfg.starting_hours,
    )
    state = MatchState(
        cards=cards,
        config=cfg,
        seed=seed,
        rng=rng,
        ai_rng=random.Random(seed + AI_SEED_OFFSET),
        rounds=rounds,
        hands=[[] for _ in range(cfg.player_count)],
        draw_pile=[],
        turn=TurnState(),
    )
    pile = [HandCard(uid=state.new_uid(), card_id=cid) for cid in deck_ids]  # type: ignore[arg-type]
    rng.shuffle(pile)
    state.draw_pile = pile

    state.emit({"type": "GAME_STARTED", "players": cfg.player_count, "starting_hours": cfg.starting_hours})
    for p in range(cfg.player_count):
        effects.refill_hand(state, p, cfg.hand_size)
    effects.drain_rolling_queue(state)
    _update_can_skip(state)
    state.emit({"type": "TURN_STARTED", "player": 0, "round": 0})
    return state


def new_game(
    cards: CardCatalog,
    deck: DeckList | Sequence[str],
    player_count: int = 4,
    starting_hours: int = 100,
    max_rounds: int = 25,
    seed: int = 0,
    **overrides: object,
) -> MatchState:
    """Convenience wrapper taking the headline settings as arguments."""
    tiers = overrides.pop("ai_tiers", None)
    if tiers is None:
        tiers = (None,) + ("easy",) * (player_count - 1)
    cfg = MatchConfig(
        player_count=player_count,
        starting_hours=starting_hours,
        max_rounds=max_rounds,
        ai_tiers=tuple(tiers),  # type: ignore[arg-type]
        **overrides,  # type: ignore[arg-type]
    )
    return new_match(cards, deck, seed=seed, config=cfg)


def replay(
    cards: CardCatalog,
    deck: DeckList | Sequence[str],
    seed: int,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
) -> MatchState:
    state = new_match(cards, deck, seed=seed, config=config)
    for a in actions:
        step(state, a)
        if state.turn.game_over:
            break
    return state
