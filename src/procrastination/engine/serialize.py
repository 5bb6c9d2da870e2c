from __future__ import annotations

from dataclasses import asdict

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
from .instance import PlayedCard
from .rounds import PlayerLedger
from .state import HandCard, MatchState

_ACTION_TYPES: dict[type, str] = {
    DrawCardAction: "draw",
    PlayCardAction: "play",
    PlayWeaponAction: "weapon",
    UseHelperAction: "helper",
    DiscardHandCardAction: "discard_hand",
    DiscardPlayedCardAction: "discard_played",
    RespondToWeaponAction: "respond",
    SkipTurnAction: "skip",
    EndTurnAction: "end_turn",
}
_ACTIONS_BY_NAME = {v: k for k, v in _ACTION_TYPES.items()}


def action_to_dict(a: Action) -> dict[str, object]:
    name = _ACTION_TYPES.get(type(a))
    if name is None:
        # should be unreachable
        return {"type": "unknown"}
    return {"type": name, **asdict(a)}


def action_from_dict(raw: dict[str, object]) -> Action:
    data = dict(raw)
    name = data.pop("type", None)
    cls = _ACTIONS_BY_NAME.get(name)  # type: ignore[arg-type]
    if cls is None:
        raise ValueError(f"Unknown action type: {name}")
    return cls(**data)  # type: ignore[no-any-return]


def _card_to_dict(c: PlayedCard | None) -> dict[str, object] | None:
    if c is None:
        return None
    return {
        "uid": c.uid,
        "card_id": c.card_id,
        "hour_value": c.current_hour_value,
        "rounds": c.rounds_in_play,
        "expires_after": c.expires_after_rounds,
        "expired": c.has_expired,
        "protected": c.protected_by_nepotism,
        "linked_player": c.linked_player_index,
        "linked_uid": c.linked_card_uid,
        "attacker": c.attacker_player_index,
    }


def _hand_to_list(cards: list[HandCard]) -> list[dict[str, object]]:
    return [{"uid": c.uid, "card_id": c.card_id} for c in cards]


def _ledger_to_dict(state: MatchState, lg: PlayerLedger) -> dict[str, object]:
    return {
        "hours": lg.hour_balance,
        "pending": lg.pending_round_hours,
        "hand": _hand_to_list(state.hands[lg.player_index]),
        "slots": [_card_to_dict(c) for c in lg.slots],
        "ai_tier": state.config.tier_for(lg.player_index),
    }


def snapshot(state: MatchState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current match state."""
    pending = state.pending_weapon
    return {
        "seed": state.seed,
        "round": state.rounds.current_round,
        "max_rounds": state.rounds.max_rounds,
        "current_player": state.current_player,
        "phase": state.turn.phase,
        "can_skip": state.turn.can_skip,
        "game_over": state.turn.game_over,
        "winner": state.winner,
        "end_reason": state.end_reason,
        "players": [_ledger_to_dict(state, lg) for lg in state.ledgers],
        "draw_pile": [c.card_id for c in state.draw_pile],
        "discard_pile": [c.card_id for c in state.discard_pile],
        "pending_weapon": None
        if pending is None
        else {
            "attacker": pending.attacker,
            "target": pending.target,
            "card_id": pending.card.card_id,
            "uid": pending.card.uid,
            "slot": pending.target_slot,
        },
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
