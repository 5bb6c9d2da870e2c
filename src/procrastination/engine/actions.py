from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

DrawSource = Literal["action", "hour"]


@dataclass(frozen=True)
class DrawCardAction:
    player: int
    source: DrawSource = "action"


@dataclass(frozen=True)
class PlayCardAction:
    """Play a card from hand into one of the player's own slots."""

    player: int
    card_uid: int
    slot: int
    linked_player: int | None = None
    linked_slot: int | None = None


@dataclass(frozen=True)
class PlayWeaponAction:
    player: int
    card_uid: int
    target_player: int
    target_slot: int | None = None


@dataclass(frozen=True)
class UseHelperAction:
    player: int
    card_uid: int
    target_slot: int | None = None


@dataclass(frozen=True)
class DiscardHandCardAction:
    player: int
    card_uid: int


@dataclass(frozen=True)
class DiscardPlayedCardAction:
    player: int
    slot: int


@dataclass(frozen=True)
class RespondToWeaponAction:
    player: int
    use_excused: bool


@dataclass(frozen=True)
class SkipTurnAction:
    player: int


@dataclass(frozen=True)
class EndTurnAction:
    player: int


Action = (
    DrawCardAction
    | PlayCardAction
    | PlayWeaponAction
    | UseHelperAction
    | DiscardHandCardAction
    | DiscardPlayedCardAction
    | RespondToWeaponAction
    | SkipTurnAction
    | EndTurnAction
)
