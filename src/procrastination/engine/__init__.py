"""Deterministic, headless rules engine for Procrastination.

IMPORTANT: This package must never import a UI toolkit or touch the filesystem.
"""

from .actions import (
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
from .ai import AIPolicy, ai_respond_to_weapon, ai_take_turn
from .match import check_victory, new_game, new_match, replay, step
from .state import ConfigurationError, MatchConfig, MatchState, StepResult
from .types import CardCatalog, CardCategory, CardDefinition, CardId, DeckList

__all__ = [
    "AIPolicy",
    "CardCatalog",
    "CardCategory",
    "CardDefinition",
    "CardId",
    "ConfigurationError",
    "DeckList",
    "DiscardHandCardAction",
    "DiscardPlayedCardAction",
    "DrawCardAction",
    "EndTurnAction",
    "MatchConfig",
    "MatchState",
    "PlayCardAction",
    "PlayWeaponAction",
    "RespondToWeaponAction",
    "SkipTurnAction",
    "StepResult",
    "UseHelperAction",
    "ai_respond_to_weapon",
    "ai_take_turn",
    "check_victory",
    "new_game",
    "new_match",
    "replay",
    "step",
]
