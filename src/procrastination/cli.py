from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from procrastination.engine.ai import AIPolicy, ai_respond_to_weapon, ai_take_turn
from procrastination.engine.match import new_match
from procrastination.engine.serialize import snapshot
from procrastination.engine.state import ConfigurationError, MatchConfig, MatchState
from procrastination.engine.types import CardCatalog, DeckList
from procrastination.paths import get_paths
from procrastination.services.content import ContentError, ContentService
from procrastination.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)

# Seats without a tier are simulated at this level.
SIMULATED_HUMAN_TIER = "medium"
MAX_DRIVER_CALLS = 20_000


def _policy_for(config: MatchConfig, player: int) -> AIPolicy:
    return AIPolicy(config.tier_for(player) or SIMULATED_HUMAN_TIER)


def run_match(cards: CardCatalog, deck: DeckList, config: MatchConfig, seed: int) -> MatchState:
    """Play one match to completion with every seat driven by the AI."""
    state = new_match(cards, deck, seed=seed, config=config)
    policies = [_policy_for(config, p) for p in range(config.player_count)]
    calls = 0
    while not state.turn.game_over:
        calls += 1
        if calls > MAX_DRIVER_CALLS:
            raise RuntimeError(f"Match with seed {seed} did not finish after {MAX_DRIVER_CALLS} driver calls")
        pending = state.pending_weapon
        if pending is not None:
            ai_respond_to_weapon(state, policies[pending.target])
            continue
        ai_take_turn(state, state.current_player, policies[state.current_player])
    return state


def _parse_tiers(raw: str | None, player_count: int) -> tuple[str | None, ...]:
    if raw is None:
        return tuple(["easy"] * player_count)
    tiers = [t.strip() or None for t in raw.split(",")]
    if len(tiers) != player_count:
        raise ConfigurationError(f"--tiers needs {player_count} entries, got {len(tiers)}")
    return tuple(None if t in (None, "human") else t for t in tiers)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="procrastination", description="Headless AI-vs-AI match simulator")
    parser.add_argument("--config", type=Path, default=None, help="Match config JSON file")
    parser.add_argument("--players", type=int, default=None)
    parser.add_argument("--rounds", type=int, default=None, help="Round limit")
    parser.add_argument("--hours", type=int, default=None, help="Starting hours")
    parser.add_argument("--tiers", default=None, help="Comma separated AI tiers, one per seat")
    parser.add_argument("--deck", default="standard")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--games", type=int, default=1)
    parser.add_argument("--telemetry", type=Path, default=None, help="JSONL output path")
    parser.add_argument("--events", action="store_true", help="Also write every engine event to telemetry")
    parser.add_argument("--snapshot", action="store_true", help="Print the final state as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    paths = get_paths()
    content = ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)
    try:
        cards = content.load_catalog()
        deck = content.load_deck(args.deck)
        base = content.load_match_config(args.config) if args.config else MatchConfig()
        players = args.players or base.player_count
        config = MatchConfig(
            player_count=players,
            starting_hours=base.starting_hours if args.hours is None else args.hours,
            max_rounds=base.max_rounds if args.rounds is None else args.rounds,
            victory_hours=base.victory_hours,
            hand_size=base.hand_size,
            slots_per_player=base.slots_per_player,
            extension_rounds=base.extension_rounds,
            hour_stock=base.hour_stock,
            ai_tiers=_parse_tiers(args.tiers, players)
            if args.tiers or players != base.player_count
            else base.ai_tiers,  # type: ignore[arg-type]
        )
    except (ContentError, ConfigurationError) as e:
        logger.error("%s", e)
        return 2

    telemetry = TelemetryService(args.telemetry) if args.telemetry else None
    wins = [0] * config.player_count
    for game in range(args.games):
        seed = args.seed + game
        try:
            state = run_match(cards, deck, config, seed)
        except ConfigurationError as e:
            logger.error("%s", e)
            return 2
        if state.winner is not None:
            wins[state.winner] += 1
        balances = [lg.hour_balance for lg in state.ledgers]
        logger.info(
            "game %d (seed %d): winner=%s reason=%s round=%d hours=%s",
            game,
            seed,
            state.winner,
            state.end_reason,
            state.rounds.current_round,
            balances,
        )
        if telemetry is not None:
            if args.events:
                telemetry.log_events(state.event_log)
            telemetry.log(
                "match_result",
                {
                    "seed": seed,
                    "winner": state.winner,
                    "reason": state.end_reason,
                    "rounds": state.rounds.current_round,
                    "hours": balances,
                    "tiers": list(config.ai_tiers),
                },
            )
        if args.snapshot:
            print(json.dumps(snapshot(state), indent=2))

    if args.games > 1:
        logger.info("wins by seat: %s", wins)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
