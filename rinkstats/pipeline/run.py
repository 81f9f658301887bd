"""Command-line runner for the statistics engine.

Examples:
    python -m rinkstats.pipeline.run --backend memory --data season.json \
        player 8478402 EDM 20242025
    python -m rinkstats.pipeline.run leaderboard EDM 20242025 points --position F
    python -m rinkstats.pipeline.run invalidate EDM 20242025 2024020345
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from rinkstats.analysis.comparison import (
    DEFAULT_LIMIT,
    DEFAULT_MIN_GAMES_PLAYED,
    StatsComparisonService,
)
from rinkstats.errors import StatsError
from rinkstats.extract.base import Directory, EventStore, get_event_store
from rinkstats.extract.memory import InMemoryDirectory, InMemoryEventStore
from rinkstats.extract.parse import parse_game, parse_player
from rinkstats.load.cache import CacheConfig, StatisticsCache
from rinkstats.models.options import StatsOptions
from rinkstats.pipeline.engine import StatisticsEngine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def load_fixture(path: Path) -> tuple[InMemoryEventStore, InMemoryDirectory]:
    """Load players, games and raw events from a JSON file into memory.

    The file holds ``{"players": [...], "games": [...], "events": [...]}``
    using the directory and event store record shapes.
    """
    data = json.loads(path.read_text())
    directory = InMemoryDirectory(
        players=[parse_player(p) for p in data.get("players", [])],
        games=[parse_game(g) for g in data.get("games", [])],
    )
    store = InMemoryEventStore()
    store.extend(data.get("events", []))
    logger.info(
        "Loaded %d players, %d games, %d events from %s",
        len(data.get("players", [])), len(data.get("games", [])),
        len(data.get("events", [])), path,
    )
    return store, directory


def build_engine(backend: str, data: Path | None = None) -> StatisticsEngine:
    """Wire store, directory and cache for the chosen backend."""
    store: EventStore
    directory: Directory
    if data is not None:
        store, directory = load_fixture(data)
    elif backend == "memory":
        store, directory = InMemoryEventStore(), InMemoryDirectory()
    else:
        from rinkstats.extract.directory_api import DirectoryAPIClient

        store, directory = get_event_store(backend), DirectoryAPIClient()
    return StatisticsEngine(store, directory, StatisticsCache(CacheConfig.from_env()))


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def _options(args: argparse.Namespace) -> StatsOptions:
    return StatsOptions.from_dict({
        "date_range": args.date_range,
        "situational_strength": args.strength,
        "home_away_only": args.home_away,
        "opponent_filter": args.opponent or (),
    })


def run_command(engine: StatisticsEngine, args: argparse.Namespace) -> Any:
    """Execute one subcommand and return its result."""
    service = StatsComparisonService(engine)
    match args.command:
        case "player":
            return engine.get_player_stats(
                args.player_id, args.team_id, args.season, _options(args), timeout=args.timeout
            )
        case "advanced":
            return engine.get_advanced_metrics(
                args.player_id, args.team_id, args.season, _options(args), timeout=args.timeout
            )
        case "trend":
            return engine.get_player_trend(
                args.player_id,
                args.team_id,
                args.season,
                stat=args.stat,
                window=args.window,
                timeout=args.timeout,
            )
        case "team":
            return engine.get_team_stats(args.team_id, args.season, timeout=args.timeout)
        case "leaderboard":
            return service.create_leaderboard(
                args.team_id,
                args.season,
                args.category,
                position=args.position,
                min_games_played=args.min_games,
                limit=args.limit,
            )
        case "compare":
            return service.compare_players_detailed(
                args.player_ids, args.team_id, args.season, categories=args.categories
            )
        case "summary":
            return service.get_team_summary(args.team_id, args.season)
        case "invalidate":
            return {"removed": engine.invalidate(args.team_id, args.season, args.game_id)}
    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hockey statistics engine")
    parser.add_argument(
        "--backend",
        choices=["sql", "memory"],
        default=None,
        help="Event store backend (default: STATS_BACKEND or sql).",
    )
    parser.add_argument(
        "--data",
        type=Path,
        help="JSON file of players, games and events to load into memory.",
    )
    parser.add_argument("--timeout", type=float, help="Deadline in seconds for the computation.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_filters(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--date-range",
            nargs=2,
            metavar=("START", "END"),
            help="Only games between these dates (YYYY-MM-DD YYYY-MM-DD).",
        )
        p.add_argument(
            "--strength",
            choices=["all", "even", "powerplay", "penalty_kill"],
            default="all",
        )
        p.add_argument("--home-away", choices=["home", "away"])
        p.add_argument("--opponent", action="append", help="Opponent team id (repeatable).")

    for name in ("player", "advanced"):
        p = sub.add_parser(name)
        p.add_argument("player_id")
        p.add_argument("team_id")
        p.add_argument("season")
        add_filters(p)

    p = sub.add_parser("trend")
    p.add_argument("player_id")
    p.add_argument("team_id")
    p.add_argument("season")
    p.add_argument("--stat", default="points")
    p.add_argument("--window", type=int, default=5)

    p = sub.add_parser("team")
    p.add_argument("team_id")
    p.add_argument("season")

    p = sub.add_parser("leaderboard")
    p.add_argument("team_id")
    p.add_argument("season")
    p.add_argument("category")
    p.add_argument("--position", choices=["F", "D", "G"])
    p.add_argument("--min-games", type=int, default=DEFAULT_MIN_GAMES_PLAYED)
    p.add_argument("--limit", type=int, default=DEFAULT_LIMIT)

    p = sub.add_parser("compare")
    p.add_argument("team_id")
    p.add_argument("season")
    p.add_argument("player_ids", nargs="+")
    p.add_argument("--categories", nargs="+")

    p = sub.add_parser("summary")
    p.add_argument("team_id")
    p.add_argument("season")

    p = sub.add_parser("invalidate")
    p.add_argument("team_id")
    p.add_argument("season")
    p.add_argument("game_id")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    backend = args.backend or ("memory" if args.data else os.environ.get("STATS_BACKEND", "sql"))

    engine = build_engine(backend, args.data)
    try:
        result = run_command(engine, args)
    except StatsError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    print(json.dumps(to_jsonable(result), indent=2, default=_json_default))
    return 0


if __name__ == "__main__":
    try:
        from dotenv import load_dotenv
        load_dotenv()
    except ImportError:
        pass

    raise SystemExit(main())
