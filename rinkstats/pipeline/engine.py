"""Statistics engine: the entry point the reporting layer calls.

Each request resolves the team's completed games from the directory, reads
the matching events from the event store, and runs the analysis folds.
Results are cached per (category, ids, season, options) and served again
while they are unexpired and the store reports no newer modification.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

import pandas as pd

from rinkstats.analysis.advanced import calculate_advanced_metrics
from rinkstats.analysis.aggregate import (
    Deadline,
    aggregate_base_stats,
    apply_filters,
    select_games,
)
from rinkstats.analysis.derived import calculate_derived_stats, calculate_efficiency_metrics
from rinkstats.analysis.descriptors import get_descriptor
from rinkstats.analysis.position import calculate_skill_stats
from rinkstats.analysis.team import calculate_team_stats
from rinkstats.errors import NotFoundError, ValidationError
from rinkstats.extract.base import Directory, EventQuery, EventStore
from rinkstats.extract.parse import parse_events
from rinkstats.load.cache import CacheCategory, CacheKey, StatisticsCache
from rinkstats.models.events import EventType, GameEvent, SkippedEvent
from rinkstats.models.game import Game
from rinkstats.models.options import StatsOptions
from rinkstats.models.player import Player
from rinkstats.models.stats import (
    AdvancedMetrics,
    BasePlayerStats,
    GoalieStats,
    PlayerStatsComplete,
    SkaterStats,
    StatsTrend,
    TeamStats,
    TrendPoint,
)
from rinkstats.transform.calculations import round2
from rinkstats.transform.metrics import add_rolling_averages, classify_trend

logger = logging.getLogger(__name__)


@dataclass
class _Scope:
    """Games and parsed events behind one player or team request."""

    games: dict[str, Game]
    query: EventQuery
    events: list[GameEvent]
    skipped: list[SkippedEvent]
    computed_at: float


class StatisticsEngine:
    """Computes and caches player and team statistics.

    Args:
        store: Event store the events are read from.
        directory: Player metadata, rosters and game results.
        cache: Shared cache; a private one is created when omitted.
        deadline_clock: Monotonic clock for request deadlines.
    """

    def __init__(
        self,
        store: EventStore,
        directory: Directory,
        cache: StatisticsCache | None = None,
        deadline_clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.directory = directory
        self.cache = cache if cache is not None else StatisticsCache()
        self._deadline_clock = deadline_clock

    def _deadline(self, timeout: float | None) -> Deadline:
        return Deadline(timeout, clock=self._deadline_clock)

    def _require_player(self, player_id: str) -> Player:
        player = self.directory.get_player(player_id)
        if player is None:
            raise NotFoundError(f"Unknown player: {player_id}")
        return player

    def _selected_games(self, team_id: str, season: str, options: StatsOptions) -> dict[str, Game]:
        return select_games(self.directory.get_games(team_id, season), team_id, season, options)

    def _freshness_probe(self, query: EventQuery) -> Callable[[], float | None]:
        return lambda: self.store.last_modified(query)

    def freshness_probe(self, team_id: str, season: str) -> Callable[[], float | None]:
        """Probe for the newest modification among the team's completed-game events."""
        games = select_games(self.directory.get_games(team_id, season), team_id, season)
        return self._freshness_probe(
            EventQuery(team_id=team_id, season=season, game_ids=frozenset(games))
        )

    def _load(self, query: EventQuery, games: dict[str, Game], deadline: Deadline) -> _Scope:
        computed_at = self.cache.now()
        deadline.check("event store read")
        rows = self.store.fetch_events(query) if query.game_ids else []
        deadline.check("event store read")
        events, skipped = parse_events(rows)
        return _Scope(games, query, events, skipped, computed_at)

    def _player_stats(
        self,
        player: Player,
        team_id: str,
        season: str,
        options: StatsOptions,
        scope: _Scope,
        deadline: Deadline,
    ) -> PlayerStatsComplete:
        filtered = apply_filters(scope.events, scope.games, team_id, options)
        player_events = [e for e in filtered if e.player_id == player.player_id]
        goal_events = [e for e in filtered if e.event_type == EventType.GOAL]

        base = aggregate_base_stats(
            player.player_id, team_id, season, player_events, goal_events, deadline
        )
        skill = calculate_skill_stats(
            base, player.position, player_events, filtered, scope.games, deadline
        )
        if isinstance(skill, GoalieStats):
            # Games where the goalie only faced shots count as appearances
            base = replace(base, games_played=skill.games_played)
        derived = calculate_derived_stats(base, skill)
        return PlayerStatsComplete(
            player=player,
            base=base,
            skill=skill,
            derived=derived,
            last_updated=datetime.fromtimestamp(scope.computed_at, tz=timezone.utc),
            skipped_events=list(scope.skipped),
        )

    def get_player_stats(
        self,
        player_id: str,
        team_id: str,
        season: str,
        options: StatsOptions | None = None,
        timeout: float | None = None,
    ) -> PlayerStatsComplete:
        """Base, skill and derived stats for one player.

        Raises:
            NotFoundError: if the directory does not know the player.
            StatsTimeoutError: if ``timeout`` seconds elapse first.
        """
        options = options or StatsOptions()
        player = self._require_player(player_id)
        games = self._selected_games(team_id, season, options)
        query = EventQuery(team_id=team_id, season=season, game_ids=frozenset(games))
        key = CacheKey(
            CacheCategory.PLAYER_STATS,
            season,
            team_id=team_id,
            player_id=player_id,
            options_hash=options.cache_hash(),
        )
        cached = self.cache.get(key, self._freshness_probe(query))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        deadline = self._deadline(timeout)
        scope = self._load(query, games, deadline)
        result = self._player_stats(player, team_id, season, options, scope, deadline)
        self.cache.set(key, result, computed_at=scope.computed_at, epoch=epoch)
        logger.info(
            "Computed stats for %s (%s %s): %d GP, %d PTS",
            player.full_name, team_id, season, result.base.games_played, result.base.points,
        )
        return result

    def get_advanced_metrics(
        self,
        player_id: str,
        team_id: str,
        season: str,
        options: StatsOptions | None = None,
        timeout: float | None = None,
    ) -> AdvancedMetrics:
        """Per-60, zone-start, expected-goals and possession metrics."""
        options = options or StatsOptions()
        player = self._require_player(player_id)
        games = self._selected_games(team_id, season, options)
        query = EventQuery(team_id=team_id, season=season, game_ids=frozenset(games))
        key = CacheKey(
            CacheCategory.ADVANCED,
            season,
            team_id=team_id,
            player_id=player_id,
            options_hash=options.cache_hash(),
        )
        cached = self.cache.get(key, self._freshness_probe(query))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        deadline = self._deadline(timeout)
        scope = self._load(query, games, deadline)
        filtered = apply_filters(scope.events, games, team_id, options)
        player_events = [e for e in filtered if e.player_id == player.player_id]
        goal_events = [e for e in filtered if e.event_type == EventType.GOAL]
        base = aggregate_base_stats(
            player.player_id, team_id, season, player_events, goal_events, deadline
        )
        metrics = calculate_advanced_metrics(base, player_events, filtered, deadline)
        skill = calculate_skill_stats(
            base, player.position, player_events, filtered, scope.games, deadline
        )
        if isinstance(skill, SkaterStats):
            metrics.efficiency = calculate_efficiency_metrics(base, skill)
        self.cache.set(key, metrics, computed_at=scope.computed_at, epoch=epoch)
        return metrics

    def get_team_stats(self, team_id: str, season: str, timeout: float | None = None) -> TeamStats:
        """Season aggregate for a team. A team without games gets all zeros."""
        all_games = self.directory.get_games(team_id, season)
        games = select_games(all_games, team_id, season)
        query = EventQuery(team_id=team_id, season=season, game_ids=frozenset(games))
        key = CacheKey(CacheCategory.TEAM_STATS, season, team_id=team_id)
        cached = self.cache.get(key, self._freshness_probe(query))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        deadline = self._deadline(timeout)
        scope = self._load(query, games, deadline)
        stats = calculate_team_stats(team_id, season, games.values(), scope.events, deadline)
        self.cache.set(key, stats, computed_at=scope.computed_at, epoch=epoch)
        logger.info("Computed team stats for %s %s: %s", team_id, season, stats.record)
        return stats

    def get_roster_stats(
        self,
        team_id: str,
        season: str,
        options: StatsOptions | None = None,
        timeout: float | None = None,
    ) -> dict[str, PlayerStatsComplete]:
        """Stats for every active roster player, keyed by player id."""
        options = options or StatsOptions()
        games = self._selected_games(team_id, season, options)
        query = EventQuery(team_id=team_id, season=season, game_ids=frozenset(games))
        key = CacheKey(
            CacheCategory.SEASON, season, team_id=team_id, options_hash=options.cache_hash()
        )
        cached = self.cache.get(key, self._freshness_probe(query))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        deadline = self._deadline(timeout)
        scope = self._load(query, games, deadline)
        roster_stats: dict[str, PlayerStatsComplete] = {}
        for player in self.directory.get_roster(team_id):
            deadline.check("roster aggregation")
            roster_stats[player.player_id] = self._player_stats(
                player, team_id, season, options, scope, deadline
            )
        self.cache.set(key, roster_stats, computed_at=scope.computed_at, epoch=epoch)
        logger.info("Computed roster stats for %s %s: %d players", team_id, season, len(roster_stats))
        return roster_stats

    def get_game_stats(
        self,
        game_id: str,
        team_id: str,
        season: str,
        timeout: float | None = None,
    ) -> dict[str, BasePlayerStats]:
        """Per-player box score for one game, keyed by player id.

        Raises:
            NotFoundError: if the game is not on the team's schedule for the season.
        """
        games = {g.game_id: g for g in self.directory.get_games(team_id, season)}
        if game_id not in games:
            raise NotFoundError(f"Unknown game {game_id} for {team_id} in {season}")
        query = EventQuery(team_id=team_id, season=season, game_ids=frozenset({game_id}))
        key = CacheKey(CacheCategory.GAME_STATS, season, team_id=team_id, game_id=game_id)
        cached = self.cache.get(key, self._freshness_probe(query))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        deadline = self._deadline(timeout)
        scope = self._load(query, {game_id: games[game_id]}, deadline)
        goal_events = [e for e in scope.events if e.event_type == EventType.GOAL]
        player_ids = sorted(
            {e.player_id for e in scope.events if e.team_id == team_id and e.player_id}
        )
        box_score = {
            pid: aggregate_base_stats(
                pid,
                team_id,
                season,
                [e for e in scope.events if e.player_id == pid],
                goal_events,
                deadline,
            )
            for pid in player_ids
        }
        self.cache.set(key, box_score, computed_at=scope.computed_at, epoch=epoch)
        return box_score

    def get_player_trend(
        self,
        player_id: str,
        team_id: str,
        season: str,
        stat: str = "points",
        window: int = 5,
        options: StatsOptions | None = None,
        timeout: float | None = None,
    ) -> StatsTrend:
        """Game-by-game series of a counting stat with a rolling average.

        Raises:
            ValidationError: if ``stat`` is not a base counting stat or the
                window is not positive.
        """
        descriptor = get_descriptor(stat)
        if descriptor.source != "base" or stat == "games_played":
            raise ValidationError(f"Trends are available for counting stats only, not {stat!r}")
        if window < 1:
            raise ValidationError("window must be at least 1")

        options = options or StatsOptions()
        player = self._require_player(player_id)
        games = self._selected_games(team_id, season, options)
        query = EventQuery(team_id=team_id, season=season, game_ids=frozenset(games))
        key = CacheKey(
            CacheCategory.TREND,
            season,
            team_id=team_id,
            player_id=player_id,
            extra=(stat, str(window)),
            options_hash=options.cache_hash(),
        )
        cached = self.cache.get(key, self._freshness_probe(query))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        deadline = self._deadline(timeout)
        scope = self._load(query, games, deadline)
        filtered = apply_filters(scope.events, games, team_id, options)

        rows = []
        for game_id in sorted({e.game_id for e in filtered if e.player_id == player_id}):
            deadline.check("trend aggregation")
            game = games[game_id]
            game_events = [e for e in filtered if e.game_id == game_id]
            base = aggregate_base_stats(
                player_id,
                team_id,
                season,
                [e for e in game_events if e.player_id == player_id],
                [e for e in game_events if e.event_type == EventType.GOAL],
                deadline,
            )
            rows.append({
                "player_id": player_id,
                "game_id": game_id,
                "game_date": game.game_date,
                "opponent": game.opponent_of(team_id),
                stat: getattr(base, stat),
            })

        trend = StatsTrend(player_id=player.player_id, stat=stat)
        if rows:
            df = add_rolling_averages(pd.DataFrame(rows), [stat], window=window)
            rolling_col = f"{stat}_rolling_{window}"
            trend.games = [
                TrendPoint(
                    game_id=row["game_id"],
                    game_date=row["game_date"].isoformat(),
                    opponent=row["opponent"],
                    value=float(row[stat]),
                    running_average=round2(float(row[rolling_col])),
                )
                for row in df.to_dict("records")
            ]
            direction, change = classify_trend([p.value for p in trend.games])
            if descriptor.lower_is_better and direction != "stable":
                direction = "improving" if direction == "declining" else "declining"
            trend.overall_trend, trend.trend_percentage = direction, change

        self.cache.set(key, trend, computed_at=scope.computed_at, epoch=epoch)
        return trend

    def invalidate(self, team_id: str, season: str, game_id: str) -> int:
        """Drop every cached result a new event for this game can affect.

        Called by ingestion after new events for the game are persisted.
        Returns the number of cache entries removed.
        """
        try:
            player_ids: set[str] | None = self.store.player_ids_for_game(game_id)
        except Exception as e:
            # Without the player list, drop every player entry of the season
            logger.warning("Could not list players for game %s: %s", game_id, e)
            player_ids = None
        return self.cache.on_game_event(game_id, team_id, season, player_ids)
