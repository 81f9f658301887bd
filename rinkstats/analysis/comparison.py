"""Leaderboards, rankings and head-to-head comparison within a team.

Ranking rules:
    - Descending by value, ascending for lower-is-better stats.
    - Equal values are ordered by player id, so output is stable run to run.
    - Players under the games-played threshold (default 5, raised by a
      stat's own minimum sample size) are not ranked.
    - percentile = (N - rank + 1) / N * 100 with N the number of eligible
      players, regardless of any display limit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import pandas as pd

from rinkstats.analysis.derived import calculate_relative_metrics
from rinkstats.analysis.descriptors import StatDescriptor, get_descriptor
from rinkstats.errors import NotFoundError, ValidationError
from rinkstats.load.cache import CacheCategory, CacheKey
from rinkstats.models.leaderboard import (
    ComparisonReport,
    Leaderboard,
    LeaderboardEntry,
    StatsComparison,
    TeamAverageComparison,
    TeamSummary,
)
from rinkstats.models.player import Position
from rinkstats.models.stats import PlayerStatsComplete
from rinkstats.transform.calculations import round2

if TYPE_CHECKING:
    from rinkstats.pipeline.engine import StatisticsEngine

logger = logging.getLogger(__name__)

DEFAULT_MIN_GAMES_PLAYED = 5
DEFAULT_LIMIT = 10
MIN_COMPARISON_PLAYERS = 2
MAX_COMPARISON_PLAYERS = 6

DEFAULT_COMPARISON_CATEGORIES = (
    "goals",
    "assists",
    "points",
    "plus_minus",
    "shots",
    "shooting_percentage",
    "points_per_game",
)

POSITIONAL_CATEGORIES: dict[Position, tuple[str, ...]] = {
    Position.FORWARD: ("goals", "assists", "points", "shooting_percentage", "faceoff_percentage"),
    Position.DEFENSE: ("assists", "points", "plus_minus", "blocked", "time_on_ice_per_game"),
    Position.GOALIE: ("wins", "save_percentage", "goals_against_average", "shutouts"),
}

_COLUMNS = ["player_id", "player_name", "jersey_number", "position", "games_played", "value"]


def build_stat_frame(
    players: Iterable[PlayerStatsComplete],
    descriptor: StatDescriptor,
    position: Position | None = None,
    min_games_played: int = DEFAULT_MIN_GAMES_PLAYED,
) -> pd.DataFrame:
    """Eligible players for one stat, ranked, with percentiles.

    A player is eligible when the stat applies to them, they match the
    position filter, and they meet the games-played threshold.
    """
    threshold = max(min_games_played, descriptor.min_sample_size)
    rows = []
    for stats in players:
        if position is not None and stats.player.position != position:
            continue
        if stats.base.games_played < threshold:
            continue
        value = descriptor.extract(stats)
        if value is None:
            continue
        rows.append({
            "player_id": stats.player.player_id,
            "player_name": stats.player.full_name,
            "jersey_number": stats.player.jersey_number,
            "position": str(stats.player.position),
            "games_played": stats.base.games_played,
            "value": value,
        })

    df = pd.DataFrame(rows, columns=_COLUMNS)
    if df.empty:
        return df.assign(rank=pd.Series(dtype="int64"), percentile=pd.Series(dtype="float64"))

    df = df.sort_values(
        ["value", "player_id"], ascending=[descriptor.lower_is_better, True]
    ).reset_index(drop=True)
    n = len(df)
    df["rank"] = range(1, n + 1)
    df["percentile"] = [round2((n - rank + 1) / n * 100) for rank in df["rank"]]
    return df


def _entries(df: pd.DataFrame) -> list[LeaderboardEntry]:
    return [
        LeaderboardEntry(
            player_id=row["player_id"],
            player_name=row["player_name"],
            jersey_number=None if pd.isna(row["jersey_number"]) else int(row["jersey_number"]),
            position=row["position"],
            value=float(row["value"]),
            games_played=int(row["games_played"]),
            rank=int(row["rank"]),
            percentile=float(row["percentile"]),
        )
        for row in df.to_dict("records")
    ]


def _average(df: pd.DataFrame) -> float:
    return round2(float(df["value"].mean())) if not df.empty else 0.0


class StatsComparisonService:
    """Ranking and comparison on top of ``StatisticsEngine`` roster stats."""

    def __init__(self, engine: StatisticsEngine):
        self.engine = engine

    @property
    def cache(self):
        return self.engine.cache

    def _roster(self, team_id: str, season: str) -> list[PlayerStatsComplete]:
        return list(self.engine.get_roster_stats(team_id, season).values())

    def create_leaderboard(
        self,
        team_id: str,
        season: str,
        category: str,
        position: Position | str | None = None,
        min_games_played: int = DEFAULT_MIN_GAMES_PLAYED,
        limit: int | None = DEFAULT_LIMIT,
    ) -> Leaderboard:
        """Rank the team's players on one statistic.

        Raises:
            ValidationError: unknown category, negative threshold or limit.
        """
        descriptor = get_descriptor(category)
        position = Position(position) if position is not None else None
        if min_games_played < 0:
            raise ValidationError("min_games_played cannot be negative")
        if limit is not None and limit < 0:
            raise ValidationError("limit cannot be negative")

        key = CacheKey(
            CacheCategory.LEADERBOARD,
            season,
            team_id=team_id,
            extra=(category, str(position or "all"), str(min_games_played), str(limit)),
        )
        cached = self.cache.get(key, self.engine.freshness_probe(team_id, season))
        if cached is not None:
            return cached

        epoch = self.cache.epoch
        computed_at = self.cache.now()
        df = build_stat_frame(self._roster(team_id, season), descriptor, position, min_games_played)
        shown = df if limit is None else df.head(limit)
        leaderboard = Leaderboard(
            team_id=team_id,
            season=season,
            category=category,
            entries=_entries(shown),
            eligible_count=len(df),
            last_updated=datetime.fromtimestamp(computed_at, tz=timezone.utc),
        )
        self.cache.set(key, leaderboard, computed_at=computed_at, epoch=epoch)
        logger.info(
            "Built %s leaderboard for %s %s: %d eligible", category, team_id, season, len(df)
        )
        return leaderboard

    def compare_players_detailed(
        self,
        player_ids: Sequence[str],
        team_id: str,
        season: str,
        categories: Sequence[str] | None = None,
    ) -> ComparisonReport:
        """Head-to-head comparison of 2-6 players.

        Raises:
            ValidationError: fewer than 2 or more than 6 distinct players, or
                an unknown category.
            NotFoundError: a player is not on the team's roster stats.
        """
        unique_ids = list(dict.fromkeys(player_ids))
        if not MIN_COMPARISON_PLAYERS <= len(unique_ids) <= MAX_COMPARISON_PLAYERS:
            raise ValidationError(
                f"Comparison needs {MIN_COMPARISON_PLAYERS}-{MAX_COMPARISON_PLAYERS} "
                f"players, got {len(unique_ids)}"
            )
        categories = list(categories or DEFAULT_COMPARISON_CATEGORIES)
        descriptors = [get_descriptor(c) for c in categories]

        roster = self._roster(team_id, season)
        by_id = {s.player.player_id: s for s in roster}
        compared = []
        for pid in unique_ids:
            stats = by_id.get(pid)
            if stats is None:
                # Not on the active roster; fetch directly so traded or inactive players still compare
                stats = self.engine.get_player_stats(pid, team_id, season)
            compared.append(stats)

        report = ComparisonReport(players=compared)
        for descriptor in descriptors:
            df = build_stat_frame(roster, descriptor)
            report.team_averages[descriptor.key] = _average(df)
            report.position_averages[descriptor.key] = {
                str(pos): round2(float(group["value"].mean()))
                for pos, group in df.groupby("position")
            } if not df.empty else {}
            report.rankings[descriptor.key] = [
                self._standing(stats, descriptor, df, report.team_averages[descriptor.key])
                for stats in compared
            ]

        report.insights = self._comparison_insights(report, descriptors)
        return report

    def _standing(
        self,
        stats: PlayerStatsComplete,
        descriptor: StatDescriptor,
        df: pd.DataFrame,
        team_average: float,
    ) -> StatsComparison:
        player_id = stats.player.player_id
        value = descriptor.extract(stats)
        match = df[df["player_id"] == player_id]
        if match.empty:
            # Ineligible players rank after everyone eligible
            rank, percentile = len(df) + 1, 0.0
        else:
            rank = int(match["rank"].iloc[0])
            percentile = float(match["percentile"].iloc[0])
        return StatsComparison(
            player_id=player_id,
            player_name=stats.player.full_name,
            stat=descriptor.key,
            value=0.0 if value is None else value,
            rank=rank,
            percentile=percentile,
            team_average=team_average,
        )

    def _comparison_insights(
        self, report: ComparisonReport, descriptors: list[StatDescriptor]
    ) -> list[str]:
        insights = []
        for descriptor in descriptors:
            standings = report.rankings[descriptor.key]
            if not standings:
                continue
            best = min(standings, key=lambda s: (s.rank, s.player_id))
            if best.percentile > 0:
                insights.append(
                    f"{best.player_name} leads the group in {descriptor.label} "
                    f"({descriptor.format(best.value)}, rank {best.rank} on the team)"
                )
        for stats in report.players:
            above = 0
            for descriptor in descriptors:
                value = descriptor.extract(stats)
                average = report.team_averages[descriptor.key]
                if value is None:
                    continue
                if (value < average) if descriptor.lower_is_better else (value > average):
                    above += 1
            insights.append(
                f"{stats.player.full_name} is better than the team average in "
                f"{above} of {len(descriptors)} categories"
            )
        return insights

    def get_player_rankings(
        self,
        player_id: str,
        team_id: str,
        season: str,
        categories: Sequence[str] | None = None,
    ) -> list[StatsComparison]:
        """One player's rank in each category among eligible teammates."""
        roster = self._roster(team_id, season)
        stats = next((s for s in roster if s.player.player_id == player_id), None)
        if stats is None:
            raise NotFoundError(f"Player {player_id} is not on the {team_id} roster")
        standings = []
        for category in categories or DEFAULT_COMPARISON_CATEGORIES:
            descriptor = get_descriptor(category)
            df = build_stat_frame(roster, descriptor)
            standings.append(self._standing(stats, descriptor, df, _average(df)))
        return standings

    def get_positional_leaders(
        self,
        team_id: str,
        season: str,
        position: Position | str,
        limit: int = 3,
    ) -> dict[str, Leaderboard]:
        """Leaderboards for the default categories of one position."""
        position = Position(position)
        return {
            category: self.create_leaderboard(
                team_id, season, category, position=position, limit=limit
            )
            for category in POSITIONAL_CATEGORIES[position]
        }

    def compare_player_to_team_average(
        self,
        player_id: str,
        team_id: str,
        season: str,
        categories: Sequence[str] | None = None,
    ) -> dict[str, TeamAverageComparison]:
        """Player value against the team average per category.

        ``percentage_diff`` is signed relative to the average; the team
        average is taken over players meeting the games-played threshold.
        """
        roster = self._roster(team_id, season)
        stats = next((s for s in roster if s.player.player_id == player_id), None)
        if stats is None:
            raise NotFoundError(f"Player {player_id} is not on the {team_id} roster")

        result: dict[str, TeamAverageComparison] = {}
        for category in categories or DEFAULT_COMPARISON_CATEGORIES:
            descriptor = get_descriptor(category)
            value = descriptor.extract(stats)
            if value is None:
                continue
            df = build_stat_frame(roster, descriptor)
            average = _average(df)
            diff = round2((value - average) / abs(average) * 100) if average else 0.0
            better = value < average if descriptor.lower_is_better else value > average
            match = df[df["player_id"] == player_id]
            percentile = 0.0 if match.empty else float(match["percentile"].iloc[0])
            result[category] = TeamAverageComparison(
                player_value=value,
                team_average=average,
                percentage_diff=diff,
                better_than_average=better,
                percentile=percentile,
                relative_performance=calculate_relative_metrics(
                    {category: value}, {category: average}
                )[category],
            )
        return result

    def get_team_summary(self, team_id: str, season: str) -> TeamSummary:
        """Top performer per headline stat, roster make-up and a few insights."""
        roster = self._roster(team_id, season)
        summary = TeamSummary(team_id=team_id, season=season)
        for category in ("points", "goals", "assists", "plus_minus", "save_percentage"):
            board = self.create_leaderboard(team_id, season, category, limit=1)
            summary.top_performers[category] = board.leader

        breakdown = pd.Series([str(s.player.position) for s in roster], dtype="object")
        summary.position_breakdown = {
            str(pos): int(count) for pos, count in breakdown.value_counts().sort_index().items()
        }

        team = self.engine.get_team_stats(team_id, season)
        if team.games_played:
            summary.insights.append(
                f"Record {team.record} ({team.points} pts), "
                f"goal differential {team.goal_differential:+d}"
            )
            summary.insights.append(
                f"Power play {team.power_play_percentage:.2f}%, "
                f"penalty kill {team.penalty_kill_percentage:.2f}%"
            )
        leader = summary.top_performers.get("points")
        if leader is not None:
            summary.insights.append(
                f"{leader.player_name} leads the team with {leader.value:g} points"
            )
        return summary
