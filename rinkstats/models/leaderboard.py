"""Data models for rankings, leaderboards and head-to-head comparison."""

from dataclasses import dataclass, field
from datetime import datetime

from rinkstats.models.stats import PlayerStatsComplete


@dataclass
class LeaderboardEntry:
    """One ranked player within a team leaderboard."""

    player_id: str
    player_name: str
    jersey_number: int | None
    position: str
    value: float
    games_played: int
    rank: int
    percentile: float


@dataclass
class Leaderboard:
    """Ranked players for one statistic.

    ``eligible_count`` is the number of players that passed the games-played
    threshold; ``entries`` may be shorter when a limit is applied. Percentiles
    are always computed against ``eligible_count``.
    """

    team_id: str
    season: str
    category: str
    entries: list[LeaderboardEntry] = field(default_factory=list)
    eligible_count: int = 0
    last_updated: datetime | None = None

    @property
    def leader(self) -> LeaderboardEntry | None:
        return self.entries[0] if self.entries else None

    def entry_for(self, player_id: str) -> LeaderboardEntry | None:
        for entry in self.entries:
            if entry.player_id == player_id:
                return entry
        return None


@dataclass
class StatsComparison:
    """A player's standing in one category relative to the team."""

    player_id: str
    player_name: str
    stat: str
    value: float
    rank: int
    percentile: float
    team_average: float


@dataclass
class TeamAverageComparison:
    player_value: float
    team_average: float
    percentage_diff: float
    better_than_average: bool
    percentile: float
    # percentage_diff with the sign flipped for lower-is-better stats
    relative_performance: float = 0.0


@dataclass
class ComparisonReport:
    """Head-to-head comparison of 2-6 players on the same team."""

    players: list[PlayerStatsComplete] = field(default_factory=list)
    rankings: dict[str, list[StatsComparison]] = field(default_factory=dict)
    team_averages: dict[str, float] = field(default_factory=dict)
    position_averages: dict[str, dict[str, float]] = field(default_factory=dict)
    insights: list[str] = field(default_factory=list)


@dataclass
class TeamSummary:
    team_id: str
    season: str
    top_performers: dict[str, LeaderboardEntry | None] = field(default_factory=dict)
    position_breakdown: dict[str, int] = field(default_factory=dict)
    insights: list[str] = field(default_factory=list)
