from dataclasses import dataclass, field
from datetime import datetime

from rinkstats.models.events import SkippedEvent
from rinkstats.models.player import Player, Position


@dataclass
class BasePlayerStats:
    """Counting statistics folded directly from a player's events."""

    player_id: str
    team_id: str
    season: str
    games_played: int = 0
    goals: int = 0
    assists: int = 0
    points: int = 0
    shots: int = 0
    shots_on_goal: int = 0
    penalty_minutes: int = 0
    plus_minus: int = 0
    faceoffs_won: int = 0
    faceoffs_lost: int = 0
    hits: int = 0
    blocked: int = 0
    giveaways: int = 0
    takeaways: int = 0

    @property
    def total_faceoffs(self) -> int:
        return self.faceoffs_won + self.faceoffs_lost


@dataclass
class SkaterStats(BasePlayerStats):
    """Base stats extended with skater (forward or defense) fields."""

    position: Position = Position.FORWARD
    time_on_ice_seconds: int = 0
    power_play_goals: int = 0
    power_play_assists: int = 0
    short_handed_goals: int = 0
    short_handed_assists: int = 0
    game_winning_goals: int = 0
    overtime_goals: int = 0
    faceoff_percentage: float | None = None  # None = no faceoffs taken

    @property
    def time_on_ice_minutes(self) -> float:
        return self.time_on_ice_seconds / 60.0

    @property
    def power_play_points(self) -> int:
        return self.power_play_goals + self.power_play_assists

    @property
    def short_handed_points(self) -> int:
        return self.short_handed_goals + self.short_handed_assists


@dataclass
class GoalieStats(BasePlayerStats):
    """Base stats extended with goaltending fields."""

    position: Position = Position.GOALIE
    time_on_ice_seconds: int = 0
    saves: int = 0
    shots_against: int = 0
    goals_against: int = 0
    shutouts: int = 0
    wins: int = 0
    losses: int = 0
    overtime_losses: int = 0

    @property
    def time_on_ice_minutes(self) -> float:
        return self.time_on_ice_seconds / 60.0

    @property
    def decisions(self) -> int:
        return self.wins + self.losses + self.overtime_losses


SkillStats = SkaterStats | GoalieStats


@dataclass
class DerivedStats:
    """Rates and percentages computed from base + skill stats.

    Skater-only fields are None for goalies and vice versa.
    """

    points_per_game: float = 0.0
    penalty_minutes_per_game: float = 0.0

    # Skaters
    shooting_percentage: float | None = None
    shots_per_game: float | None = None
    hits_per_game: float | None = None
    blocked_per_game: float | None = None
    plus_minus_per_game: float | None = None
    time_on_ice_per_game: float | None = None  # minutes
    power_play_points: int | None = None
    short_handed_points: int | None = None

    # Goalies
    save_percentage: float | None = None
    goals_against_average: float | None = None
    shutout_percentage: float | None = None
    win_percentage: float | None = None
    shots_against_per_game: float | None = None
    saves_per_game: float | None = None


@dataclass
class PossessionMetrics:
    """On-ice shot attempt share (Corsi counts all attempts, Fenwick unblocked)."""

    corsi_for: int = 0
    corsi_against: int = 0
    corsi_percentage: float = 0.0
    fenwick_for: int = 0
    fenwick_against: int = 0
    fenwick_percentage: float = 0.0


@dataclass
class AdvancedMetrics:
    """Per-60 normalized and shot-quality metrics for one player."""

    player_id: str
    season: str
    expected_goals: float = 0.0
    actual_goals: int = 0
    goals_difference: float = 0.0
    offensive_zone_start_percentage: float = 0.0
    even_strength_goals: int = 0
    even_strength_assists: int = 0
    power_play_time_on_ice: int = 0     # seconds
    penalty_kill_time_on_ice: int = 0   # seconds
    primary_assist_percentage: float = 0.0
    individual_shot_attempts: int = 0
    points_per_sixty: float = 0.0
    shots_per_sixty: float = 0.0
    shots_blocked_per_sixty: float = 0.0
    hits_per_sixty: float = 0.0
    takeaways_per_sixty: float = 0.0
    giveaways_per_sixty: float = 0.0
    possession: PossessionMetrics | None = None
    # Skaters only: points and shots per minute, point shares, penalty rate
    efficiency: dict[str, float] = field(default_factory=dict)


@dataclass
class TeamStats:
    """Season aggregate for one team, built from completed games."""

    team_id: str
    season: str
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    overtime_losses: int = 0
    points: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_differential: int = 0
    power_play_goals: int = 0
    power_play_opportunities: int = 0
    penalty_kill_goals_against: int = 0
    penalty_kill_opportunities: int = 0
    shots_for: int = 0
    shots_against: int = 0
    faceoff_wins: int = 0
    faceoff_losses: int = 0

    # Derived
    win_percentage: float = 0.0
    points_per_game: float = 0.0
    goals_for_per_game: float = 0.0
    goals_against_per_game: float = 0.0
    power_play_percentage: float = 0.0
    penalty_kill_percentage: float = 100.0
    shot_differential: int = 0
    faceoff_percentage: float = 0.0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}-{self.overtime_losses}"


@dataclass
class PlayerStatsComplete:
    """Everything the reporting layer needs for one player."""

    player: Player
    base: BasePlayerStats
    skill: SkillStats
    derived: DerivedStats
    last_updated: datetime
    skipped_events: list[SkippedEvent] = field(default_factory=list)


@dataclass
class TrendPoint:
    game_id: str
    game_date: str
    opponent: str
    value: float
    running_average: float


@dataclass
class StatsTrend:
    """Per-game series of one statistic with a rolling average."""

    player_id: str
    stat: str
    games: list[TrendPoint] = field(default_factory=list)
    overall_trend: str = "stable"  # "improving", "declining", "stable"
    trend_percentage: float = 0.0
