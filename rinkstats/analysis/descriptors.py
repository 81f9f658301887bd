"""Per-statistic descriptor table.

One place that says where a statistic lives, which direction is better, how
it is formatted and how many games a player needs before being ranked on it.
Both the leaderboard/comparison service and the derived-metrics layer look
statistics up here.
"""

from dataclasses import dataclass
from typing import Literal

from rinkstats.errors import ValidationError
from rinkstats.models.stats import PlayerStatsComplete

Source = Literal["base", "skill", "derived"]
Direction = Literal["higher", "lower"]
Format = Literal["count", "percentage", "rate", "minutes"]


@dataclass(frozen=True)
class StatDescriptor:
    key: str
    label: str
    source: Source
    direction: Direction = "higher"
    fmt: Format = "count"
    min_sample_size: int = 0  # games played required on top of the caller's threshold

    @property
    def lower_is_better(self) -> bool:
        return self.direction == "lower"

    def extract(self, stats: PlayerStatsComplete) -> float | None:
        """Read this statistic from a player's stats; None when it does not apply."""
        holder = {"base": stats.base, "skill": stats.skill, "derived": stats.derived}[self.source]
        value = getattr(holder, self.key, None)
        if value is None or isinstance(value, bool):
            return None
        return float(value)

    def format(self, value: float) -> str:
        if self.fmt == "count":
            return f"{value:g}"
        if self.fmt == "percentage":
            return f"{value:.2f}%"
        if self.fmt == "minutes":
            return f"{value:.2f} min"
        return f"{value:.2f}"


_DESCRIPTORS = [
    # Base counters
    StatDescriptor("games_played", "Games Played", "base"),
    StatDescriptor("goals", "Goals", "base"),
    StatDescriptor("assists", "Assists", "base"),
    StatDescriptor("points", "Points", "base"),
    StatDescriptor("shots", "Shots", "base"),
    StatDescriptor("shots_on_goal", "Shots on Goal", "base"),
    StatDescriptor("penalty_minutes", "Penalty Minutes", "base", direction="lower"),
    StatDescriptor("plus_minus", "Plus/Minus", "base"),
    StatDescriptor("faceoffs_won", "Faceoffs Won", "base"),
    StatDescriptor("hits", "Hits", "base"),
    StatDescriptor("blocked", "Blocked Shots", "base"),
    StatDescriptor("giveaways", "Giveaways", "base", direction="lower"),
    StatDescriptor("takeaways", "Takeaways", "base"),
    # Skater skill
    StatDescriptor("power_play_goals", "Power Play Goals", "skill"),
    StatDescriptor("short_handed_goals", "Shorthanded Goals", "skill"),
    StatDescriptor("game_winning_goals", "Game-Winning Goals", "skill"),
    StatDescriptor("overtime_goals", "Overtime Goals", "skill"),
    StatDescriptor("faceoff_percentage", "Faceoff %", "skill", fmt="percentage"),
    # Goalie skill
    StatDescriptor("wins", "Wins", "skill"),
    StatDescriptor("saves", "Saves", "skill"),
    StatDescriptor("shutouts", "Shutouts", "skill"),
    # Derived
    StatDescriptor("points_per_game", "Points per Game", "derived", fmt="rate"),
    StatDescriptor(
        "penalty_minutes_per_game", "PIM per Game", "derived", direction="lower", fmt="rate"
    ),
    StatDescriptor("shooting_percentage", "Shooting %", "derived", fmt="percentage"),
    StatDescriptor("shots_per_game", "Shots per Game", "derived", fmt="rate"),
    StatDescriptor("hits_per_game", "Hits per Game", "derived", fmt="rate"),
    StatDescriptor("blocked_per_game", "Blocks per Game", "derived", fmt="rate"),
    StatDescriptor("plus_minus_per_game", "Plus/Minus per Game", "derived", fmt="rate"),
    StatDescriptor("time_on_ice_per_game", "TOI per Game", "derived", fmt="minutes"),
    StatDescriptor("power_play_points", "Power Play Points", "derived"),
    StatDescriptor("short_handed_points", "Shorthanded Points", "derived"),
    StatDescriptor("save_percentage", "Save %", "derived", fmt="percentage"),
    StatDescriptor(
        "goals_against_average", "Goals Against Average", "derived", direction="lower", fmt="rate"
    ),
    StatDescriptor("shutout_percentage", "Shutout %", "derived", fmt="percentage"),
    StatDescriptor("win_percentage", "Win %", "derived", fmt="percentage"),
    StatDescriptor("shots_against_per_game", "Shots Against per Game", "derived", fmt="rate"),
    StatDescriptor("saves_per_game", "Saves per Game", "derived", fmt="rate"),
]

STAT_DESCRIPTORS: dict[str, StatDescriptor] = {d.key: d for d in _DESCRIPTORS}

# Keys that rank ascending; everything else ranks descending
LOWER_IS_BETTER: frozenset[str] = frozenset(
    d.key for d in _DESCRIPTORS if d.lower_is_better
)


def get_descriptor(key: str) -> StatDescriptor:
    """Look up a statistic by key.

    Raises:
        ValidationError: for unknown statistics.
    """
    try:
        return STAT_DESCRIPTORS[key]
    except KeyError as e:
        raise ValidationError(f"Unknown statistic: {key!r}") from e
