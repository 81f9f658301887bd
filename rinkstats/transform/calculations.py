"""Pure hockey stat calculations.

Every percentage and rate resolves to a defined default when its denominator
is zero (0, or 100 for penalty kill), never NaN or infinity. Results are
rounded to two decimals with ``round2``.
"""

import math

from rinkstats.errors import ValidationError
from rinkstats.transform.clean import seconds_to_time, time_to_seconds


def round2(value: float) -> float:
    """Multiply by 100, round half up to an integer, divide by 100."""
    return math.floor(value * 100 + 0.5) / 100


def _require_non_negative(message: str, *values: float) -> None:
    if any(v < 0 for v in values):
        raise ValidationError(message)


def calculate_points(goals: int, assists: int) -> int:
    """Points are goals plus assists."""
    _require_non_negative("Goals and assists cannot be negative", goals, assists)
    return goals + assists


def calculate_shooting_percentage(goals: int, shots: int) -> float:
    _require_non_negative("Goals and shots cannot be negative", goals, shots)
    if shots == 0:
        return 0.0
    if goals > shots:
        raise ValidationError("Goals cannot exceed shots")
    return round2(goals / shots * 100)


def calculate_save_percentage(saves: int, shots_against: int) -> float:
    _require_non_negative("Saves and shots against cannot be negative", saves, shots_against)
    if shots_against == 0:
        return 0.0
    if saves > shots_against:
        raise ValidationError("Saves cannot exceed shots against")
    return round2(saves / shots_against * 100)


def calculate_goals_against_average(goals_against: int, time_on_ice_minutes: float) -> float:
    """Goals against per 60 minutes of ice time."""
    _require_non_negative(
        "Goals against and time on ice cannot be negative", goals_against, time_on_ice_minutes
    )
    if time_on_ice_minutes == 0:
        return 0.0
    return round2(goals_against * 60 / time_on_ice_minutes)


def calculate_faceoff_percentage(wins: int, attempts: int) -> float:
    _require_non_negative("Faceoff wins and attempts cannot be negative", wins, attempts)
    if attempts == 0:
        return 0.0
    if wins > attempts:
        raise ValidationError("Faceoff wins cannot exceed attempts")
    return round2(wins / attempts * 100)


def calculate_power_play_percentage(goals: int, opportunities: int) -> float:
    _require_non_negative(
        "Power play goals and opportunities cannot be negative", goals, opportunities
    )
    if opportunities == 0:
        return 0.0
    if goals > opportunities:
        raise ValidationError("Power play goals cannot exceed opportunities")
    return round2(goals / opportunities * 100)


def calculate_penalty_kill_percentage(goals_allowed: int, opportunities: int) -> float:
    """Share of times shorthanded without conceding. A team never shorthanded kills 100%."""
    _require_non_negative(
        "Goals allowed and opportunities cannot be negative", goals_allowed, opportunities
    )
    if opportunities == 0:
        return 100.0
    if goals_allowed > opportunities:
        raise ValidationError("Goals allowed cannot exceed opportunities")
    return round2((opportunities - goals_allowed) / opportunities * 100)


def calculate_points_percentage(points: int, games_played: int) -> float:
    """Standings points earned over the maximum possible (2 per game)."""
    _require_non_negative("Points and games played cannot be negative", points, games_played)
    if games_played == 0:
        return 0.0
    possible = games_played * 2
    if points > possible:
        raise ValidationError("Points cannot exceed maximum possible points")
    return round2(points / possible * 100)


def calculate_goal_differential(goals_for: int, goals_against: int) -> int:
    _require_non_negative("Goals for and against cannot be negative", goals_for, goals_against)
    return goals_for - goals_against


def calculate_average_time_on_ice(total_time_on_ice: str, games_played: int) -> str:
    """Average a 'MM:SS' total over games played, returning 'M:SS'."""
    _require_non_negative("Games played cannot be negative", games_played)
    if games_played == 0:
        return "0:00"
    total_seconds = time_to_seconds(total_time_on_ice)
    return seconds_to_time(math.floor(total_seconds / games_played + 0.5))


def calculate_per_game(value: float, games_played: int) -> float:
    """Generic per-game rate. Value may be negative (plus/minus)."""
    _require_non_negative("Games played cannot be negative", games_played)
    if games_played == 0:
        return 0.0
    return round2(value / games_played)


def calculate_points_per_game(points: int, games_played: int) -> float:
    _require_non_negative("Points and games played cannot be negative", points, games_played)
    if games_played == 0:
        return 0.0
    return round2(points / games_played)


def calculate_winning_percentage(wins: int, losses: int, overtime_losses: int = 0) -> float:
    _require_non_negative("Win/loss values cannot be negative", wins, losses, overtime_losses)
    total = wins + losses + overtime_losses
    if total == 0:
        return 0.0
    return round2(wins / total * 100)


def calculate_ratio_percentage(part: int, whole: int) -> float:
    """part / whole as a percentage, 0 when whole is 0."""
    _require_non_negative("Counts cannot be negative", part, whole)
    if whole == 0:
        return 0.0
    return round2(part / whole * 100)


def calculate_per_sixty(count: float, time_on_ice_minutes: float) -> float:
    """Normalize a count to a 60-minute rate: (count / TOI minutes) * 60."""
    _require_non_negative("Counts cannot be negative", count)
    if time_on_ice_minutes <= 0:
        return 0.0
    return round2(count / time_on_ice_minutes * 60)


def is_above_average(player_stat: float, league_average: float, higher_is_better: bool = True) -> bool:
    if higher_is_better:
        return player_stat > league_average
    return player_stat < league_average


def calculate_rank(player_stat: float, all_stats: list[float], higher_is_better: bool = True) -> int:
    """1-based competition rank of a value within a list.

    A value not present in the list ranks after everyone (len + 1).
    """
    if not all_stats:
        return 1
    ordered = sorted(all_stats, reverse=higher_is_better)
    try:
        return ordered.index(player_stat) + 1
    except ValueError:
        return len(all_stats) + 1


def calculate_team_strength(
    games_played: int,
    goals_for: int,
    goals_against: int,
    power_play_goals: int,
    power_play_opportunities: int,
    penalty_kill_goals_against: int,
    penalty_kill_opportunities: int,
) -> dict[str, float]:
    """Offensive / defensive / special teams strength on a percentage-like scale."""
    _require_non_negative(
        "Team totals cannot be negative",
        games_played, goals_for, goals_against, power_play_goals, power_play_opportunities,
        penalty_kill_goals_against, penalty_kill_opportunities,
    )
    if games_played == 0:
        return {"offensive": 0.0, "defensive": 0.0, "special_teams": 0.0}

    goals_per_game = goals_for / games_played
    goals_against_per_game = goals_against / games_played
    pp_pct = calculate_power_play_percentage(power_play_goals, power_play_opportunities)
    pk_pct = calculate_penalty_kill_percentage(
        penalty_kill_goals_against, penalty_kill_opportunities
    )
    return {
        "offensive": round2(goals_per_game * 100),
        # Inverted so higher is better; 6 GA/game maps to 0
        "defensive": round2((6 - goals_against_per_game) * 100 / 6),
        "special_teams": round2((pp_pct + pk_pct) / 2),
    }
