"""Derived rates and percentages.

Pure functions over base + skill stats. Nothing here keeps state; every
value can be recomputed from its inputs.
"""

from __future__ import annotations

from rinkstats.analysis.descriptors import get_descriptor
from rinkstats.models.stats import (
    BasePlayerStats,
    DerivedStats,
    GoalieStats,
    SkaterStats,
    SkillStats,
)
from rinkstats.transform.calculations import (
    calculate_goals_against_average,
    calculate_per_game,
    calculate_points_per_game,
    calculate_ratio_percentage,
    calculate_save_percentage,
    calculate_shooting_percentage,
    calculate_winning_percentage,
    round2,
)


def calculate_derived_stats(base: BasePlayerStats, skill: SkillStats) -> DerivedStats:
    """Rates for a skater or goalie; fields of the other kind stay None."""
    gp = base.games_played
    derived = DerivedStats(
        points_per_game=calculate_points_per_game(base.points, gp),
        penalty_minutes_per_game=calculate_per_game(base.penalty_minutes, gp),
    )

    if isinstance(skill, GoalieStats):
        derived.save_percentage = calculate_save_percentage(skill.saves, skill.shots_against)
        derived.goals_against_average = calculate_goals_against_average(
            skill.goals_against, skill.time_on_ice_minutes
        )
        derived.shutout_percentage = calculate_ratio_percentage(skill.shutouts, gp)
        derived.win_percentage = calculate_winning_percentage(
            skill.wins, skill.losses, skill.overtime_losses
        )
        derived.shots_against_per_game = calculate_per_game(skill.shots_against, gp)
        derived.saves_per_game = calculate_per_game(skill.saves, gp)
        return derived

    derived.shooting_percentage = calculate_shooting_percentage(base.goals, base.shots)
    derived.shots_per_game = calculate_per_game(base.shots, gp)
    derived.hits_per_game = calculate_per_game(base.hits, gp)
    derived.blocked_per_game = calculate_per_game(base.blocked, gp)
    derived.plus_minus_per_game = calculate_per_game(base.plus_minus, gp)
    if isinstance(skill, SkaterStats):
        derived.time_on_ice_per_game = calculate_per_game(skill.time_on_ice_minutes, gp)
        derived.power_play_points = skill.power_play_points
        derived.short_handed_points = skill.short_handed_points
    return derived


def calculate_relative_metrics(
    player_values: dict[str, float],
    team_averages: dict[str, float],
) -> dict[str, float]:
    """Percentage difference of each player stat from the team average.

    Positive always means better: for lower-is-better stats the sign flips.
    Stats with a zero team average are reported as 0.
    """
    relative: dict[str, float] = {}
    for key, value in player_values.items():
        average = team_averages.get(key)
        if average is None:
            continue
        if average == 0:
            relative[key] = 0.0
            continue
        diff = (value - average) / abs(average) * 100
        if get_descriptor(key).lower_is_better:
            diff = -diff
        relative[key] = round2(diff)
    return relative


def calculate_efficiency_metrics(base: BasePlayerStats, skill: SkaterStats) -> dict[str, float]:
    """Production relative to opportunity for a skater."""
    minutes = skill.time_on_ice_minutes
    even_strength_points = (
        base.points - skill.power_play_points - skill.short_handed_points
    )
    return {
        "points_per_minute": round2(base.points / minutes) if minutes > 0 else 0.0,
        "shots_per_minute": round2(base.shots / minutes) if minutes > 0 else 0.0,
        "shots_on_goal_percentage": calculate_ratio_percentage(base.shots_on_goal, base.shots),
        "even_strength_point_share": calculate_ratio_percentage(
            max(even_strength_points, 0), base.points
        ),
        "power_play_point_share": calculate_ratio_percentage(skill.power_play_points, base.points),
        "penalty_minutes_per_sixty": (
            round2(base.penalty_minutes / minutes * 60) if minutes > 0 else 0.0
        ),
    }
