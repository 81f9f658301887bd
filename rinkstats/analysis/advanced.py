"""Advanced metrics: per-60 rates, zone starts, possession and expected goals.

Expected goals is a fixed lookup-table heuristic rather than a fitted
model. A shot's probability is its shot-type base rate times a location
factor times a strength factor, capped at 1.0.
"""

from __future__ import annotations

from collections.abc import Iterable

from rinkstats.analysis.aggregate import NO_DEADLINE, Deadline
from rinkstats.models.events import (
    AssistDetails,
    EventType,
    GameEvent,
    GoalDetails,
    ShiftDetails,
    ShotDetails,
    Strength,
)
from rinkstats.models.stats import AdvancedMetrics, BasePlayerStats, PossessionMetrics
from rinkstats.transform.calculations import (
    calculate_per_sixty,
    calculate_ratio_percentage,
    round2,
)


SHOT_TYPE_BASE_RATES: dict[str, float] = {
    "wrist": 0.08,
    "slap": 0.06,
    "snap": 0.09,
    "tip": 0.15,
    "wrap": 0.12,
    "backhand": 0.05,
}
DEFAULT_BASE_RATE = 0.08

# Checked in order; the first substring found in the location wins
LOCATION_FACTORS: tuple[tuple[str, float], ...] = (
    ("slot", 2.5),
    ("close", 1.8),
    ("far", 0.6),
)

STRENGTH_FACTORS: dict[Strength, float] = {
    Strength.POWERPLAY: 1.3,
    Strength.SHORTHANDED: 0.7,
}

MAX_SHOT_PROBABILITY = 1.0

# Shot attempts for Corsi; Fenwick drops blocked attempts
_CORSI_EVENTS = frozenset(
    {EventType.SHOT, EventType.GOAL, EventType.MISSED_SHOT, EventType.BLOCKED_SHOT}
)
_FENWICK_EVENTS = _CORSI_EVENTS - {EventType.BLOCKED_SHOT}


def shot_probability(event: GameEvent) -> float:
    """Expected-goal value of one shot event."""
    details = event.details
    shot_type = location = None
    if isinstance(details, (ShotDetails, GoalDetails)):
        shot_type, location = details.shot_type, details.location

    probability = SHOT_TYPE_BASE_RATES.get((shot_type or "").lower(), DEFAULT_BASE_RATE)
    location = (location or "").lower()
    for marker, factor in LOCATION_FACTORS:
        if marker in location:
            probability *= factor
            break
    probability *= STRENGTH_FACTORS.get(event.strength, 1.0)
    return min(probability, MAX_SHOT_PROBABILITY)


def calculate_expected_goals(events: Iterable[GameEvent], player_id: str | None = None) -> float:
    """Sum shot probabilities over shot events (optionally one shooter's).

    Goal events are not counted.
    """
    total = 0.0
    for event in events:
        if event.event_type != EventType.SHOT:
            continue
        if player_id is not None and event.player_id != player_id:
            continue
        total += shot_probability(event)
    return round2(total)


def calculate_possession(
    player_id: str,
    team_id: str,
    team_events: Iterable[GameEvent],
) -> PossessionMetrics:
    """On-ice shot attempts for and against.

    Only attempts whose on-ice set includes the player count. A blocked shot
    event is recorded for the blocking team, so it is an attempt by the
    other side.
    """
    metrics = PossessionMetrics()
    for event in team_events:
        if event.event_type not in _CORSI_EVENTS or not event.is_on_ice(player_id):
            continue
        shooting_team_is_ours = event.team_id == team_id
        if event.event_type == EventType.BLOCKED_SHOT:
            shooting_team_is_ours = not shooting_team_is_ours
        fenwick = event.event_type in _FENWICK_EVENTS
        if shooting_team_is_ours:
            metrics.corsi_for += 1
            metrics.fenwick_for += int(fenwick)
        else:
            metrics.corsi_against += 1
            metrics.fenwick_against += int(fenwick)

    metrics.corsi_percentage = calculate_ratio_percentage(
        metrics.corsi_for, metrics.corsi_for + metrics.corsi_against
    )
    metrics.fenwick_percentage = calculate_ratio_percentage(
        metrics.fenwick_for, metrics.fenwick_for + metrics.fenwick_against
    )
    return metrics


def calculate_advanced_metrics(
    base: BasePlayerStats,
    player_events: Iterable[GameEvent],
    team_events: Iterable[GameEvent] | None = None,
    deadline: Deadline = NO_DEADLINE,
) -> AdvancedMetrics:
    """Per-60 and shot-quality metrics for one player.

    Args:
        base: The player's base stats over the same filtered events.
        player_events: Events where the player is the actor.
        team_events: Events of both teams in the same games. Possession
            metrics are only computed when these are given.
        deadline: Raises StatsTimeoutError if the fold runs too long.
    """
    player_id = base.player_id
    metrics = AdvancedMetrics(player_id=player_id, season=base.season, actual_goals=base.goals)

    toi_seconds = 0
    offensive_starts = 0
    total_starts = 0
    primary_assists = 0
    expected = 0.0

    for event in deadline.guard(player_events, "advanced metrics"):
        if event.player_id != player_id:
            continue
        details = event.details
        match event.event_type:
            case EventType.SHIFT if isinstance(details, ShiftDetails):
                toi_seconds += details.duration_seconds
                if event.strength == Strength.POWERPLAY:
                    metrics.power_play_time_on_ice += details.duration_seconds
                elif event.strength == Strength.SHORTHANDED:
                    metrics.penalty_kill_time_on_ice += details.duration_seconds
                if details.start_zone:
                    total_starts += 1
                    offensive_starts += int(details.start_zone.lower() == "offensive")
            case EventType.GOAL:
                metrics.individual_shot_attempts += 1
                if event.strength == Strength.EVEN:
                    metrics.even_strength_goals += 1
            case EventType.SHOT:
                expected += shot_probability(event)
                metrics.individual_shot_attempts += 1
            case EventType.MISSED_SHOT:
                metrics.individual_shot_attempts += 1
            case EventType.ASSIST:
                if isinstance(details, AssistDetails) and details.is_primary:
                    primary_assists += 1
                if event.strength == Strength.EVEN:
                    metrics.even_strength_assists += 1

    metrics.expected_goals = round2(expected)
    metrics.goals_difference = round2(metrics.actual_goals - metrics.expected_goals)

    # Every shift with a recorded start zone counts, neutral included
    metrics.offensive_zone_start_percentage = calculate_ratio_percentage(
        offensive_starts, total_starts
    )
    metrics.primary_assist_percentage = calculate_ratio_percentage(primary_assists, base.assists)

    minutes = toi_seconds / 60.0
    metrics.points_per_sixty = calculate_per_sixty(base.points, minutes)
    metrics.shots_per_sixty = calculate_per_sixty(base.shots, minutes)
    metrics.shots_blocked_per_sixty = calculate_per_sixty(base.blocked, minutes)
    metrics.hits_per_sixty = calculate_per_sixty(base.hits, minutes)
    metrics.takeaways_per_sixty = calculate_per_sixty(base.takeaways, minutes)
    metrics.giveaways_per_sixty = calculate_per_sixty(base.giveaways, minutes)

    if team_events is not None:
        metrics.possession = calculate_possession(player_id, base.team_id, team_events)
    return metrics
