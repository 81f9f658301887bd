"""Team season aggregation from completed games and their events."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rinkstats.analysis.aggregate import NO_DEADLINE, Deadline
from rinkstats.models.events import EventType, FaceoffDetails, GameEvent, ShotDetails, Strength
from rinkstats.models.game import Game
from rinkstats.models.stats import TeamStats
from rinkstats.transform.calculations import (
    calculate_faceoff_percentage,
    calculate_goal_differential,
    calculate_penalty_kill_percentage,
    calculate_per_game,
    calculate_points_per_game,
    calculate_power_play_percentage,
    calculate_winning_percentage,
)

logger = logging.getLogger(__name__)

POINTS_FOR_WIN = 2
POINTS_FOR_OVERTIME_LOSS = 1


def _apply_record(stats: TeamStats, games: Iterable[Game]) -> None:
    for game in games:
        if not game.is_completed:
            continue
        stats.games_played += 1
        scored, allowed = game.score_for(stats.team_id)
        stats.goals_for += scored
        stats.goals_against += allowed
        if scored > allowed:
            stats.wins += 1
        elif scored < allowed:
            if game.overtime or game.shootout:
                stats.overtime_losses += 1
            else:
                stats.losses += 1


def _apply_events(stats: TeamStats, events: Iterable[GameEvent], game_ids: set[str]) -> None:
    for event in events:
        if event.game_id not in game_ids:
            continue
        ours = event.team_id == stats.team_id
        match event.event_type:
            case EventType.GOAL:
                if ours:
                    stats.shots_for += 1
                    if event.strength == Strength.POWERPLAY:
                        stats.power_play_goals += 1
                else:
                    stats.shots_against += 1
                    if event.strength == Strength.POWERPLAY:
                        stats.penalty_kill_goals_against += 1
            case EventType.SHOT if isinstance(event.details, ShotDetails) and event.details.on_goal:
                if ours:
                    stats.shots_for += 1
                else:
                    stats.shots_against += 1
            case EventType.PENALTY:
                # Each opponent penalty is a power play for us and vice versa
                if ours:
                    stats.penalty_kill_opportunities += 1
                else:
                    stats.power_play_opportunities += 1
            case EventType.FACEOFF if ours:
                if isinstance(event.details, FaceoffDetails) and event.details.won:
                    stats.faceoff_wins += 1
                else:
                    stats.faceoff_losses += 1


def finalize_team_stats(stats: TeamStats) -> TeamStats:
    """Fill in points and the derived fields from the counters."""
    gp = stats.games_played
    stats.points = stats.wins * POINTS_FOR_WIN + stats.overtime_losses * POINTS_FOR_OVERTIME_LOSS
    stats.goal_differential = calculate_goal_differential(stats.goals_for, stats.goals_against)

    # Event data can record more goals than penalties (coincidentals, missing rows)
    if stats.power_play_goals > stats.power_play_opportunities:
        logger.debug(
            "%s: %d PP goals on %d opportunities, clamping",
            stats.team_id, stats.power_play_goals, stats.power_play_opportunities,
        )
        stats.power_play_opportunities = stats.power_play_goals
    if stats.penalty_kill_goals_against > stats.penalty_kill_opportunities:
        stats.penalty_kill_opportunities = stats.penalty_kill_goals_against

    stats.win_percentage = calculate_winning_percentage(
        stats.wins, stats.losses, stats.overtime_losses
    )
    stats.points_per_game = calculate_points_per_game(stats.points, gp)
    stats.goals_for_per_game = calculate_per_game(stats.goals_for, gp)
    stats.goals_against_per_game = calculate_per_game(stats.goals_against, gp)
    stats.power_play_percentage = calculate_power_play_percentage(
        stats.power_play_goals, stats.power_play_opportunities
    )
    stats.penalty_kill_percentage = calculate_penalty_kill_percentage(
        stats.penalty_kill_goals_against, stats.penalty_kill_opportunities
    )
    stats.shot_differential = stats.shots_for - stats.shots_against
    stats.faceoff_percentage = calculate_faceoff_percentage(
        stats.faceoff_wins, stats.faceoff_wins + stats.faceoff_losses
    )
    return stats


def calculate_team_stats(
    team_id: str,
    season: str,
    games: Iterable[Game],
    events: Iterable[GameEvent] = (),
    deadline: Deadline = NO_DEADLINE,
) -> TeamStats:
    """Aggregate a team's season.

    Args:
        team_id: Team to aggregate.
        season: Season label; games from other seasons are ignored.
        games: The team's games from the directory. Only completed games count.
        events: Events of both teams in those games, for special teams,
            shots and faceoffs.
        deadline: Raises StatsTimeoutError if the fold runs too long.

    Returns:
        TeamStats; all zeros (100% penalty kill) for a team with no games.
    """
    completed = [
        g for g in games if g.season == season and g.is_completed and g.involves(team_id)
    ]
    stats = TeamStats(team_id=team_id, season=season)
    _apply_record(stats, completed)
    _apply_events(stats, deadline.guard(events, "team stats"), {g.game_id for g in completed})
    finalize_team_stats(stats)
    logger.debug("Team %s %s: %s, %d pts", team_id, season, stats.record, stats.points)
    return stats
