"""Position-specific statistics.

One accumulator serves every position. What differs between forwards,
defensemen and goalies is a ``SkillProfile``: which optional handlers run
on top of the shared skater or goaltending fold.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field, fields

from rinkstats.analysis.aggregate import NO_DEADLINE, Deadline
from rinkstats.models.events import (
    EventType,
    FaceoffDetails,
    GameEvent,
    GoalDetails,
    GoalieChangeDetails,
    ShiftDetails,
    ShotDetails,
    Strength,
)
from rinkstats.models.game import Game
from rinkstats.models.player import Position
from rinkstats.models.stats import BasePlayerStats, GoalieStats, SkaterStats, SkillStats
from rinkstats.transform.calculations import calculate_faceoff_percentage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillProfile:
    position: Position
    tracks_faceoffs: bool = False
    tracks_blocked_shots: bool = False
    tracks_goaltending: bool = False


PROFILES: dict[Position, SkillProfile] = {
    Position.FORWARD: SkillProfile(Position.FORWARD, tracks_faceoffs=True),
    Position.DEFENSE: SkillProfile(Position.DEFENSE, tracks_blocked_shots=True),
    Position.GOALIE: SkillProfile(Position.GOALIE, tracks_goaltending=True),
}


def profile_for(position: Position) -> SkillProfile:
    return PROFILES[Position(position)]


def _copy_base(base: BasePlayerStats, cls: type[SkaterStats] | type[GoalieStats], **extra):
    values = {f.name: getattr(base, f.name) for f in fields(BasePlayerStats)}
    return cls(**values, **extra)


def calculate_skater_stats(
    base: BasePlayerStats,
    events: Iterable[GameEvent],
    profile: SkillProfile,
    deadline: Deadline = NO_DEADLINE,
) -> SkaterStats:
    """Skater fields from the player's own filtered events."""
    stats = _copy_base(base, SkaterStats, position=profile.position)
    faceoffs_won = faceoffs_total = blocked = 0

    for event in deadline.guard(events, "skater stats"):
        if event.player_id != base.player_id:
            continue
        match event.event_type:
            case EventType.GOAL:
                if event.strength == Strength.POWERPLAY:
                    stats.power_play_goals += 1
                elif event.strength == Strength.SHORTHANDED:
                    stats.short_handed_goals += 1
                if isinstance(event.details, GoalDetails):
                    if event.details.game_winning:
                        stats.game_winning_goals += 1
                    if event.details.overtime:
                        stats.overtime_goals += 1
            case EventType.ASSIST:
                if event.strength == Strength.POWERPLAY:
                    stats.power_play_assists += 1
                elif event.strength == Strength.SHORTHANDED:
                    stats.short_handed_assists += 1
            case EventType.SHIFT:
                if isinstance(event.details, ShiftDetails):
                    stats.time_on_ice_seconds += event.details.duration_seconds
            case EventType.FACEOFF if profile.tracks_faceoffs:
                faceoffs_total += 1
                if isinstance(event.details, FaceoffDetails) and event.details.won:
                    faceoffs_won += 1
            case EventType.BLOCKED_SHOT if profile.tracks_blocked_shots:
                blocked += 1

    if profile.tracks_faceoffs and faceoffs_total > 0:
        stats.faceoff_percentage = calculate_faceoff_percentage(faceoffs_won, faceoffs_total)
    if profile.tracks_blocked_shots:
        stats.blocked = blocked
    return stats


@dataclass
class _GoalieGame:
    """Per-game goaltending ledger."""

    shots_against: int = 0
    saves: int = 0
    goals_against: int = 0
    time_on_ice_seconds: int = 0

    @property
    def appeared(self) -> bool:
        return self.time_on_ice_seconds > 0 or self.shots_against > 0


@dataclass
class _GoalieLedger:
    games: dict[str, _GoalieGame] = field(default_factory=lambda: defaultdict(_GoalieGame))
    own_games: set[str] = field(default_factory=set)

    def record(self, goalie_id: str, team_id: str, event: GameEvent) -> None:
        details = event.details
        against = event.team_id != team_id
        if event.player_id == goalie_id:
            self.own_games.add(event.game_id)
        match event.event_type:
            case EventType.SHOT if against and isinstance(details, ShotDetails) and details.on_goal:
                # A shot on goal that is not a goal was stopped by whoever faced it
                if goalie_id in (details.saved_by, details.goalie_id):
                    game = self.games[event.game_id]
                    game.shots_against += 1
                    game.saves += 1
            case EventType.GOAL if against and isinstance(details, GoalDetails):
                if details.goalie_id == goalie_id:
                    game = self.games[event.game_id]
                    game.shots_against += 1
                    game.goals_against += 1
            case EventType.SHIFT if event.player_id == goalie_id and isinstance(details, ShiftDetails):
                self.games[event.game_id].time_on_ice_seconds += details.duration_seconds
            case EventType.GOALIE_CHANGE if isinstance(details, GoalieChangeDetails):
                if details.goalie_in == goalie_id:
                    self.games[event.game_id].time_on_ice_seconds += details.duration_seconds


def calculate_goalie_stats(
    base: BasePlayerStats,
    team_events: Iterable[GameEvent],
    games: dict[str, Game],
    deadline: Deadline = NO_DEADLINE,
) -> GoalieStats:
    """Goaltending fields from every event of the selected games.

    Args:
        base: The goalie's base stats (own events only).
        team_events: All filtered events, both teams, of the selected games.
        games: Selected games by id; final scores decide the decision.
        deadline: Raises StatsTimeoutError if the fold runs too long.
    """
    goalie_id, team_id = base.player_id, base.team_id
    stats = _copy_base(base, GoalieStats)
    ledger = _GoalieLedger()

    for event in deadline.guard(team_events, "goalie stats"):
        if event.game_id in games:
            ledger.record(goalie_id, team_id, event)

    appearances: set[str] = set()
    for game_id, game_stats in ledger.games.items():
        if not game_stats.appeared:
            continue
        appearances.add(game_id)
        stats.shots_against += game_stats.shots_against
        stats.saves += game_stats.saves
        stats.goals_against += game_stats.goals_against
        stats.time_on_ice_seconds += game_stats.time_on_ice_seconds
        if game_stats.goals_against == 0 and game_stats.shots_against > 0:
            stats.shutouts += 1

        game = games[game_id]
        scored, allowed = game.score_for(team_id)
        if scored > allowed:
            stats.wins += 1
        elif scored < allowed:
            if game.overtime or game.shootout:
                stats.overtime_losses += 1
            else:
                stats.losses += 1

    # Goalies can appear without recording an event of their own
    stats.games_played = max(base.games_played, len(appearances | ledger.own_games))
    logger.debug(
        "Goalie %s: %d GP, %d SA, %d SV, %d GA",
        goalie_id, stats.games_played, stats.shots_against, stats.saves, stats.goals_against,
    )
    return stats


def calculate_skill_stats(
    base: BasePlayerStats,
    position: Position,
    player_events: Iterable[GameEvent],
    team_events: Iterable[GameEvent],
    games: dict[str, Game],
    deadline: Deadline = NO_DEADLINE,
) -> SkillStats:
    """Dispatch to the skater or goaltending fold for the player's position."""
    profile = profile_for(position)
    if profile.tracks_goaltending:
        return calculate_goalie_stats(base, team_events, games, deadline)
    return calculate_skater_stats(base, player_events, profile, deadline)
