"""Base statistics aggregation.

Filters a player's events with the caller's options and folds them into
counting statistics. Every fold here is a sum of per-event contributions, so
the result does not depend on event order.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from rinkstats.errors import StatsTimeoutError
from rinkstats.models.events import (
    EventType,
    FaceoffDetails,
    GameEvent,
    PenaltyDetails,
    ShotDetails,
    Strength,
)
from rinkstats.models.game import Game
from rinkstats.models.options import StatsOptions
from rinkstats.models.stats import BasePlayerStats
from rinkstats.transform.normalize import SITUATION_TO_STRENGTH

logger = logging.getLogger(__name__)

# How many events a fold processes between deadline checks
DEADLINE_CHECK_INTERVAL = 500

_MIRRORED = {
    Strength.EVEN: Strength.EVEN,
    Strength.POWERPLAY: Strength.SHORTHANDED,
    Strength.SHORTHANDED: Strength.POWERPLAY,
}


class Deadline:
    """Wall-clock budget for one computation.

    ``check`` raises StatsTimeoutError once the budget is spent. A deadline
    built with ``seconds=None`` never expires.
    """

    def __init__(self, seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds
        self.seconds = seconds

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, stage: str) -> None:
        if self.expired:
            raise StatsTimeoutError(f"Statistics computation exceeded {self.seconds}s during {stage}")

    def guard(self, events: Iterable[GameEvent], stage: str) -> Iterable[GameEvent]:
        """Yield events, checking the deadline every few hundred."""
        for i, event in enumerate(events):
            if i % DEADLINE_CHECK_INTERVAL == 0:
                self.check(stage)
            yield event


NO_DEADLINE = Deadline()


def strength_for_team(event: GameEvent, team_id: str) -> Strength:
    """Event strength from ``team_id``'s side of the ice.

    Events are recorded from the acting team's perspective, so an opponent's
    powerplay is this team's shorthanded situation.
    """
    if event.team_id == team_id:
        return event.strength
    return _MIRRORED[event.strength]


def select_games(
    games: Iterable[Game],
    team_id: str,
    season: str,
    options: StatsOptions | None = None,
) -> dict[str, Game]:
    """Completed games of the team's season that pass the game-level filters.

    Date range, home/away and opponent are properties of the game, judged
    from ``team_id``'s side.
    """
    options = options or StatsOptions()
    selected: dict[str, Game] = {}
    for game in games:
        if game.season != season or not game.is_completed or not game.involves(team_id):
            continue
        if options.date_range is not None:
            start, end = options.date_range
            if not start <= game.game_date <= end:
                continue
        if options.home_away_only == "home" and not game.is_home(team_id):
            continue
        if options.home_away_only == "away" and game.is_home(team_id):
            continue
        if options.opponent_filter and game.opponent_of(team_id) not in options.opponent_filter:
            continue
        selected[game.game_id] = game
    return selected


def apply_filters(
    events: Iterable[GameEvent],
    games: dict[str, Game],
    team_id: str,
    options: StatsOptions | None = None,
) -> list[GameEvent]:
    """Keep events from the selected games at the requested strength."""
    options = options or StatsOptions()
    wanted = SITUATION_TO_STRENGTH.get(options.situational_strength)
    filtered = []
    for event in events:
        if event.game_id not in games:
            continue
        if wanted is not None and strength_for_team(event, team_id) != wanted:
            continue
        filtered.append(event)
    return filtered


def calculate_plus_minus(
    player_id: str,
    team_id: str,
    goal_events: Iterable[GameEvent],
) -> int:
    """+1 for each even/shorthanded goal for while on ice, -1 for each against.

    Powerplay goals for and against are excluded, and so are goals where the
    player is not in the on-ice set.
    """
    plus_minus = 0
    for event in goal_events:
        if event.event_type != EventType.GOAL:
            continue
        if event.strength not in (Strength.EVEN, Strength.SHORTHANDED):
            continue
        if not event.is_on_ice(player_id):
            continue
        plus_minus += 1 if event.team_id == team_id else -1
    return plus_minus


def aggregate_base_stats(
    player_id: str,
    team_id: str,
    season: str,
    events: Iterable[GameEvent],
    goal_events: Iterable[GameEvent] | None = None,
    deadline: Deadline = NO_DEADLINE,
) -> BasePlayerStats:
    """Fold a player's (already filtered) events into counting stats.

    Args:
        player_id: Player the events belong to.
        team_id: The player's team; decides plus/minus sign.
        season: Season label copied onto the result.
        events: Events where the player is the actor.
        goal_events: Goals by either team in the same games, used for
            plus/minus. When omitted only the player's own goals count.
        deadline: Raises StatsTimeoutError if the fold runs too long.

    Returns:
        BasePlayerStats; all zeros for an empty event set.
    """
    stats = BasePlayerStats(player_id=player_id, team_id=team_id, season=season)
    games: set[str] = set()
    own_goals: list[GameEvent] = []

    for event in deadline.guard(events, "base aggregation"):
        if event.player_id != player_id:
            continue
        games.add(event.game_id)
        match event.event_type:
            case EventType.GOAL:
                stats.goals += 1
                # A goal is always a shot on goal
                stats.shots += 1
                stats.shots_on_goal += 1
                own_goals.append(event)
            case EventType.ASSIST:
                stats.assists += 1
            case EventType.SHOT:
                stats.shots += 1
                if isinstance(event.details, ShotDetails) and event.details.on_goal:
                    stats.shots_on_goal += 1
            case EventType.PENALTY:
                if isinstance(event.details, PenaltyDetails):
                    stats.penalty_minutes += event.details.penalty_minutes
            case EventType.FACEOFF:
                if isinstance(event.details, FaceoffDetails) and event.details.won:
                    stats.faceoffs_won += 1
                else:
                    stats.faceoffs_lost += 1
            case EventType.HIT:
                stats.hits += 1
            case EventType.BLOCKED_SHOT:
                stats.blocked += 1
            case EventType.GIVEAWAY:
                stats.giveaways += 1
            case EventType.TAKEAWAY:
                stats.takeaways += 1

    stats.games_played = len(games)
    stats.points = stats.goals + stats.assists
    stats.plus_minus = calculate_plus_minus(
        player_id, team_id, own_goals if goal_events is None else goal_events
    )
    logger.debug(
        "Aggregated %s in %s: %d GP, %d G, %d A",
        player_id, season, stats.games_played, stats.goals, stats.assists,
    )
    return stats
