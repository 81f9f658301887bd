"""Tests for the skater and goalie calculators."""

from datetime import date, datetime, timezone

from rinkstats.analysis.aggregate import aggregate_base_stats
from rinkstats.analysis.position import (
    PROFILES,
    calculate_goalie_stats,
    calculate_skater_stats,
    calculate_skill_stats,
)
from rinkstats.models.events import (
    AssistDetails,
    EventType,
    FaceoffDetails,
    GameEvent,
    GoalDetails,
    GoalieChangeDetails,
    PlayDetails,
    ShiftDetails,
    ShotDetails,
    Strength,
)
from rinkstats.models.game import Game
from rinkstats.models.player import Position
from rinkstats.models.stats import GoalieStats, SkaterStats

_DETAIL_TYPES = {
    EventType.GOAL: GoalDetails,
    EventType.ASSIST: AssistDetails,
    EventType.SHOT: ShotDetails,
    EventType.FACEOFF: FaceoffDetails,
    EventType.SHIFT: ShiftDetails,
    EventType.GOALIE_CHANGE: GoalieChangeDetails,
}

_counter = 0


def _make_event(
    event_type: EventType,
    game_id: str = "g1",
    player_id: str | None = "p1",
    team_id: str = "EDM",
    strength: Strength = Strength.EVEN,
    **details,
) -> GameEvent:
    """Create a GameEvent with the detail record matching its type."""
    global _counter
    _counter += 1
    detail_cls = _DETAIL_TYPES.get(event_type, PlayDetails)
    return GameEvent(
        event_id=f"e{_counter}",
        game_id=game_id,
        player_id=player_id,
        team_id=team_id,
        event_type=event_type,
        details=detail_cls(strength=strength, **details),
        timestamp=datetime(2024, 10, 12, 19, 0, tzinfo=timezone.utc),
    )


def _make_game(
    game_id: str,
    edm_score: int,
    opp_score: int,
    overtime: bool = False,
    shootout: bool = False,
) -> Game:
    """Create a completed EDM home game with the given final score."""
    return Game(
        game_id=game_id,
        season="20242025",
        game_date=date(2024, 10, 12),
        home_team_id="EDM",
        away_team_id="CGY",
        home_score=edm_score,
        away_score=opp_score,
        status="completed",
        overtime=overtime,
        shootout=shootout,
    )


def _skater(events: list[GameEvent], position: Position = Position.FORWARD) -> SkaterStats:
    base = aggregate_base_stats("p1", "EDM", "20242025", events)
    return calculate_skater_stats(base, events, PROFILES[position])


def _goalie(team_events: list[GameEvent], games: dict[str, Game]) -> GoalieStats:
    own = [e for e in team_events if e.player_id == "g30"]
    base = aggregate_base_stats("g30", "EDM", "20242025", own)
    return calculate_goalie_stats(base, team_events, games)


def _shot_on(goalie: str, game_id: str = "g1") -> GameEvent:
    return _make_event(
        EventType.SHOT, game_id=game_id, player_id="x1", team_id="CGY", on_goal=True, saved_by=goalie
    )


def _goal_on(goalie: str, game_id: str = "g1") -> GameEvent:
    return _make_event(EventType.GOAL, game_id=game_id, player_id="x1", team_id="CGY", goalie_id=goalie)


class TestSkaterStats:
    def test_goal_and_powerplay_assist_scenario(self) -> None:
        events = [
            _make_event(EventType.GOAL, game_id="g1", period=1),
            _make_event(EventType.ASSIST, game_id="g2", strength=Strength.POWERPLAY, period=2),
        ]
        stats = _skater(events)
        assert stats.games_played == 2
        assert stats.points == 2
        assert stats.power_play_points == 1
        assert stats.power_play_assists == 1

    def test_special_teams_and_clutch_goals(self) -> None:
        events = [
            _make_event(EventType.GOAL, strength=Strength.POWERPLAY, game_winning=True),
            _make_event(EventType.GOAL, strength=Strength.SHORTHANDED, overtime=True),
            _make_event(EventType.ASSIST, strength=Strength.SHORTHANDED),
        ]
        stats = _skater(events)
        assert stats.power_play_goals == 1
        assert stats.short_handed_goals == 1
        assert stats.short_handed_points == 2
        assert stats.game_winning_goals == 1
        assert stats.overtime_goals == 1

    def test_time_on_ice_from_shifts(self) -> None:
        events = [
            _make_event(EventType.SHIFT, duration_seconds=45),
            _make_event(EventType.SHIFT, duration_seconds=75),
        ]
        stats = _skater(events)
        assert stats.time_on_ice_seconds == 120
        assert stats.time_on_ice_minutes == 2.0

    def test_faceoff_percentage_undefined_without_faceoffs(self) -> None:
        assert _skater([_make_event(EventType.HIT)]).faceoff_percentage is None

    def test_faceoff_percentage_zero_when_all_lost(self) -> None:
        events = [_make_event(EventType.FACEOFF, won=False) for _ in range(3)]
        assert _skater(events).faceoff_percentage == 0.0

    def test_faceoff_percentage(self) -> None:
        events = [
            _make_event(EventType.FACEOFF, won=True),
            _make_event(EventType.FACEOFF, won=True),
            _make_event(EventType.FACEOFF, won=True),
            _make_event(EventType.FACEOFF, won=False),
        ]
        assert _skater(events).faceoff_percentage == 75.0

    def test_defense_does_not_track_faceoff_percentage(self) -> None:
        events = [_make_event(EventType.FACEOFF, won=True), _make_event(EventType.BLOCKED_SHOT)]
        stats = _skater(events, Position.DEFENSE)
        assert stats.position == Position.DEFENSE
        assert stats.faceoff_percentage is None
        assert stats.blocked == 1


class TestGoalieStats:
    def test_saves_goals_and_win(self) -> None:
        games = {"g1": _make_game("g1", 3, 1)}
        events = [_shot_on("g30") for _ in range(9)] + [_goal_on("g30")]
        stats = _goalie(events, games)
        assert stats.shots_against == 10
        assert stats.saves == 9
        assert stats.goals_against == 1
        assert stats.saves <= stats.shots_against
        assert (stats.wins, stats.losses, stats.overtime_losses) == (1, 0, 0)
        assert stats.games_played == 1
        assert stats.shutouts == 0

    def test_shutout_requires_shots(self) -> None:
        games = {"g1": _make_game("g1", 2, 0), "g2": _make_game("g2", 1, 0)}
        events = [
            _shot_on("g30", "g1"),
            _make_event(EventType.SHIFT, game_id="g2", player_id="g30", duration_seconds=3600),
        ]
        stats = _goalie(events, games)
        assert stats.shutouts == 1
        assert stats.games_played == 2

    def test_regulation_and_overtime_losses(self) -> None:
        games = {
            "g1": _make_game("g1", 1, 4),
            "g2": _make_game("g2", 2, 3, overtime=True),
            "g3": _make_game("g3", 2, 3, shootout=True),
        }
        events = [_goal_on("g30", gid) for gid in games]
        stats = _goalie(events, games)
        assert stats.losses == 1
        assert stats.overtime_losses == 2
        assert stats.wins + stats.losses + stats.overtime_losses <= stats.games_played

    def test_other_goalie_shots_ignored(self) -> None:
        games = {"g1": _make_game("g1", 3, 1)}
        events = [_shot_on("g1-backup"), _goal_on("g1-backup")]
        stats = _goalie(events, games)
        assert stats.shots_against == 0
        assert stats.games_played == 0
        assert stats.wins == 0

    def test_own_team_shots_do_not_count_against(self) -> None:
        games = {"g1": _make_game("g1", 3, 1)}
        own_shot = _make_event(EventType.SHOT, player_id="p1", team_id="EDM", on_goal=True, saved_by="g30")
        assert _goalie([own_shot], games).shots_against == 0

    def test_goalie_change_adds_ice_time(self) -> None:
        games = {"g1": _make_game("g1", 3, 4)}
        events = [
            _make_event(
                EventType.GOALIE_CHANGE, player_id=None, goalie_in="g30", goalie_out="g1-starter",
                duration_seconds=1200,
            )
        ]
        stats = _goalie(events, games)
        assert stats.time_on_ice_seconds == 1200
        assert stats.games_played == 1
        assert stats.losses == 1

    def test_event_order_does_not_matter(self) -> None:
        games = {"g1": _make_game("g1", 3, 1), "g2": _make_game("g2", 0, 2)}
        events = [_shot_on("g30", "g1"), _goal_on("g30", "g2"), _shot_on("g30", "g2")]
        assert _goalie(events, games) == _goalie(list(reversed(events)), games)


class TestDispatch:
    def test_goalie_profile_dispatches_to_goaltending(self) -> None:
        games = {"g1": _make_game("g1", 3, 1)}
        base = aggregate_base_stats("g30", "EDM", "20242025", [])
        skill = calculate_skill_stats(base, Position.GOALIE, [], [_shot_on("g30")], games)
        assert isinstance(skill, GoalieStats)
        assert skill.saves == 1

    def test_skater_profile(self) -> None:
        base = aggregate_base_stats("p1", "EDM", "20242025", [])
        skill = calculate_skill_stats(base, Position.DEFENSE, [], [], {})
        assert isinstance(skill, SkaterStats)
        assert skill.position == Position.DEFENSE
