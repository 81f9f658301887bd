"""Tests for filtering and base stat aggregation."""

import random
from datetime import date, datetime, timezone

import pytest

from rinkstats.analysis.aggregate import (
    Deadline,
    aggregate_base_stats,
    apply_filters,
    calculate_plus_minus,
    select_games,
    strength_for_team,
)
from rinkstats.errors import StatsTimeoutError, ValidationError
from rinkstats.models.events import (
    AssistDetails,
    EventType,
    FaceoffDetails,
    GameEvent,
    GoalDetails,
    PenaltyDetails,
    PlayDetails,
    ShotDetails,
    Strength,
)
from rinkstats.models.game import Game
from rinkstats.models.options import StatsOptions

_DETAIL_TYPES = {
    EventType.GOAL: GoalDetails,
    EventType.ASSIST: AssistDetails,
    EventType.SHOT: ShotDetails,
    EventType.PENALTY: PenaltyDetails,
    EventType.FACEOFF: FaceoffDetails,
}


def _make_event(
    event_type: EventType,
    game_id: str = "g1",
    player_id: str | None = "p1",
    team_id: str = "EDM",
    strength: Strength = Strength.EVEN,
    on_ice: tuple[str, ...] = (),
    event_id: str | None = None,
    **details,
) -> GameEvent:
    """Create a GameEvent with the detail record matching its type."""
    detail_cls = _DETAIL_TYPES.get(event_type, PlayDetails)
    return GameEvent(
        event_id=event_id or f"{game_id}-{event_type}-{random.random()}",
        game_id=game_id,
        player_id=player_id,
        team_id=team_id,
        event_type=event_type,
        details=detail_cls(strength=strength, players_on_ice=frozenset(on_ice), **details),
        timestamp=datetime(2024, 10, 12, 19, 0, tzinfo=timezone.utc),
    )


def _make_game(
    game_id: str = "g1",
    game_date: date = date(2024, 10, 12),
    home: str = "EDM",
    away: str = "CGY",
    status: str = "completed",
    season: str = "20242025",
) -> Game:
    """Create a completed game."""
    return Game(
        game_id=game_id,
        season=season,
        game_date=game_date,
        home_team_id=home,
        away_team_id=away,
        home_score=3,
        away_score=2,
        status=status,
    )


class TestAggregateBaseStats:
    def test_goal_and_powerplay_assist_across_two_games(self) -> None:
        events = [
            _make_event(EventType.GOAL, game_id="g1", period=1),
            _make_event(EventType.ASSIST, game_id="g2", strength=Strength.POWERPLAY, period=2),
        ]
        stats = aggregate_base_stats("p1", "EDM", "20242025", events)
        assert stats.games_played == 2
        assert stats.goals == 1
        assert stats.assists == 1
        assert stats.points == 2

    def test_empty_event_set_is_all_zero(self) -> None:
        stats = aggregate_base_stats("p1", "EDM", "20242025", [])
        assert stats.games_played == 0
        assert stats.points == 0
        assert stats.plus_minus == 0

    def test_counters(self) -> None:
        events = [
            _make_event(EventType.SHOT, on_goal=True),
            _make_event(EventType.SHOT, on_goal=False),
            _make_event(EventType.GOAL),
            _make_event(EventType.PENALTY, penalty_minutes=2),
            _make_event(EventType.PENALTY, penalty_minutes=5),
            _make_event(EventType.FACEOFF, won=True),
            _make_event(EventType.FACEOFF, won=False),
            _make_event(EventType.HIT),
            _make_event(EventType.BLOCKED_SHOT),
            _make_event(EventType.GIVEAWAY),
            _make_event(EventType.TAKEAWAY),
            _make_event(EventType.TAKEAWAY),
        ]
        stats = aggregate_base_stats("p1", "EDM", "20242025", events)
        # Goals count as shots on goal
        assert stats.shots == 3
        assert stats.shots_on_goal == 2
        assert stats.penalty_minutes == 7
        assert stats.faceoffs_won == 1
        assert stats.faceoffs_lost == 1
        assert stats.total_faceoffs == 2
        assert (stats.hits, stats.blocked, stats.giveaways, stats.takeaways) == (1, 1, 1, 2)

    def test_ignores_other_players_events(self) -> None:
        events = [_make_event(EventType.GOAL, player_id="p2")]
        assert aggregate_base_stats("p1", "EDM", "20242025", events).goals == 0

    def test_idempotent_and_order_independent(self) -> None:
        events = [
            _make_event(EventType.GOAL, game_id=f"g{i % 3}", on_ice=("p1",)) for i in range(6)
        ] + [_make_event(EventType.HIT, game_id="g4"), _make_event(EventType.ASSIST)]
        first = aggregate_base_stats("p1", "EDM", "20242025", events)
        shuffled = list(events)
        random.Random(7).shuffle(shuffled)
        assert aggregate_base_stats("p1", "EDM", "20242025", events) == first
        assert aggregate_base_stats("p1", "EDM", "20242025", shuffled) == first

    def test_deadline_exceeded_raises(self) -> None:
        ticks = iter([0.0, 10.0])
        deadline = Deadline(1.0, clock=lambda: next(ticks))
        with pytest.raises(StatsTimeoutError):
            aggregate_base_stats("p1", "EDM", "20242025", [_make_event(EventType.HIT)], deadline=deadline)


class TestPlusMinus:
    def test_even_and_shorthanded_goals_count(self) -> None:
        goals = [
            _make_event(EventType.GOAL, player_id="p9", on_ice=("p1", "p9")),
            _make_event(EventType.GOAL, player_id="p9", strength=Strength.SHORTHANDED, on_ice=("p1",)),
            _make_event(EventType.GOAL, player_id="x1", team_id="CGY", on_ice=("p1", "x1")),
        ]
        assert calculate_plus_minus("p1", "EDM", goals) == 1

    def test_powerplay_goals_excluded(self) -> None:
        goals = [
            _make_event(EventType.GOAL, strength=Strength.POWERPLAY, on_ice=("p1",)),
            _make_event(EventType.GOAL, team_id="CGY", strength=Strength.POWERPLAY, on_ice=("p1",)),
        ]
        assert calculate_plus_minus("p1", "EDM", goals) == 0

    def test_player_not_on_ice_unaffected(self) -> None:
        goals = [_make_event(EventType.GOAL, team_id="CGY", on_ice=("p2",))]
        assert calculate_plus_minus("p1", "EDM", goals) == 0

    def test_team_goal_events_drive_plus_minus(self) -> None:
        own = [_make_event(EventType.HIT)]
        goals = [_make_event(EventType.GOAL, team_id="CGY", player_id="x1", on_ice=("p1",))]
        stats = aggregate_base_stats("p1", "EDM", "20242025", own, goal_events=goals)
        assert stats.plus_minus == -1
        assert stats.goals == 0


class TestSelectGames:
    def test_only_completed_games_of_season_and_team(self) -> None:
        games = [
            _make_game("g1"),
            _make_game("g2", status="scheduled"),
            _make_game("g3", season="20232024"),
            _make_game("g4", home="TOR", away="MTL"),
        ]
        assert set(select_games(games, "EDM", "20242025")) == {"g1"}

    def test_date_range_inclusive(self) -> None:
        games = [
            _make_game("g1", game_date=date(2024, 10, 1)),
            _make_game("g2", game_date=date(2024, 10, 15)),
            _make_game("g3", game_date=date(2024, 10, 31)),
        ]
        options = StatsOptions(date_range=(date(2024, 10, 1), date(2024, 10, 15)))
        assert set(select_games(games, "EDM", "20242025", options)) == {"g1", "g2"}

    def test_home_away_and_opponent(self) -> None:
        games = [
            _make_game("g1", home="EDM", away="CGY"),
            _make_game("g2", home="VAN", away="EDM"),
            _make_game("g3", home="EDM", away="VAN"),
        ]
        away = select_games(games, "EDM", "20242025", StatsOptions(home_away_only="away"))
        assert set(away) == {"g2"}
        vs_van = select_games(games, "EDM", "20242025", StatsOptions(opponent_filter=("VAN",)))
        assert set(vs_van) == {"g2", "g3"}
        both = StatsOptions(home_away_only="home", opponent_filter=("VAN",))
        assert set(select_games(games, "EDM", "20242025", both)) == {"g3"}


class TestApplyFilters:
    def test_strength_filter(self) -> None:
        games = {"g1": _make_game("g1")}
        events = [
            _make_event(EventType.GOAL, strength=Strength.POWERPLAY),
            _make_event(EventType.GOAL, strength=Strength.EVEN),
        ]
        result = apply_filters(events, games, "EDM", StatsOptions(situational_strength="powerplay"))
        assert [e.strength for e in result] == [Strength.POWERPLAY]

    def test_penalty_kill_includes_opponent_powerplay(self) -> None:
        games = {"g1": _make_game("g1")}
        events = [
            _make_event(EventType.SHOT, team_id="CGY", strength=Strength.POWERPLAY),
            _make_event(EventType.HIT, strength=Strength.SHORTHANDED),
            _make_event(EventType.HIT, strength=Strength.POWERPLAY),
        ]
        result = apply_filters(events, games, "EDM", StatsOptions(situational_strength="penalty_kill"))
        assert len(result) == 2

    def test_drops_events_outside_selected_games(self) -> None:
        events = [_make_event(EventType.GOAL, game_id="other")]
        assert apply_filters(events, {"g1": _make_game("g1")}, "EDM") == []

    def test_strength_for_team_mirrors_opponent(self) -> None:
        event = _make_event(EventType.GOAL, team_id="CGY", strength=Strength.POWERPLAY)
        assert strength_for_team(event, "EDM") == Strength.SHORTHANDED
        assert strength_for_team(event, "CGY") == Strength.POWERPLAY


class TestStatsOptions:
    def test_cache_hash_is_deterministic(self) -> None:
        a = StatsOptions(opponent_filter=("VAN", "CGY"))
        b = StatsOptions(opponent_filter=("CGY", "VAN"))
        assert a.cache_hash() == b.cache_hash()
        assert a.cache_hash() != StatsOptions().cache_hash()
        assert StatsOptions().cache_hash() == "default"

    def test_invalid_options_raise(self) -> None:
        with pytest.raises(ValidationError):
            StatsOptions(situational_strength="4on3")
        with pytest.raises(ValidationError):
            StatsOptions(home_away_only="neutral")
        with pytest.raises(ValidationError):
            StatsOptions(date_range=(date(2024, 11, 1), date(2024, 10, 1)))
