"""Tests for expected goals, per-60 rates and possession."""

from datetime import datetime, timezone

import pytest

from rinkstats.analysis.advanced import (
    calculate_advanced_metrics,
    calculate_expected_goals,
    calculate_possession,
    shot_probability,
)
from rinkstats.analysis.aggregate import aggregate_base_stats
from rinkstats.models.events import (
    AssistDetails,
    EventType,
    GameEvent,
    GoalDetails,
    PlayDetails,
    ShiftDetails,
    ShotDetails,
    Strength,
)

_DETAIL_TYPES = {
    EventType.GOAL: GoalDetails,
    EventType.ASSIST: AssistDetails,
    EventType.SHOT: ShotDetails,
    EventType.SHIFT: ShiftDetails,
}


def _make_event(
    event_type: EventType,
    player_id: str | None = "p1",
    team_id: str = "EDM",
    strength: Strength = Strength.EVEN,
    on_ice: tuple[str, ...] = (),
    **details,
) -> GameEvent:
    """Create a GameEvent in game g1."""
    detail_cls = _DETAIL_TYPES.get(event_type, PlayDetails)
    return GameEvent(
        event_id=f"{event_type}-{len(details)}",
        game_id="g1",
        player_id=player_id,
        team_id=team_id,
        event_type=event_type,
        details=detail_cls(strength=strength, players_on_ice=frozenset(on_ice), **details),
        timestamp=datetime(2024, 10, 12, 19, 0, tzinfo=timezone.utc),
    )


def _shot(shot_type: str | None = None, location: str | None = None, **kwargs) -> GameEvent:
    return _make_event(EventType.SHOT, shot_type=shot_type, location=location, on_goal=True, **kwargs)


class TestShotProbability:
    @pytest.mark.parametrize("shot_type,expected", [
        ("wrist", 0.08),
        ("slap", 0.06),
        ("snap", 0.09),
        ("tip", 0.15),
        ("wrap", 0.12),
        ("backhand", 0.05),
        ("deflection", 0.08),
        (None, 0.08),
    ])
    def test_base_rates(self, shot_type: str | None, expected: float) -> None:
        assert shot_probability(_shot(shot_type)) == pytest.approx(expected)

    def test_location_factors(self) -> None:
        assert shot_probability(_shot("wrist", "high slot")) == pytest.approx(0.2)
        assert shot_probability(_shot("wrist", "close left")) == pytest.approx(0.144)
        assert shot_probability(_shot("wrist", "far point")) == pytest.approx(0.048)

    def test_strength_factors(self) -> None:
        assert shot_probability(_shot("wrist", strength=Strength.POWERPLAY)) == pytest.approx(0.104)
        assert shot_probability(_shot("wrist", strength=Strength.SHORTHANDED)) == pytest.approx(0.056)

    def test_factors_multiply(self) -> None:
        event = _shot("tip", "slot", strength=Strength.POWERPLAY)
        assert shot_probability(event) == pytest.approx(0.4875)
        assert shot_probability(event) <= 1.0


class TestExpectedGoals:
    def test_sums_shots_only(self) -> None:
        events = [
            _shot("wrist"),
            _make_event(EventType.GOAL, shot_type="tip", location="slot"),
            _make_event(EventType.HIT),
        ]
        assert calculate_expected_goals(events) == 0.08

    def test_filters_by_shooter(self) -> None:
        events = [_shot("wrist"), _shot("wrist", player_id="p2")]
        assert calculate_expected_goals(events, player_id="p2") == 0.08


class TestAdvancedMetrics:
    def test_per_sixty_rates_and_zone_starts(self) -> None:
        events = [
            _make_event(EventType.SHIFT, duration_seconds=600, start_zone="offensive"),
            _make_event(EventType.SHIFT, duration_seconds=600, start_zone="offensive"),
            _make_event(EventType.SHIFT, duration_seconds=300, start_zone="defensive",
                        strength=Strength.POWERPLAY),
            _make_event(EventType.SHIFT, duration_seconds=300, start_zone="neutral",
                        strength=Strength.SHORTHANDED),
            _make_event(EventType.GOAL, shot_type="wrist"),
            _make_event(EventType.ASSIST, assist_type="primary"),
            _make_event(EventType.ASSIST, assist_type="secondary", strength=Strength.POWERPLAY),
            _make_event(EventType.MISSED_SHOT),
            _make_event(EventType.HIT),
        ]
        base = aggregate_base_stats("p1", "EDM", "20242025", events)
        metrics = calculate_advanced_metrics(base, events)

        # 30 minutes of ice time
        assert metrics.points_per_sixty == 6.0
        assert metrics.hits_per_sixty == 2.0
        # 2 offensive of 4 recorded starts, neutral included
        assert metrics.offensive_zone_start_percentage == 50.0
        assert metrics.power_play_time_on_ice == 300
        assert metrics.penalty_kill_time_on_ice == 300
        assert metrics.primary_assist_percentage == 50.0
        assert metrics.even_strength_goals == 1
        assert metrics.even_strength_assists == 1
        assert metrics.individual_shot_attempts == 2
        assert metrics.actual_goals == 1
        assert metrics.expected_goals == 0.0
        assert metrics.goals_difference == 1.0
        assert metrics.possession is None

    def test_zone_starts_count_neutral_and_skip_unrecorded(self) -> None:
        events = [
            _make_event(EventType.SHIFT, duration_seconds=60, start_zone="offensive"),
            _make_event(EventType.SHIFT, duration_seconds=60, start_zone="neutral"),
            _make_event(EventType.SHIFT, duration_seconds=60, start_zone="neutral"),
            _make_event(EventType.SHIFT, duration_seconds=60, start_zone="defensive"),
            _make_event(EventType.SHIFT, duration_seconds=60),
        ]
        base = aggregate_base_stats("p1", "EDM", "20242025", events)
        metrics = calculate_advanced_metrics(base, events)
        assert metrics.offensive_zone_start_percentage == 25.0

    def test_expected_goals_ignore_goal_events(self) -> None:
        events = [
            _shot("wrist"),
            _make_event(EventType.GOAL, shot_type="tip", location="slot"),
        ]
        base = aggregate_base_stats("p1", "EDM", "20242025", events)
        metrics = calculate_advanced_metrics(base, events)
        assert metrics.expected_goals == 0.08
        assert metrics.goals_difference == 0.92
        assert metrics.individual_shot_attempts == 2

    def test_no_ice_time_gives_zero_rates(self) -> None:
        events = [_make_event(EventType.GOAL)]
        base = aggregate_base_stats("p1", "EDM", "20242025", events)
        metrics = calculate_advanced_metrics(base, events)
        assert metrics.points_per_sixty == 0.0
        assert metrics.offensive_zone_start_percentage == 0.0


class TestPossession:
    def test_corsi_and_fenwick(self) -> None:
        team_events = [
            _make_event(EventType.SHOT, on_ice=("p1",)),
            _make_event(EventType.GOAL, player_id="p2", on_ice=("p1", "p2")),
            _make_event(EventType.MISSED_SHOT, player_id="p2", on_ice=("p1",)),
            _make_event(EventType.SHOT, player_id="x1", team_id="CGY", on_ice=("p1",)),
            # EDM blocks a CGY attempt: an attempt against
            _make_event(EventType.BLOCKED_SHOT, player_id="p3", on_ice=("p1",)),
            _make_event(EventType.SHOT, player_id="x1", team_id="CGY", on_ice=("p4",)),
        ]
        metrics = calculate_possession("p1", "EDM", team_events)
        assert (metrics.corsi_for, metrics.corsi_against) == (3, 2)
        assert (metrics.fenwick_for, metrics.fenwick_against) == (3, 1)
        assert metrics.corsi_percentage == 60.0
        assert metrics.fenwick_percentage == 75.0
