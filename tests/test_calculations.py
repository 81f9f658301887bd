"""Tests for the pure stat calculations."""

import math

import pytest

from rinkstats.errors import ValidationError
from rinkstats.transform.calculations import (
    calculate_average_time_on_ice,
    calculate_faceoff_percentage,
    calculate_goal_differential,
    calculate_goals_against_average,
    calculate_penalty_kill_percentage,
    calculate_per_game,
    calculate_per_sixty,
    calculate_points,
    calculate_points_per_game,
    calculate_power_play_percentage,
    calculate_rank,
    calculate_save_percentage,
    calculate_shooting_percentage,
    calculate_team_strength,
    calculate_winning_percentage,
    is_above_average,
    round2,
)


class TestRound2:
    def test_rounds_half_up(self) -> None:
        assert round2(0.125) == 0.13
        assert round2(2.5 / 100) == 0.03

    def test_two_decimals(self) -> None:
        assert round2(25 / 30 * 100) == 83.33


class TestPoints:
    @pytest.mark.parametrize("goals,assists", [(0, 0), (1, 0), (0, 7), (50, 73)])
    def test_goals_plus_assists(self, goals: int, assists: int) -> None:
        assert calculate_points(goals, assists) == goals + assists

    def test_negative_raises(self) -> None:
        with pytest.raises(ValidationError):
            calculate_points(-1, 3)
        with pytest.raises(ValidationError):
            calculate_points(2, -3)


class TestShootingPercentage:
    def test_zero_shots(self) -> None:
        assert calculate_shooting_percentage(0, 0) == 0.0

    def test_known_values(self) -> None:
        assert calculate_shooting_percentage(10, 100) == 10.0
        assert calculate_shooting_percentage(5, 20) == 25.0

    def test_goals_exceed_shots_raises(self) -> None:
        with pytest.raises(ValidationError):
            calculate_shooting_percentage(6, 5)


class TestSavePercentage:
    def test_zero_shots_against(self) -> None:
        assert calculate_save_percentage(0, 0) == 0.0

    def test_known_values(self) -> None:
        assert calculate_save_percentage(25, 30) == pytest.approx(83.33, abs=0.01)
        assert calculate_save_percentage(90, 100) == 90.0

    def test_saves_exceed_shots_raises(self) -> None:
        with pytest.raises(ValidationError):
            calculate_save_percentage(31, 30)


class TestRatesAndPercentages:
    @pytest.mark.parametrize("func,args", [
        (calculate_shooting_percentage, (-1, 0)),
        (calculate_save_percentage, (-3, 0)),
        (calculate_goals_against_average, (-2, 0)),
        (calculate_faceoff_percentage, (-1, 0)),
        (calculate_power_play_percentage, (-1, 0)),
        (calculate_penalty_kill_percentage, (-1, 0)),
        (calculate_points_per_game, (-5, 0)),
        (calculate_per_sixty, (-4, 0)),
        (calculate_team_strength, (0, -1, 0, 0, 0, 0, 0)),
    ])
    def test_negative_input_raises_even_with_zero_denominator(self, func, args) -> None:
        with pytest.raises(ValidationError):
            func(*args)

    def test_goals_against_average(self) -> None:
        # 3 goals over exactly one full game
        assert calculate_goals_against_average(3, 60.0) == 3.0
        assert calculate_goals_against_average(5, 0) == 0.0

    def test_faceoff_percentage(self) -> None:
        assert calculate_faceoff_percentage(11, 20) == 55.0
        assert calculate_faceoff_percentage(0, 0) == 0.0

    def test_power_play_percentage(self) -> None:
        assert calculate_power_play_percentage(5, 20) == 25.0
        assert calculate_power_play_percentage(0, 0) == 0.0

    def test_penalty_kill_defaults_to_100(self) -> None:
        assert calculate_penalty_kill_percentage(0, 0) == 100.0
        assert calculate_penalty_kill_percentage(4, 20) == 80.0

    def test_per_game_allows_negative_values(self) -> None:
        assert calculate_per_game(-6, 4) == -1.5
        assert calculate_per_game(10, 0) == 0.0

    def test_points_per_game(self) -> None:
        assert calculate_points_per_game(100, 82) == 1.22

    def test_winning_percentage(self) -> None:
        assert calculate_winning_percentage(0, 0, 0) == 0.0
        assert calculate_winning_percentage(50, 25, 7) == 60.98

    def test_per_sixty_needs_ice_time(self) -> None:
        assert calculate_per_sixty(10, 0) == 0.0
        assert calculate_per_sixty(2, 30.0) == 4.0

    def test_goal_differential(self) -> None:
        assert calculate_goal_differential(314, 246) == 68

    def test_no_nan_or_infinity(self) -> None:
        values = [
            calculate_shooting_percentage(0, 0),
            calculate_save_percentage(0, 0),
            calculate_goals_against_average(0, 0),
            calculate_per_sixty(0, 0),
            calculate_points_per_game(0, 0),
        ]
        assert all(math.isfinite(v) for v in values)


class TestAverageTimeOnIce:
    def test_average(self) -> None:
        assert calculate_average_time_on_ice("60:00", 3) == "20:00"

    def test_no_games(self) -> None:
        assert calculate_average_time_on_ice("60:00", 0) == "0:00"


class TestRanking:
    def test_rank_higher_is_better(self) -> None:
        assert calculate_rank(30, [10, 30, 20]) == 1
        assert calculate_rank(10, [10, 30, 20]) == 3

    def test_rank_lower_is_better(self) -> None:
        assert calculate_rank(2.1, [2.5, 2.1, 3.0], higher_is_better=False) == 1

    def test_missing_value_ranks_last(self) -> None:
        assert calculate_rank(99, [1, 2]) == 3

    def test_is_above_average(self) -> None:
        assert is_above_average(3.0, 2.0)
        assert is_above_average(2.0, 3.0, higher_is_better=False)


class TestTeamStrength:
    def test_no_games(self) -> None:
        assert calculate_team_strength(0, 0, 0, 0, 0, 0, 0) == {
            "offensive": 0.0, "defensive": 0.0, "special_teams": 0.0,
        }

    def test_special_teams_average(self) -> None:
        result = calculate_team_strength(10, 30, 30, 5, 20, 4, 20)
        assert result["special_teams"] == 52.5
        assert result["offensive"] == 300.0
