"""Tests for the rolling trend metrics module."""

import pandas as pd

from rinkstats.transform.metrics import add_rolling_averages, classify_trend


def _make_game_log(player_ids: list[str], values: dict[str, list], dates: list[str]) -> pd.DataFrame:
    return pd.DataFrame({
        "player_id": player_ids,
        "game_id": [f"g{i}" for i in range(len(player_ids))],
        "game_date": pd.to_datetime(dates),
        **values,
    })


class TestRollingAverages:
    """Test add_rolling_averages with various scenarios."""

    def test_basic_rolling_window(self) -> None:
        df = _make_game_log(
            ["p1"] * 5,
            {"points": [2, 4, 6, 8, 10]},
            [f"2024-10-{d:02d}" for d in range(10, 15)],
        )
        result = add_rolling_averages(df, ["points"], window=3)
        # avg(2), avg(2,4), avg(2,4,6), avg(4,6,8), avg(6,8,10)
        assert result["points_rolling_3"].tolist() == [2.0, 3.0, 4.0, 6.0, 8.0]

    def test_short_history_still_averaged(self) -> None:
        df = _make_game_log(["p1", "p1"], {"shots": [3, 5]}, ["2024-10-10", "2024-10-12"])
        result = add_rolling_averages(df, ["shots"], window=10)
        assert result["shots_rolling_10"].tolist() == [3.0, 4.0]

    def test_players_are_independent(self) -> None:
        dates = ["2024-10-10", "2024-10-12", "2024-10-14"] * 2
        df = _make_game_log(
            ["p1", "p1", "p1", "p2", "p2", "p2"],
            {"goals": [1, 2, 3, 0, 2, 4]},
            dates,
        )
        result = add_rolling_averages(df, ["goals"], window=2)
        p1 = result[result["player_id"] == "p1"]["goals_rolling_2"].tolist()
        p2 = result[result["player_id"] == "p2"]["goals_rolling_2"].tolist()
        assert p1 == [1.0, 1.5, 2.5]
        assert p2 == [0.0, 1.0, 3.0]

    def test_unsorted_input_gets_sorted(self) -> None:
        df = _make_game_log(
            ["p1"] * 3,
            {"hits": [6, 2, 4]},
            ["2024-10-14", "2024-10-10", "2024-10-12"],
        )
        result = add_rolling_averages(df, ["hits"], window=3)
        assert result["hits_rolling_3"].tolist() == [2.0, 3.0, 4.0]

    def test_same_day_games_ordered_by_game_id(self) -> None:
        df = pd.DataFrame({
            "player_id": ["p1", "p1"],
            "game_id": ["g2", "g1"],
            "game_date": pd.to_datetime(["2024-10-10", "2024-10-10"]),
            "goals": [4, 0],
        })
        result = add_rolling_averages(df, ["goals"], window=2)
        assert result["game_id"].tolist() == ["g1", "g2"]
        assert result["goals_rolling_2"].tolist() == [0.0, 2.0]


class TestClassifyTrend:
    def test_improving(self) -> None:
        label, change = classify_trend([1, 1, 2, 2])
        assert label == "improving"
        assert change == 100.0

    def test_declining(self) -> None:
        label, change = classify_trend([4, 4, 2, 2])
        assert label == "declining"
        assert change == -50.0

    def test_small_change_is_stable(self) -> None:
        label, change = classify_trend([10, 10, 10.2, 10.2])
        assert label == "stable"
        assert change == 2.0

    def test_odd_length_puts_middle_in_later_half(self) -> None:
        # earlier [2], later [2, 5]
        assert classify_trend([2, 2, 5]) == ("improving", 75.0)

    def test_degenerate_series(self) -> None:
        assert classify_trend([]) == ("stable", 0.0)
        assert classify_trend([3]) == ("stable", 0.0)
        assert classify_trend([0, 0, 1, 1]) == ("stable", 0.0)
