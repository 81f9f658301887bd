"""Rolling per-game metrics for player trends."""

import pandas as pd

from rinkstats.transform.calculations import round2

# Relative change between the first and second half of a series that
# counts as a trend rather than noise
TREND_THRESHOLD_PCT = 5.0


def add_rolling_averages(
    df: pd.DataFrame,
    stat_columns: list[str],
    window: int = 5,
    group_by: str = "player_id",
) -> pd.DataFrame:
    """Add rolling average columns for specified stats.

    Args:
        df: Per-game player stats with a game_date column.
        stat_columns: Column names to calculate rolling averages for.
        window: Number of games for the rolling window.
        group_by: Column to group by (usually player_id).

    Returns:
        DataFrame with new columns named '{stat}_rolling_{window}'.
    """
    df = df.sort_values([group_by, "game_date", "game_id"])

    for col in stat_columns:
        new_col = f"{col}_rolling_{window}"
        df[new_col] = (
            df.groupby(group_by)[col]
            .transform(lambda x: x.rolling(window, min_periods=1).mean())
        )

    return df


def classify_trend(values: list[float]) -> tuple[str, float]:
    """Compare the mean of the later half of a series against the earlier half.

    Returns:
        ("improving" | "declining" | "stable", percentage change). Series
        shorter than two games, or with a zero first-half mean, are stable.
    """
    if len(values) < 2:
        return "stable", 0.0
    series = pd.Series(values, dtype="float64")
    half = len(series) // 2
    earlier = series.iloc[:half].mean()
    later = series.iloc[half:].mean()
    if earlier == 0:
        return "stable", 0.0
    change = round2((later - earlier) / abs(earlier) * 100)
    if change > TREND_THRESHOLD_PCT:
        return "improving", change
    if change < -TREND_THRESHOLD_PCT:
        return "declining", change
    return "stable", change
