from rinkstats.models.events import EventType, GameEvent, Strength
from rinkstats.models.game import Game
from rinkstats.models.leaderboard import ComparisonReport, Leaderboard, LeaderboardEntry
from rinkstats.models.options import StatsOptions
from rinkstats.models.player import Player, Position
from rinkstats.models.stats import (
    AdvancedMetrics,
    BasePlayerStats,
    DerivedStats,
    GoalieStats,
    PlayerStatsComplete,
    SkaterStats,
    TeamStats,
)

__all__ = [
    "AdvancedMetrics",
    "BasePlayerStats",
    "ComparisonReport",
    "DerivedStats",
    "EventType",
    "Game",
    "GameEvent",
    "GoalieStats",
    "Leaderboard",
    "LeaderboardEntry",
    "Player",
    "PlayerStatsComplete",
    "Position",
    "SkaterStats",
    "StatsOptions",
    "Strength",
    "TeamStats",
]
