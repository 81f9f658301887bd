"""Game event model.

Event details are a tagged union keyed by ``EventType``: every event carries
exactly one strongly-typed detail record, produced by
``rinkstats.extract.parse.parse_event``. Aggregation code dispatches on
``event.event_type`` and can rely on the matching detail class.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class EventType(StrEnum):
    GOAL = "goal"
    ASSIST = "assist"
    SHOT = "shot"
    MISSED_SHOT = "missed_shot"
    BLOCKED_SHOT = "blocked_shot"
    PENALTY = "penalty"
    FACEOFF = "faceoff"
    HIT = "hit"
    GIVEAWAY = "giveaway"
    TAKEAWAY = "takeaway"
    SHIFT = "shift"
    GOALIE_CHANGE = "goalie_change"


class Strength(StrEnum):
    """Situational strength of the acting player's team when the event occurred."""

    EVEN = "even"
    POWERPLAY = "powerplay"
    SHORTHANDED = "shorthanded"


@dataclass(frozen=True)
class EventDetails:
    """Fields shared by every detail variant."""

    strength: Strength = Strength.EVEN
    period: int | None = None
    players_on_ice: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class GoalDetails(EventDetails):
    shot_type: str | None = None
    location: str | None = None
    goalie_id: str | None = None
    game_winning: bool = False
    overtime: bool = False


@dataclass(frozen=True)
class AssistDetails(EventDetails):
    assist_type: str = "secondary"  # "primary" or "secondary"

    @property
    def is_primary(self) -> bool:
        return self.assist_type == "primary"


@dataclass(frozen=True)
class ShotDetails(EventDetails):
    shot_type: str | None = None
    location: str | None = None
    on_goal: bool = False
    saved_by: str | None = None
    goalie_id: str | None = None


@dataclass(frozen=True)
class PenaltyDetails(EventDetails):
    penalty_minutes: int = 0
    infraction: str | None = None


@dataclass(frozen=True)
class FaceoffDetails(EventDetails):
    won: bool = False
    zone: str | None = None


@dataclass(frozen=True)
class ShiftDetails(EventDetails):
    duration_seconds: int = 0
    start_zone: str | None = None  # "offensive", "neutral", "defensive"


@dataclass(frozen=True)
class GoalieChangeDetails(EventDetails):
    goalie_in: str | None = None
    goalie_out: str | None = None
    duration_seconds: int = 0


@dataclass(frozen=True)
class PlayDetails(EventDetails):
    """Hits, blocked shots, missed shots, giveaways and takeaways."""

    zone: str | None = None


@dataclass(frozen=True)
class GameEvent:
    """A single immutable game event owned by the event store."""

    event_id: str
    game_id: str
    player_id: str | None
    team_id: str
    event_type: EventType
    details: EventDetails
    timestamp: datetime

    @property
    def strength(self) -> Strength:
        return self.details.strength

    def is_on_ice(self, player_id: str) -> bool:
        return player_id in self.details.players_on_ice


@dataclass(frozen=True)
class SkippedEvent:
    """A raw event that could not be parsed and was left out of aggregation."""

    event_id: str | None
    reason: str
