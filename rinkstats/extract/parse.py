"""Parse raw event-store rows and directory JSON into model instances.

Raw event details are loosely typed per event type. Parsing them here, into
the tagged detail records of ``rinkstats.models.events``, means malformed
payloads are caught once at the boundary instead of deep inside aggregation.
"""

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any

from rinkstats.errors import ComputationError, ValidationError
from rinkstats.models.events import (
    AssistDetails,
    EventDetails,
    EventType,
    FaceoffDetails,
    GameEvent,
    GoalDetails,
    GoalieChangeDetails,
    PenaltyDetails,
    PlayDetails,
    ShiftDetails,
    ShotDetails,
    SkippedEvent,
)
from rinkstats.models.game import Game
from rinkstats.models.player import Player
from rinkstats.transform.clean import normalize_player_name, time_to_seconds
from rinkstats.transform.normalize import normalize_position, normalize_strength

logger = logging.getLogger(__name__)


def _as_bool(details: Mapping[str, Any], key: str) -> bool:
    value = details.get(key)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def _as_optional_str(details: Mapping[str, Any], key: str) -> str | None:
    value = details.get(key)
    if value is None:
        return None
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)
    raise ValueError(f"{key} must be a string, got {value!r}")


def _as_non_negative_int(details: Mapping[str, Any], key: str) -> int:
    value = details.get(key, 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    if value < 0:
        raise ValueError(f"{key} cannot be negative, got {value!r}")
    return int(value)


def _as_duration(details: Mapping[str, Any], key: str = "duration") -> int:
    """Shift durations arrive as seconds or as 'MM:SS' strings."""
    value = details.get(key)
    if isinstance(value, str):
        return time_to_seconds(value)
    return _as_non_negative_int(details, key)


def _common(details: Mapping[str, Any]) -> dict[str, Any]:
    on_ice = details.get("players_on_ice") or []
    if isinstance(on_ice, (str, bytes)) or not isinstance(on_ice, Iterable):
        raise ValueError(f"players_on_ice must be a list, got {on_ice!r}")
    period = details.get("period")
    if period is not None and (isinstance(period, bool) or not isinstance(period, int)):
        raise ValueError(f"period must be an integer, got {period!r}")
    return {
        "strength": normalize_strength(details.get("strength")),
        "period": period,
        "players_on_ice": frozenset(str(p) for p in on_ice),
    }


def _parse_goal(d: Mapping[str, Any]) -> GoalDetails:
    return GoalDetails(
        **_common(d),
        shot_type=_as_optional_str(d, "shot_type"),
        location=_as_optional_str(d, "location"),
        goalie_id=_as_optional_str(d, "goalie_id"),
        game_winning=_as_bool(d, "game_winning"),
        overtime=_as_bool(d, "overtime"),
    )


def _parse_assist(d: Mapping[str, Any]) -> AssistDetails:
    assist_type = _as_optional_str(d, "assist_type") or "secondary"
    if assist_type not in ("primary", "secondary"):
        raise ValueError(f"assist_type must be primary or secondary, got {assist_type!r}")
    return AssistDetails(**_common(d), assist_type=assist_type)


def _parse_shot(d: Mapping[str, Any]) -> ShotDetails:
    return ShotDetails(
        **_common(d),
        shot_type=_as_optional_str(d, "shot_type"),
        location=_as_optional_str(d, "location"),
        on_goal=_as_bool(d, "on_goal"),
        saved_by=_as_optional_str(d, "saved_by"),
        goalie_id=_as_optional_str(d, "goalie_id"),
    )


def _parse_penalty(d: Mapping[str, Any]) -> PenaltyDetails:
    return PenaltyDetails(
        **_common(d),
        penalty_minutes=_as_non_negative_int(d, "penalty_minutes"),
        infraction=_as_optional_str(d, "infraction"),
    )


def _parse_faceoff(d: Mapping[str, Any]) -> FaceoffDetails:
    return FaceoffDetails(**_common(d), won=_as_bool(d, "won"), zone=_as_optional_str(d, "zone"))


def _parse_shift(d: Mapping[str, Any]) -> ShiftDetails:
    return ShiftDetails(
        **_common(d),
        duration_seconds=_as_duration(d),
        start_zone=_as_optional_str(d, "start_zone"),
    )


def _parse_goalie_change(d: Mapping[str, Any]) -> GoalieChangeDetails:
    return GoalieChangeDetails(
        **_common(d),
        goalie_in=_as_optional_str(d, "goalie_in"),
        goalie_out=_as_optional_str(d, "goalie_out"),
        duration_seconds=_as_duration(d),
    )


def _parse_play(d: Mapping[str, Any]) -> PlayDetails:
    return PlayDetails(**_common(d), zone=_as_optional_str(d, "zone"))


_DETAIL_PARSERS: dict[EventType, Callable[[Mapping[str, Any]], EventDetails]] = {
    EventType.GOAL: _parse_goal,
    EventType.ASSIST: _parse_assist,
    EventType.SHOT: _parse_shot,
    EventType.MISSED_SHOT: _parse_play,
    EventType.BLOCKED_SHOT: _parse_play,
    EventType.PENALTY: _parse_penalty,
    EventType.FACEOFF: _parse_faceoff,
    EventType.HIT: _parse_play,
    EventType.GIVEAWAY: _parse_play,
    EventType.TAKEAWAY: _parse_play,
    EventType.SHIFT: _parse_shift,
    EventType.GOALIE_CHANGE: _parse_goalie_change,
}


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        raise ValueError(f"Unparseable timestamp: {value!r}")
    # Naive timestamps are treated as UTC
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def parse_event(row: Mapping[str, Any]) -> GameEvent:
    """Parse one raw event row into a GameEvent.

    Args:
        row: Mapping with id, game_id, player_id, team_id, event_type,
            event_details (mapping or JSON string) and timestamp.

    Raises:
        ComputationError: if any part of the row is malformed.
    """
    event_id = str(row.get("id")) if row.get("id") is not None else None
    try:
        event_type = EventType(row["event_type"])
        raw_details = row.get("event_details") or {}
        if isinstance(raw_details, (str, bytes)):
            raw_details = json.loads(raw_details)
        if not isinstance(raw_details, Mapping):
            raise ValueError(f"event_details must be an object, got {type(raw_details).__name__}")
        details = _DETAIL_PARSERS[event_type](raw_details)
        player_id = row.get("player_id")
        return GameEvent(
            event_id=event_id or "",
            game_id=str(row["game_id"]),
            player_id=str(player_id) if player_id is not None else None,
            team_id=str(row["team_id"]),
            event_type=event_type,
            details=details,
            timestamp=_parse_timestamp(row.get("timestamp")),
        )
    except (KeyError, TypeError, ValueError) as e:
        # ValidationError is a ValueError, so bad strengths and durations land here too
        raise ComputationError(f"Malformed event {event_id}: {e}", event_id=event_id) from e


def parse_events(rows: Iterable[Mapping[str, Any]]) -> tuple[list[GameEvent], list[SkippedEvent]]:
    """Parse many rows, skipping (and recording) the malformed ones."""
    events: list[GameEvent] = []
    skipped: list[SkippedEvent] = []
    for row in rows:
        try:
            events.append(parse_event(row))
        except ComputationError as e:
            logger.warning("Skipping malformed event %s: %s", e.event_id, e)
            skipped.append(SkippedEvent(event_id=e.event_id, reason=str(e)))
    return events, skipped


def parse_game(raw: Mapping[str, Any]) -> Game:
    """Parse a directory game record."""
    try:
        game_date = raw["game_date"]
        return Game(
            game_id=str(raw["id"]),
            season=str(raw["season"]),
            game_date=game_date if isinstance(game_date, date) else date.fromisoformat(game_date),
            home_team_id=str(raw["home_team_id"]),
            away_team_id=str(raw["away_team_id"]),
            home_score=int(raw.get("home_score") or 0),
            away_score=int(raw.get("away_score") or 0),
            status=raw.get("status", "scheduled"),
            overtime=bool(raw.get("overtime", False)),
            shootout=bool(raw.get("shootout", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed game record: {e}") from e


def parse_player(raw: Mapping[str, Any]) -> Player:
    """Parse a directory player record."""
    try:
        jersey = raw.get("jersey_number")
        return Player(
            player_id=str(raw["id"]),
            first_name=normalize_player_name(raw.get("first_name", "")),
            last_name=normalize_player_name(raw.get("last_name", "")),
            position=normalize_position(raw["position"]),
            team_id=str(raw["team_id"]),
            jersey_number=int(jersey) if jersey is not None else None,
            active=bool(raw.get("active", True)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed player record: {e}") from e
