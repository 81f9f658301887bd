"""Position and strength normalization."""

from rinkstats.errors import ValidationError
from rinkstats.models.events import Strength
from rinkstats.models.player import Position

_POSITION_MAP: dict[str, Position] = {
    "F": Position.FORWARD,
    "C": Position.FORWARD,
    "L": Position.FORWARD,
    "R": Position.FORWARD,
    "LW": Position.FORWARD,
    "RW": Position.FORWARD,
    "W": Position.FORWARD,
    "D": Position.DEFENSE,
    "LD": Position.DEFENSE,
    "RD": Position.DEFENSE,
    "G": Position.GOALIE,
}

_STRENGTH_MAP: dict[str, Strength] = {
    "even": Strength.EVEN,
    "ev": Strength.EVEN,
    "es": Strength.EVEN,
    "5v5": Strength.EVEN,
    "4v4": Strength.EVEN,
    "3v3": Strength.EVEN,
    "powerplay": Strength.POWERPLAY,
    "power_play": Strength.POWERPLAY,
    "pp": Strength.POWERPLAY,
    "shorthanded": Strength.SHORTHANDED,
    "short_handed": Strength.SHORTHANDED,
    "sh": Strength.SHORTHANDED,
    "penalty_kill": Strength.SHORTHANDED,
    "pk": Strength.SHORTHANDED,
}

# Situational filter values accepted by StatsOptions -> event strength they select
SITUATION_TO_STRENGTH: dict[str, Strength] = {
    "even": Strength.EVEN,
    "powerplay": Strength.POWERPLAY,
    "penalty_kill": Strength.SHORTHANDED,
}


def normalize_position(position: str) -> Position:
    """Collapse directory position codes onto F / D / G.

    Directories report C, LW, RW (or L, R) for forwards; they all share the
    forward calculator.
    """
    try:
        return _POSITION_MAP[position.strip().upper()]
    except (KeyError, AttributeError) as e:
        raise ValidationError(f"Unknown position code: {position!r}") from e


def normalize_strength(strength: str | None) -> Strength:
    """Normalize a strength label; missing strength means even strength."""
    if strength is None or strength == "":
        return Strength.EVEN
    try:
        return _STRENGTH_MAP[str(strength).strip().lower()]
    except KeyError as e:
        raise ValidationError(f"Unknown strength: {strength!r}") from e
