"""Filter options applied to a player's event set before aggregation."""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date

from rinkstats.errors import ValidationError

SITUATIONAL_STRENGTHS = ("all", "even", "powerplay", "penalty_kill")
HOME_AWAY_VALUES = ("home", "away")


@dataclass(frozen=True)
class StatsOptions:
    """Filter predicates combined with AND semantics.

    ``date_range`` is inclusive on both ends and compares against game dates.
    """

    date_range: tuple[date, date] | None = None
    situational_strength: str = "all"
    home_away_only: str | None = None
    opponent_filter: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.situational_strength not in SITUATIONAL_STRENGTHS:
            raise ValidationError(
                f"situational_strength must be one of {SITUATIONAL_STRENGTHS}, "
                f"got {self.situational_strength!r}"
            )
        if self.home_away_only is not None and self.home_away_only not in HOME_AWAY_VALUES:
            raise ValidationError(
                f"home_away_only must be 'home' or 'away', got {self.home_away_only!r}"
            )
        if self.date_range is not None:
            if len(self.date_range) != 2:
                raise ValidationError("date_range must be a (start, end) pair")
            start, end = self.date_range
            if start > end:
                raise ValidationError(f"date_range start {start} is after end {end}")
        # Accept any iterable of team ids but store a tuple so the options stay hashable
        object.__setattr__(self, "opponent_filter", tuple(self.opponent_filter))

    @property
    def is_default(self) -> bool:
        return self == StatsOptions()

    def cache_hash(self) -> str:
        """Deterministic short hash so differently-filtered queries never share a key."""
        if self.is_default:
            return "default"
        payload = {
            "date_range": (
                [self.date_range[0].isoformat(), self.date_range[1].isoformat()]
                if self.date_range else None
            ),
            "situational_strength": self.situational_strength,
            "home_away_only": self.home_away_only,
            "opponent_filter": sorted(self.opponent_filter),
        }
        encoded = json.dumps(payload, sort_keys=True).encode()
        return hashlib.sha1(encoded).hexdigest()[:12]

    @classmethod
    def from_dict(cls, raw: dict | None) -> "StatsOptions":
        """Build options from a loosely-typed mapping (CLI / RPC boundary)."""
        if not raw:
            return cls()
        date_range = None
        if raw.get("date_range"):
            try:
                start, end = raw["date_range"]
                date_range = (_as_date(start), _as_date(end))
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Malformed date_range: {raw['date_range']!r}") from e
        return cls(
            date_range=date_range,
            situational_strength=raw.get("situational_strength") or "all",
            home_away_only=raw.get("home_away_only"),
            opponent_filter=tuple(raw.get("opponent_filter") or ()),
        )


def _as_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)
