from dataclasses import dataclass
from enum import StrEnum


class Position(StrEnum):
    """Roster position group used by the position calculators."""

    FORWARD = "F"
    DEFENSE = "D"
    GOALIE = "G"


@dataclass
class Player:
    """A player as reported by the team/player directory."""

    player_id: str
    first_name: str
    last_name: str
    position: Position
    team_id: str
    jersey_number: int | None = None
    active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
