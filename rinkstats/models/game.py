from dataclasses import dataclass
from datetime import date


@dataclass
class Game:
    """A game as reported by the team/player directory."""

    game_id: str
    season: str
    game_date: date
    home_team_id: str
    away_team_id: str
    home_score: int = 0
    away_score: int = 0
    status: str = "scheduled"  # "scheduled", "live", "completed"
    overtime: bool = False
    shootout: bool = False

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def is_home(self, team_id: str) -> bool:
        return self.home_team_id == team_id

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def opponent_of(self, team_id: str) -> str:
        return self.away_team_id if self.home_team_id == team_id else self.home_team_id

    def score_for(self, team_id: str) -> tuple[int, int]:
        """Return (team score, opponent score) from the given team's side."""
        if self.home_team_id == team_id:
            return self.home_score, self.away_score
        return self.away_score, self.home_score
