"""In-process event store and directory, used by tests, demos and the CLI."""

import threading
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from rinkstats.extract.base import EventQuery, referenced_player_ids
from rinkstats.models.game import Game
from rinkstats.models.player import Player


class InMemoryEventStore:
    """Append-only event store keeping raw rows plus their modification time."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._rows: list[dict[str, Any]] = []
        self._modified: list[float] = []

    def append(self, row: Mapping[str, Any]) -> None:
        with self._lock:
            self._rows.append(dict(row))
            self._modified.append(self._clock())

    def extend(self, rows: Iterable[Mapping[str, Any]]) -> None:
        for row in rows:
            self.append(row)

    def _matches(self, row: Mapping[str, Any], query: EventQuery) -> bool:
        if str(row.get("game_id")) not in query.game_ids:
            return False
        if query.player_id is not None and str(row.get("player_id")) != query.player_id:
            return False
        if query.event_types is not None and row.get("event_type") not in query.event_types:
            return False
        return True

    def fetch_events(self, query: EventQuery) -> list[dict[str, Any]]:
        with self._lock:
            rows = [dict(r) for r in self._rows if self._matches(r, query)]
        return sorted(rows, key=lambda r: (str(r.get("timestamp", "")), str(r.get("id", ""))))

    def last_modified(self, query: EventQuery) -> float | None:
        with self._lock:
            times = [
                modified
                for row, modified in zip(self._rows, self._modified)
                if self._matches(row, query)
            ]
        return max(times) if times else None

    def player_ids_for_game(self, game_id: str) -> set[str]:
        with self._lock:
            rows = [r for r in self._rows if str(r.get("game_id")) == game_id]
        ids: set[str] = set()
        for row in rows:
            ids |= referenced_player_ids(row)
        return ids


class InMemoryDirectory:
    """Directory backed by plain dicts."""

    def __init__(self, players: Iterable[Player] = (), games: Iterable[Game] = ()) -> None:
        self.players: dict[str, Player] = {p.player_id: p for p in players}
        self.games: dict[str, Game] = {g.game_id: g for g in games}

    def add_player(self, player: Player) -> None:
        self.players[player.player_id] = player

    def add_game(self, game: Game) -> None:
        self.games[game.game_id] = game

    def get_player(self, player_id: str) -> Player | None:
        return self.players.get(player_id)

    def get_roster(self, team_id: str, active_only: bool = True) -> list[Player]:
        roster = [
            p for p in self.players.values()
            if p.team_id == team_id and (p.active or not active_only)
        ]
        return sorted(roster, key=lambda p: p.player_id)

    def get_games(self, team_id: str, season: str) -> list[Game]:
        games = [g for g in self.games.values() if g.season == season and g.involves(team_id)]
        return sorted(games, key=lambda g: (g.game_date, g.game_id))
