"""Interfaces to the external event store and team/player directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from rinkstats.models.events import EventType
from rinkstats.models.game import Game
from rinkstats.models.player import Player

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class EventQuery:
    """Event store filter.

    ``game_ids`` is the set of completed games (already narrowed by date
    range) resolved from the directory; the store only has to match on it.
    """

    team_id: str
    season: str
    game_ids: frozenset[str]
    player_id: str | None = None
    event_types: frozenset[EventType] | None = None


class EventStore(Protocol):
    def fetch_events(self, query: EventQuery) -> list[Mapping[str, Any]]:
        """Return raw event rows ordered by timestamp, then id."""
        ...

    def last_modified(self, query: EventQuery) -> float | None:
        """Epoch seconds of the newest modification among matching events."""
        ...

    def player_ids_for_game(self, game_id: str) -> set[str]:
        """Every player referenced by an event of the game (actor, on-ice, goalie)."""
        ...


class Directory(Protocol):
    def get_player(self, player_id: str) -> Player | None: ...

    def get_roster(self, team_id: str, active_only: bool = True) -> list[Player]: ...

    def get_games(self, team_id: str, season: str) -> list[Game]: ...


def get_event_store(backend: str | None = None) -> EventStore:
    """Return the event store for the configured backend.

    Args:
        backend: 'sql' or 'memory'. Falls back to the STATS_BACKEND env var,
                 then defaults to 'sql'.
    """
    if backend is None:
        backend = os.environ.get("STATS_BACKEND", "sql")

    if backend == "memory":
        from rinkstats.extract.memory import InMemoryEventStore
        return InMemoryEventStore()
    else:
        from rinkstats.extract.sql import SqlEventStore, get_engine
        return SqlEventStore(get_engine())


def referenced_player_ids(row: Mapping[str, Any]) -> set[str]:
    """Player ids a raw event row refers to, without full parsing."""
    ids: set[str] = set()
    if row.get("player_id") is not None:
        ids.add(str(row["player_id"]))
    details = row.get("event_details")
    if isinstance(details, dict):
        for key in ("goalie_id", "saved_by", "goalie_in", "goalie_out"):
            if details.get(key) is not None:
                ids.add(str(details[key]))
        on_ice = details.get("players_on_ice")
        if isinstance(on_ice, list):
            ids.update(str(p) for p in on_ice)
    return ids
