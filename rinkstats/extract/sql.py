"""SQL-backed event store (PostgreSQL in production, SQLite in tests)."""

import json
import logging
import os
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import Engine

from rinkstats.extract.base import EventQuery, referenced_player_ids

logger = logging.getLogger(__name__)

metadata = MetaData()

game_events = Table(
    "game_events",
    metadata,
    Column("id", String, primary_key=True),
    Column("game_id", String, nullable=False, index=True),
    Column("player_id", String, nullable=True, index=True),
    Column("team_id", String, nullable=False),
    Column("event_type", String, nullable=False),
    Column("event_details", JSON, nullable=True),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def _build_connection_string() -> str:
    """Build the event store URL from environment variables."""
    url = os.getenv("STATS_DB_URL")
    if url:
        return url
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("POSTGRES_DB", "hockey")
    user = os.getenv("POSTGRES_USER", "hockey")
    password = os.getenv("POSTGRES_PASSWORD", "hockey")
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


def get_engine(connection_string: str | None = None) -> Engine:
    """Create a SQLAlchemy engine."""
    return create_engine(connection_string or _build_connection_string())


def _to_epoch(value: datetime | None) -> float | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is written in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


class SqlEventStore:
    """Read-mostly access to the ``game_events`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def insert_events(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Insert raw event rows, stamping updated_at. Returns rows written."""
        now = datetime.now(timezone.utc)
        records = []
        for row in rows:
            details = row.get("event_details")
            if isinstance(details, str):
                details = json.loads(details)
            timestamp = row.get("timestamp") or now
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
            records.append({
                "id": str(row["id"]),
                "game_id": str(row["game_id"]),
                "player_id": str(row["player_id"]) if row.get("player_id") is not None else None,
                "team_id": str(row["team_id"]),
                "event_type": row["event_type"],
                "event_details": details,
                "timestamp": timestamp,
                "updated_at": row.get("updated_at") or now,
            })
        if not records:
            return 0
        with self.engine.begin() as conn:
            conn.execute(game_events.insert(), records)
        logger.info("Inserted %d events", len(records))
        return len(records)

    def _filtered(self, stmt: Any, query: EventQuery) -> Any:
        stmt = stmt.where(game_events.c.game_id.in_(sorted(query.game_ids)))
        if query.player_id is not None:
            stmt = stmt.where(game_events.c.player_id == query.player_id)
        if query.event_types is not None:
            stmt = stmt.where(game_events.c.event_type.in_(sorted(str(t) for t in query.event_types)))
        return stmt

    def fetch_events(self, query: EventQuery) -> list[dict[str, Any]]:
        if not query.game_ids:
            return []
        stmt = self._filtered(select(game_events), query).order_by(
            game_events.c.timestamp, game_events.c.id
        )
        with self.engine.connect() as conn:
            rows = [dict(r._mapping) for r in conn.execute(stmt)]
        logger.debug(
            "Fetched %d events for team=%s season=%s player=%s",
            len(rows), query.team_id, query.season, query.player_id,
        )
        return rows

    def last_modified(self, query: EventQuery) -> float | None:
        if not query.game_ids:
            return None
        stmt = self._filtered(select(func.max(game_events.c.updated_at)), query)
        with self.engine.connect() as conn:
            return _to_epoch(conn.execute(stmt).scalar_one_or_none())

    def player_ids_for_game(self, game_id: str) -> set[str]:
        stmt = select(game_events.c.player_id, game_events.c.event_details).where(
            game_events.c.game_id == game_id
        )
        ids: set[str] = set()
        with self.engine.connect() as conn:
            for row in conn.execute(stmt):
                ids |= referenced_player_ids(dict(row._mapping))
        return ids
