"""In-process statistics cache.

Entries expire by TTL and are also dropped when the event store reports a
modification newer than the entry's ``last_updated``. Capacity is bounded;
on overflow the least recently accessed entry is evicted. All bookkeeping
happens under one lock, but the staleness probe (a store round trip) is
always called with the lock released.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections import Counter, OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from rinkstats.errors import CacheMiss

logger = logging.getLogger(__name__)


class CacheCategory(StrEnum):
    PLAYER_STATS = "player_stats"
    ADVANCED = "advanced"
    TREND = "trend"
    TEAM_STATS = "team_stats"
    LEADERBOARD = "leaderboard"
    SEASON = "season"
    GAME_STATS = "game_stats"


@dataclass
class CacheConfig:
    """TTLs in seconds per category, capacity and janitor interval."""

    player_stats_ttl: float = 300
    team_stats_ttl: float = 600
    leaderboard_ttl: float = 900
    season_ttl: float = 3600
    game_stats_ttl: float = 120
    max_entries: int = 1000
    janitor_interval: float = 600

    @classmethod
    def from_env(cls) -> CacheConfig:
        return cls(
            max_entries=int(os.getenv("STATS_CACHE_MAX_ENTRIES", "1000")),
            janitor_interval=float(os.getenv("STATS_CACHE_JANITOR_SECONDS", "600")),
        )

    def ttl_for(self, category: CacheCategory) -> float:
        match category:
            case CacheCategory.TEAM_STATS:
                return self.team_stats_ttl
            case CacheCategory.LEADERBOARD:
                return self.leaderboard_ttl
            case CacheCategory.SEASON:
                return self.season_ttl
            case CacheCategory.GAME_STATS:
                return self.game_stats_ttl
            case _:
                return self.player_stats_ttl


@dataclass(frozen=True)
class CacheKey:
    """Composite key: category, owning ids, season and options hash.

    ``team_id`` and ``player_id`` are kept as fields (not only in the string)
    so invalidation can match on them.
    """

    category: CacheCategory
    season: str
    team_id: str | None = None
    player_id: str | None = None
    game_id: str | None = None
    extra: tuple[str, ...] = ()
    options_hash: str = "default"

    def __str__(self) -> str:
        parts = [
            str(self.category),
            self.player_id or "-",
            self.team_id or "-",
            self.game_id or "-",
            *self.extra,
            self.season,
            self.options_hash,
        ]
        return ":".join(parts)


@dataclass
class CacheEntry:
    key: CacheKey
    data: Any
    expires: float
    last_updated: float
    version: int


@dataclass
class CacheStats:
    size: int
    max_entries: int
    hits: int
    misses: int
    evictions: int
    most_accessed: list[tuple[str, int]] = field(default_factory=list)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total * 100, 2) if total else 0.0


class StatisticsCache:
    """Thread-safe TTL + staleness cache.

    Args:
        config: TTLs and capacity. Defaults to ``CacheConfig()``.
        clock: Returns epoch seconds; inject a fake one in tests. Must be on
            the same timeline as the event store's ``last_modified``.
    """

    def __init__(self, config: CacheConfig | None = None, clock: Callable[[], float] = time.time):
        self.config = config or CacheConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._access_counts: Counter[str] = Counter()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._version = 0
        self._epoch = 0
        self._janitor: threading.Thread | None = None
        self._janitor_stop = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def epoch(self) -> int:
        """Bumped by every invalidation. Pass it back to ``set`` to drop results
        computed before an invalidation landed."""
        with self._lock:
            return self._epoch

    def now(self) -> float:
        return self._clock()

    def _remove(self, name: str) -> CacheEntry | None:
        """Drop an entry and its access count. Caller holds the lock."""
        self._access_counts.pop(name, None)
        return self._entries.pop(name, None)

    def _lookup(self, key: CacheKey) -> CacheEntry:
        name = str(key)
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                raise CacheMiss(name)
            if entry.expires <= self._clock():
                self._remove(name)
                raise CacheMiss(name)
            self._entries.move_to_end(name)
            return entry

    def _is_stale(self, entry: CacheEntry, last_modified: Callable[[], float | None]) -> bool:
        try:
            modified = last_modified()
        except Exception as e:
            logger.warning("Staleness check failed for %s, treating as stale: %s", entry.key, e)
            return True
        return modified is not None and modified > entry.last_updated

    def get(
        self,
        key: CacheKey,
        last_modified: Callable[[], float | None] | None = None,
    ) -> Any | None:
        """Return the cached value, or None on a miss.

        Args:
            key: Entry key.
            last_modified: Probe returning the newest modification time of
                the data behind this key. Called without holding the lock.
                If it raises, the entry is treated as stale.
        """
        name = str(key)
        try:
            entry = self._lookup(key)
            if last_modified is not None and self._is_stale(entry, last_modified):
                with self._lock:
                    # Only drop the entry we checked; a fresher one may have landed
                    if self._entries.get(name) is entry:
                        self._remove(name)
                raise CacheMiss(name)
        except CacheMiss:
            with self._lock:
                self._misses += 1
            logger.debug("Cache miss: %s", name)
            return None

        with self._lock:
            self._hits += 1
            if name in self._entries:
                self._access_counts[name] += 1
        logger.debug("Cache hit: %s", name)
        return entry.data

    def set(
        self,
        key: CacheKey,
        value: Any,
        ttl: float | None = None,
        computed_at: float | None = None,
        epoch: int | None = None,
    ) -> bool:
        """Store a value.

        Args:
            key: Entry key.
            value: Data to cache.
            ttl: Seconds to live; defaults to the category TTL.
            computed_at: When the underlying data was read. Defaults to now.
                Staleness compares store modifications against this.
            epoch: ``self.epoch`` captured before computing. If an
                invalidation happened since, the value is not stored.

        Returns:
            True if stored.
        """
        if ttl is None:
            ttl = self.config.ttl_for(key.category)
        name = str(key)
        with self._lock:
            if epoch is not None and epoch != self._epoch:
                logger.debug("Dropping result for %s computed before an invalidation", name)
                return False
            now = self._clock()
            self._version += 1
            self._entries[name] = CacheEntry(
                key=key,
                data=value,
                expires=now + ttl,
                last_updated=now if computed_at is None else computed_at,
                version=self._version,
            )
            self._entries.move_to_end(name)
            while len(self._entries) > self.config.max_entries:
                evicted = next(iter(self._entries))
                self._remove(evicted)
                self._evictions += 1
                logger.debug("Evicted least recently used entry %s", evicted)
        return True

    def invalidate_key(self, key: CacheKey) -> bool:
        with self._lock:
            self._epoch += 1
            return self._remove(str(key)) is not None

    def invalidate_where(self, predicate: Callable[[CacheKey], bool]) -> int:
        """Drop every entry whose key matches. Returns the number removed."""
        with self._lock:
            self._epoch += 1
            doomed = [name for name, entry in self._entries.items() if predicate(entry.key)]
            for name in doomed:
                self._remove(name)
        if doomed:
            logger.debug("Invalidated %d cache entries", len(doomed))
        return len(doomed)

    def invalidate_player(self, player_id: str, season: str | None = None) -> int:
        return self.invalidate_where(
            lambda k: k.player_id == player_id and (season is None or k.season == season)
        )

    def invalidate_team(self, team_id: str, season: str) -> int:
        """Drop team stats, leaderboards and season aggregates for one team season."""
        team_scoped = (CacheCategory.TEAM_STATS, CacheCategory.LEADERBOARD, CacheCategory.SEASON)
        return self.invalidate_where(
            lambda k: k.category in team_scoped and k.team_id == team_id and k.season == season
        )

    def on_game_event(
        self,
        game_id: str,
        team_id: str,
        season: str,
        player_ids: set[str] | None,
    ) -> int:
        """Invalidate everything a new event for this game can affect.

        Args:
            game_id: Game the new events belong to.
            team_id: Team that recorded them.
            season: Season of the game.
            player_ids: Players referenced by the game's events. None means
                unknown, in which case every player entry of the season goes.
        """
        team_scoped = (CacheCategory.TEAM_STATS, CacheCategory.LEADERBOARD, CacheCategory.SEASON)

        def affected(key: CacheKey) -> bool:
            if key.game_id == game_id:
                return True
            if key.season != season:
                return False
            if key.category in team_scoped:
                return key.team_id == team_id
            if key.player_id is None:
                return False
            return player_ids is None or key.player_id in player_ids

        removed = self.invalidate_where(affected)
        logger.info(
            "Invalidated %d entries for game %s (team %s, %s)", removed, game_id, team_id, season
        )
        return removed

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()
            self._access_counts.clear()

    def purge_expired(self) -> int:
        """Remove TTL-expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [name for name, entry in self._entries.items() if entry.expires <= now]
            for name in expired:
                self._remove(name)
        if expired:
            logger.info("Purged %d expired cache entries", len(expired))
        return len(expired)

    def stats(self, top: int = 10) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_entries=self.config.max_entries,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                most_accessed=self._access_counts.most_common(top),
            )

    # Janitor

    def start_janitor(self, interval: float | None = None) -> None:
        """Purge expired entries on a background thread every ``interval`` seconds."""
        if self._janitor is not None and self._janitor.is_alive():
            return
        interval = self.config.janitor_interval if interval is None else interval
        self._janitor_stop.clear()
        self._janitor = threading.Thread(
            target=self._run_janitor, args=(interval,), name="stats-cache-janitor", daemon=True
        )
        self._janitor.start()
        logger.info("Cache janitor started (every %ss)", interval)

    def _run_janitor(self, interval: float) -> None:
        while not self._janitor_stop.wait(interval):
            try:
                self.purge_expired()
            except Exception:
                logger.exception("Cache janitor purge failed")

    def stop_janitor(self, timeout: float | None = 5.0) -> None:
        if self._janitor is None:
            return
        self._janitor_stop.set()
        self._janitor.join(timeout)
        self._janitor = None
        logger.info("Cache janitor stopped")

    def __enter__(self) -> StatisticsCache:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop_janitor()
