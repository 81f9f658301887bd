"""HTTP client for the team/player directory service.

The directory owns player metadata, roster membership and game results. It
is reached over a small JSON API; base URL from DIRECTORY_API_URL.
"""

import logging
import os
import time

import httpx

from rinkstats.errors import NotFoundError
from rinkstats.extract.parse import parse_game, parse_player
from rinkstats.models.game import Game
from rinkstats.models.player import Player

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080/api"

# Retry configuration
MAX_RETRIES = 3
RETRY_BACKOFF_SECONDS = 2


class DirectoryAPIClient:
    """Client for the team/player directory API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        retry_backoff: float = RETRY_BACKOFF_SECONDS,
    ) -> None:
        self.retry_backoff = retry_backoff
        self.client = httpx.Client(
            base_url=base_url or os.getenv("DIRECTORY_API_URL", DEFAULT_BASE_URL),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "DirectoryAPIClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _get(self, endpoint: str, params: dict | None = None) -> dict:
        """Make a GET request, retrying transport errors and 5xx responses."""
        last_exception: Exception | None = None

        for attempt in range(MAX_RETRIES):
            try:
                response = self.client.get(endpoint, params=params)
                if response.status_code == 404:
                    raise NotFoundError(f"Directory has no resource at {endpoint}")
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise
                last_exception = e
            except httpx.TransportError as e:
                last_exception = e

            wait = self.retry_backoff * (2**attempt)
            logger.warning(
                "Request to %s failed (attempt %d/%d): %s. Retrying in %ss.",
                endpoint,
                attempt + 1,
                MAX_RETRIES,
                last_exception,
                wait,
            )
            time.sleep(wait)

        raise last_exception  # type: ignore[misc]

    def get_player(self, player_id: str) -> Player | None:
        try:
            return parse_player(self._get(f"/players/{player_id}"))
        except NotFoundError:
            return None

    def get_roster(self, team_id: str, active_only: bool = True) -> list[Player]:
        data = self._get(f"/teams/{team_id}/roster", params={"active": str(active_only).lower()})
        return [parse_player(p) for p in data.get("players", [])]

    def get_games(self, team_id: str, season: str) -> list[Game]:
        data = self._get(f"/teams/{team_id}/games", params={"season": season})
        games = [parse_game(g) for g in data.get("games", [])]
        logger.debug("Directory returned %d games for %s %s", len(games), team_id, season)
        return games
