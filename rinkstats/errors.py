"""Exception taxonomy for the statistics engine."""


class StatsError(Exception):
    """Base class for all statistics engine errors."""


class NotFoundError(StatsError):
    """Unknown player, team or game."""


class ValidationError(StatsError, ValueError):
    """Invalid caller input: bad filter, out-of-range comparison set, negative stat."""


class ComputationError(StatsError):
    """An event payload could not be parsed during aggregation."""

    def __init__(self, message: str, event_id: str | None = None) -> None:
        super().__init__(message)
        self.event_id = event_id


class StatsTimeoutError(StatsError, TimeoutError):
    """Aggregation exceeded the caller-supplied deadline."""


class CacheMiss(StatsError):
    """Internal signal that a cache lookup must be recomputed. Never surfaced."""
