"""Cleaning and time-format helpers for directory and event data."""

import unicodedata

from rinkstats.errors import ValidationError


def normalize_player_name(name: str) -> str:
    """Normalize a player name by removing accents and standardizing format.

    Examples:
        >>> normalize_player_name("Léon Draisaitl")
        'Leon Draisaitl'
        >>> normalize_player_name("  Connor McDavid  ")
        'Connor McDavid'
    """
    # Strip whitespace
    name = name.strip()

    # Remove accents/diacritics
    nfkd = unicodedata.normalize("NFKD", name)
    name = "".join(c for c in nfkd if not unicodedata.combining(c))

    # Collapse multiple spaces
    name = " ".join(name.split())

    return name


def time_to_seconds(time_string: str) -> int:
    """Convert a 'MM:SS' string to total seconds.

    Minutes may exceed 59 (season totals); seconds must be in [0, 60).

    Examples:
        >>> time_to_seconds("18:45")
        1125
        >>> time_to_seconds("0:00")
        0

    Raises:
        ValidationError: on anything other than two non-negative integer parts.
    """
    if not time_string or not isinstance(time_string, str):
        raise ValidationError("Invalid time string")

    parts = time_string.split(":")
    if len(parts) != 2:
        raise ValidationError(f"Time must be in MM:SS format, got {time_string!r}")

    minutes_str, seconds_str = (p.strip() for p in parts)
    if not minutes_str.isdigit() or not seconds_str.isdigit():
        # isdigit() rejects signs, so negative components land here too
        raise ValidationError(f"Invalid time values in {time_string!r}")

    minutes = int(minutes_str)
    seconds = int(seconds_str)
    if seconds >= 60:
        raise ValidationError(f"Seconds must be below 60 in {time_string!r}")

    return minutes * 60 + seconds


def seconds_to_time(total_seconds: int) -> str:
    """Convert total seconds to a 'M:SS' string.

    Examples:
        >>> seconds_to_time(1125)
        '18:45'
        >>> seconds_to_time(5)
        '0:05'
    """
    if isinstance(total_seconds, bool) or not isinstance(total_seconds, int) or total_seconds < 0:
        raise ValidationError("Seconds must be a non-negative integer")

    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"
