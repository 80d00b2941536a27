"""Helpers for the loosely formatted text values returned by OMDB."""
from __future__ import annotations

from datetime import datetime, timezone

NOT_AVAILABLE = "N/A"

# Stored as release_year_to for shows that are still running.
YEAR_PRESENT = 2_147_483_647

_YEAR_SEPARATORS = ("–", "-")


def null_if_na(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value.upper() == NOT_AVAILABLE:
        return None
    return value


def parse_rating(value: str | None) -> float | None:
    cleaned = null_if_na(value)
    if cleaned is None:
        return None
    try:
        return float(cleaned.replace(",", ""))
    except ValueError:
        return None


def parse_votes(value: str | None) -> int:
    cleaned = null_if_na(value)
    if cleaned is None:
        return 0
    try:
        return int(cleaned.replace(",", ""))
    except ValueError:
        return 0


def parse_runtime(value: str | None) -> int | None:
    """``"142 min"`` -> ``142``."""

    cleaned = null_if_na(value)
    if cleaned is None:
        return None
    try:
        return int(cleaned.split(" ")[0])
    except ValueError:
        return None


def _to_epoch_millis(value: str, pattern: str) -> int | None:
    try:
        parsed = datetime.strptime(value, pattern)
    except ValueError:
        return None
    return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)


def parse_released(value: str | None) -> int | None:
    """Convert OMDB's ``"16 Jul 2010"`` release dates to epoch milliseconds."""

    cleaned = null_if_na(value)
    if cleaned is None:
        return None
    return _to_epoch_millis(cleaned, "%d %b %Y")


def parse_iso_date(value: str | None) -> int | None:
    """Convert TMDB's ``"2010-07-16"`` dates to epoch milliseconds."""

    cleaned = null_if_na(value)
    if cleaned is None:
        return None
    return _to_epoch_millis(cleaned, "%Y-%m-%d")


def _split_year_range(value: str) -> tuple[str, str | None]:
    for separator in _YEAR_SEPARATORS:
        if separator in value:
            start, _, end = value.partition(separator)
            return start.strip(), end.strip()
    return value.strip(), None


def parse_year_from(value: str | None) -> int | None:
    cleaned = null_if_na(value)
    if cleaned is None:
        return None
    start, _ = _split_year_range(cleaned)
    try:
        return int(start)
    except ValueError:
        return None


def parse_year_to(value: str | None) -> int | None:
    """Return the closing year of a range such as ``"2019–2023"``.

    An open range (``"2019–"``) means the show is still running and maps
    to :data:`YEAR_PRESENT`; a single year has no closing year.
    """

    cleaned = null_if_na(value)
    if cleaned is None:
        return None
    _, end = _split_year_range(cleaned)
    if end is None:
        return None
    if not end:
        return YEAR_PRESENT
    try:
        return int(end)
    except ValueError:
        return None
