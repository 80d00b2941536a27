"""Tests for the library naming convention parsers."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.indexer.utils.naming import (  # noqa: E402
    EpisodeLabel,
    MediaName,
    format_episode_label,
    format_media_name,
    parse_episode_label,
    parse_media_name,
    parse_season_folder,
    split_show_path,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Foo (2020) [123]", MediaName(title="Foo", year=2020, tmdb_id=123)),
        ("Bar (2019) [456].mkv", MediaName(title="Bar", year=2019, tmdb_id=456)),
        ("Baz: Part II (1999) [78].mp4", MediaName(title="Baz: Part II", year=1999, tmdb_id=78)),
        ("Nested (Title) (2001) [9]", MediaName(title="Nested (Title)", year=2001, tmdb_id=9)),
    ],
)
def test_parse_media_name_recovers_title_year_and_id(name: str, expected: MediaName) -> None:
    """Conforming movie files and show folders yield their identifiers."""

    assert parse_media_name(name) == expected


@pytest.mark.parametrize(
    "name",
    [
        "",
        "Foo",
        "Foo (2020)",
        "Foo [123]",
        "Foo (20) [123]",
        "Foo (2020) [abc]",
        "Foo (2020) [123].avi",
        "Foo (2020) [123] extra",
        "Foo(2020)[123]",
    ],
)
def test_parse_media_name_returns_none_for_non_conforming_names(name: str) -> None:
    """Names outside the convention are reported as no match rather than raising."""

    assert parse_media_name(name) is None


def test_media_name_reconstructs_folder_name() -> None:
    """The parsed identifiers format back into the original folder name."""

    media = parse_media_name("Foo (2020) [123]")

    assert media is not None
    assert media.folder_name == "Foo (2020) [123]"
    assert format_media_name("Foo", 2020, 123) == "Foo (2020) [123]"


def test_parse_season_folder_requires_exact_match() -> None:
    """Only ``Season <N>`` folder names carry a season number."""

    assert parse_season_folder("Season 1") == 1
    assert parse_season_folder("Season 12") == 12
    assert parse_season_folder("Season 01") == 1
    assert parse_season_folder("season 1") is None
    assert parse_season_folder("Season 1 (2020)") is None
    assert parse_season_folder("Specials") is None


def test_parse_episode_label_searches_anywhere_case_insensitively() -> None:
    """The first SxxEyy occurrence wins, wherever it appears in the name."""

    assert parse_episode_label("Foo S01E01.mkv") == EpisodeLabel(1, 1)
    assert parse_episode_label("foo.s02e13.1080p.mkv") == EpisodeLabel(2, 13)
    assert parse_episode_label("2021 Show S05E03 S05E04.mkv") == EpisodeLabel(5, 3)
    assert parse_episode_label("Show S1E1.mkv") is None
    assert parse_episode_label("Show Episode 1.mkv") is None


def test_episode_label_round_trips_to_zero_padded_form() -> None:
    """A parsed label renders back to the two-digit provider join key."""

    label = parse_episode_label("Show - S05E03 - Title.mkv")

    assert label is not None
    assert (label.season_number, label.episode_number) == (5, 3)
    assert label.label == "S05E03"
    assert format_episode_label(1, 100) == "S01E100"


def test_split_show_path_requires_three_segments() -> None:
    """Paths shallower than show/season/file are not episode paths."""

    assert split_show_path("Foo (2020) [123]/Season 1/Foo S01E01.mkv") == (
        "Foo (2020) [123]",
        "Season 1",
        "Foo S01E01.mkv",
    )
    assert split_show_path("Foo (2020) [123]/Season 1/Extras/clip.mkv") == (
        "Foo (2020) [123]",
        "Season 1",
        "Extras",
    )
    assert split_show_path("Foo (2020) [123]/Foo S01E01.mkv") is None
    assert split_show_path("stray.mkv") is None
