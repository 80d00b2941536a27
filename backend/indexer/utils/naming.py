"""Parsers for the folder and file naming conventions of the remote library.

Movies and show folders are named ``"<Title> (<Year>) [<TMDB id>]"`` (movie
files may carry an ``.mkv``/``.mp4`` extension), season folders
``"Season <N>"`` and episode files contain an ``SxxEyy`` label somewhere in
their name. None of the parsers raise on non-conforming input; they return
``None`` and leave logging to the caller.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

MEDIA_NAME_RE = re.compile(r"^(.+) \((\d{4})\) \[(\d+)\](\.(mkv|mp4))?$")
SEASON_FOLDER_RE = re.compile(r"^Season (\d+)$")
EPISODE_LABEL_RE = re.compile(r"S(\d{2})E(\d+)", re.IGNORECASE)

PATH_SEPARATOR = "/"


@dataclass(frozen=True, slots=True)
class MediaName:
    """Identifiers recovered from a movie file or show folder name."""

    title: str
    year: int
    tmdb_id: int

    @property
    def folder_name(self) -> str:
        return format_media_name(self.title, self.year, self.tmdb_id)


@dataclass(frozen=True, slots=True)
class EpisodeLabel:
    """Season and episode numbers recovered from an episode file name."""

    season_number: int
    episode_number: int

    @property
    def label(self) -> str:
        return format_episode_label(self.season_number, self.episode_number)


def parse_media_name(name: str) -> MediaName | None:
    match = MEDIA_NAME_RE.fullmatch(name)
    if match is None:
        return None
    title, year, tmdb_id = match.group(1, 2, 3)
    return MediaName(title=title, year=int(year), tmdb_id=int(tmdb_id))


def parse_season_folder(name: str) -> int | None:
    match = SEASON_FOLDER_RE.fullmatch(name)
    return int(match.group(1)) if match else None


def parse_episode_label(name: str) -> EpisodeLabel | None:
    """Return the first ``SxxEyy`` label found anywhere in ``name``."""

    match = EPISODE_LABEL_RE.search(name)
    if match is None:
        return None
    return EpisodeLabel(season_number=int(match.group(1)), episode_number=int(match.group(2)))


def format_episode_label(season_number: int, episode_number: int) -> str:
    return f"S{season_number:02d}E{episode_number:02d}"


def format_media_name(title: str, year: int, tmdb_id: int) -> str:
    return f"{title} ({year}) [{tmdb_id}]"


def split_show_path(path: str) -> tuple[str, str, str] | None:
    """Split ``show/season/episode`` paths; shallower paths yield ``None``."""

    parts = path.split(PATH_SEPARATOR)
    if len(parts) < 3:
        return None
    return parts[0], parts[1], parts[2]
