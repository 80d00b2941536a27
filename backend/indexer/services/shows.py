"""Show folder synchronisation.

The shows folder is laid out as ``<Show (Year) [id]>/Season <N>/<file>``.
New episode files are grouped by show and season folder, matched against the
TMDB season listing by ``SxxEyy`` label, and written in three batches once
every group has been processed: shows, then seasons, then episodes with their
files.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from ..schemas import (
    CatalogFile,
    Episode,
    OmdbResponse,
    Season,
    SeasonEpisode,
    SeasonResponse,
    Show,
    TvResponse,
    TvSeason,
)
from ..stores.file_store import FileStore
from ..stores.show_store import ShowStore
from ..utils.naming import (
    MediaName,
    format_episode_label,
    parse_episode_label,
    parse_media_name,
    parse_season_folder,
    split_show_path,
)
from ..utils.omdb_values import (
    null_if_na,
    parse_iso_date,
    parse_rating,
    parse_released,
    parse_votes,
    parse_year_from,
    parse_year_to,
)
from .drive import DriveService, PathFile, RemoteFile
from .omdb import OmdbService
from .reconcile import ItemOutcome, StageReport, apply_file_diff, diff_files
from .tmdb import TmdbService, TmdbServiceError

logger = logging.getLogger(__name__)


def build_show(response: TvResponse, omdb: OmdbResponse, folder: RemoteFile) -> Show:
    """Merge TMDB and OMDB data into a catalog show, same split as movies."""

    return Show(
        id=response.id,
        title=null_if_na(omdb.title) or response.name or folder.name,
        imdb_id=omdb.imdb_id,
        imdb_rating=parse_rating(omdb.imdb_rating),
        imdb_votes=parse_votes(omdb.imdb_votes),
        release_date=parse_released(omdb.released),
        release_year_from=parse_year_from(omdb.year),
        release_year_to=parse_year_to(omdb.year),
        parental_rating=null_if_na(omdb.rated),
        poster_path=response.poster_path,
        backdrop_path=response.backdrop_path,
        logo_image=response.best_logo_image(),
        trailer_link=response.official_trailer(),
        plot=null_if_na(omdb.plot),
        director=response.director_name(),
        modified_time=folder.modified_time,
        cast=response.cast_members(),
        crew=response.crew_members(),
        genres=response.genre_list(),
        studios=response.studios(),
        external_links=response.external_links(),
    )


def build_season(season: TvSeason, show_title: str, show_id: int) -> Season:
    release_year = 0
    if season.air_date:
        year, _, _ = season.air_date.partition("-")
        release_year = int(year) if year.isdigit() else 0
    return Season(
        id=season.id,
        name=season.name,
        poster_path=season.poster_path,
        overview=season.overview_for(show_title),
        release_year=release_year,
        release_date=parse_iso_date(season.air_date),
        season_number=season.season_number,
        show_id=show_id,
    )


def build_episode(episode: SeasonEpisode, season_id: int, file: CatalogFile) -> Episode:
    return Episode(
        id=episode.id,
        title=episode.name,
        episode_number=episode.episode_number,
        season_number=episode.season_number,
        still_path=episode.still_path,
        overview=episode.overview,
        airdate=parse_iso_date(episode.air_date),
        runtime=episode.runtime,
        season_id=season_id,
        file_id=file.id,
    )


@dataclass(slots=True)
class ShowBatch:
    """Rows accumulated across every show group, written after all groups."""

    shows: dict[int, Show] = field(default_factory=dict)
    seasons: dict[int, Season] = field(default_factory=dict)
    episodes: dict[int, Episode] = field(default_factory=dict)
    files: dict[str, CatalogFile] = field(default_factory=dict)
    episode_paths: dict[int, str] = field(default_factory=dict)

    def add_episode(self, episode: Episode, file: CatalogFile, path: str) -> None:
        self.episodes[episode.id] = episode
        self.files[file.id] = file
        self.episode_paths[episode.id] = path


class ShowSync:
    """Index new episode files found below the shows folder."""

    def __init__(
        self,
        drive: DriveService,
        tmdb: TmdbService,
        omdb: OmdbService,
        file_store: FileStore,
        show_store: ShowStore,
    ) -> None:
        self._drive = drive
        self._tmdb = tmdb
        self._omdb = omdb
        self._files = file_store
        self._shows = show_store

    def run(self, folder_id: str) -> StageReport:
        report = StageReport(stage="shows")
        remote = self._drive.list_recursive(folder_id)
        logger.info("Found %d files in the shows folder", len(remote))

        by_id = {item.file.id: item for item in remote}
        diff = diff_files(
            [item.file.to_catalog_file() for item in remote],
            self._files.episode_files(),
        )
        apply_file_diff(diff, self._files, label="shows")

        show_folders = self._drive.list_children(folder_id, folders_only=True)
        self.sync_modified_times(show_folders)

        new_files = [by_id[file.id] for file in diff.new]
        batch = ShowBatch()
        for media, files in self.group_by_show(new_files):
            self.index_show(media, files, show_folders, batch, report)
        self.write_batch(batch, report)

        logger.info(report.summary())
        return report

    def sync_modified_times(self, show_folders: list[RemoteFile]) -> int:
        """Copy show folder modification times onto catalogued shows."""

        stored = {show.id: show.modified_time for show in self._shows.list()}
        changed: dict[int, int] = {}
        for folder in show_folders:
            media = parse_media_name(folder.name)
            if media is None or media.tmdb_id not in stored:
                continue
            if stored[media.tmdb_id] != folder.modified_time:
                changed[media.tmdb_id] = folder.modified_time
        updated = self._shows.update_modified_time(changed)
        logger.info("%d shows need a modified time update, %d updated", len(changed), updated)
        return updated

    @staticmethod
    def group_by_show(files: list[PathFile]) -> list[tuple[MediaName, list[PathFile]]]:
        """Group ``show/season/file`` paths by parseable show folder, sorted by title."""

        groups: dict[str, list[PathFile]] = defaultdict(list)
        for item in files:
            parts = split_show_path(item.path)
            if parts is None:
                continue
            groups[parts[0]].append(item)

        parsed: list[tuple[MediaName, list[PathFile]]] = []
        for folder_name, members in groups.items():
            media = parse_media_name(folder_name)
            if media is None:
                logger.warning("Skipping unparseable show folder %s", folder_name)
                continue
            parsed.append((media, members))
        parsed.sort(key=lambda group: (group[0].title, group[0].tmdb_id))
        return parsed

    def index_show(
        self,
        media: MediaName,
        files: list[PathFile],
        show_folders: list[RemoteFile],
        batch: ShowBatch,
        report: StageReport,
    ) -> None:
        """Resolve one show group and add its rows to ``batch``."""

        details = {"show": media.folder_name, "files": len(files)}
        folder = next((item for item in show_folders if item.name == media.folder_name), None)
        if folder is None:
            report.record(ItemOutcome.skipped("show folder not found", **details))
            return

        try:
            response = self._tmdb.fetch_show(media.tmdb_id)
        except TmdbServiceError as exc:
            report.record(ItemOutcome.failed("TMDB lookup failed", error=str(exc), **details))
            return

        imdb_id = response.imdb_id
        if imdb_id is None:
            report.record(ItemOutcome.failed("imdb id not found", **details))
            return

        omdb = self._omdb.fetch_show(imdb_id)
        if omdb is None:
            report.record(ItemOutcome.failed("OMDB response not found", imdb_id=imdb_id, **details))
            return

        show = build_show(response, omdb, folder)
        seasons: dict[str, list[PathFile]] = defaultdict(list)
        for item in files:
            _, season_folder, _ = split_show_path(item.path)
            seasons[season_folder].append(item)

        skipped_seasons: list[str] = []
        matched = 0
        for season_folder in sorted(seasons):
            count = self.index_season(show, response, season_folder, seasons[season_folder], batch, report)
            if count is None:
                skipped_seasons.append(season_folder)
            else:
                matched += count

        if matched == 0:
            report.record(ItemOutcome.skipped("no episodes matched", **details))
            return
        batch.shows.setdefault(show.id, show)
        if skipped_seasons:
            logger.warning(
                "Show %s is partially indexed, skipped season folders: %s",
                media.folder_name,
                ", ".join(skipped_seasons),
            )

    def index_season(
        self,
        show: Show,
        response: TvResponse,
        season_folder: str,
        files: list[PathFile],
        batch: ShowBatch,
        report: StageReport,
    ) -> int | None:
        """Match one season folder's files; returns ``None`` when the folder is skipped."""

        details = {"show": show.title, "season": season_folder, "files": len(files)}
        season_number = parse_season_folder(season_folder)
        if season_number is None:
            report.record(ItemOutcome.skipped("season number not found", **details))
            return None

        try:
            listing = self._tmdb.fetch_season(show.id, season_number)
        except TmdbServiceError as exc:
            report.record(ItemOutcome.failed("TMDB season lookup failed", error=str(exc), **details))
            return None
        if listing.episodes is None or listing.id is None:
            report.record(ItemOutcome.skipped("season not found", **details))
            return None

        episodes = {
            format_episode_label(episode.season_number, episode.episode_number): episode
            for episode in listing.episodes
        }
        matched = 0
        for item in files:
            label = parse_episode_label(item.file.name)
            if label is None:
                report.record(ItemOutcome.skipped("episode label not found", path=item.path))
                continue
            episode = episodes.get(label.label)
            if episode is None:
                report.record(ItemOutcome.skipped("episode not found", path=item.path, label=label.label))
                continue
            if episode.id in batch.episodes:
                report.record(ItemOutcome.skipped("duplicate episode file", path=item.path, label=label.label))
                continue
            file = item.file.to_catalog_file()
            batch.add_episode(build_episode(episode, listing.id, file), file, item.path)
            matched += 1

        if matched and listing.id not in batch.seasons:
            batch.seasons[listing.id] = self._season_record(show, response, listing, season_number)
        return matched

    @staticmethod
    def _season_record(
        show: Show,
        response: TvResponse,
        listing: SeasonResponse,
        season_number: int,
    ) -> Season:
        season = response.season(season_number)
        if season is None or season.id != listing.id:
            season = TvSeason(
                id=listing.id,
                name=listing.name,
                poster_path=listing.poster_path,
                season_number=season_number,
                overview=listing.overview,
                air_date=listing.air_date,
            )
        return build_season(season, show.title, show.id)

    def write_batch(self, batch: ShowBatch, report: StageReport) -> None:
        """Insert accumulated shows, seasons and episodes in dependency order."""

        existing_seasons = self._shows.season_ids()
        seasons = [season for season_id, season in batch.seasons.items() if season_id not in existing_seasons]
        logger.info(
            "Inserting %d shows, %d seasons, %d episodes and %d files",
            len(batch.shows),
            len(seasons),
            len(batch.episodes),
            len(batch.files),
        )

        inserted: set[int] | None = None
        if self._shows.add_shows(batch.shows.values()) and self._shows.add_seasons(seasons):
            inserted = self._shows.add_episodes(batch.episodes.values(), batch.files.values())
        for episode_id, path in batch.episode_paths.items():
            if inserted is None:
                report.record(ItemOutcome.failed("episode batch was not written", path=path, episode_id=episode_id))
            elif episode_id in inserted:
                report.record(ItemOutcome.inserted(path=path, episode_id=episode_id))
            else:
                report.record(ItemOutcome.skipped("episode already catalogued", path=path, episode_id=episode_id))
