"""Service layer for remote listings, metadata providers and sync stages."""

from .drive import DriveService, DriveServiceError, PathFile, RemoteFile
from .filters_cache import CacheServiceError, FiltersCache
from .genres import GenreSync
from .movies import MovieSync
from .omdb import OmdbService
from .runner import IndexerRunner, RunSummary, build_runner
from .shows import ShowSync
from .tmdb import TmdbService, TmdbServiceError

__all__ = [
    "CacheServiceError",
    "DriveService",
    "DriveServiceError",
    "FiltersCache",
    "GenreSync",
    "IndexerRunner",
    "MovieSync",
    "OmdbService",
    "PathFile",
    "RemoteFile",
    "RunSummary",
    "ShowSync",
    "TmdbService",
    "TmdbServiceError",
    "build_runner",
]
