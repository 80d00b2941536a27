"""Google Drive listing helpers for the indexer."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from threading import BoundedSemaphore, Lock, local
from typing import Any, Callable

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.http import set_user_agent

from ..schemas import CatalogFile
from ..settings import IndexerSettings

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "nextPageToken, files(id, name, size, mimeType, modifiedTime)"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class DriveServiceError(RuntimeError):
    """Raised when the remote folder listing cannot be completed."""


@dataclass(frozen=True, slots=True)
class RemoteFile:
    """A file or folder as reported by the Drive listing."""

    id: str
    name: str
    mime_type: str
    size: int = 0
    modified_time: int = 0

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    def to_catalog_file(self) -> CatalogFile:
        return CatalogFile(
            id=self.id,
            name=self.name,
            size=self.size,
            modified_time=self.modified_time,
        )


@dataclass(frozen=True, slots=True)
class PathFile:
    """A remote file together with its folder path relative to a listing root."""

    path: str
    file: RemoteFile


def parse_rfc3339_millis(value: str | None) -> int:
    """Convert Drive's ``modifiedTime`` strings to epoch milliseconds."""

    if not value:
        return 0
    return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)


def _to_remote_file(payload: dict[str, Any]) -> RemoteFile:
    return RemoteFile(
        id=payload["id"],
        name=payload["name"],
        mime_type=payload.get("mimeType", ""),
        size=int(payload.get("size") or 0),
        modified_time=parse_rfc3339_millis(payload.get("modifiedTime")),
    )


def build_children_query(folder_id: str, *, folders_only: bool = False) -> str:
    query = f"'{folder_id}' in parents and trashed = false"
    if folders_only:
        query += f" and mimeType = '{FOLDER_MIME_TYPE}'"
    return query


class DriveService:
    """Lists folder trees through a Drive v3 ``files()`` resource.

    Recursive listings fan out over a thread pool. The number of folder
    branches listing at the same time is capped by ``concurrency`` and the
    call returns only once every branch has finished.

    ``http_factory`` builds the transport used to execute requests. Each
    thread gets its own instance because ``httplib2.Http`` objects must not
    be shared between threads. Without a factory, requests execute on the
    transport they were built with.
    """

    def __init__(
        self,
        files_api: Any,
        *,
        concurrency: int = 100,
        page_size: int = 1000,
        http_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._files_api = files_api
        self._concurrency = concurrency
        self._page_size = page_size
        self._http_factory = http_factory
        self._thread_state = local()

    def _thread_http(self) -> Any:
        http = getattr(self._thread_state, "http", None)
        if http is None and self._http_factory is not None:
            http = self._thread_state.http = self._http_factory()
        return http

    def list_children(self, folder_id: str, *, folders_only: bool = False) -> list[RemoteFile]:
        """Return the direct children of ``folder_id`` sorted by name."""

        query = build_children_query(folder_id, folders_only=folders_only)
        children: list[RemoteFile] = []
        page_token: str | None = None
        while True:
            try:
                request = self._files_api.list(
                    q=query,
                    fields=FILE_FIELDS,
                    pageSize=self._page_size,
                    pageToken=page_token,
                    orderBy="name",
                    supportsAllDrives=True,
                    includeItemsFromAllDrives=True,
                )
                http = self._thread_http()
                response = request.execute(http=http) if http is not None else request.execute()
            except Exception as exc:
                raise DriveServiceError(f"Failed to list folder {folder_id}: {exc}") from exc
            children.extend(_to_remote_file(item) for item in response.get("files", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        children.sort(key=lambda child: child.name)
        return children

    def list_recursive(self, root_folder_id: str) -> list[PathFile]:
        """Return every file below ``root_folder_id`` with its relative path."""

        results: list[PathFile] = []
        results_lock = Lock()
        permits = BoundedSemaphore(self._concurrency)
        pending: list[Future[None]] = []
        pending_lock = Lock()

        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:

            def walk(folder_id: str, prefix: str) -> None:
                with permits:
                    children = self.list_children(folder_id)
                for child in children:
                    path = f"{prefix}{child.name}"
                    if child.is_folder:
                        future = executor.submit(walk, child.id, f"{path}/")
                        with pending_lock:
                            pending.append(future)
                    else:
                        with results_lock:
                            results.append(PathFile(path=path, file=child))

            with pending_lock:
                pending.append(executor.submit(walk, root_folder_id, ""))

            errors: list[BaseException] = []
            index = 0
            while True:
                with pending_lock:
                    if index >= len(pending):
                        break
                    future = pending[index]
                index += 1
                error = future.exception()
                if error is not None:
                    errors.append(error)

        if errors:
            first = errors[0]
            if isinstance(first, DriveServiceError):
                raise first
            raise DriveServiceError(f"Failed to list folder tree {root_folder_id}: {first}") from first
        logger.debug("Listed %d files below %s", len(results), root_folder_id)
        return results


def build_drive_service(settings: IndexerSettings) -> DriveService:
    """Build a Drive client from service-account settings.

    Requests run on a per-thread authorised transport that identifies itself
    with ``drive_application_name``.
    """

    info = {
        "type": "service_account",
        "client_id": settings.drive_client_id,
        "client_email": settings.drive_client_email,
        "private_key": settings.drive_private_key,
        "private_key_id": settings.drive_private_key_id,
        "token_uri": TOKEN_URI,
    }
    missing = [key for key, value in info.items() if not value]
    if missing:
        raise DriveServiceError(f"Missing Drive service-account settings: {', '.join(missing)}")
    credentials = service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)

    def http_factory() -> AuthorizedHttp:
        http = AuthorizedHttp(credentials, http=httplib2.Http())
        return set_user_agent(http, settings.drive_application_name)

    service = build("drive", "v3", http=http_factory(), cache_discovery=False)
    return DriveService(
        service.files(),
        concurrency=settings.listing_concurrency,
        page_size=settings.listing_page_size,
        http_factory=http_factory,
    )
