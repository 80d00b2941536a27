"""File-set diffing and per-item outcome bookkeeping for the sync stages."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from ..schemas import CatalogFile
from ..stores.file_store import FileStore

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["inserted", "skipped", "failed"]


@dataclass(slots=True)
class FileDiff:
    """Remote files partitioned against the catalog.

    ``new`` keeps the remote order; ``modified`` carries the remote
    timestamps that should replace the stored ones.
    """

    new: list[CatalogFile] = field(default_factory=list)
    stale_ids: list[str] = field(default_factory=list)
    modified: list[CatalogFile] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.new or self.stale_ids or self.modified)


def diff_files(remote: Iterable[CatalogFile], stored: Iterable[CatalogFile]) -> FileDiff:
    """Partition ``remote`` into new, stale and modified files by id."""

    stored_by_id = {file.id: file for file in stored}
    remote = list(remote)
    remote_ids = {file.id for file in remote}

    diff = FileDiff()
    for file in remote:
        existing = stored_by_id.get(file.id)
        if existing is None:
            diff.new.append(file)
        elif existing.modified_time != file.modified_time:
            diff.modified.append(file)
    diff.stale_ids = [file_id for file_id in stored_by_id if file_id not in remote_ids]
    return diff


def apply_file_diff(diff: FileDiff, file_store: FileStore, *, label: str) -> None:
    """Delete stale files and store new modification times."""

    deleted = file_store.delete(diff.stale_ids) if diff.stale_ids else 0
    updated = file_store.update_modified_time(diff.modified) if diff.modified else 0
    logger.info(
        "%s: %d new, %d deleted (of %d stale), %d modified time updates (of %d)",
        label,
        len(diff.new),
        deleted,
        len(diff.stale_ids),
        updated,
        len(diff.modified),
    )


@dataclass(slots=True)
class ItemOutcome:
    """Result of processing one new remote item."""

    status: OutcomeStatus
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def inserted(cls, **details: Any) -> ItemOutcome:
        return cls(status="inserted", details=details)

    @classmethod
    def skipped(cls, reason: str, **details: Any) -> ItemOutcome:
        return cls(status="skipped", reason=reason, details=details)

    @classmethod
    def failed(cls, reason: str, **details: Any) -> ItemOutcome:
        return cls(status="failed", reason=reason, details=details)


@dataclass(slots=True)
class StageReport:
    """Outcomes collected by one sync stage."""

    stage: str
    outcomes: list[ItemOutcome] = field(default_factory=list)

    def record(self, outcome: ItemOutcome) -> ItemOutcome:
        self.outcomes.append(outcome)
        if outcome.status == "failed":
            logger.error("%s: %s %s", self.stage, outcome.reason, outcome.details)
        elif outcome.status == "skipped":
            logger.warning("%s: %s %s", self.stage, outcome.reason, outcome.details)
        return outcome

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def inserted(self) -> int:
        return self.count("inserted")

    @property
    def skipped(self) -> int:
        return self.count("skipped")

    @property
    def failed(self) -> int:
        return self.count("failed")

    def reasons(self) -> Counter[str]:
        return Counter(outcome.reason for outcome in self.outcomes if outcome.reason)

    def summary(self) -> str:
        return f"{self.stage}: {self.inserted} inserted, {self.skipped} skipped, {self.failed} failed"
