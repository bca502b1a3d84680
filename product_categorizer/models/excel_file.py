from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from .category_response import CategoryResponseItem

"""Uploaded file and per-file processing status models.

A FileProcessingResult tracks one uploaded spreadsheet through a batch run,
from pending to completed/error. Instances are immutable snapshots; each
transition returns a new instance.
"""

__all__ = [
    "UploadedFile",
    "FileStatus",
    "FileProcessingResult",
    "InvalidTransitionError",
]


@dataclass(frozen=True)
class UploadedFile:
    """An in-memory spreadsheet upload."""
    name: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @staticmethod
    def from_path(path: Path) -> UploadedFile:
        return UploadedFile(name=path.name, content=path.read_bytes())


class FileStatus(Enum):
    """Status enum for per-file processing lifecycle.

    State transitions: pending → processing → (completed | error)

    - PENDING: File accepted but not yet started
    - PROCESSING: File is being parsed / submitted
    - COMPLETED: Records categorized successfully
    - ERROR: Parse, validation, record limit or remote failure
    """
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (FileStatus.COMPLETED, FileStatus.ERROR)


class InvalidTransitionError(Exception):
    """Raised on a status transition the lifecycle does not allow."""


_ALLOWED: dict[FileStatus, set[FileStatus]] = {
    FileStatus.PENDING: {FileStatus.PROCESSING, FileStatus.ERROR},
    FileStatus.PROCESSING: {FileStatus.COMPLETED, FileStatus.ERROR},
    FileStatus.COMPLETED: set(),
    FileStatus.ERROR: set(),
}


@dataclass(frozen=True)
class FileProcessingResult:
    """Processing outcome for a single uploaded file."""
    file: UploadedFile
    status: FileStatus = FileStatus.PENDING
    record_count: int | None = None  # 完了時のみ設定
    results: tuple[CategoryResponseItem, ...] | None = None
    error: str | None = None  # 失敗理由 (1行, 表示用)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def file_name(self) -> str:
        return self.file.name

    def _transition(self, target: FileStatus) -> None:
        if target not in _ALLOWED[self.status]:
            raise InvalidTransitionError(
                f"{self.file.name}: cannot move from {self.status.value} to {target.value}"
            )

    def start(self) -> FileProcessingResult:
        self._transition(FileStatus.PROCESSING)
        return replace(self, status=FileStatus.PROCESSING)

    def complete(
        self,
        record_count: int,
        results: list[CategoryResponseItem] | tuple[CategoryResponseItem, ...] | None = None,
    ) -> FileProcessingResult:
        self._transition(FileStatus.COMPLETED)
        return replace(
            self,
            status=FileStatus.COMPLETED,
            record_count=record_count,
            results=tuple(results) if results is not None else None,
            error=None,
        )

    def fail(self, error: str) -> FileProcessingResult:
        """Mark as error. A pending file may fail directly (e.g. skipped by the record limit)."""
        self._transition(FileStatus.ERROR)
        return replace(self, status=FileStatus.ERROR, error=error)
