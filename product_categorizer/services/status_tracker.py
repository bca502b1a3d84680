from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from ..models.category_response import CategoryResponseItem
from ..models.config_models import DEFAULT_MAX_RECORDS
from ..models.excel_file import FileProcessingResult, FileStatus, UploadedFile
from ..models.processing_result import StatusSummary

"""Per-file status tracking for a batch run.

The tracker owns the list of FileProcessingResult snapshots for one run.
Every transition replaces the entry with a new immutable instance and
notifies subscribers with a tuple snapshot of all files (input order).
"""

__all__ = [
    "FileStatusTracker",
    "StatusListener",
]

logger = logging.getLogger(__name__)

StatusListener = Callable[[tuple[FileProcessingResult, ...]], None]


class FileStatusTracker:
    """State machine holder for every uploaded file of one batch."""

    def __init__(self, files: Sequence[UploadedFile]) -> None:
        self._results: list[FileProcessingResult] = [FileProcessingResult(file=f) for f in files]
        self._listeners: list[StatusListener] = []

    def __len__(self) -> int:
        return len(self._results)

    def __getitem__(self, index: int) -> FileProcessingResult:
        return self._results[index]

    def subscribe(self, listener: StatusListener) -> None:
        """Register a callback receiving a snapshot after each transition."""
        self._listeners.append(listener)

    def snapshot(self) -> tuple[FileProcessingResult, ...]:
        return tuple(self._results)

    def _set(self, index: int, result: FileProcessingResult) -> FileProcessingResult:
        self._results[index] = result
        logger.debug("file=%s status=%s", result.file_name, result.status.value)
        snap = self.snapshot()
        for listener in self._listeners:
            listener(snap)
        return result

    def start(self, index: int) -> FileProcessingResult:
        return self._set(index, self._results[index].start())

    def complete(
        self, index: int, record_count: int, results: list[CategoryResponseItem] | None = None
    ) -> FileProcessingResult:
        return self._set(index, self._results[index].complete(record_count, results))

    def fail(self, index: int, error: str) -> FileProcessingResult:
        return self._set(index, self._results[index].fail(error))

    def summary(self, *, limit_reached: bool = False, record_limit: int = DEFAULT_MAX_RECORDS) -> StatusSummary:
        completed = [r for r in self._results if r.status == FileStatus.COMPLETED]
        errors = [r for r in self._results if r.status == FileStatus.ERROR]
        return StatusSummary(
            total_files=len(self._results),
            completed_files=len(completed),
            error_files=len(errors),
            total_records=sum(r.record_count or 0 for r in completed),
            total_products=sum(len(r.results or ()) for r in completed),
            limit_reached=limit_reached,
            record_limit=record_limit,
        )
