from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from ..excel.reader import ParseError, is_blank_row, read_sheet_rows
from ..logging.error_log import ErrorLogBuffer
from ..models.category_response import CategoryResponseItem
from ..models.config_models import SUBMISSION_MODES, PipelineSettings
from ..models.error_record import ErrorRecord
from ..models.excel_file import UploadedFile
from ..models.processing_result import BatchRunResult, FileBatch, IngestResult
from .categorization_client import CategorizationClient
from .normalizer import HEADER_ROWS, RowValidationError, build_category_requests
from .progress import ProgressTracker
from .status_tracker import FileStatusTracker, StatusListener
from .summary import (
    FILE_LIMIT_SKIP_TEMPLATE,
    FILE_NO_RECORDS_MESSAGE,
    NO_FILES_MESSAGE,
    NO_VALID_RECORDS_MESSAGE,
    PROCESSING_FAILED_TEMPLATE,
    SUCCESS_TEMPLATE,
    render_processing_message,
    render_status_message,
)

logger = logging.getLogger(__name__)

"""Batch orchestration: uploaded files -> requests -> categorization.

Files are handled strictly one at a time in input order. A RecordBudget
value is threaded through the loop and caps the total number of product rows
accepted across all files (3000 by default):

- a file met with an exhausted budget is marked as an error (never silently
  dropped)
- a file larger than the remaining budget is truncated to its leading rows
- parse / row validation failures are recorded against that file only

Two submission modes:
- aggregate: all accepted rows go out in a single request
- per_file: one request per file, with a fixed delay between requests
"""

__all__ = [
    "ProcessingError",
    "RecordBudget",
    "process_files",
    "run_batch",
]


class ProcessingError(Exception):
    """Raised for fatal orchestration errors (bad settings)."""


@dataclass(frozen=True)
class RecordBudget:
    """Global record ceiling accumulator. Never decremented."""
    limit: int
    used: int = 0

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def take(self, requested: int) -> tuple[int, RecordBudget]:
        """Take up to `requested` records; returns (taken, new budget)."""
        taken = min(max(requested, 0), self.remaining)
        return taken, replace(self, used=self.used + taken)


def _record_error(
    error_log: ErrorLogBuffer | None, file_name: str, row: int, error_type: str, message: str
) -> None:
    if error_log is not None:
        error_log.append(ErrorRecord.create(file=file_name, row=row, error_type=error_type, message=message))


def _ingest_file(
    index: int,
    upload: UploadedFile,
    budget: RecordBudget,
    tracker: FileStatusTracker,
    settings: PipelineSettings,
    locale: str | None,
    error_log: ErrorLogBuffer | None,
) -> tuple[FileBatch | None, RecordBudget]:
    """Parse and normalize one file within the remaining budget."""
    if budget.exhausted:
        message = FILE_LIMIT_SKIP_TEMPLATE.format(limit=budget.limit)
        logger.warning("record limit reached (%d), skipping file=%s", budget.limit, upload.name)
        tracker.fail(index, message)
        _record_error(error_log, upload.name, -1, "RECORD_LIMIT_SKIPPED", message)
        return None, budget

    tracker.start(index)
    try:
        rows = read_sheet_rows(upload.content)
        filled = [i for i, row in enumerate(rows[HEADER_ROWS:]) if not is_blank_row(row)]
        records_in_file = len(filled)
        # 上限を超える行は正規化しない (検証エラーの対象外)
        allowed = min(records_in_file, budget.remaining)
        cut = HEADER_ROWS + (filled[allowed - 1] + 1 if allowed else 0)
        items = build_category_requests(
            rows[:cut],
            locale,
            options=settings.options,
            layout=settings.layout,
        )
    except ParseError as e:
        logger.error("file=%s parse failed: %s", upload.name, e)
        tracker.fail(index, str(e))
        _record_error(error_log, upload.name, -1, "PARSE_ERROR", str(e))
        return None, budget
    except RowValidationError as e:
        logger.error("file=%s %s", upload.name, e)
        tracker.fail(index, str(e))
        _record_error(error_log, upload.name, e.row_number, "ROW_VALIDATION_ERROR", str(e))
        return None, budget

    if not items:
        logger.warning("file=%s has no data rows", upload.name)
        tracker.fail(index, FILE_NO_RECORDS_MESSAGE)
        _record_error(error_log, upload.name, -1, "NO_VALID_RECORDS", FILE_NO_RECORDS_MESSAGE)
        return None, budget

    taken, budget = budget.take(len(items))
    logger.info(
        "file=%s records_in_file=%d records_added=%d total_records=%d",
        upload.name, records_in_file, taken, budget.used,
    )
    if taken < records_in_file:
        logger.warning(
            "file=%s partially processed due to record limit: skipped %d records",
            upload.name, records_in_file - taken,
        )
    return FileBatch(
        file_index=index,
        file_name=upload.name,
        items=tuple(items),
        records_in_file=records_in_file,
    ), budget


def process_files(
    files: Sequence[UploadedFile],
    *,
    settings: PipelineSettings | None = None,
    locale: str | None = None,
    tracker: FileStatusTracker | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> IngestResult:
    """Parse and normalize files in order under the global record ceiling.

    Files that contribute rows are left in the processing state; the caller
    completes or fails them once the submission outcome is known.
    """
    if settings is None:
        settings = PipelineSettings()
    if tracker is None:
        tracker = FileStatusTracker(files)

    budget = RecordBudget(limit=settings.max_total_records)
    batches: list[FileBatch] = []
    with ProgressTracker(len(files), description="Reading files") as progress:
        for index, upload in enumerate(files):
            progress.start_file(upload.name)
            batch, budget = _ingest_file(index, upload, budget, tracker, settings, locale, error_log)
            if batch is not None:
                batches.append(batch)
            progress.set_postfix(records=budget.used)
            progress.finish_file(success=batch is not None)

    return IngestResult(
        batches=tuple(batches),
        total_record_count=budget.used,
        limit_reached=budget.exhausted,
        outcomes=tracker.snapshot(),
    )


def _split_results(
    ingest: IngestResult, data: list[CategoryResponseItem]
) -> list[list[CategoryResponseItem] | None]:
    """Assign response items back to files by position (responses keep request order)."""
    if len(data) != len(ingest.items):
        logger.warning(
            "response count %d differs from request count %d; per-file results unavailable",
            len(data), len(ingest.items),
        )
        return [None] * len(ingest.batches)
    parts: list[list[CategoryResponseItem] | None] = []
    offset = 0
    for batch in ingest.batches:
        parts.append(data[offset : offset + len(batch.items)])
        offset += len(batch.items)
    return parts


def _run_aggregate(
    files: Sequence[UploadedFile],
    client: CategorizationClient,
    tracker: FileStatusTracker,
    settings: PipelineSettings,
    locale: str | None,
    error_log: ErrorLogBuffer | None,
) -> BatchRunResult:
    ingest = process_files(files, settings=settings, locale=locale, tracker=tracker, error_log=error_log)
    summary_kwargs = {"limit_reached": ingest.limit_reached, "record_limit": settings.max_total_records}

    if not ingest.items:
        logger.warning(NO_VALID_RECORDS_MESSAGE)
        return BatchRunResult(
            message=NO_VALID_RECORDS_MESSAGE,
            outcomes=tracker.snapshot(),
            limit_reached=ingest.limit_reached,
            summary=tracker.summary(**summary_kwargs),
        )

    logger.info(render_processing_message(ingest.total_record_count, len(files), ingest.limit_reached))
    submission = client.submit(ingest.items)

    if submission.success:
        for batch, part in zip(ingest.batches, _split_results(ingest, submission.data), strict=True):
            tracker.complete(batch.file_index, len(batch.items), part)
        message = SUCCESS_TEMPLATE.format(count=len(submission.data))
    else:
        error = submission.error or "Unknown error"
        for batch in ingest.batches:
            tracker.fail(batch.file_index, error)
            _record_error(error_log, batch.file_name, -1, submission.error_type or "SUBMISSION_ERROR", error)
        message = PROCESSING_FAILED_TEMPLATE.format(error=error)

    return BatchRunResult(
        message=message,
        outcomes=tracker.snapshot(),
        results=list(submission.data),
        total_record_count=ingest.total_record_count,
        limit_reached=ingest.limit_reached,
        summary=tracker.summary(**summary_kwargs),
        submitted=True,
    )


def _run_per_file(
    files: Sequence[UploadedFile],
    client: CategorizationClient,
    tracker: FileStatusTracker,
    settings: PipelineSettings,
    locale: str | None,
    error_log: ErrorLogBuffer | None,
    sleep: Callable[[float], None],
) -> BatchRunResult:
    budget = RecordBudget(limit=settings.max_total_records)
    results: list[CategoryResponseItem] = []
    remote_calls = 0

    with ProgressTracker(len(files), description="Categorizing files") as progress:
        for index, upload in enumerate(files):
            progress.start_file(upload.name)
            batch, budget = _ingest_file(index, upload, budget, tracker, settings, locale, error_log)
            if batch is None:
                progress.finish_file(success=False)
                continue

            # リモート呼び出しの間だけ待機 (最初の前・最後の後には待たない)
            if remote_calls > 0 and settings.inter_file_delay_seconds > 0:
                sleep(settings.inter_file_delay_seconds)
            submission = client.submit(list(batch.items))
            remote_calls += 1

            if submission.success:
                tracker.complete(index, len(batch.items), submission.data)
                results.extend(submission.data)
            else:
                error = submission.error or "Unknown error"
                tracker.fail(index, error)
                _record_error(error_log, upload.name, -1, submission.error_type or "SUBMISSION_ERROR", error)
            progress.set_postfix(records=budget.used, products=len(results))
            progress.finish_file(success=submission.success)

    summary = tracker.summary(limit_reached=budget.exhausted, record_limit=budget.limit)
    message = render_status_message(summary) if budget.used > 0 else NO_VALID_RECORDS_MESSAGE
    return BatchRunResult(
        message=message,
        outcomes=tracker.snapshot(),
        results=results,
        total_record_count=budget.used,
        limit_reached=budget.exhausted,
        summary=summary,
        submitted=remote_calls > 0,
    )


def run_batch(
    files: Sequence[UploadedFile],
    client: CategorizationClient,
    *,
    settings: PipelineSettings | None = None,
    locale: str | None = None,
    listener: StatusListener | None = None,
    sleep: Callable[[float], None] = time.sleep,
    error_log: ErrorLogBuffer | None = None,
) -> BatchRunResult:
    """Run a full batch: ingest files, submit, and report per-file outcomes.

    Args:
        files: Uploaded spreadsheets, processed in this order
        client: Categorization client used for remote submission
        settings: Ceiling, delay, mode, request options and column layout
        locale: Active UI locale (default request language)
        listener: Receives an immutable status snapshot after every transition
        sleep: Delay function for per-file mode
        error_log: Optional JSON Lines error buffer

    Returns:
        BatchRunResult with message, per-file outcomes and all results

    Raises:
        ProcessingError: settings.mode is not a known submission mode
    """
    if settings is None:
        settings = PipelineSettings()
    if settings.mode not in SUBMISSION_MODES:
        raise ProcessingError(f"unknown submission mode: {settings.mode!r}")

    if not files:
        logger.info(NO_FILES_MESSAGE)
        return BatchRunResult(message=NO_FILES_MESSAGE, outcomes=())

    tracker = FileStatusTracker(files)
    if listener is not None:
        tracker.subscribe(listener)

    logger.info("processing %d file(s) mode=%s limit=%d", len(files), settings.mode, settings.max_total_records)
    if settings.mode == "per_file":
        return _run_per_file(files, client, tracker, settings, locale, error_log, sleep)
    return _run_aggregate(files, client, tracker, settings, locale, error_log)
