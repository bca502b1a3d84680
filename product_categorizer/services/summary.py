from __future__ import annotations

from ..models.processing_result import StatusSummary

"""Status message and SUMMARY line rendering for batch runs.

Message templates are plain ``str.format`` templates so the presentation
layer can swap or translate them. The per-file summary has two distinct
variants depending on whether the global record ceiling was hit.
"""

NO_FILES_MESSAGE = "Please upload files to process."
NO_VALID_RECORDS_MESSAGE = "No valid records found in the uploaded files."
PROCESSING_RECORDS_TEMPLATE = "Processing {count} records from {file_count} file(s)..."
PROCESSING_RECORDS_LIMIT_TEMPLATE = "Processing {count} records (maximum limit reached)..."
SUCCESS_TEMPLATE = "Successfully processed {count} products. Categories received!"
PROCESSING_FAILED_TEMPLATE = "Processing failed: {error}"

STATUS_SUMMARY_TEMPLATE = (
    "{completed} completed, {failed} failed: "
    "{records} records from {file_count} file(s) -> {products} products categorized."
)
STATUS_SUMMARY_LIMIT_TEMPLATE = (
    "{completed} completed, {failed} failed: "
    "{records} records processed (maximum limit of {limit} reached) -> {products} products categorized."
)

FILE_LIMIT_SKIP_TEMPLATE = "Skipped: record limit of {limit} reached before this file was processed."
FILE_NO_RECORDS_MESSAGE = "No valid records found in the file."


def render_processing_message(count: int, file_count: int, limit_reached: bool) -> str:
    """Progress message shown before the aggregated submission."""
    if limit_reached:
        return PROCESSING_RECORDS_LIMIT_TEMPLATE.format(count=count)
    return PROCESSING_RECORDS_TEMPLATE.format(count=count, file_count=file_count)


def render_status_message(summary: StatusSummary) -> str:
    """Render the aggregated per-file status message.

    Examples:
        >>> s = StatusSummary(total_files=2, completed_files=2, error_files=0,
        ...                   total_records=10, total_products=10)
        >>> render_status_message(s)
        '2 completed, 0 failed: 10 records from 2 file(s) -> 10 products categorized.'
    """
    if summary.limit_reached:
        return STATUS_SUMMARY_LIMIT_TEMPLATE.format(
            completed=summary.completed_files,
            failed=summary.error_files,
            records=summary.total_records,
            limit=summary.record_limit,
            products=summary.total_products,
        )
    return STATUS_SUMMARY_TEMPLATE.format(
        completed=summary.completed_files,
        failed=summary.error_files,
        records=summary.total_records,
        file_count=summary.total_files,
        products=summary.total_products,
    )


def render_summary_line(summary: StatusSummary) -> str:
    """Render a machine-friendly SUMMARY line.

    Format:
    SUMMARY files={total} completed={completed} failed={failed} records={records}
    products={products} limit_reached={yes|no}
    """
    return (
        f"SUMMARY files={summary.total_files} "
        f"completed={summary.completed_files} "
        f"failed={summary.error_files} "
        f"records={summary.total_records} "
        f"products={summary.total_products} "
        f"limit_reached={'yes' if summary.limit_reached else 'no'}"
    )
