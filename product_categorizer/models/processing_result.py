from __future__ import annotations

from dataclasses import dataclass, field

from .category_request import CategoryRequestItem
from .category_response import CategoryResponseItem
from .excel_file import FileProcessingResult

"""Processing result models for a batch categorization run.

FileBatch / IngestResult describe what the orchestrator accepted from the
uploaded files; StatusSummary and BatchRunResult describe the outcome after
submission.
"""


@dataclass(frozen=True)
class FileBatch:
    """Requests accepted from one file (already truncated to the record budget)."""
    file_index: int
    file_name: str
    items: tuple[CategoryRequestItem, ...]
    records_in_file: int  # 切り詰め前のデータ行数

    @property
    def truncated(self) -> bool:
        return len(self.items) < self.records_in_file


@dataclass(frozen=True)
class IngestResult:
    """Outcome of parsing + normalizing all files under the global ceiling."""
    batches: tuple[FileBatch, ...]
    total_record_count: int
    limit_reached: bool
    outcomes: tuple[FileProcessingResult, ...]

    @property
    def items(self) -> list[CategoryRequestItem]:
        """All accepted requests in file order."""
        return [item for batch in self.batches for item in batch.items]


@dataclass(frozen=True)
class StatusSummary:
    """Aggregated view over per-file outcomes."""
    total_files: int
    completed_files: int
    error_files: int
    total_records: int  # completed ファイルの record_count 合計
    total_products: int  # completed ファイルの results 件数合計
    limit_reached: bool = False
    record_limit: int = 3000


@dataclass(frozen=True)
class BatchRunResult:
    """Final result of a batch run, ready for presentation."""
    message: str
    outcomes: tuple[FileProcessingResult, ...]
    results: list[CategoryResponseItem] = field(default_factory=list)
    total_record_count: int = 0
    limit_reached: bool = False
    summary: StatusSummary | None = None
    submitted: bool = False  # リモート呼び出しを1回以上行ったか

    @property
    def success(self) -> bool:
        return self.summary is not None and self.summary.completed_files > 0 and self.summary.error_files == 0
