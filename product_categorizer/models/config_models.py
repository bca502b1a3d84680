from __future__ import annotations

from dataclasses import dataclass, field

from .category_request import RequestOptions

"""Pipeline settings dataclasses.

These are the domain-side settings consumed by the normalizer and the
orchestrator. The YAML loader in product_categorizer.config.loader builds
them from config/categorizer.yml.
"""

__all__ = [
    "ColumnLayout",
    "PipelineSettings",
    "SUBMISSION_MODES",
    "DEFAULT_MAX_RECORDS",
]

DEFAULT_MAX_RECORDS = 3000
SUBMISSION_MODES = ("aggregate", "per_file")


@dataclass(frozen=True)
class ColumnLayout:
    """Spreadsheet column letters holding each product field.

    None means the field is not present in the upload format and falls back
    to its default ("" for free-text fields).
    """
    product_number: str = "A"
    product_name: str = "B"
    hashtags: str = "C"
    keywords: str = "D"
    main_image_link: str = "E"
    sales_status: str = "F"
    manufacturer: str | None = None
    model_name: str | None = None
    edit_details: str | None = None


@dataclass(frozen=True)
class PipelineSettings:
    """Settings for one batch run."""
    max_total_records: int = DEFAULT_MAX_RECORDS  # 複数ファイル合計の上限
    inter_file_delay_seconds: float = 1.0  # per_file モードのリモート呼び出し間隔
    mode: str = "aggregate"
    options: RequestOptions | None = None  # None -> locale から言語を決定
    layout: ColumnLayout = field(default_factory=ColumnLayout)
