from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence

from ..excel.reader import RawRow, column_letter, is_blank_row
from ..models.category_request import (
    CATEGORY_REQUEST_ITEM_SCHEMA,
    CategoryInputData,
    CategoryRequestItem,
    RequestOptions,
    language_for_locale,
)
from ..models.config_models import ColumnLayout
from .error_format import ValidationIssue, build_validator, collect_issues, format_issues

"""Row normalizer: spreadsheet rows -> validated categorization requests.

Upload format:
- row 1: title / header, row 2: sub-header (both always skipped)
- row 3+: one product per row, columns per ColumnLayout (A..F by default)

Blank data rows are skipped. Row numbers and synthesized product numbers
follow the row position in the sheet, so a blank row never shifts them.

Each item is validated as soon as it is built; the first invalid row stops the
file with a RowValidationError carrying the spreadsheet row number.
"""

__all__ = [
    "HEADER_ROWS",
    "RowValidationError",
    "build_category_requests",
    "parse_delimited_list",
    "parse_product_number",
]

logger = logging.getLogger(__name__)

HEADER_ROWS = 2
MAX_ROW_ISSUES = 3
DEFAULT_SALES_STATUS = "Unknown"

_DELIMITERS = re.compile(r"[,;|\n]")
_INTEGER_TEXT = re.compile(r"^[+-]?\d+(\.0+)?$")

_item_validator = build_validator(CATEGORY_REQUEST_ITEM_SCHEMA)


class RowValidationError(Exception):
    """Raised when a spreadsheet row does not produce a valid request item."""

    def __init__(self, row_number: int, product_name: str, issues: Sequence[ValidationIssue]) -> None:
        self.row_number = row_number
        self.product_name = product_name
        self.issues = list(issues)
        super().__init__(
            f'Excel row {row_number} (Product: "{product_name}") validation failed: '
            f"{format_issues(self.issues, max_errors=MAX_ROW_ISSUES)}"
        )


def parse_delimited_list(text: str | None) -> list[str]:
    """Split a cell on any of , ; | or newline, trimming and dropping empty tokens."""
    if not text:
        return []
    return [token.strip() for token in _DELIMITERS.split(text) if token.strip()]


def parse_product_number(text: str | None) -> int | None:
    """Parse a product number cell ("12", "+3", "2.0"); None when not an integer."""
    if text is None:
        return None
    stripped = text.strip()
    if not _INTEGER_TEXT.match(stripped):
        return None
    return int(stripped.split(".")[0])


def _cell(row: Mapping[str, str], letter: str | None) -> str:
    if letter is None:
        return ""
    value = row.get(letter)
    return "" if value is None else str(value)


def _build_item(
    row: Mapping[str, str], data_index: int, layout: ColumnLayout, options: RequestOptions
) -> CategoryRequestItem:
    product_number = parse_product_number(_cell(row, layout.product_number))
    if product_number is None:
        # スプレッドシート行番号ではなくデータ行の連番 (1始まり)
        product_number = data_index + 1
    input_data = CategoryInputData(
        product_number=product_number,
        product_name=_cell(row, layout.product_name),
        hashtags=parse_delimited_list(_cell(row, layout.hashtags)),
        keywords=parse_delimited_list(_cell(row, layout.keywords)),
        main_image_link=_cell(row, layout.main_image_link).strip(),
        sales_status=_cell(row, layout.sales_status).strip() or DEFAULT_SALES_STATUS,
        manufacturer=_cell(row, layout.manufacturer),
        model_name=_cell(row, layout.model_name),
        edit_details=_cell(row, layout.edit_details),
    )
    return CategoryRequestItem(input_data=input_data, options=options)


def build_category_requests(
    rows: Sequence[RawRow],
    locale: str | None = None,
    *,
    options: RequestOptions | None = None,
    layout: ColumnLayout | None = None,
) -> list[CategoryRequestItem]:
    """Transform decoded spreadsheet rows into validated request items.

    Args:
        rows: Rows from read_sheet_rows (headers included)
        locale: Active UI locale; sets the default language when options is None
        options: Submission-level options (language, top-k, feature flags)
        layout: Column letters of each product field

    Returns:
        One CategoryRequestItem per data row ([] when only headers are present)

    Raises:
        RowValidationError: On the first row failing schema validation
        TypeError: rows is not a list/tuple
    """
    if not isinstance(rows, (list, tuple)):
        raise TypeError(f"rows must be a list of spreadsheet rows, got {type(rows).__name__}")
    if options is None:
        options = RequestOptions(language=language_for_locale(locale))
    if layout is None:
        layout = ColumnLayout()

    items: list[CategoryRequestItem] = []
    for data_index, row in enumerate(rows[HEADER_ROWS:]):
        if is_blank_row(row):
            continue
        item = _build_item(row, data_index, layout, options)
        issues = collect_issues(_item_validator, item.to_dict())
        if issues:
            row_number = data_index + HEADER_ROWS + 1
            name = item.input_data.product_name or f"Product {column_letter(data_index)}"
            raise RowValidationError(row_number, name, issues)
        items.append(item)

    logger.debug("normalized %d rows into %d request items", len(rows), len(items))
    return items
