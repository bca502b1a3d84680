from __future__ import annotations

import io
from collections.abc import Iterable
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import pandas as pd

"""Spreadsheet reader for product upload files.

The first worksheet is decoded into generic rows keyed by spreadsheet column
letters (A, B, ..., Z, AA, ...). No product knowledge lives here; header rows
are kept and skipped later by the normalizer. Rows keep their sheet position:
blank rows inside the sheet are returned as rows of "" cells, only trailing
blank rows are trimmed.

Cell conversion:
- empty / None / NaN -> ""
- date or datetime -> "YYYY-MM-DD"
- integral numbers -> "2" (never "2.0")
"""

__all__ = [
    "ParseError",
    "RawRow",
    "column_letter",
    "column_index",
    "is_blank_row",
    "read_sheet_rows",
]

RawRow = dict[str, str]


class ParseError(Exception):
    """Raised when a workbook cannot be decoded or has no usable sheet."""


def column_letter(index: int) -> str:
    """Return the spreadsheet column letter for a 0-based column index.

    Bijective base-26: 0 -> "A", 25 -> "Z", 26 -> "AA", 27 -> "AB".
    """
    if index < 0:
        raise ValueError(f"column index must be >= 0: {index}")
    letters = ""
    n = index + 1
    while n > 0:
        rem = (n - 1) % 26
        letters = chr(65 + rem) + letters
        n = (n - 1) // 26
    return letters


def column_index(letter: str) -> int:
    """Inverse of column_letter ("A" -> 0, "AA" -> 26)."""
    if not letter or not letter.isalpha() or not letter.isascii():
        raise ValueError(f"invalid column letter: {letter!r}")
    n = 0
    for ch in letter.upper():
        n = n * 26 + (ord(ch) - 64)
    return n - 1


def _cell_to_text(value: Any) -> str:
    if value is None or value is pd.NaT:
        return ""
    # datetime / Timestamp も日付部分のみ
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)


def _is_blank_row(cells: Iterable[str]) -> bool:
    return all(c.strip() == "" for c in cells)


def is_blank_row(row: RawRow) -> bool:
    """True when every cell of a decoded row is empty or whitespace."""
    return _is_blank_row(row.values())


def _open_workbook(source: bytes | Path) -> pd.ExcelFile:
    if isinstance(source, (bytes, bytearray)):
        return pd.ExcelFile(io.BytesIO(bytes(source)))
    return pd.ExcelFile(source)


def read_sheet_rows(source: bytes | Path, sheet_index: int = 0) -> list[RawRow]:
    """Decode a workbook and return the nominated sheet as column-letter rows.

    Parameters
    ----------
    source: xlsx の中身 (bytes) またはファイルパス
    sheet_index: 対象シート (既定は先頭シート)

    Raises
    ------
    ParseError: the workbook cannot be decoded, has no worksheets, or lacks
        the nominated sheet.
    """
    try:
        xls = _open_workbook(source)
    except Exception as e:
        raise ParseError(f"Excel file processing failed: {e}") from e

    sheet_names = list(xls.sheet_names)
    if not sheet_names:
        raise ParseError("No worksheets found in the Excel file")
    if sheet_index < 0 or sheet_index >= len(sheet_names):
        raise ParseError(f"Worksheet index {sheet_index} not found in the Excel file")

    try:
        # dtype=object + keep_default_na=False: "NA" 等の文字列をそのまま残す
        df = xls.parse(sheet_names[sheet_index], header=None, dtype=object, keep_default_na=False)
    except Exception as e:
        raise ParseError(f"Excel file processing failed: {e}") from e

    converted: list[list[str]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = [_cell_to_text(v) for v in raw]
        while cells and cells[-1] == "":
            cells.pop()
        converted.append(cells)
    # 行位置は保持する (空行も残し、末尾の空行のみ除去)
    while converted and _is_blank_row(converted[-1]):
        converted.pop()

    if not converted:
        return []

    max_columns = max(len(cells) for cells in converted)
    letters = [column_letter(i) for i in range(max_columns)]
    rows: list[RawRow] = []
    for cells in converted:
        padded = cells + [""] * (max_columns - len(cells))
        rows.append(dict(zip(letters, padded, strict=True)))
    return rows
