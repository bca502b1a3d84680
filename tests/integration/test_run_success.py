from __future__ import annotations

import json
import re
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pandas as pd  # type: ignore
import pytest

from product_categorizer.cli import main as cli_main
from product_categorizer.services.categorization_client import CategorizationClient
from tests.helpers import RecordingHandler

"""Integration test: multi-file run through the CLI with a config file.

Verifies:
- .xlsx files on disk are decoded (dates, numbers, Korean text)
- a single aggregated request reaches the endpoint with config-driven options
- SUMMARY output matches the contract regex and exit code is 0
"""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+files=(\d+)\s+completed=(\d+)\s+failed=(\d+)\s+"
    r"records=(\d+)\s+products=(\d+)\s+limit_reached=(yes|no)$",
    re.MULTILINE,
)


def _make_excel_file(tmp_path: Path, name: str, rows: list[list[object]]) -> Path:
    """Create a real single-sheet Excel file."""
    excel_path = tmp_path / name
    with pd.ExcelWriter(excel_path, engine='openpyxl') as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Products", header=False, index=False)
    return excel_path


@pytest.fixture
def multi_file_setup(temp_workdir: Path) -> dict[str, Any]:
    data_dir = temp_workdir / "data"
    kitchen = _make_excel_file(
        data_dir, "kitchen.xlsx",
        [
            ["Kitchen products"],                                          # title row (ignored)
            ["No.", "Name", "Hashtags", "Keywords", "Image", "Status", "Maker"],
            [101, "머그컵", "#머그|#컵", "머그; 컵", "https://img.example.com/m.jpg", "판매중", "ACME"],
            [None, "Frying Pan", "", "pan,cookware\nsteel", "", "", ""],
        ],
    )
    garden = _make_excel_file(
        data_dir, "garden.xlsx",
        [
            ["Garden"],
            ["No.", "Name", "Hashtags", "Keywords", "Image", "Status", "Maker"],
            [7.0, "Hose", "#water", "hose", "http://img.example.com/h.png", date(2024, 5, 1), ""],
        ],
    )
    (temp_workdir / "config" / "categorizer.yml").write_text(
        "api:\n"
        "  endpoint: http://categorizer.test/match\n"
        "request_defaults:\n"
        "  language: ko\n"
        "  semantic_top_k: 25\n"
        "columns:\n"
        "  manufacturer: G\n",
        encoding="utf-8",
    )
    return {"files": [kitchen, garden], "expected_records": 3}


def test_multi_file_run_success_integration(multi_file_setup: dict[str, Any], capsys: Any, clean_logging) -> None:
    handler = RecordingHandler()

    def _factory(endpoint: str, **kwargs: Any) -> CategorizationClient:
        return CategorizationClient(endpoint, http_client=httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)

    with patch("product_categorizer.cli.app.CategorizationClient", _factory):
        exit_code = cli_main([str(p) for p in multi_file_setup["files"]])

    output = capsys.readouterr().out
    assert exit_code == 0, output

    match = SUMMARY_PATTERN.search(output)
    assert match is not None, f"SUMMARY line not found or malformed in output: {output}"
    assert match.groups() == ("2", "2", "0", "3", "3", "no")

    (payload,) = handler.payloads
    assert len(payload) == multi_file_setup["expected_records"]
    assert {item["language"] for item in payload} == {"ko"}
    assert {item["semantic_top_k"] for item in payload} == {25}

    mug, pan, hose = (item["input_data"] for item in payload)
    assert mug == {
        "product_number": 101,
        "product_name": "머그컵",
        "hashtags": ["#머그", "#컵"],
        "keywords": ["머그", "컵"],
        "main_image_link": "https://img.example.com/m.jpg",
        "sales_status": "판매중",
        "manufacturer": "ACME",
        "model_name": "",
        "edit_details": "",
    }
    # 品番が空 -> データ行の連番
    assert pan["product_number"] == 2
    assert pan["keywords"] == ["pan", "cookware", "steel"]
    assert pan["sales_status"] == "Unknown"
    assert hose["product_number"] == 7
    assert hose["sales_status"] == "2024-05-01"

    assert "ERROR" not in output
    assert not (Path("logs")).exists()


def test_record_ceiling_across_files_integration(temp_workdir: Path, capsys: Any, clean_logging, monkeypatch) -> None:
    monkeypatch.setenv("CATEGORIZER_API_URL", "http://categorizer.test/match")
    data_dir = temp_workdir / "data"
    header = [["t"], ["No.", "Name", "Hashtags", "Keywords", "Image", "Status"]]
    for name, start, count in [("1_big.xlsx", 1, 2500), ("2_rest.xlsx", 2501, 800), ("3_late.xlsx", 4000, 5)]:
        rows = header + [[n, f"P{n}", "", "k", "", ""] for n in range(start, start + count)]
        _make_excel_file(data_dir, name, rows)

    handler = RecordingHandler()

    def _factory(endpoint: str, **kwargs: Any) -> CategorizationClient:
        return CategorizationClient(endpoint, http_client=httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)

    with patch("product_categorizer.cli.app.CategorizationClient", _factory):
        exit_code = cli_main([str(data_dir), "--output", "results.json"])

    output = capsys.readouterr().out
    # 3つ目のファイルは上限到達でスキップ (明示的なエラー)
    assert exit_code == 2
    (payload,) = handler.payloads
    assert len(payload) == 3000
    assert payload[-1]["input_data"]["product_number"] == 3000
    assert "Skipped: record limit of 3000 reached before this file was processed." in output
    assert "SUMMARY files=3 completed=2 failed=1 records=3000 products=3000 limit_reached=yes" in output

    result = json.loads((temp_workdir / "results.json").read_text(encoding="utf-8"))
    assert result["total_record_count"] == 3000
    assert result["limit_reached"] is True
    assert [f["record_count"] for f in result["files"]] == [2500, 500, None]
