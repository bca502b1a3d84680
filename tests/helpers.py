"""Test helpers: real .xlsx builders and a recording mock transport handler."""
from __future__ import annotations

import io
import json
from collections.abc import Callable
from typing import Any

import httpx
import pandas as pd

from product_categorizer.models.excel_file import UploadedFile

TEST_ENDPOINT = "http://categorizer.test/match"

HEADER_ROWS = [
    ["Product upload", "", "", "", "", ""],
    ["No.", "Name", "Hashtags", "Keywords", "Image", "Status"],
]


def xlsx_bytes(rows: list[list[object]], sheet_name: str = "Products") -> bytes:
    """Build a real .xlsx workbook (single sheet, no pandas header/index)."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return buf.getvalue()


def product_rows(count: int, start: int = 1, prefix: str = "Item") -> list[list[object]]:
    """Two header rows followed by `count` valid product rows."""
    data = [
        [n, f"{prefix} {n}", "#tag", "alpha, beta", f"https://img.example.com/{n}.jpg", "On Sale"]
        for n in range(start, start + count)
    ]
    return HEADER_ROWS + data


def upload(name: str, rows: list[list[object]]) -> UploadedFile:
    return UploadedFile(name=name, content=xlsx_bytes(rows))


def echo_response(item: dict[str, Any]) -> dict[str, Any]:
    """Response object the categorization service would return for a request item."""
    data = item["input_data"]
    return {
        "product_number": data["product_number"],
        "original_product_name": data["product_name"],
        "original_keywords": data["keywords"],
        "original_main_image_link": data["main_image_link"],
        "hashtags": data["hashtags"],
        "sales_status": data["sales_status"],
        "matched_categories": ["Home > Kitchen"],
        "product_name": data["product_name"].upper(),
        "keywords": data["keywords"] + ["extra"],
        "main_image_link": data["main_image_link"],
        "category_number": "50000123",
        "brand": None,
        "manufacturer": data["manufacturer"] or None,
        "model_name": None,
        "detailed_description_editing": None,
    }


class RecordingHandler:
    """httpx.MockTransport handler that echoes items back and records requests."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = respond

    @property
    def payloads(self) -> list[list[dict[str, Any]]]:
        return [json.loads(r.content) for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._respond is not None:
            return self._respond(request)
        items = json.loads(request.content)
        return httpx.Response(200, json=[echo_response(i) for i in items])
