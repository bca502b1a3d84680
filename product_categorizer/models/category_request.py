from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

"""Categorization request models and their wire schemas.

One CategoryRequestItem is sent per product row. The JSON schemas below are
the contract checked before anything leaves the process (jsonschema).
"""

__all__ = [
    "Language",
    "language_for_locale",
    "CategoryInputData",
    "RequestOptions",
    "CategoryRequestItem",
    "URL_PATTERN",
    "CATEGORY_INPUT_DATA_SCHEMA",
    "CATEGORY_REQUEST_ITEM_SCHEMA",
    "CATEGORY_REQUEST_SCHEMA",
]


class Language(Enum):
    """Categorization language supported by the remote service."""
    EN = "en"
    KO = "ko"


def language_for_locale(locale: str | None) -> Language:
    """Map an active UI locale ("ko", "ko-KR", "en_US", ...) to a Language.

    Unknown or empty locales fall back to English.
    """
    if not locale:
        return Language.EN
    primary = locale.strip().replace("_", "-").split("-")[0].lower()
    for lang in Language:
        if lang.value == primary:
            return lang
    return Language.EN


@dataclass(frozen=True)
class CategoryInputData:
    """Canonical per-product payload built from one spreadsheet row."""
    product_number: int
    product_name: str
    keywords: list[str]
    main_image_link: str
    hashtags: list[str] = field(default_factory=list)
    sales_status: str = "Unknown"
    manufacturer: str = ""
    model_name: str = ""
    edit_details: str = ""


@dataclass(frozen=True)
class RequestOptions:
    """Submission-level options shared by every item of one batch."""
    language: Language = Language.EN
    semantic_top_k: int = 15
    first_category_via_llm: bool = False
    descriptive_title_via_llm: bool = True
    round_out_keywords_via_llm: bool = True
    broad_keyword_matching: bool = True


@dataclass(frozen=True)
class CategoryRequestItem:
    """One product plus the options it is categorized with."""
    input_data: CategoryInputData
    options: RequestOptions = field(default_factory=RequestOptions)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the flat wire object expected by the endpoint."""
        opts = self.options
        return {
            "language": opts.language.value,
            "semantic_top_k": opts.semantic_top_k,
            "first_category_via_llm": opts.first_category_via_llm,
            "descriptive_title_via_llm": opts.descriptive_title_via_llm,
            "round_out_keywords_via_llm": opts.round_out_keywords_via_llm,
            "broad_keyword_matching": opts.broad_keyword_matching,
            "input_data": asdict(self.input_data),
        }


# 空文字 (画像なし) または http(s) の絶対 URL
URL_PATTERN = r"^(https?://[^\s/$.?#][^\s]*)?$"

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CATEGORY_INPUT_DATA_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": [
        "product_number",
        "product_name",
        "hashtags",
        "keywords",
        "main_image_link",
        "sales_status",
        "manufacturer",
        "model_name",
        "edit_details",
    ],
    "properties": {
        "product_number": {"type": "integer"},
        "product_name": {"type": "string"},
        "hashtags": _STRING_LIST,
        "keywords": _STRING_LIST,
        "main_image_link": {"type": "string", "pattern": URL_PATTERN},
        "sales_status": {"type": "string"},
        "manufacturer": {"type": "string"},
        "model_name": {"type": "string"},
        "edit_details": {"type": "string"},
    },
    "additionalProperties": False,
}

CATEGORY_REQUEST_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": [
        "language",
        "semantic_top_k",
        "first_category_via_llm",
        "descriptive_title_via_llm",
        "round_out_keywords_via_llm",
        "broad_keyword_matching",
        "input_data",
    ],
    "properties": {
        "language": {"enum": [lang.value for lang in Language]},
        "semantic_top_k": {"type": "integer", "minimum": 1, "maximum": 50},
        "first_category_via_llm": {"type": "boolean"},
        "descriptive_title_via_llm": {"type": "boolean"},
        "round_out_keywords_via_llm": {"type": "boolean"},
        "broad_keyword_matching": {"type": "boolean"},
        "input_data": CATEGORY_INPUT_DATA_SCHEMA,
    },
    "additionalProperties": False,
}

CATEGORY_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": CATEGORY_REQUEST_ITEM_SCHEMA,
}
