from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""Categorization response models and schemas for the remote endpoint."""

__all__ = [
    "CategoryResponseItem",
    "CATEGORY_RESPONSE_ITEM_SCHEMA",
    "CATEGORY_RESPONSE_SCHEMA",
    "ERROR_DETAIL_SCHEMA",
    "ERROR_RESPONSE_SCHEMA",
]


@dataclass(frozen=True)
class CategoryResponseItem:
    """Enriched result for one product.

    original_* fields echo the request; the rest are the service's enriched
    values. brand / manufacturer / model_name / detailed_description_editing
    are None when the service could not determine them.
    """
    product_number: int
    original_product_name: str
    original_keywords: list[str]
    original_main_image_link: str
    hashtags: list[str]
    sales_status: str
    matched_categories: list[str]
    product_name: str
    keywords: list[str]
    main_image_link: str
    category_number: str
    brand: str | None = None
    manufacturer: str | None = None
    model_name: str | None = None
    detailed_description_editing: str | None = None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CategoryResponseItem:
        """Build from an already schema-validated response object (extra keys ignored)."""
        return CategoryResponseItem(
            product_number=data["product_number"],
            original_product_name=data["original_product_name"],
            original_keywords=list(data["original_keywords"]),
            original_main_image_link=data["original_main_image_link"],
            hashtags=list(data["hashtags"]),
            sales_status=data["sales_status"],
            matched_categories=list(data["matched_categories"]),
            product_name=data["product_name"],
            keywords=list(data["keywords"]),
            main_image_link=data["main_image_link"],
            category_number=data["category_number"],
            brand=data.get("brand"),
            manufacturer=data.get("manufacturer"),
            model_name=data.get("model_name"),
            detailed_description_editing=data.get("detailed_description_editing"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_STRING_LIST = {"type": "array", "items": {"type": "string"}}
_NULLABLE_STRING = {"type": ["string", "null"]}

CATEGORY_RESPONSE_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": [
        "product_number",
        "original_product_name",
        "original_keywords",
        "original_main_image_link",
        "hashtags",
        "sales_status",
        "matched_categories",
        "product_name",
        "keywords",
        "main_image_link",
        "category_number",
        "brand",
        "manufacturer",
        "model_name",
        "detailed_description_editing",
    ],
    "properties": {
        "product_number": {"type": "integer"},
        "original_product_name": {"type": "string"},
        "original_keywords": _STRING_LIST,
        "original_main_image_link": {"type": "string"},
        "hashtags": _STRING_LIST,
        "sales_status": {"type": "string"},
        "matched_categories": _STRING_LIST,
        "product_name": {"type": "string"},
        "keywords": _STRING_LIST,
        "main_image_link": {"type": "string"},
        "category_number": {"type": "string"},
        "brand": _NULLABLE_STRING,
        "manufacturer": _NULLABLE_STRING,
        "model_name": _NULLABLE_STRING,
        "detailed_description_editing": _NULLABLE_STRING,
    },
}

CATEGORY_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": CATEGORY_RESPONSE_ITEM_SCHEMA,
}

ERROR_DETAIL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["type", "loc", "msg"],
    "properties": {
        "type": {"type": "string"},
        "loc": {"type": "array", "items": {"type": ["string", "integer"]}},
        "msg": {"type": "string"},
    },
}

# FastAPI 形式 ({detail: [...]}) と汎用形式 ({error: "..."}) の両方を受け付ける
ERROR_RESPONSE_SCHEMA: dict[str, Any] = {
    "anyOf": [
        {
            "type": "object",
            "required": ["detail"],
            "properties": {"detail": {"type": "array", "items": ERROR_DETAIL_SCHEMA}},
        },
        {
            "type": "object",
            "required": ["error"],
            "properties": {
                "error": {"type": "string"},
                "code": {"type": "string"},
                "details": {"type": "object"},
            },
        },
    ]
}
