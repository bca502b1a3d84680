from __future__ import annotations

import pytest

from product_categorizer.excel.reader import read_sheet_rows
from product_categorizer.models.category_request import Language, RequestOptions
from product_categorizer.models.config_models import ColumnLayout
from product_categorizer.services.normalizer import (
    RowValidationError,
    build_category_requests,
    parse_delimited_list,
    parse_product_number,
)
from tests.helpers import xlsx_bytes

HEADERS = [
    {"A": "Upload", "B": "", "C": "", "D": "", "E": "", "F": ""},
    {"A": "No.", "B": "Name", "C": "Hashtags", "D": "Keywords", "E": "Image", "F": "Status"},
]


def _row(a="", b="", c="", d="", e="", f="", **extra) -> dict[str, str]:
    return {"A": a, "B": b, "C": c, "D": d, "E": e, "F": f, **extra}


@pytest.mark.parametrize(
    "text,expected",
    [
        ("a, b;c|d", ["a", "b", "c", "d"]),
        ("a\nb", ["a", "b"]),
        (" x ,, ;y ", ["x", "y"]),
        ("", []),
        (None, []),
        ("single", ["single"]),
        ("  tag1  ,  , tag2;  ; tag3|tag4  \n  \n tag5  ", ["tag1", "tag2", "tag3", "tag4", "tag5"]),
    ],
)
def test_parse_delimited_list(text, expected):
    assert parse_delimited_list(text) == expected


@pytest.mark.parametrize(
    "text,expected",
    [("7", 7), ("2.0", 2), ("-3", -3), (" 42 ", 42), ("2.5", None), ("abc", None), ("", None), (None, None)],
)
def test_parse_product_number(text, expected):
    assert parse_product_number(text) == expected


def test_two_header_rows_are_always_skipped():
    assert build_category_requests(HEADERS) == []
    assert build_category_requests(HEADERS[:1]) == []
    assert build_category_requests([]) == []
    items = build_category_requests(HEADERS + [_row("1", "Mug")])
    assert len(items) == 1


def test_end_to_end_three_data_rows():
    rows = HEADERS + [
        _row("1", "Blue Mug", "#mug, #blue", "mug;cup|ceramic", "https://img.example.com/1.jpg", "On Sale"),
        _row("", "Red Pan", "", "pan\ncookware", "", ""),
        _row("2.0", "Green Bowl", "#bowl", "bowl", "http://img.example.com/3.png", "Sold Out"),
    ]
    items = build_category_requests(rows, "en")
    assert [i.input_data.product_number for i in items] == [1, 2, 2]
    first, second, third = (i.input_data for i in items)
    assert first.hashtags == ["#mug", "#blue"]
    assert first.keywords == ["mug", "cup", "ceramic"]
    assert first.sales_status == "On Sale"
    assert second.keywords == ["pan", "cookware"]
    assert second.hashtags == []
    assert second.main_image_link == ""
    assert second.sales_status == "Unknown"
    assert third.main_image_link == "http://img.example.com/3.png"
    assert all(i.input_data.manufacturer == "" and i.input_data.edit_details == "" for i in items)


def test_synthesized_product_number_is_data_row_ordinal():
    rows = HEADERS + [_row("10", "a"), _row("", "b"), _row("n/a", "c")]
    numbers = [i.input_data.product_number for i in build_category_requests(rows)]
    # データ行の連番 (1始まり) で補完
    assert numbers == [10, 2, 3]


def test_language_follows_locale_when_no_options():
    rows = HEADERS + [_row("1", "a")]
    assert build_category_requests(rows, "ko-KR")[0].options.language == Language.KO
    assert build_category_requests(rows, "fr")[0].options.language == Language.EN
    assert build_category_requests(rows)[0].options.language == Language.EN


def test_explicit_options_are_applied_to_every_item():
    opts = RequestOptions(language=Language.KO, semantic_top_k=30, first_category_via_llm=True)
    rows = HEADERS + [_row("1", "a"), _row("2", "b")]
    items = build_category_requests(rows, "en", options=opts)
    assert all(i.options is opts for i in items)
    wire = items[0].to_dict()
    assert wire["language"] == "ko"
    assert wire["semantic_top_k"] == 30
    assert wire["first_category_via_llm"] is True
    assert wire["input_data"]["product_name"] == "a"


def test_custom_layout_reads_extra_columns():
    layout = ColumnLayout(manufacturer="G", model_name="H", edit_details="I")
    rows = HEADERS + [_row("1", "Mug", G="ACME", H="M-1", I="shorter title")]
    data = build_category_requests(rows, layout=layout)[0].input_data
    assert (data.manufacturer, data.model_name, data.edit_details) == ("ACME", "M-1", "shorter title")


def test_invalid_row_reports_spreadsheet_row_number():
    rows = HEADERS + [
        _row("1", "Good", e="https://img.example.com/a.jpg"),
        _row("2", "Broken Mug", e="not a url"),
    ]
    with pytest.raises(RowValidationError) as e:
        build_category_requests(rows)
    err = e.value
    assert err.row_number == 4
    assert err.product_name == "Broken Mug"
    assert str(err).startswith('Excel row 4 (Product: "Broken Mug") validation failed: ')
    assert "input_data.main_image_link: Invalid URL" in str(err)


def test_invalid_row_without_name_uses_placeholder():
    rows = HEADERS + [_row("1", "", e="ftp://example.com/x.jpg")]
    with pytest.raises(RowValidationError) as e:
        build_category_requests(rows)
    assert e.value.row_number == 3
    assert 'Product: "Product A"' in str(e.value)


def test_out_of_range_options_fail_validation():
    rows = HEADERS + [_row("1", "a")]
    with pytest.raises(RowValidationError) as e:
        build_category_requests(rows, options=RequestOptions(semantic_top_k=99))
    assert "semantic_top_k: Value must be at most 50" in str(e.value)


def test_non_list_rows_is_programmer_error():
    with pytest.raises(TypeError):
        build_category_requests("not rows")  # type: ignore[arg-type]


def test_sheet_with_partially_filled_rows_end_to_end():
    content = xlsx_bytes([
        ["Upload"],
        ["No.", "Name", "Hashtags", "Keywords", "Image", "Status"],
        [None, "Product A", "#a", "x", None, "On Sale"],
        ["2", "Product B", None, "y", None, None],
        [None, "Product C", None, None, None, None],
    ])
    items = build_category_requests(read_sheet_rows(content))
    assert [i.input_data.product_number for i in items] == [1, 2, 3]
    assert items[2].input_data.product_name == "Product C"
    assert items[2].input_data.sales_status == "Unknown"
    assert items[2].input_data.keywords == [] and items[2].input_data.hashtags == []


def test_blank_title_row_still_counts_as_header():
    content = xlsx_bytes([
        [None] * 6,
        ["No.", "Name", "Hashtags", "Keywords", "Image", "Status"],
        [1, "Mug", None, "cup", None, None],
        [2, "Cup", None, "cup", None, None],
    ])
    items = build_category_requests(read_sheet_rows(content))
    assert [i.input_data.product_name for i in items] == ["Mug", "Cup"]


def test_blank_data_row_keeps_row_numbers_and_ordinals():
    content = xlsx_bytes([
        ["Upload"],
        ["No.", "Name", "Hashtags", "Keywords", "Image", "Status"],
        [None, "First", None, "a", None, None],
        [None] * 6,
        [None, "Third", None, "c", None, None],
    ])
    items = build_category_requests(read_sheet_rows(content))
    # 空行は送信対象外だが位置は保持
    assert [(i.input_data.product_name, i.input_data.product_number) for i in items] == [
        ("First", 1),
        ("Third", 3),
    ]


def test_blank_row_does_not_shift_reported_row_number():
    content = xlsx_bytes([
        ["Upload"],
        ["No.", "Name", "Hashtags", "Keywords", "Image", "Status"],
        [1, "Good", None, "a", None, None],
        [None] * 6,
        [3, "Bad", None, "b", "www.example.com/bad.jpg", None],
    ])
    with pytest.raises(RowValidationError) as e:
        build_category_requests(read_sheet_rows(content))
    assert e.value.row_number == 5
    assert str(e.value).startswith('Excel row 5 (Product: "Bad") validation failed: ')
