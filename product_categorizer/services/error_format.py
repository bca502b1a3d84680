from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator

"""Validation issue collection and human-readable formatting.

Two sources of validation problems end up in front of the user:
- local jsonschema validation of request / response payloads
- FastAPI-style ``{"detail": [{"type", "loc", "msg"}]}`` bodies from the
  remote categorization service

Both are rendered as single-line ``path: message`` lists so they can be shown
directly next to a file's status.
"""

__all__ = [
    "ValidationIssue",
    "build_validator",
    "collect_issues",
    "format_issues",
    "format_remote_detail",
]

_REQUIRED_RE = re.compile(r"^'(?P<name>.+)' is a required property$")

_JSON_TYPE_NAMES: dict[type, str] = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
    type(None): "null",
}


@dataclass(frozen=True)
class ValidationIssue:
    """One validation problem at a dotted field path."""
    path: str
    message: str
    kind: str  # jsonschema keyword or remote error type

    def render(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


def build_validator(schema: dict[str, Any]) -> Draft202012Validator:
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def _json_type_name(value: Any) -> str:
    return _JSON_TYPE_NAMES.get(type(value), type(value).__name__)


def _issue_from_error(error: Any) -> ValidationIssue:
    parts = [str(p) for p in error.absolute_path]
    keyword = str(error.validator)
    message = error.message

    if keyword == "required":
        m = _REQUIRED_RE.match(error.message)
        if m:
            parts.append(m.group("name"))
        message = "This field is required"
    elif keyword == "type":
        expected = error.validator_value
        if isinstance(expected, list):
            expected = " or ".join(expected)
        message = f"Expected {expected} but received {_json_type_name(error.instance)}"
    elif keyword == "minimum":
        message = f"Value must be at least {error.validator_value}"
    elif keyword == "maximum":
        message = f"Value must be at most {error.validator_value}"
    elif keyword == "enum":
        choices = ", ".join(str(v) for v in error.validator_value)
        message = f"Must be one of: {choices} (received {error.instance!r})"
    elif keyword == "pattern" and parts and parts[-1].endswith("link"):
        message = f"Invalid URL (received {error.instance!r})"

    return ValidationIssue(path=".".join(parts), message=message, kind=keyword)


def collect_issues(validator: Draft202012Validator, document: Any) -> list[ValidationIssue]:
    """Validate document and return every issue (empty list when valid)."""
    return [_issue_from_error(e) for e in validator.iter_errors(document)]


def format_issues(issues: Sequence[ValidationIssue], max_errors: int = 5) -> str:
    """Render issues as ``path: message; path: message (+N more)``."""
    shown = [issue.render() for issue in issues[:max_errors]]
    text = "; ".join(shown)
    remaining = len(issues) - max_errors
    if remaining > 0:
        text += f" (+{remaining} more)"
    return text


def _friendly_remote_message(error_type: str, msg: str) -> str:
    lowered = msg.lower()
    if error_type == "missing" or "field required" in lowered:
        return "This field is required"
    if error_type == "list_type" or msg == "Input should be a valid list":
        return "Expected a list but received a different type"
    return msg


def format_remote_detail(detail: Iterable[dict[str, Any]], max_errors: int = 5) -> str:
    """Format FastAPI-style validation error details into one line.

    >>> format_remote_detail([{"type": "missing", "loc": ["body", 0, "price"], "msg": "Field required"}])
    'body.0.price: This field is required'
    """
    issues = [
        ValidationIssue(
            path=".".join(str(p) for p in entry.get("loc", [])),
            message=_friendly_remote_message(str(entry.get("type", "")), str(entry.get("msg", ""))),
            kind=str(entry.get("type", "")),
        )
        for entry in detail
    ]
    return format_issues(issues, max_errors=max_errors)
