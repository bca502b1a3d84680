from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..models.category_request import CATEGORY_REQUEST_SCHEMA, CategoryRequestItem
from ..models.category_response import (
    CATEGORY_RESPONSE_SCHEMA,
    ERROR_RESPONSE_SCHEMA,
    CategoryResponseItem,
)
from ..models.config_models import DEFAULT_MAX_RECORDS
from .error_format import build_validator, collect_issues, format_issues, format_remote_detail

"""HTTP client for the remote categorization endpoint.

submit() never raises for expected failures; every outcome comes back as a
SubmissionResult so callers can always render a status line:

- LimitExceededError: more items than the per-submission limit (no request)
- RequestValidationError: payload does not match the request schema (no request)
- RemoteValidationError: non-2xx with FastAPI ``detail`` list
- RemoteGenericError: non-2xx with ``{"error": ...}`` or an unreadable body
- MalformedResponseError: 2xx whose body does not match the response schema
- NetworkError: transport failure (DNS, reset, timeout)
"""

__all__ = [
    "CategorizationClient",
    "CategorizationError",
    "LimitExceededError",
    "RequestValidationError",
    "RemoteValidationError",
    "RemoteGenericError",
    "MalformedResponseError",
    "NetworkError",
    "SubmissionResult",
]

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

_request_validator = build_validator(CATEGORY_REQUEST_SCHEMA)
_response_validator = build_validator(CATEGORY_RESPONSE_SCHEMA)
_error_validator = build_validator(ERROR_RESPONSE_SCHEMA)


class CategorizationError(Exception):
    """Base class for submission failures."""
    error_type = "CATEGORIZATION_ERROR"


class LimitExceededError(CategorizationError):
    error_type = "LIMIT_EXCEEDED"


class RequestValidationError(CategorizationError):
    error_type = "REQUEST_VALIDATION_ERROR"


class RemoteValidationError(CategorizationError):
    error_type = "REMOTE_VALIDATION_ERROR"


class RemoteGenericError(CategorizationError):
    error_type = "REMOTE_ERROR"


class MalformedResponseError(CategorizationError):
    error_type = "MALFORMED_RESPONSE"


class NetworkError(CategorizationError):
    error_type = "NETWORK_ERROR"


@dataclass(frozen=True)
class SubmissionResult:
    """Discriminated result of one submission."""
    success: bool
    data: list[CategoryResponseItem] = field(default_factory=list)
    error: str | None = None
    error_type: str | None = None

    @staticmethod
    def ok(data: list[CategoryResponseItem]) -> SubmissionResult:
        return SubmissionResult(success=True, data=data)

    @staticmethod
    def failed(exc: CategorizationError) -> SubmissionResult:
        return SubmissionResult(success=False, error=str(exc), error_type=exc.error_type)


def _error_from_response(response: httpx.Response) -> CategorizationError:
    reason = f": {response.reason_phrase}" if response.reason_phrase else ""
    fallback = RemoteGenericError(f"API request failed with status {response.status_code}{reason}")
    try:
        body: Any = response.json()
    except ValueError:
        logger.debug("error body is not JSON (status=%s)", response.status_code)
        return fallback

    if collect_issues(_error_validator, body):
        # 想定外の形式: detail の先頭だけでも拾う
        if isinstance(body, dict) and isinstance(body.get("detail"), list) and body["detail"]:
            first = body["detail"][0]
            msg = first.get("msg") if isinstance(first, dict) else None
            return RemoteValidationError(f"API validation error: {msg or 'Unknown validation error'}")
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return RemoteGenericError(body["error"])
        return fallback

    if "detail" in body:
        return RemoteValidationError(f"API validation failed: {format_remote_detail(body['detail'])}")
    return RemoteGenericError(body["error"])


class CategorizationClient:
    """Submits validated request batches to the categorization endpoint.

    The endpoint address comes from configuration (CATEGORIZER_API_URL or
    api.endpoint) and is treated as opaque.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 60.0,
        max_records: int = DEFAULT_MAX_RECORDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.max_records = max_records
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> CategorizationClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def submit(self, items: Sequence[CategoryRequestItem]) -> SubmissionResult:
        """Send items and return the validated response or a classified failure."""
        start = time.perf_counter()
        count = len(items)
        try:
            data = self._submit(items)
        except CategorizationError as e:
            elapsed = time.perf_counter() - start
            logger.warning(
                "categorization failed products=%d elapsed=%.2fs type=%s: %s",
                count, elapsed, e.error_type, e,
            )
            return SubmissionResult.failed(e)

        elapsed = time.perf_counter() - start
        logger.info("categorization completed products=%d results=%d elapsed=%.2fs", count, len(data), elapsed)
        return SubmissionResult.ok(data)

    def _submit(self, items: Sequence[CategoryRequestItem]) -> list[CategoryResponseItem]:
        if len(items) > self.max_records:
            raise LimitExceededError(
                f"Too many records: {len(items)}. "
                f"Maximum allowed is {self.max_records} records per submission."
            )
        if not items:
            return []

        payload = [item.to_dict() for item in items]
        issues = collect_issues(_request_validator, payload)
        if issues:
            raise RequestValidationError(f"Product data validation failed: {format_issues(issues)}")

        body = json.dumps(payload, ensure_ascii=False)
        logger.debug("POST %s items=%d bytes=%d", self.endpoint, len(payload), len(body))
        try:
            response = self._http.post(self.endpoint, content=body.encode("utf-8"), headers=REQUEST_HEADERS)
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to submit products for categorization: {e}") from e

        if not response.is_success:
            raise _error_from_response(response)

        try:
            data: Any = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "API returned invalid response format: response body is not valid JSON"
            ) from e

        issues = collect_issues(_response_validator, data)
        if issues:
            raise MalformedResponseError(
                f"API returned invalid response format: {format_issues(issues, max_errors=3)}"
            )
        return [CategoryResponseItem.from_dict(obj) for obj in data]
