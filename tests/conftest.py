# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from product_categorizer.logging.init import reset_logging
from product_categorizer.services.categorization_client import CategorizationClient
from tests.helpers import TEST_ENDPOINT, RecordingHandler


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("CATEGORIZER_API_URL", raising=False)
        yield p


@pytest.fixture()
def echo_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture()
def make_client() -> Callable[..., CategorizationClient]:
    """Factory for a CategorizationClient wired to a mock transport."""
    clients: list[CategorizationClient] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> CategorizationClient:
        http = httpx.Client(transport=httpx.MockTransport(handler))
        client = CategorizationClient(TEST_ENDPOINT, http_client=http, **kwargs)
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c._http.close()


@pytest.fixture()
def clean_logging():
    reset_logging()
    yield
    reset_logging()
