"""Shared fixtures for integration tests.

These tests use real infrastructure components (config loader,
DiskcacheAdapter, provider adapters, the composition root) with mocked
HTTP via respx.
"""

from __future__ import annotations

import os
from pathlib import Path

import httpx
import pytest
import respx

from cinesift.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's CINESIFT_* variables out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("CINESIFT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    return httpx.AsyncClient()


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(directory=tmp_path / "cache", ttl_seconds=3600)
    async with adapter:
        yield adapter


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router
