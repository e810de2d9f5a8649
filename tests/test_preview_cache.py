# tests/test_preview_cache.py

from __future__ import annotations

import pytest

from tasker_client.api.preview_cache import PreviewUrlCache

from .fakes import FakeBackend


@pytest.mark.asyncio
async def test_same_key_and_status_is_fetched_once() -> None:
    backend = FakeBackend()
    cache = PreviewUrlCache(backend)

    first = await cache.get("s1", file_key="k1", status="pending")
    second = await cache.get("s1", file_key="k1", status="pending")

    assert first == second
    assert backend.preview_calls == 1
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_status_is_part_of_the_key() -> None:
    backend = FakeBackend()
    cache = PreviewUrlCache(backend)

    pending = await cache.get("s1", file_key="k1", status="pending")
    approved = await cache.get("s1", file_key="k1", status="approved")

    assert pending != approved
    assert backend.preview_calls == 2


@pytest.mark.asyncio
async def test_clear_forces_refetch() -> None:
    backend = FakeBackend()
    cache = PreviewUrlCache(backend)
    await cache.get("s1", file_key="k1", status="pending")

    cache.clear()
    await cache.get("s1", file_key="k1", status="pending")

    assert backend.preview_calls == 2
