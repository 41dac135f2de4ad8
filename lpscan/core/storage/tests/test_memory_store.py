"""Tests for the in-process cursor store."""
import asyncio

import pytest

from lpscan.core.storage import MemoryCursorStore


class TestMemoryCursorStore:

    @pytest.mark.asyncio
    async def test_unset_cursor_accepts_any_expected(self):
        store = MemoryCursorStore()
        assert await store.get_cursor() is None
        assert await store.compare_and_set_cursor(500, 600) is True
        assert await store.get_cursor() == 600

    @pytest.mark.asyncio
    async def test_stale_expected_value_loses(self):
        store = MemoryCursorStore(initial=100)
        assert await store.compare_and_set_cursor(90, 190) is False
        assert await store.get_cursor() == 100

    @pytest.mark.asyncio
    async def test_only_one_concurrent_winner(self):
        store = MemoryCursorStore(initial=0)
        results = await asyncio.gather(
            *(store.compare_and_set_cursor(0, 10) for _ in range(5))
        )
        assert results.count(True) == 1
        assert await store.get_cursor() == 10
