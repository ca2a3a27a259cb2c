"""Tests for page walks, cursor walks and fan-out."""

import asyncio

import pytest

from connector.aggregate import fan_out, walk_cursor, walk_pages
from connector.errors import DecodeFailedError, NotFoundError, ProviderInternalError


class TestWalkPages:
    @pytest.mark.asyncio
    async def test_full_page_then_short_page(self):
        pages = {1: list(range(100)), 2: list(range(100, 103))}
        requested = []

        async def fetch(page):
            requested.append(page)
            return pages.get(page, [])

        items = await walk_pages(fetch, 100)
        assert len(items) == 103
        assert items == list(range(103))
        assert requested == [1, 2]

    @pytest.mark.asyncio
    async def test_exact_multiple_needs_empty_page(self):
        async def fetch(page):
            return list(range(100)) if page == 1 else []

        assert len(await walk_pages(fetch, 100)) == 100

    @pytest.mark.asyncio
    async def test_first_page_not_found_is_empty(self):
        async def fetch(page):
            raise NotFoundError("no such address")

        assert await walk_pages(fetch) == []

    @pytest.mark.asyncio
    async def test_later_page_error_propagates(self):
        async def fetch(page):
            if page == 2:
                raise NotFoundError("gone")
            return list(range(100))

        with pytest.raises(NotFoundError):
            await walk_pages(fetch, 100)


class TestWalkCursor:
    @pytest.mark.asyncio
    async def test_follows_cursors(self):
        pages = {None: ([1, 2], "a"), "a": ([3], "b"), "b": ([4], None)}

        async def fetch(cursor):
            return pages[cursor]

        assert await walk_cursor(fetch) == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_repeated_cursor_fails(self):
        pages = {None: ([1, 2], "a"), "a": ([3], "a")}

        async def fetch(cursor):
            return pages[cursor]

        with pytest.raises(DecodeFailedError) as exc:
            await walk_cursor(fetch)
        assert exc.value.key == "a"

    @pytest.mark.asyncio
    async def test_first_request_not_found_is_empty(self):
        async def fetch(cursor):
            raise NotFoundError("none")

        assert await walk_cursor(fetch) == []


class TestFanOut:
    @pytest.mark.asyncio
    async def test_not_found_keys_are_omitted(self):
        async def fetch(key):
            if key == "b":
                raise NotFoundError("missing", key=key)
            return key.upper()

        assert await fan_out(["a", "b", "c", "a"], fetch) == {"a": "A", "c": "C"}

    @pytest.mark.asyncio
    async def test_other_error_aborts(self):
        cancelled = []

        async def fetch(key):
            if key == "bad":
                await asyncio.sleep(0.01)
                raise ProviderInternalError("boom")
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                cancelled.append(key)
                raise
            return key

        with pytest.raises(ProviderInternalError):
            await fan_out(["slow1", "bad", "slow2"], fetch, limit=4)
        assert sorted(cancelled) == ["slow1", "slow2"]

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        active = 0
        peak = 0

        async def fetch(key):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return key

        result = await fan_out(list(range(10)), fetch, limit=3)
        assert len(result) == 10
        assert peak <= 3
