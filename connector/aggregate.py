"""
Result assembly for listing operations.

walk_pages   - page-number pagination, stops on a short page
walk_cursor  - opaque cursor / continuation token pagination
fan_out      - bounded concurrent per-key fetch with explicit join
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, List, Optional, Sequence, Tuple, TypeVar

from .errors import DecodeFailedError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_CONCURRENCY = 8


async def walk_pages(
    fetch_page: Callable[[int], Awaitable[List[T]]],
    page_size: int = DEFAULT_PAGE_SIZE,
) -> List[T]:
    """
    Fetch pages 1, 2, ... until one has fewer than `page_size` items.

    NotFoundError on the first page means an empty listing. Later pages
    propagate every error.
    """
    items: List[T] = []
    page = 1
    while True:
        try:
            batch = await fetch_page(page)
        except NotFoundError:
            if page == 1:
                return items
            raise
        items.extend(batch)
        if len(batch) < page_size:
            return items
        page += 1


async def walk_cursor(
    fetch: Callable[[Optional[str]], Awaitable[Tuple[List[T], Optional[str]]]],
) -> List[T]:
    """
    Follow next-cursors until the backend returns none.

    First-request NotFoundError is an empty listing. A cursor seen before
    raises DecodeFailedError rather than returning a partial listing.
    """
    items: List[T] = []
    cursor: Optional[str] = None
    seen = set()
    while True:
        try:
            batch, cursor = await fetch(cursor)
        except NotFoundError:
            if not seen:
                return items
            raise
        items.extend(batch)
        if not cursor:
            return items
        if cursor in seen:
            raise DecodeFailedError("backend repeated a pagination cursor", key=str(cursor))
        seen.add(cursor)


async def fan_out(
    keys: Sequence[K],
    fetch_one: Callable[[K], Awaitable[T]],
    limit: int = DEFAULT_MAX_CONCURRENCY,
) -> Dict[K, T]:
    """
    Run fetch_one for every distinct key, at most `limit` at a time.

    Keys whose fetch raises NotFoundError are left out. Any other error
    cancels the remaining fetches and is re-raised.
    """
    unique = list(dict.fromkeys(keys))
    results: Dict[K, T] = {}
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run(key: K):
        async with semaphore:
            try:
                results[key] = await fetch_one(key)
            except NotFoundError:
                logger.debug(f"{key} not found, skipping")

    try:
        async with asyncio.TaskGroup() as tg:
            for key in unique:
                tg.create_task(run(key))
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    return results
