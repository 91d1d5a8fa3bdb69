import asyncio

import pytest

from lessonhub.services.fanout import gather_all
from lessonhub.services.pagination import PageRequest, page_info, resolve_limit


def test_page_info_rounds_total_pages_up():
    info = page_info(PageRequest(page=1, limit=10), 25)
    assert (info.page, info.limit, info.total_pages, info.total_count) == (1, 10, 3, 25)


def test_page_info_for_empty_result():
    assert page_info(PageRequest(page=1, limit=10), 0).total_pages == 0


def test_page_request_clamps_and_slices():
    request = PageRequest(page=0, limit=0)
    assert (request.page, request.limit, request.offset) == (1, 1, 0)

    rows = list(range(25))
    assert PageRequest(page=3, limit=10).slice(rows) == [20, 21, 22, 23, 24]
    assert PageRequest(page=4, limit=10).slice(rows) == []


@pytest.mark.asyncio
async def test_gather_all_returns_results_in_branch_order():
    async def value_after(value, delay):
        await asyncio.sleep(delay)
        return value

    assert await gather_all(value_after("slow", 0.02), value_after("fast", 0)) == ["slow", "fast"]


@pytest.mark.asyncio
async def test_gather_all_raises_branch_error_and_cancels_the_rest():
    cancelled = asyncio.Event()

    async def hangs():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def fails():
        raise LookupError("branch failed")

    with pytest.raises(LookupError, match="branch failed"):
        await gather_all(hangs(), fails())

    assert cancelled.is_set()


def test_resolve_limit_defaults_and_caps():
    assert resolve_limit(None, 10, 100) == 10
    assert resolve_limit(25, 10, 100) == 25
    assert resolve_limit(10_000, 10, 100) == 100
    assert resolve_limit(0, 10, 100) == 0
