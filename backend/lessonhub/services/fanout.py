from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any


async def gather_all(*branches: Awaitable[Any]) -> list[Any]:
    """Run independent awaitables concurrently and return results in order.

    The first branch to fail cancels the others still in flight, and its own
    exception is raised so callers never see partial results.
    """
    tasks: list[asyncio.Task[Any]] = []
    try:
        async with asyncio.TaskGroup() as group:
            for branch in branches:
                tasks.append(group.create_task(branch))
    except BaseExceptionGroup as failure:
        raise _first_leaf(failure) from None
    return [task.result() for task in tasks]


def _first_leaf(group: BaseExceptionGroup) -> BaseException:
    first = group.exceptions[0]
    if isinstance(first, BaseExceptionGroup):
        return _first_leaf(first)
    return first
