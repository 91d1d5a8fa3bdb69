from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "page", max(1, int(self.page)))
        object.__setattr__(self, "limit", max(1, int(self.limit)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def slice(self, rows: list) -> list:
        return rows[self.offset : self.offset + self.limit]


@dataclass(frozen=True, slots=True)
class PageInfo:
    page: int
    limit: int
    total_pages: int
    total_count: int


def resolve_limit(limit: int | None, default: int, maximum: int) -> int:
    """Requested page size, or the default when omitted, capped at ``maximum``.

    Values below one are left for ``PageRequest`` to clamp.
    """
    if limit is None:
        return min(default, maximum)
    return min(limit, maximum)


def page_info(request: PageRequest, total_count: int) -> PageInfo:
    return PageInfo(
        page=request.page,
        limit=request.limit,
        total_pages=math.ceil(total_count / request.limit),
        total_count=total_count,
    )
