from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from ..config import Settings
from ..database import DatabaseSessionManager
from ..models import Business
from ..schemas import BusinessListResponse, PaginationView, business_view
from ..telemetry import instrument_stage, mark_operation, record_result_count
from .pagination import PageRequest, page_info
from .pricing import (
    PriceBounds,
    ServiceFilters,
    any_pricing_within,
    business_service_clause,
    high_price_key,
    low_price_key,
    pricing_of,
)
from .time_service import ClockReading, is_open_now, open_now_clause, read_clock

logger = logging.getLogger(__name__)

PRICE_SORTS = ("lowToHigh", "highToLow")


@dataclass
class SearchParams:
    instrument_family: str | None = None
    instrument_type: str | None = None
    service_name: str | None = None
    category: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    price_sort: str | None = None
    open_now: bool = False
    sort_by_created_at: str | None = None
    page: int = 1
    limit: int = 10

    @property
    def bounds(self) -> PriceBounds:
        return PriceBounds(minimum=self.price_min, maximum=self.price_max)

    def service_filters(self) -> ServiceFilters:
        return ServiceFilters(
            instrument_family=self.instrument_family,
            instrument_type=self.instrument_type,
            service_name=self.service_name,
            category=self.category,
            bounds=self.bounds,
        )


def sort_by_price(businesses: list[Business], price_sort: str | None) -> list[Business]:
    """Stable re-sort on the effective price of each business's services."""
    if price_sort == "lowToHigh":
        return sorted(businesses, key=lambda b: low_price_key(pricing_of(s) for s in b.services))
    if price_sort == "highToLow":
        return sorted(businesses, key=lambda b: high_price_key(pricing_of(s) for s in b.services), reverse=True)
    return list(businesses)


class SearchService:
    """Public business search.

    Phase 1 lets the store filter, order by creation time and paginate.
    Phase 2 re-checks price containment and open-now on the fetched page and
    applies the price re-sort, which the store cannot express. Pagination
    metadata always describes the Phase 1 match set, so ``totalCount`` may
    overstate the rows a price-filtered page actually returns.
    """

    def __init__(self, db: DatabaseSessionManager, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    @staticmethod
    def _conditions(params: SearchParams, reading: ClockReading) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        service_clause = business_service_clause(params.service_filters())
        if service_clause is not None:
            conditions.append(service_clause)
        if params.open_now:
            conditions.append(open_now_clause(reading))
        return conditions

    @staticmethod
    def _ordering(sort_by_created_at: str | None) -> tuple:
        if not sort_by_created_at:
            return (Business.id.asc(),)
        if sort_by_created_at.lower() == "asc":
            return (Business.created_at.asc(), Business.id.asc())
        return (Business.created_at.desc(), Business.id.desc())

    @instrument_stage("db")
    async def _count(self, session: AsyncSession, conditions: list[ColumnElement[bool]]) -> int:
        stmt = select(func.count()).select_from(Business).where(*conditions)
        return int(await session.scalar(stmt) or 0)

    @instrument_stage("db")
    async def _fetch_page(
        self,
        session: AsyncSession,
        conditions: list[ColumnElement[bool]],
        params: SearchParams,
        page: PageRequest,
    ) -> list[Business]:
        stmt = (
            select(Business)
            .where(*conditions)
            .options(selectinload(Business.services), selectinload(Business.hours))
            .order_by(*self._ordering(params.sort_by_created_at))
            .offset(page.offset)
            .limit(page.limit)
        )
        return list((await session.scalars(stmt)).all())

    @instrument_stage("refine")
    def _refine(self, businesses: list[Business], params: SearchParams, reading: ClockReading) -> list[Business]:
        kept = businesses
        bounds = params.bounds
        if bounds.active:
            kept = [b for b in kept if any_pricing_within((pricing_of(s) for s in b.services), bounds)]
        if params.open_now:
            kept = [b for b in kept if is_open_now(b.hours, reading)]
        if len(kept) != len(businesses):
            logger.info(
                "search_refinement: fetched=%s kept=%s price_min=%s price_max=%s open_now=%s",
                len(businesses),
                len(kept),
                bounds.minimum,
                bounds.maximum,
                params.open_now,
            )
        return kept

    @instrument_stage("sort")
    def _sort(self, businesses: list[Business], price_sort: str | None) -> list[Business]:
        return sort_by_price(businesses, price_sort)

    async def search(self, params: SearchParams, now: datetime | None = None) -> BusinessListResponse:
        mark_operation("search")
        page = PageRequest(page=params.page, limit=params.limit)
        # One clock reading serves both phases.
        reading = read_clock(self.settings.directory_timezone, now)
        conditions = self._conditions(params, reading)

        async with self.db.session() as session:
            total_count = await self._count(session, conditions)
            businesses = await self._fetch_page(session, conditions, params, page)

        businesses = self._refine(businesses, params, reading)
        if params.price_sort in PRICE_SORTS:
            businesses = self._sort(businesses, params.price_sort)

        record_result_count(len(businesses))
        return BusinessListResponse(
            message="Businesses fetched successfully",
            data=[business_view(business) for business in businesses],
            pagination=PaginationView.from_page_info(page_info(page, total_count)),
        )
