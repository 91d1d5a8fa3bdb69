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
from ..models import BUSINESS_STATUSES, Business
from ..schemas import AdminBusinessListResponse, AdminBusinessView, PaginationView, owner_view
from ..telemetry import instrument_stage, mark_operation, record_result_count
from .collation import collation_key
from .pagination import PageRequest, page_info
from .time_service import listing_window_start

logger = logging.getLogger(__name__)

LISTING_SORTS = ("latest", "oldest", "A-Z", "Z-A", "status")
STATUS_PRIORITY = {"pending": 1, "approved": 2, "rejected": 3}


@dataclass
class ListingParams:
    page: int = 1
    limit: int = 10
    business_type: str | None = None
    time: str = "all"
    sort_by: str = "latest"


def status_sort_key(business: Business) -> tuple[int, str]:
    return STATUS_PRIORITY.get(business.status, len(STATUS_PRIORITY) + 1), collation_key(business.name)


def sort_by_status(businesses: list[Business]) -> list[Business]:
    return sorted(businesses, key=status_sort_key)


class ListingService:
    """Administrative business listing.

    Every sort except ``status`` is pushed to the store with skip/limit.
    ``status`` orders by moderation priority, then by folded name, which the
    store cannot express, so the whole filtered set is loaded, sorted in
    memory and sliced afterwards. Memory use grows with the filtered set; a
    warning is logged past ``listing_materialize_warn_rows``.
    """

    def __init__(self, db: DatabaseSessionManager, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    @staticmethod
    def _conditions(params: ListingParams, now: datetime | None) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        status = (params.business_type or "").lower()
        if status in BUSINESS_STATUSES:
            conditions.append(Business.status == status)
        window_start = listing_window_start(params.time, now)
        if window_start is not None:
            conditions.append(Business.created_at >= window_start)
        return conditions

    @staticmethod
    def _ordering(sort_by: str) -> tuple:
        if sort_by == "latest":
            return (Business.created_at.desc(), Business.id.desc())
        if sort_by == "oldest":
            return (Business.created_at.asc(), Business.id.asc())
        if sort_by == "A-Z":
            return (Business.name_key.asc(), Business.id.asc())
        if sort_by == "Z-A":
            return (Business.name_key.desc(), Business.id.desc())
        return (Business.id.asc(),)

    @staticmethod
    def _base_query(conditions: list[ColumnElement[bool]]):
        return select(Business).where(*conditions).options(selectinload(Business.owner))

    @instrument_stage("db")
    async def _count(self, session: AsyncSession, conditions: list[ColumnElement[bool]]) -> int:
        stmt = select(func.count()).select_from(Business).where(*conditions)
        return int(await session.scalar(stmt) or 0)

    @instrument_stage("db")
    async def _fetch_page(
        self,
        session: AsyncSession,
        conditions: list[ColumnElement[bool]],
        sort_by: str,
        page: PageRequest,
    ) -> list[Business]:
        stmt = self._base_query(conditions).order_by(*self._ordering(sort_by)).offset(page.offset).limit(page.limit)
        return list((await session.scalars(stmt)).all())

    @instrument_stage("db")
    async def _fetch_all(self, session: AsyncSession, conditions: list[ColumnElement[bool]]) -> list[Business]:
        stmt = self._base_query(conditions).order_by(Business.id.asc())
        return list((await session.scalars(stmt)).all())

    @instrument_stage("sort")
    def _sort_by_status(self, businesses: list[Business]) -> list[Business]:
        if len(businesses) > self.settings.listing_materialize_warn_rows:
            logger.warning(
                "Status sort materialized %s businesses (warn threshold %s)",
                len(businesses),
                self.settings.listing_materialize_warn_rows,
            )
        return sort_by_status(businesses)

    async def list_businesses(self, params: ListingParams, now: datetime | None = None) -> AdminBusinessListResponse:
        mark_operation("admin_listing")
        page = PageRequest(page=params.page, limit=params.limit)
        conditions = self._conditions(params, now)

        async with self.db.session() as session:
            total_count = await self._count(session, conditions)
            if params.sort_by == "status":
                businesses = page.slice(self._sort_by_status(await self._fetch_all(session, conditions)))
            else:
                businesses = await self._fetch_page(session, conditions, params.sort_by, page)

        record_result_count(len(businesses))
        return AdminBusinessListResponse(
            message="Businesses fetched successfully",
            data=[
                AdminBusinessView(
                    id=business.id,
                    name=business.name,
                    status=business.status,
                    user=owner_view(business.owner),
                    created_at=business.created_at,
                )
                for business in businesses
            ],
            pagination=PaginationView.from_page_info(page_info(page, total_count)),
        )
