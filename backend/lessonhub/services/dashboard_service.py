from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from ..config import Settings
from ..database import Base, DatabaseSessionManager
from ..errors import AccessDenied
from ..identity import Caller
from ..models import Business, BusinessClaim, Photo, Review, SavedBusiness, User
from ..schemas import (
    BusinessmanDashboardData,
    BusinessmanDashboardResponse,
    CountPair,
    DashboardData,
    DashboardResponse,
    LatestReviewView,
    ReviewedBusinessView,
    ReviewerView,
)
from ..telemetry import instrument_stage, mark_operation, timed_stage
from .fanout import gather_all
from .time_service import dashboard_window_start

logger = logging.getLogger(__name__)

BUSINESSMAN_ROLE = "businessMan"


@dataclass(frozen=True)
class TrackedEntity:
    totals_field: str
    submissions_field: str
    model: type[Base]


TRACKED_ENTITIES = (
    TrackedEntity("businesses", "business_submissions", Business),
    TrackedEntity("reviews", "review_submissions", Review),
    TrackedEntity("photos", "photo_submissions", Photo),
    TrackedEntity("claims", "claim_requests", BusinessClaim),
    TrackedEntity("users", "profiles_under_review", User),
)


class DashboardService:
    """Time-windowed counts for the admin and businessman dashboards.

    Every count runs in its own session so the branches can be issued
    concurrently; they share no snapshot, and one failing branch fails the
    whole dashboard.
    """

    def __init__(self, db: DatabaseSessionManager, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    def _window_start(self, range_token: str, now: datetime | None) -> datetime:
        return dashboard_window_start(range_token, self.settings.directory_timezone, now)

    @instrument_stage("db")
    async def _count_pair(
        self,
        model: type[Base],
        window_start: datetime,
        *conditions: ColumnElement[bool],
    ) -> CountPair:
        stmt = (
            select(func.count(), func.count().filter(model.created_at >= window_start))
            .select_from(model)
            .where(*conditions)
        )
        async with self.db.session() as session:
            total, new = (await session.execute(stmt)).one()
        return CountPair(total=int(total or 0), new=int(new or 0))

    @instrument_stage("db")
    async def _count(self, stmt: Select) -> int:
        async with self.db.session() as session:
            return int(await session.scalar(stmt) or 0)

    @instrument_stage("db")
    async def _ids(self, stmt: Select) -> list[int]:
        async with self.db.session() as session:
            return [int(value) for value in (await session.scalars(stmt)).all()]

    async def admin_dashboard(self, range_token: str, now: datetime | None = None) -> DashboardResponse:
        mark_operation("admin_dashboard")
        window_start = self._window_start(range_token, now)

        totals = [self._count_pair(entity.model, window_start) for entity in TRACKED_ENTITIES]
        pending = [
            self._count_pair(entity.model, window_start, entity.model.status == "pending")
            for entity in TRACKED_ENTITIES
        ]
        with timed_stage("aggregate"):
            results = await gather_all(*totals, *pending)

        data: dict[str, CountPair] = {}
        for index, entity in enumerate(TRACKED_ENTITIES):
            data[entity.totals_field] = results[index]
            data[entity.submissions_field] = results[len(TRACKED_ENTITIES) + index]

        return DashboardResponse(message="Dashboard data get successfully", data=DashboardData(**data))

    @instrument_stage("db")
    async def _latest_reviews(self, business_ids: list[int], window_start: datetime) -> list[LatestReviewView]:
        stmt = (
            select(Review)
            .where(Review.business_id.in_(business_ids), Review.created_at >= window_start)
            .options(selectinload(Review.user), selectinload(Review.business))
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(self.settings.latest_reviews_limit)
        )
        async with self.db.session() as session:
            reviews = (await session.scalars(stmt)).all()
            return [
                LatestReviewView(
                    id=review.id,
                    rating=review.rating,
                    comment=review.comment,
                    date=review.created_at,
                    user=ReviewerView(
                        name=review.user.name if review.user else None,
                        profile_photo=review.user.profile_photo if review.user else None,
                    ),
                    business=ReviewedBusinessView(
                        id=review.business.id if review.business else None,
                        name=(review.business.name if review.business else None) or "N/A",
                    ),
                )
                for review in reviews
            ]

    async def businessman_dashboard(
        self,
        caller: Caller,
        range_token: str,
        now: datetime | None = None,
    ) -> BusinessmanDashboardResponse:
        mark_operation("businessman_dashboard")
        if caller.role != BUSINESSMAN_ROLE:
            raise AccessDenied()
        window_start = self._window_start(range_token, now)

        with timed_stage("aggregate"):
            owned_ids, saved_ids = await gather_all(
                self._ids(select(Business.id).where(Business.user_id == caller.user_id)),
                self._ids(select(SavedBusiness.business_id).where(SavedBusiness.user_id == caller.user_id)),
            )

            owned_reviews = (Review.business_id.in_(owned_ids), Review.created_at >= window_start)
            review_count, photo_count, save_count, latest = await gather_all(
                self._count(select(func.count()).select_from(Review).where(*owned_reviews)),
                self._count(select(func.count()).select_from(Review).where(*owned_reviews, Review.images.any())),
                # Scoped to what the caller saved, not to what the caller owns.
                self._count(
                    select(func.count())
                    .select_from(SavedBusiness)
                    .where(
                        SavedBusiness.business_id.in_(saved_ids),
                        SavedBusiness.user_id == caller.user_id,
                        SavedBusiness.created_at >= window_start,
                    )
                ),
                self._latest_reviews(owned_ids, window_start),
            )

        logger.debug(
            "businessman_dashboard user=%s owned=%s saved=%s reviews=%s",
            caller.user_id,
            len(owned_ids),
            len(saved_ids),
            review_count,
        )
        return BusinessmanDashboardResponse(
            message=f"Dashboard data ({range_token}) for businessman",
            data=BusinessmanDashboardData(
                reviews=review_count,
                photos=photo_count,
                saves=save_count,
                latest_reviews=latest,
            ),
        )
