from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import Settings
from ..database import DatabaseSessionManager
from ..errors import NotFoundError, ValidationFailure
from ..identity import Caller
from ..models import Business, BusinessHour, BusinessService, User
from ..schemas import (
    BusinessCollectionResponse,
    BusinessResponse,
    CreateBusinessRequest,
    ExactServiceView,
    RangeServiceView,
    business_view,
)
from ..telemetry import instrument_stage, mark_operation, record_result_count

logger = logging.getLogger(__name__)

MODERATION_OUTCOMES = ("approved", "rejected")


def _service_row(position: int, offer: ExactServiceView | RangeServiceView) -> BusinessService:
    row = BusinessService(
        position=position,
        instrument_family=offer.instrument_family,
        instrument_type=offer.instrument_type,
        name=offer.name,
        category=offer.category,
        pricing_type=offer.pricing_type,
    )
    if isinstance(offer, ExactServiceView):
        row.price = offer.price
    else:
        row.price_min = offer.price.minimum
        row.price_max = offer.price.maximum
    return row


class BusinessDirectory:
    """Create, read and moderate single business records."""

    def __init__(self, db: DatabaseSessionManager, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    @staticmethod
    def _detail_query():
        return select(Business).options(selectinload(Business.services), selectinload(Business.hours))

    @instrument_stage("db")
    async def _load(self, session: AsyncSession, business_id: int, *, refresh: bool = False) -> Business | None:
        stmt = self._detail_query().where(Business.id == business_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return (await session.scalars(stmt)).first()

    @staticmethod
    async def _caller_record(session: AsyncSession, caller: Caller) -> User:
        user = (await session.scalars(select(User).where(User.email == caller.email))).first()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def create(self, caller: Caller, payload: CreateBusinessRequest) -> BusinessResponse:
        mark_operation("create_business")
        async with self.db.session() as session:
            user = await self._caller_record(session, caller)
            # Owner reference is fixed here and guarded against reassignment on the model.
            owner = {"admin_id": user.id} if caller.is_admin else {"user_id": user.id}
            business = Business(
                name=payload.name,
                description=payload.description,
                phone=payload.phone,
                email=payload.email,
                address=payload.address,
                website=payload.website,
                latitude=payload.latitude,
                longitude=payload.longitude,
                status="pending",
                services=[_service_row(index, offer) for index, offer in enumerate(payload.services)],
                hours=[
                    BusinessHour(day=row.day, open=row.open, close=row.close, closed=row.closed)
                    for row in payload.business_hours
                ],
                **owner,
            )
            session.add(business)
            await session.commit()
            created = await self._load(session, business.id, refresh=True)

        logger.info("Business %s created by user %s (%s)", created.id, user.id, caller.role)
        return BusinessResponse(message="Business created successfully", data=business_view(created))

    async def get(self, business_id: int) -> BusinessResponse:
        mark_operation("get_business")
        async with self.db.session() as session:
            business = await self._load(session, business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return BusinessResponse(message="Business fetched successfully", data=business_view(business))

    async def my_approved(self, caller: Caller) -> BusinessCollectionResponse:
        mark_operation("my_approved_businesses")
        async with self.db.session() as session:
            user = await self._caller_record(session, caller)
            stmt = (
                self._detail_query()
                .where(Business.user_id == user.id, Business.status == "approved")
                .order_by(Business.created_at.desc(), Business.id.desc())
            )
            businesses = list((await session.scalars(stmt)).all())

        record_result_count(len(businesses))
        return BusinessCollectionResponse(
            message="Your businesses fetched successfully",
            data=[business_view(business) for business in businesses],
        )

    async def set_status(self, business_id: int, status: str) -> BusinessResponse:
        mark_operation("toggle_business_status")
        if status not in MODERATION_OUTCOMES:
            raise ValidationFailure("Invalid status. Must be 'approved' or 'rejected'.", field="status")

        async with self.db.session() as session:
            business = await self._load(session, business_id)
            if business is None:
                raise NotFoundError("Business not found.")
            previous = business.status
            business.status = status
            await session.commit()

        logger.info("Business %s status %s -> %s", business_id, previous, status)
        return BusinessResponse(message=f"Business status updated to {status}", data=business_view(business))
