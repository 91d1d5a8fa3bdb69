from __future__ import annotations

import itertools
import os
from collections.abc import Iterable
from datetime import datetime, timezone

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./lessonhub-test.db")
os.environ.setdefault("TELEMETRY_ENABLED", "false")

from lessonhub import models  # noqa: E402,F401
from lessonhub.config import Settings  # noqa: E402
from lessonhub.database import DatabaseSessionManager  # noqa: E402
from lessonhub.models import Business, BusinessHour, BusinessService, User  # noqa: E402

# Monday.
NOW = datetime(2026, 3, 16, 12, 0, 0, tzinfo=timezone.utc)

_emails = itertools.count(1)


def exact(price: float, **fields) -> BusinessService:
    return BusinessService(pricing_type="exact", price=price, **fields)


def price_range(minimum: float | None, maximum: float | None, **fields) -> BusinessService:
    return BusinessService(pricing_type="range", price_min=minimum, price_max=maximum, **fields)


def open_day(day: str, opens: str = "09:00", closes: str = "17:00") -> BusinessHour:
    return BusinessHour(day=day, open=opens, close=closes, closed=False)


def closed_day(day: str) -> BusinessHour:
    return BusinessHour(day=day, open=None, close=None, closed=True)


class Seeder:
    def __init__(self, db: DatabaseSessionManager) -> None:
        self.db = db

    async def add(self, *rows) -> None:
        async with self.db.session() as session:
            session.add_all(rows)
            await session.commit()

    async def user(
        self,
        name: str = "Owner",
        *,
        user_type: str = "businessMan",
        status: str = "approved",
        email: str | None = None,
        profile_photo: str | None = None,
        created_at: datetime | None = None,
    ) -> User:
        user = User(
            name=name,
            email=email or f"user{next(_emails)}@lessonhub.test",
            user_type=user_type,
            status=status,
            profile_photo=profile_photo,
        )
        if created_at is not None:
            user.created_at = created_at
        await self.add(user)
        return user

    async def business(
        self,
        name: str,
        *,
        owner: User,
        services: Iterable[BusinessService] = (),
        hours: Iterable[BusinessHour] = (),
        status: str = "approved",
        created_at: datetime | None = None,
    ) -> Business:
        owner_field = {"admin_id": owner.id} if owner.user_type == "admin" else {"user_id": owner.id}
        business = Business(
            name=name,
            status=status,
            services=[
                _positioned(index, service) for index, service in enumerate(services)
            ],
            hours=list(hours),
            **owner_field,
        )
        if created_at is not None:
            business.created_at = created_at
        await self.add(business)
        return business


def _positioned(index: int, service: BusinessService) -> BusinessService:
    service.position = index
    return service


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'lessonhub.db'}", directory_timezone="UTC")


@pytest.fixture
async def db(settings):
    manager = DatabaseSessionManager(settings)
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
def seeder(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
async def owner(seeder) -> User:
    return await seeder.user("Marta Kovac", user_type="businessMan")
