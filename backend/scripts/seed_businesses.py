from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lessonhub.config import get_settings
from lessonhub.database import DatabaseSessionManager
from lessonhub.models import (
    WEEKDAYS,
    Business,
    BusinessHour,
    BusinessService,
    Review,
    ReviewImage,
    SavedBusiness,
    User,
)

USERS = [
    {"name": "Site Admin", "email": "admin@lessonhub.example", "user_type": "admin", "status": "approved"},
    {"name": "Marta Kovac", "email": "marta@lessonhub.example", "user_type": "businessMan", "status": "approved"},
    {"name": "Leo Brandt", "email": "leo@lessonhub.example", "user_type": "user", "status": "pending"},
]

# (family, type, name, category, pricing)
BUSINESSES = [
    {
        "name": "Café Cadenza Strings",
        "owner": "marta@lessonhub.example",
        "status": "approved",
        "address": "12 Market St",
        "services": [
            ("Strings", "Violin", "Private Lesson", "Lessons", ("exact", 45.0)),
            ("Strings", "Cello", "Group Class", "Lessons", ("range", 20.0, 35.0)),
        ],
        "hours": ("09:00", "18:00", {"sunday"}),
    },
    {
        "name": "Brass Foundry",
        "owner": "marta@lessonhub.example",
        "status": "pending",
        "address": "400 Harbor Rd",
        "services": [
            ("Brass", "Trumpet", "Private Lesson", "Lessons", ("exact", 60.0)),
            ("Brass", "Trombone", "Repair", "Repairs", ("range", 30.0, 120.0)),
        ],
        "hours": ("10:00", "20:00", {"monday"}),
    },
    {
        "name": "Keys & Co.",
        "owner": "admin@lessonhub.example",
        "status": "rejected",
        "address": "8 Elm Ave",
        "services": [
            ("Keyboard", "Piano", "Private Lesson", "Lessons", ("range", 40.0, 80.0)),
        ],
        "hours": ("08:30", "16:30", {"saturday", "sunday"}),
    },
]


def _service_row(position: int, offer: tuple) -> BusinessService:
    family, instrument, name, category, pricing = offer
    row = BusinessService(
        position=position,
        instrument_family=family,
        instrument_type=instrument,
        name=name,
        category=category,
        pricing_type=pricing[0],
    )
    if pricing[0] == "exact":
        row.price = pricing[1]
    else:
        row.price_min, row.price_max = pricing[1], pricing[2]
    return row


async def _seed() -> int:
    manager = DatabaseSessionManager(get_settings())
    try:
        async with manager.session() as session:
            if (await session.scalars(select(User).where(User.email == USERS[0]["email"]))).first():
                return 0

            users = {item["email"]: User(**item) for item in USERS}
            session.add_all(users.values())
            await session.flush()

            for item in BUSINESSES:
                owner = users[item["owner"]]
                opens, closes, closed_days = item["hours"]
                owner_field = {"admin_id": owner.id} if owner.user_type == "admin" else {"user_id": owner.id}
                business = Business(
                    name=item["name"],
                    status=item["status"],
                    address=item["address"],
                    services=[_service_row(index, offer) for index, offer in enumerate(item["services"])],
                    hours=[
                        BusinessHour(
                            day=day,
                            open=None if day in closed_days else opens,
                            close=None if day in closed_days else closes,
                            closed=day in closed_days,
                        )
                        for day in WEEKDAYS
                    ],
                    **owner_field,
                )
                session.add(business)
            await session.flush()

            cadenza = (await session.scalars(select(Business).where(Business.name == BUSINESSES[0]["name"]))).one()
            reviewer = users["leo@lessonhub.example"]
            session.add(
                Review(
                    business_id=cadenza.id,
                    user_id=reviewer.id,
                    rating=5,
                    comment="Patient teacher, great room acoustics.",
                    status="approved",
                    images=[ReviewImage(url="https://cdn.lessonhub.example/reviews/cadenza-1.jpg")],
                )
            )
            session.add(SavedBusiness(user_id=users["marta@lessonhub.example"].id, business_id=cadenza.id))
            await session.commit()
            return len(BUSINESSES)
    finally:
        await manager.dispose()


def main() -> None:
    seeded = asyncio.run(_seed())
    print(f"Seeded businesses: {seeded}")


if __name__ == "__main__":
    main()
