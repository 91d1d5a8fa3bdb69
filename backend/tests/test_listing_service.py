from datetime import timedelta
from types import SimpleNamespace

import pytest

from conftest import NOW
from lessonhub.services.collation import collation_key
from lessonhub.services.listing_service import ListingParams, ListingService, sort_by_status


@pytest.fixture
def listing(db, settings) -> ListingService:
    return ListingService(db, settings)


def _names(response) -> list[str]:
    return [item.name for item in response.data]


def test_collation_ignores_case_and_accents():
    assert collation_key("Café  Cadenza") == collation_key("cafe cadenza")
    assert collation_key("Éclair") == collation_key("ECLAIR") == "eclair"
    assert collation_key("apple") < collation_key("Banana")
    assert collation_key(None) == ""


def test_status_sort_orders_by_priority_then_name():
    rows = [
        SimpleNamespace(name="Zither Hall", status="approved"),
        SimpleNamespace(name="banjo barn", status="rejected"),
        SimpleNamespace(name="Älto Works", status="approved"),
        SimpleNamespace(name="Oboe Loft", status="pending"),
    ]

    assert [row.name for row in sort_by_status(rows)] == ["Oboe Loft", "Älto Works", "Zither Hall", "banjo barn"]


@pytest.mark.asyncio
async def test_alphabetical_sort_is_accent_and_case_insensitive(listing, seeder, owner):
    for name in ("delta", "Écho", "alpha", "Bravo"):
        await seeder.business(name, owner=owner)

    ascending = await listing.list_businesses(ListingParams(sort_by="A-Z"), now=NOW)
    descending = await listing.list_businesses(ListingParams(sort_by="Z-A"), now=NOW)

    assert _names(ascending) == ["alpha", "Bravo", "delta", "Écho"]
    assert _names(descending) == ["Écho", "delta", "Bravo", "alpha"]


@pytest.mark.asyncio
async def test_status_sort_paginates_after_sorting(listing, seeder, owner):
    await seeder.business("Approved B", owner=owner, status="approved")
    await seeder.business("Rejected A", owner=owner, status="rejected")
    await seeder.business("Pending C", owner=owner, status="pending")
    await seeder.business("Approved A", owner=owner, status="approved")
    await seeder.business("Pending D", owner=owner, status="pending")

    first = await listing.list_businesses(ListingParams(sort_by="status", limit=2, page=1), now=NOW)
    second = await listing.list_businesses(ListingParams(sort_by="status", limit=2, page=2), now=NOW)
    third = await listing.list_businesses(ListingParams(sort_by="status", limit=2, page=3), now=NOW)

    assert _names(first) == ["Pending C", "Pending D"]
    assert _names(second) == ["Approved A", "Approved B"]
    assert _names(third) == ["Rejected A"]
    assert first.pagination.total_pages == 3
    assert first.pagination.total_count == 5


@pytest.mark.asyncio
async def test_filters_by_lowercased_status_and_time_bucket(listing, seeder, owner):
    await seeder.business("Fresh Pending", owner=owner, status="pending", created_at=NOW - timedelta(days=2))
    await seeder.business("Old Pending", owner=owner, status="pending", created_at=NOW - timedelta(days=20))
    await seeder.business("Fresh Approved", owner=owner, status="approved", created_at=NOW - timedelta(days=1))

    recent_pending = await listing.list_businesses(
        ListingParams(business_type="PENDING", time="last-7", sort_by="latest"), now=NOW
    )
    month_pending = await listing.list_businesses(
        ListingParams(business_type="Pending", time="last-30", sort_by="oldest"), now=NOW
    )
    everything = await listing.list_businesses(ListingParams(business_type="unknown", sort_by="latest"), now=NOW)

    assert _names(recent_pending) == ["Fresh Pending"]
    assert _names(month_pending) == ["Old Pending", "Fresh Pending"]
    assert _names(everything) == ["Fresh Approved", "Fresh Pending", "Old Pending"]


@pytest.mark.asyncio
async def test_listing_rows_carry_owner_summary(listing, seeder):
    owner = await seeder.user("Rosa Tan", email="rosa@lessonhub.test")
    admin = await seeder.user("Site Admin", user_type="admin")
    await seeder.business("Owned", owner=owner)
    await seeder.business("Admin Listed", owner=admin)

    response = await listing.list_businesses(ListingParams(sort_by="A-Z"), now=NOW)
    by_name = {item.name: item for item in response.data}

    assert by_name["Owned"].user.email == "rosa@lessonhub.test"
    assert by_name["Admin Listed"].user is None


@pytest.mark.asyncio
async def test_status_sort_warns_past_materialize_threshold(db, settings, seeder, owner, caplog):
    service = ListingService(db, settings.model_copy(update={"listing_materialize_warn_rows": 1}))
    await seeder.business("One", owner=owner)
    await seeder.business("Two", owner=owner)

    with caplog.at_level("WARNING", logger="lessonhub.services.listing_service"):
        await service.list_businesses(ListingParams(sort_by="status"), now=NOW)

    assert "Status sort materialized 2 businesses" in caplog.text
