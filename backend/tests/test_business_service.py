import pytest

from conftest import exact
from lessonhub.errors import NotFoundError, ValidationFailure
from lessonhub.identity import Caller
from lessonhub.models import Business
from lessonhub.schemas import CreateBusinessRequest
from lessonhub.services.business_service import BusinessDirectory


@pytest.fixture
def directory(db, settings) -> BusinessDirectory:
    return BusinessDirectory(db, settings)


def _caller(user) -> Caller:
    return Caller(user_id=user.id, role=user.user_type, email=user.email)


def _payload(**overrides) -> CreateBusinessRequest:
    body = {
        "name": "Cadenza Strings",
        "address": "12 Market St",
        "services": [
            {"instrumentFamily": "Strings", "name": "Lesson", "pricingType": "exact", "price": 45},
            {"instrumentFamily": "Strings", "name": "Group", "pricingType": "range", "price": {"min": 20, "max": 35}},
        ],
        "businessHours": [
            {"day": "monday", "open": "09:00", "close": "17:00"},
            {"day": "sunday", "closed": True},
        ],
    }
    body.update(overrides)
    return CreateBusinessRequest.model_validate(body)


@pytest.mark.asyncio
async def test_businessman_creates_pending_business_owned_by_user(directory, owner):
    response = await directory.create(_caller(owner), _payload())
    data = response.data

    assert response.message == "Business created successfully"
    assert data.status == "pending"
    assert data.user == owner.id
    assert data.admin_id is None
    assert [service.pricing_type for service in data.services] == ["exact", "range"]
    assert data.services[1].price.minimum == 20
    assert [row.day for row in data.business_hours] == ["monday", "sunday"]
    assert data.created_at is not None


@pytest.mark.asyncio
async def test_admin_created_business_references_admin_owner(directory, seeder):
    admin = await seeder.user("Site Admin", user_type="admin")

    data = (await directory.create(_caller(admin), _payload(name="Admin Listing"))).data

    assert data.admin_id == admin.id
    assert data.user is None


@pytest.mark.asyncio
async def test_create_requires_known_caller(directory):
    stranger = Caller(user_id=999, role="businessMan", email="ghost@lessonhub.test")

    with pytest.raises(NotFoundError):
        await directory.create(stranger, _payload())


@pytest.mark.asyncio
async def test_get_returns_business_or_not_found(directory, seeder, owner):
    business = await seeder.business("Lookup", owner=owner, services=[exact(10)])

    found = await directory.get(business.id)

    assert found.data.name == "Lookup"
    assert found.data.services[0].price == 10
    with pytest.raises(NotFoundError, match="Business not found"):
        await directory.get(business.id + 100)


@pytest.mark.asyncio
async def test_set_status_moderates_business(directory, seeder, owner):
    business = await seeder.business("Moderated", owner=owner, status="pending")

    response = await directory.set_status(business.id, "approved")

    assert response.message == "Business status updated to approved"
    assert response.data.status == "approved"
    assert (await directory.get(business.id)).data.status == "approved"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["pending", "archived", ""])
async def test_set_status_rejects_non_moderation_outcomes(directory, status):
    with pytest.raises(ValidationFailure) as excinfo:
        await directory.set_status(1, status)

    assert excinfo.value.http_status == 400


@pytest.mark.asyncio
async def test_set_status_missing_business(directory):
    with pytest.raises(NotFoundError) as excinfo:
        await directory.set_status(4040, "rejected")

    assert excinfo.value.http_status == 404


@pytest.mark.asyncio
async def test_my_approved_lists_only_callers_approved_businesses(directory, seeder, owner):
    other = await seeder.user("Someone Else")
    await seeder.business("Mine Approved", owner=owner, status="approved")
    await seeder.business("Mine Pending", owner=owner, status="pending")
    await seeder.business("Theirs", owner=other, status="approved")

    response = await directory.my_approved(_caller(owner))

    assert [item.name for item in response.data] == ["Mine Approved"]


def test_owner_reference_cannot_be_reassigned():
    business = Business(name="Fixed Owner", user_id=1)

    with pytest.raises(ValueError):
        business.user_id = 2


def test_name_key_follows_name():
    business = Business(name="Café Cadenza", user_id=1)
    assert business.name_key == "cafe cadenza"

    business.name = "ÉCOLE"
    assert business.name_key == "ecole"


def test_create_payload_rejects_duplicate_days():
    with pytest.raises(ValueError):
        _payload(businessHours=[{"day": "monday", "closed": True}, {"day": "monday", "closed": True}])


def test_create_payload_rejects_inverted_range():
    with pytest.raises(ValueError):
        _payload(services=[{"pricingType": "range", "price": {"min": 50, "max": 10}}])
