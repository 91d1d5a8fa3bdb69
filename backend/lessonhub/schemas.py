from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import WEEKDAYS, Business, BusinessHour, BusinessService, User
from .services.pagination import PageInfo
from .services.pricing import ExactPrice, PriceRange, pricing_of

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PriceRangeView(ApiModel):
    minimum: float | None = Field(default=None, alias="min", ge=0)
    maximum: float | None = Field(default=None, alias="max", ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> PriceRangeView:
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError("price.min must not exceed price.max")
        return self


class _ServiceBase(ApiModel):
    instrument_family: str | None = None
    instrument_type: str | None = None
    name: str | None = None
    category: str | None = None


class ExactServiceView(_ServiceBase):
    pricing_type: Literal["exact"]
    price: float = Field(ge=0)


class RangeServiceView(_ServiceBase):
    pricing_type: Literal["range"]
    price: PriceRangeView


ServiceView = Annotated[Union[ExactServiceView, RangeServiceView], Field(discriminator="pricing_type")]


class BusinessHourView(ApiModel):
    day: Weekday
    open: str | None = Field(default=None, pattern=HHMM_PATTERN)
    close: str | None = Field(default=None, pattern=HHMM_PATTERN)
    closed: bool = False

    @model_validator(mode="after")
    def _times_when_open(self) -> BusinessHourView:
        if not self.closed and (self.open is None or self.close is None):
            raise ValueError("open and close are required unless the day is closed")
        return self


class OwnerView(ApiModel):
    id: int
    name: str
    email: str


class BusinessView(ApiModel):
    id: int
    name: str
    description: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    website: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    status: str
    user: int | None = None
    admin_id: int | None = None
    services: list[ServiceView] = Field(default_factory=list)
    business_hours: list[BusinessHourView] = Field(default_factory=list)
    created_at: datetime | None = None


class AdminBusinessView(ApiModel):
    id: int
    name: str
    status: str
    user: OwnerView | None = None
    created_at: datetime | None = None


class PaginationView(ApiModel):
    page: int
    limit: int
    total_pages: int
    total_count: int

    @classmethod
    def from_page_info(cls, info: PageInfo) -> PaginationView:
        return cls(page=info.page, limit=info.limit, total_pages=info.total_pages, total_count=info.total_count)


class BusinessListResponse(ApiModel):
    success: bool = True
    message: str
    data: list[BusinessView]
    pagination: PaginationView


class AdminBusinessListResponse(ApiModel):
    success: bool = True
    message: str
    data: list[AdminBusinessView]
    pagination: PaginationView


class BusinessResponse(ApiModel):
    success: bool = True
    message: str
    data: BusinessView


class BusinessCollectionResponse(ApiModel):
    success: bool = True
    message: str
    data: list[BusinessView]


class CreateBusinessRequest(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    website: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    services: list[ServiceView] = Field(default_factory=list)
    business_hours: list[BusinessHourView] = Field(default_factory=list)

    @field_validator("business_hours")
    @classmethod
    def _one_record_per_day(cls, value: list[BusinessHourView]) -> list[BusinessHourView]:
        days = [row.day for row in value]
        duplicates = sorted({day for day in days if days.count(day) > 1}, key=WEEKDAYS.index)
        if duplicates:
            raise ValueError(f"Duplicate business hours for: {', '.join(duplicates)}")
        return value


class StatusUpdateRequest(ApiModel):
    status: str


class CountPair(ApiModel):
    total: int
    new: int


class DashboardData(ApiModel):
    businesses: CountPair
    reviews: CountPair
    photos: CountPair
    claims: CountPair
    users: CountPair
    business_submissions: CountPair
    review_submissions: CountPair
    photo_submissions: CountPair
    claim_requests: CountPair
    profiles_under_review: CountPair


class DashboardResponse(ApiModel):
    success: bool = True
    message: str
    data: DashboardData


class ReviewerView(ApiModel):
    name: str | None = None
    profile_photo: str | None = None


class ReviewedBusinessView(ApiModel):
    id: int | None = None
    name: str = "N/A"


class LatestReviewView(ApiModel):
    id: int
    rating: int
    comment: str | None = None
    date: datetime
    user: ReviewerView
    business: ReviewedBusinessView


class BusinessmanDashboardData(ApiModel):
    reviews: int
    photos: int
    saves: int
    latest_reviews: list[LatestReviewView]


class BusinessmanDashboardResponse(ApiModel):
    success: bool = True
    message: str
    data: BusinessmanDashboardData


class HealthResponse(ApiModel):
    status: str


def service_view(service: BusinessService) -> ExactServiceView | RangeServiceView:
    common = {
        "instrument_family": service.instrument_family,
        "instrument_type": service.instrument_type,
        "name": service.name,
        "category": service.category,
    }
    pricing = pricing_of(service)
    if isinstance(pricing, ExactPrice):
        return ExactServiceView(pricing_type="exact", price=pricing.amount, **common)
    if isinstance(pricing, PriceRange):
        return RangeServiceView(
            pricing_type="range",
            price=PriceRangeView(minimum=pricing.minimum, maximum=pricing.maximum),
            **common,
        )
    raise TypeError(f"Unsupported pricing {pricing!r}")


def hour_view(row: BusinessHour) -> BusinessHourView:
    return BusinessHourView(day=row.day, open=row.open, close=row.close, closed=row.closed)


def business_view(business: Business) -> BusinessView:
    return BusinessView(
        id=business.id,
        name=business.name,
        description=business.description,
        phone=business.phone,
        email=business.email,
        address=business.address,
        website=business.website,
        latitude=business.latitude,
        longitude=business.longitude,
        status=business.status,
        user=business.user_id,
        admin_id=business.admin_id,
        services=[service_view(service) for service in business.services],
        business_hours=[hour_view(row) for row in business.hours],
        created_at=business.created_at,
    )


def owner_view(user: User | None) -> OwnerView | None:
    if user is None:
        return None
    return OwnerView(id=user.id, name=user.name, email=user.email)
