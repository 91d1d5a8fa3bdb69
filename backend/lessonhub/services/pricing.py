"""Service pricing: the Exact/Range sum type and the filters built over it.

A service is priced either with one number (``ExactPrice``) or with an
interval (``PriceRange``). Query bounds accept an exact price that lies inside
them and a range only when the whole interval is contained, never on mere
overlap: a 5-50 range does not match a 10-20 query.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from ..models import Business, BusinessService


@dataclass(frozen=True, slots=True)
class ExactPrice:
    amount: float


@dataclass(frozen=True, slots=True)
class PriceRange:
    minimum: float | None
    maximum: float | None


Pricing = ExactPrice | PriceRange


@dataclass(frozen=True, slots=True)
class PriceBounds:
    minimum: float | None = None
    maximum: float | None = None

    @property
    def active(self) -> bool:
        return self.minimum is not None or self.maximum is not None


@dataclass(frozen=True, slots=True)
class ServiceFilters:
    instrument_family: str | None = None
    instrument_type: str | None = None
    service_name: str | None = None
    category: str | None = None
    bounds: PriceBounds = PriceBounds()


def pricing_of(service: BusinessService) -> Pricing:
    if service.pricing_type == "exact":
        return ExactPrice(amount=float(service.price))
    if service.pricing_type == "range":
        return PriceRange(minimum=service.price_min, maximum=service.price_max)
    raise ValueError(f"Unknown pricing type {service.pricing_type!r} on service {service.id}")


def pricing_within(pricing: Pricing, bounds: PriceBounds) -> bool:
    if isinstance(pricing, ExactPrice):
        if bounds.minimum is not None and pricing.amount < bounds.minimum:
            return False
        if bounds.maximum is not None and pricing.amount > bounds.maximum:
            return False
        return True
    if isinstance(pricing, PriceRange):
        # An unknown end of the interval cannot be shown to sit inside a supplied bound.
        if bounds.minimum is not None and (pricing.minimum is None or pricing.minimum < bounds.minimum):
            return False
        if bounds.maximum is not None and (pricing.maximum is None or pricing.maximum > bounds.maximum):
            return False
        return True
    raise TypeError(f"Unsupported pricing {pricing!r}")


def any_pricing_within(pricings: Iterable[Pricing], bounds: PriceBounds) -> bool:
    return any(pricing_within(pricing, bounds) for pricing in pricings)


def low_price_key(pricings: Iterable[Pricing]) -> float:
    values: list[float] = []
    for pricing in pricings:
        if isinstance(pricing, ExactPrice):
            values.append(pricing.amount)
        elif isinstance(pricing, PriceRange):
            values.append(pricing.minimum if pricing.minimum is not None else math.inf)
        else:
            raise TypeError(f"Unsupported pricing {pricing!r}")
    return min(values, default=math.inf)


def high_price_key(pricings: Iterable[Pricing]) -> float:
    values: list[float] = []
    for pricing in pricings:
        if isinstance(pricing, ExactPrice):
            values.append(pricing.amount)
        elif isinstance(pricing, PriceRange):
            values.append(pricing.maximum if pricing.maximum is not None else 0.0)
        else:
            raise TypeError(f"Unsupported pricing {pricing!r}")
    return max(values, default=-math.inf)


def _price_clause(bounds: PriceBounds) -> ColumnElement[bool]:
    exact_terms: list[ColumnElement[bool]] = [BusinessService.pricing_type == "exact"]
    range_terms: list[ColumnElement[bool]] = [BusinessService.pricing_type == "range"]
    if bounds.minimum is not None:
        exact_terms.append(BusinessService.price >= bounds.minimum)
        range_terms.append(BusinessService.price_min >= bounds.minimum)
    if bounds.maximum is not None:
        exact_terms.append(BusinessService.price <= bounds.maximum)
        range_terms.append(BusinessService.price_max <= bounds.maximum)
    return or_(and_(*exact_terms), and_(*range_terms))


def service_clause(filters: ServiceFilters) -> ColumnElement[bool] | None:
    """Conjunction of every supplied filter over a single service row."""
    terms: list[ColumnElement[bool]] = []
    if filters.instrument_family:
        terms.append(BusinessService.instrument_family == filters.instrument_family)
    if filters.instrument_type:
        terms.append(BusinessService.instrument_type == filters.instrument_type)
    if filters.service_name:
        terms.append(BusinessService.name == filters.service_name)
    if filters.category:
        terms.append(BusinessService.category == filters.category)
    if filters.bounds.active:
        terms.append(_price_clause(filters.bounds))
    if not terms:
        return None
    return and_(*terms)


def business_service_clause(filters: ServiceFilters) -> ColumnElement[bool] | None:
    """Business-level predicate: at least one service satisfies all filters."""
    clause = service_clause(filters)
    if clause is None:
        return None
    return Business.services.any(clause)
