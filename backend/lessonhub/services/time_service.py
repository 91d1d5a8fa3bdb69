from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement

from ..models import WEEKDAYS, Business, BusinessHour

logger = logging.getLogger(__name__)

DASHBOARD_RANGES = ("day", "week", "month")
LISTING_BUCKET_DAYS = {"last-7": 7, "last-30": 30}


class HourLike(Protocol):
    day: str
    open: str | None
    close: str | None
    closed: bool


@dataclass(frozen=True, slots=True)
class ClockReading:
    day: str
    time_of_day: str


def _zone(timezone_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", timezone_name)
        return ZoneInfo("UTC")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(now: datetime | None) -> datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def read_clock(timezone_name: str, now: datetime | None = None) -> ClockReading:
    local_now = _aware(now).astimezone(_zone(timezone_name))
    return ClockReading(day=WEEKDAYS[local_now.weekday()], time_of_day=local_now.strftime("%H:%M"))


def is_open_now(hours: Iterable[HourLike], reading: ClockReading) -> bool:
    for row in hours:
        if row.day != reading.day:
            continue
        if row.closed or not row.open or not row.close:
            return False
        return row.open <= reading.time_of_day <= row.close
    return False


def open_now_clause(reading: ClockReading) -> ColumnElement[bool]:
    return Business.hours.any(
        and_(
            BusinessHour.day == reading.day,
            BusinessHour.closed.is_(False),
            BusinessHour.open <= reading.time_of_day,
            BusinessHour.close >= reading.time_of_day,
        )
    )


def dashboard_window_start(range_token: str, timezone_name: str, now: datetime | None = None) -> datetime:
    """Resolve a dashboard range token to its window start, in UTC.

    day: start of the current local day. week: seven days before that.
    month: first of the current month at start of day.
    """
    if range_token not in DASHBOARD_RANGES:
        raise ValueError(f"Unsupported dashboard range {range_token!r}")

    local_now = _aware(now).astimezone(_zone(timezone_name))
    start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    if range_token == "week":
        start = start - timedelta(days=7)
    elif range_token == "month":
        start = start.replace(day=1)
    return start.astimezone(timezone.utc)


def listing_window_start(bucket: str | None, now: datetime | None = None) -> datetime | None:
    days = LISTING_BUCKET_DAYS.get(bucket or "all")
    if days is None:
        return None
    return _aware(now).astimezone(timezone.utc) - timedelta(days=days)
