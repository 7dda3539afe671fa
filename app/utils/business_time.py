# app/utils/business_time.py
"""
Business calendar helpers.
Timestamps are stored as naive UTC; "today" for a booking is the calendar
day in BUSINESS_TIMEZONE, not the server's or UTC's.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import settings


def business_zone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def to_business_time(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(business_zone())


def business_today(now: Optional[datetime] = None) -> date:
    return to_business_time(now or datetime.utcnow()).date()


def format_business_time(moment: datetime) -> str:
    """e.g. 'Mar 07, 2025 07:00 AM'"""
    return f"{to_business_time(moment):%b %d, %Y %I:%M %p}"
