# app/services/conflict_detector.py
"""
Interval conflict detection for car bookings.

Pure functions: no DB access, no clock. A car is unavailable over the span
of every active booking plus a trailing maintenance buffer. Both booking
spans and buffers are closed intervals compared at day resolution.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from app.models.booking import ACTIVE_STATUSES

DateLike = Union[date, datetime, str]

REASON_OCCUPIED = "occupied"
REASON_BUFFER = "maintenance buffer"


@dataclass(frozen=True)
class UnavailablePeriod:
    start: date
    end: date
    reason: str
    source_booking_id: Optional[int]
    is_maintenance: bool = False

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "reason": self.reason,
            "source_booking_id": self.source_booking_id,
            "is_maintenance": self.is_maintenance,
        }


@dataclass
class ConflictCheck:
    is_valid: bool
    conflicts: list = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.is_valid:
            return "Booking dates are available"
        lines = [f"{format_date_range(c.start, c.end)} ({c.reason})" for c in self.conflicts]
        return "The requested dates conflict with existing bookings or maintenance periods: " + "; ".join(lines)


def to_day(value: DateLike) -> date:
    """Strip time-of-day. Accepts date, datetime, or an ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    raise TypeError(f"Cannot interpret {value!r} as a date")


def format_date_range(start: DateLike, end: DateLike) -> str:
    return f"{to_day(start):%b %d, %Y} - {to_day(end):%b %d, %Y}"


def ranges_overlap(a_start: DateLike, a_end: DateLike, b_start: DateLike, b_end: DateLike) -> bool:
    """Inclusive overlap test: a_start <= b_end and b_start <= a_end."""
    return to_day(a_start) <= to_day(b_end) and to_day(b_start) <= to_day(a_end)


def _field(booking, name):
    if isinstance(booking, dict):
        return booking.get(name)
    return getattr(booking, name, None)


def is_blocking(booking) -> bool:
    """Only live bookings restrict availability; cancelled-flagged ones never do."""
    return _field(booking, "booking_status") in ACTIVE_STATUSES and not _field(booking, "isCancel")


def unavailable_periods(bookings: Iterable, buffer_days: int = 1) -> list[UnavailablePeriod]:
    """
    Occupied span plus trailing maintenance buffer for every blocking booking.
    Accepts ORM rows or plain dicts with the same field names.
    """
    periods = []
    for booking in bookings:
        if not is_blocking(booking):
            continue
        start = to_day(_field(booking, "start_date"))
        end = to_day(_field(booking, "end_date"))
        booking_id = _field(booking, "id")
        if booking_id is None:
            booking_id = _field(booking, "booking_id")

        periods.append(UnavailablePeriod(start, end, REASON_OCCUPIED, booking_id, False))
        if buffer_days > 0:
            periods.append(UnavailablePeriod(
                end + timedelta(days=1), end + timedelta(days=buffer_days),
                REASON_BUFFER, booking_id, True,
            ))

    periods.sort(key=lambda p: (p.start, p.is_maintenance))
    return periods


def find_conflicts(requested_start: DateLike, requested_end: DateLike,
                   periods: Iterable[UnavailablePeriod]) -> list[UnavailablePeriod]:
    return [p for p in periods if ranges_overlap(requested_start, requested_end, p.start, p.end)]


def validate_requested_range(requested_start: DateLike, requested_end: DateLike,
                             existing_bookings: Iterable, buffer_days: int = 1) -> ConflictCheck:
    """
    Single chokepoint for every booking-creation path.
    Reports every overlapping period, not just the first.
    """
    periods = unavailable_periods(existing_bookings, buffer_days)
    conflicts = find_conflicts(requested_start, requested_end, periods)
    return ConflictCheck(is_valid=not conflicts, conflicts=conflicts)
