"""Unit tests for interval conflict detection (pure functions)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import date, datetime
from app.services.conflict_detector import (
    ranges_overlap, unavailable_periods, validate_requested_range, to_day,
    REASON_OCCUPIED, REASON_BUFFER,
)


def booking(start, end, status="Confirmed", booking_id=1, is_cancel=False):
    return {"booking_id": booking_id, "start_date": start, "end_date": end,
            "booking_status": status, "isCancel": is_cancel}


RANGES = [
    (date(2025, 1, 1), date(2025, 1, 5)),
    (date(2025, 1, 5), date(2025, 1, 8)),
    (date(2025, 1, 6), date(2025, 1, 6)),
    (date(2025, 1, 9), date(2025, 1, 12)),
    (date(2024, 12, 30), date(2025, 1, 20)),
]


class TestRangesOverlap:
    @pytest.mark.parametrize("a", RANGES)
    @pytest.mark.parametrize("b", RANGES)
    def test_overlap_is_symmetric(self, a, b):
        assert ranges_overlap(*a, *b) == ranges_overlap(*b, *a)

    def test_shared_endpoint_overlaps(self):
        assert ranges_overlap(date(2025, 1, 1), date(2025, 1, 5), date(2025, 1, 5), date(2025, 1, 8))

    def test_adjacent_days_do_not_overlap(self):
        assert not ranges_overlap(date(2025, 1, 1), date(2025, 1, 5), date(2025, 1, 6), date(2025, 1, 8))

    def test_time_of_day_is_ignored(self):
        assert ranges_overlap(datetime(2025, 1, 5, 23, 59), datetime(2025, 1, 6, 1, 0),
                              date(2025, 1, 1), date(2025, 1, 5))

    def test_to_day_accepts_iso_strings(self):
        assert to_day("2025-03-05") == date(2025, 3, 5)
        assert to_day("2025-03-05T22:00:00Z") == date(2025, 3, 5)


class TestUnavailablePeriods:
    def test_booking_emits_span_and_buffer(self):
        periods = unavailable_periods([booking(date(2025, 1, 6), date(2025, 1, 10))], buffer_days=1)
        assert len(periods) == 2
        occupied, buffer = periods
        assert (occupied.start, occupied.end, occupied.reason) == (date(2025, 1, 6), date(2025, 1, 10), REASON_OCCUPIED)
        assert (buffer.start, buffer.end, buffer.reason) == (date(2025, 1, 11), date(2025, 1, 11), REASON_BUFFER)
        assert buffer.is_maintenance and not occupied.is_maintenance
        assert buffer.source_booking_id == 1

    def test_multi_day_buffer(self):
        periods = unavailable_periods([booking(date(2025, 1, 6), date(2025, 1, 10))], buffer_days=3)
        assert (periods[1].start, periods[1].end) == (date(2025, 1, 11), date(2025, 1, 13))

    def test_zero_buffer_emits_no_buffer_period(self):
        periods = unavailable_periods([booking(date(2025, 1, 6), date(2025, 1, 10))], buffer_days=0)
        assert [p.reason for p in periods] == [REASON_OCCUPIED]

    @pytest.mark.parametrize("status", ["Cancelled", "Rejected", "Returned", "Completed"])
    def test_non_blocking_statuses_contribute_nothing(self, status):
        assert unavailable_periods([booking(date(2025, 1, 6), date(2025, 1, 10), status=status)]) == []

    def test_cancel_flag_excludes_booking(self):
        assert unavailable_periods([booking(date(2025, 1, 6), date(2025, 1, 10), status="Pending",
                                            is_cancel=True)]) == []

    @pytest.mark.parametrize("status", ["Pending", "Confirmed", "In Progress"])
    def test_active_statuses_block(self, status):
        assert len(unavailable_periods([booking(date(2025, 1, 6), date(2025, 1, 10), status=status)])) == 2


class TestValidateRequestedRange:
    def test_buffer_day_blocked_next_day_free(self):
        existing = [booking(date(2025, 1, 6), date(2025, 1, 10))]
        blocked = validate_requested_range(date(2025, 1, 11), date(2025, 1, 11), existing, 1)
        free = validate_requested_range(date(2025, 1, 12), date(2025, 1, 14), existing, 1)
        assert not blocked.is_valid
        assert blocked.conflicts[0].reason == REASON_BUFFER
        assert free.is_valid and free.conflicts == []

    def test_range_ending_on_buffer_first_day_conflicts(self):
        existing = [booking(date(2025, 1, 6), date(2025, 1, 10))]
        check = validate_requested_range(date(2025, 1, 1), date(2025, 1, 11), existing, 1)
        assert not check.is_valid

    def test_zero_length_range_valid_when_untouched(self):
        existing = [booking(date(2025, 1, 6), date(2025, 1, 10))]
        assert validate_requested_range(date(2025, 1, 3), date(2025, 1, 3), existing, 1).is_valid

    def test_reports_all_conflicts(self):
        existing = [booking(date(2025, 3, 1), date(2025, 3, 5), booking_id=7)]
        check = validate_requested_range(date(2025, 3, 4), date(2025, 3, 6), existing, 1)
        assert not check.is_valid
        assert [c.reason for c in check.conflicts] == [REASON_OCCUPIED, REASON_BUFFER]
        assert all(c.source_booking_id == 7 for c in check.conflicts)
        assert "Mar 01, 2025 - Mar 05, 2025" in check.message

    def test_conflicts_across_several_bookings(self):
        existing = [
            booking(date(2025, 3, 1), date(2025, 3, 3), booking_id=1),
            booking(date(2025, 3, 8), date(2025, 3, 9), booking_id=2),
            booking(date(2025, 3, 20), date(2025, 3, 22), booking_id=3),
        ]
        check = validate_requested_range(date(2025, 3, 2), date(2025, 3, 10), existing, 1)
        assert {c.source_booking_id for c in check.conflicts} == {1, 2}
        assert len(check.conflicts) == 4

    def test_cancelled_booking_never_conflicts(self):
        existing = [booking(date(2025, 3, 1), date(2025, 3, 5), status="Cancelled")]
        assert validate_requested_range(date(2025, 3, 1), date(2025, 3, 5), existing, 1).is_valid
