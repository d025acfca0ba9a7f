"""
Unit tests for calendar helpers in the booking service.
"""
from datetime import date, datetime

import pytest


class TestCalendarHelpers:

    def test_calendar_weekday_starts_on_sunday(self):
        from storefront.services.booking_service import calendar_weekday

        assert calendar_weekday(date(2026, 10, 18)) == 0  # Sunday
        assert calendar_weekday(date(2026, 10, 19)) == 1  # Monday
        assert calendar_weekday(date(2026, 10, 24)) == 6  # Saturday

    def test_parse_day(self):
        from storefront.core.exceptions import ValidationFailedError
        from storefront.services.booking_service import parse_day

        assert parse_day("2026-10-19", "start_date") == date(2026, 10, 19)
        assert parse_day("2026-10-19T09:00:00Z", "start_date") == date(2026, 10, 19)
        with pytest.raises(ValidationFailedError):
            parse_day(None, "start_date")
        with pytest.raises(ValidationFailedError):
            parse_day("19/10/2026", "start_date")

    def test_slot_times_default_calendar(self):
        from storefront.services.booking_service import DEFAULT_CALENDAR, slot_times

        assert slot_times(DEFAULT_CALENDAR) == ["09:00", "11:00", "13:00", "15:00"]

    def test_slot_times_limited_by_working_hours(self):
        from storefront.services.booking_service import slot_times

        calendar = {"slot_duration_minutes": 90, "start_hour": 9, "end_hour": 12, "slots_per_day": 10}
        assert slot_times(calendar) == ["09:00", "10:30"]


class TestDayAvailability:
    """Tests for the per-day slot computation."""

    def _booking(self, start, end, emergency=False):
        from storefront.models.database import Booking, BookingStatus

        return Booking(start_at=start, end_at=end, is_emergency=emergency, status=BookingStatus.PENDING)

    def test_booked_slot_is_removed(self):
        from storefront.services.booking_service import DEFAULT_CALENDAR, booking_service

        day = date(2026, 10, 19)
        bookings = [self._booking(datetime(2026, 10, 19, 11), datetime(2026, 10, 19, 13))]
        result = booking_service._day_availability(day, dict(DEFAULT_CALENDAR), bookings)

        assert result["date"] == "2026-10-19"
        assert result["available_slots"] == ["09:00", "13:00", "15:00"]
        assert result["is_full"] is False
        assert result["emergency_slots_available"] == 2

    def test_full_day(self):
        from storefront.services.booking_service import DEFAULT_CALENDAR, booking_service

        calendar = dict(DEFAULT_CALENDAR, slots_per_day=1)
        bookings = [self._booking(datetime(2026, 10, 19, 15), datetime(2026, 10, 19, 17))]
        result = booking_service._day_availability(date(2026, 10, 19), calendar, bookings)

        assert result["available_slots"] == []
        assert result["is_full"] is True

    def test_emergency_bookings_use_separate_capacity(self):
        from storefront.services.booking_service import DEFAULT_CALENDAR, booking_service

        bookings = [self._booking(datetime(2026, 10, 19, 9), datetime(2026, 10, 19, 10), emergency=True)]
        result = booking_service._day_availability(date(2026, 10, 19), dict(DEFAULT_CALENDAR), bookings)

        assert result["available_slots"] == ["09:00", "11:00", "13:00", "15:00"]
        assert result["emergency_slots_available"] == 1
