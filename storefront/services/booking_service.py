"""
Booking service: calendar availability and appointment scheduling.

Working days follow the calendar convention 0=Sunday .. 6=Saturday.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.audit import log_authorization_failed
from storefront.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from storefront.core.metrics import metrics
from storefront.models.database import (
    BlackoutDate,
    Booking,
    BookingStatus,
    CalendarSetting,
    Quote,
    Service,
    User,
    UserRole,
)
from storefront.models.schemas import BookingCreate, BookingUpdate
from storefront.services.common import safe_json_loads, to_naive_utc

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR = {
    "working_days": [1, 2, 3, 4, 5],
    "start_hour": 9,
    "end_hour": 18,
    "slot_duration_minutes": 120,
    "slots_per_day": 4,
    "emergency_slots_per_day": 2,
}

# Statuses that occupy a calendar slot
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

VALID_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),  # Terminal state
    BookingStatus.COMPLETED: set(),  # Terminal state
}


def calendar_weekday(day: date) -> int:
    """Weekday with Sunday as 0."""
    return (day.weekday() + 1) % 7


def parse_day(value: Optional[str], field: str) -> date:
    """Parse a YYYY-MM-DD query value."""
    if not value:
        raise ValidationFailedError("start_date and end_date required", field=field)
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationFailedError(f"{field} must be a date in YYYY-MM-DD format", field=field)


def slot_times(calendar: Dict[str, Any]) -> List[str]:
    """Slot start times (HH:MM) within working hours, capped at slots_per_day."""
    step = max(1, int(calendar["slot_duration_minutes"]))
    start = int(calendar["start_hour"]) * 60
    end = int(calendar["end_hour"]) * 60
    times = []
    minute = start
    while minute + step <= end and len(times) < int(calendar["slots_per_day"]):
        times.append(f"{minute // 60:02d}:{minute % 60:02d}")
        minute += step
    return times


def _minutes_of_day(booking: Booking, day: date) -> Tuple[int, int]:
    """(start, end) minutes of a booking on ``day``; overnight ends clip to midnight."""
    begin = booking.start_at.hour * 60 + booking.start_at.minute
    if booking.end_at.date() != day:
        return begin, 24 * 60
    return begin, booking.end_at.hour * 60 + booking.end_at.minute


def _overlaps(slot: str, step: int, intervals: List[Tuple[int, int]]) -> bool:
    hours, minutes = slot.split(":")
    begin = int(hours) * 60 + int(minutes)
    finish = begin + step
    return any(begin < b_end and b_start < finish for b_start, b_end in intervals)


class BookingService:
    """Service for calendar and booking operations."""

    # ---------- calendar ----------

    def get_calendar(self, db: Session) -> Dict[str, Any]:
        """Calendar settings row, or the defaults when none is configured."""
        row = db.query(CalendarSetting).first()
        if row is None:
            return dict(DEFAULT_CALENDAR)
        data = row.to_dict()
        data["working_days"] = safe_json_loads(row.working_days, default=DEFAULT_CALENDAR["working_days"])
        return data

    def _blackouts(self, db: Session, start: date, end: date) -> set:
        rows = db.query(BlackoutDate.date).filter(
            BlackoutDate.date >= start.isoformat(),
            BlackoutDate.date <= end.isoformat(),
        ).all()
        return {d for (d,) in rows}

    def _active_bookings(self, db: Session, start: date, end: date) -> List[Booking]:
        return db.query(Booking).filter(
            Booking.start_at >= datetime.combine(start, datetime.min.time()),
            Booking.start_at < datetime.combine(end + timedelta(days=1), datetime.min.time()),
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        ).all()

    def _day_availability(
        self,
        day: date,
        calendar: Dict[str, Any],
        bookings: List[Booking],
    ) -> Dict[str, Any]:
        regular = [b for b in bookings if not b.is_emergency]
        emergency = [b for b in bookings if b.is_emergency]
        step = int(calendar["slot_duration_minutes"])
        intervals = [_minutes_of_day(b, day) for b in regular]
        remaining = max(0, int(calendar["slots_per_day"]) - len(regular))
        free = [s for s in slot_times(calendar) if not _overlaps(s, step, intervals)] if remaining else []
        return {
            "date": day.isoformat(),
            "available_slots": free,
            "is_full": remaining == 0 or not free,
            "emergency_slots_available": max(0, int(calendar["emergency_slots_per_day"]) - len(emergency)),
        }

    def get_availability(self, db: Session, start_date: Optional[str], end_date: Optional[str]) -> Dict[str, Any]:
        """
        Bookable days between two dates (inclusive).

        Non-working days and blackout dates are omitted. For each remaining
        day the free slot start times are listed along with the emergency
        capacity left.

        Raises:
            ValidationFailedError: Missing, malformed, reversed or too long range
        """
        start = parse_day(start_date, "start_date")
        end = parse_day(end_date, "end_date")
        if end < start:
            raise ValidationFailedError("end_date must not be before start_date", field="end_date")
        if (end - start).days > settings.MAX_AVAILABILITY_RANGE_DAYS:
            raise ValidationFailedError(
                f"Date range cannot exceed {settings.MAX_AVAILABILITY_RANGE_DAYS} days",
                field="end_date",
            )

        calendar = self.get_calendar(db)
        working_days = set(calendar["working_days"])
        blackouts = self._blackouts(db, start, end)
        by_day: Dict[date, List[Booking]] = defaultdict(list)
        for booking in self._active_bookings(db, start, end):
            by_day[booking.start_at.date()].append(booking)

        available_dates = []
        current = start
        while current <= end:
            if calendar_weekday(current) in working_days and current.isoformat() not in blackouts:
                available_dates.append(self._day_availability(current, calendar, by_day[current]))
            current += timedelta(days=1)

        return {"available_dates": available_dates, "calendar_settings": calendar}

    def _check_capacity(
        self,
        db: Session,
        start_at: datetime,
        end_at: datetime,
        is_emergency: bool,
        exclude_id: Optional[str] = None,
    ) -> None:
        """
        Reject a booking the calendar cannot take.

        Emergency bookings only need emergency capacity. Regular bookings
        need a bookable day with a free slot left, and must not overlap
        another active regular booking.

        Raises:
            ConflictError: Day full, not bookable, or time already taken
        """
        day = start_at.date()
        calendar = self.get_calendar(db)
        bookings = [b for b in self._active_bookings(db, day, day) if b.id != exclude_id]
        if is_emergency:
            used = sum(1 for b in bookings if b.is_emergency)
            if used >= int(calendar["emergency_slots_per_day"]):
                raise ConflictError("No emergency slots available on this date")
            return

        bookable = calendar_weekday(day) in set(calendar["working_days"]) and not self._blackouts(db, day, day)
        if not bookable or self._day_availability(day, calendar, bookings)["is_full"]:
            raise ConflictError("No slots available on this date")

        begin = start_at.hour * 60 + start_at.minute
        finish = 24 * 60 if end_at.date() != day else end_at.hour * 60 + end_at.minute
        taken = [_minutes_of_day(b, day) for b in bookings if not b.is_emergency]
        if any(begin < b_end and b_start < finish for b_start, b_end in taken):
            raise ConflictError("Requested time overlaps an existing booking")

    # ---------- bookings ----------

    def _to_dict(self, booking: Booking, service_name: Optional[str] = None, customer_name: Optional[str] = None) -> Dict[str, Any]:
        data = booking.to_dict()
        data["service_name"] = service_name
        if customer_name is not None:
            data["customer_name"] = customer_name
        return data

    def _get_owned(self, db: Session, user: User, booking_id: str) -> Tuple[Booking, Optional[str]]:
        row = (
            db.query(Booking, Service.name)
            .join(Quote, Booking.quote_id == Quote.id)
            .outerjoin(Service, Quote.service_id == Service.id)
            .filter(Booking.id == booking_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Booking")
        booking, service_name = row
        if user.role == UserRole.CUSTOMER and booking.customer_id != user.id:
            log_authorization_failed(user.id, "booking", booking_id)
            raise PermissionDeniedError("Access denied")
        return booking, service_name

    def list_bookings(
        self,
        db: Session,
        user: User,
        status: Optional[BookingStatus] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Customers see their own bookings, staff see all; latest start first."""
        query = (
            db.query(Booking, Service.name, User.name)
            .join(Quote, Booking.quote_id == Quote.id)
            .outerjoin(Service, Quote.service_id == Service.id)
            .join(User, Booking.customer_id == User.id)
        )
        if user.role == UserRole.CUSTOMER:
            query = query.filter(Booking.customer_id == user.id)
        if start_date and end_date:
            start = parse_day(start_date, "start_date")
            end = parse_day(end_date, "end_date")
            query = query.filter(
                Booking.start_at >= datetime.combine(start, datetime.min.time()),
                Booking.start_at < datetime.combine(end + timedelta(days=1), datetime.min.time()),
            )
        if status:
            query = query.filter(Booking.status == status)

        rows = query.order_by(Booking.start_at.desc()).all()
        return [self._to_dict(b, service_name, customer_name) for b, service_name, customer_name in rows]

    def get_booking(self, db: Session, user: User, booking_id: str) -> Dict[str, Any]:
        booking, service_name = self._get_owned(db, user, booking_id)
        return self._to_dict(booking, service_name)

    def create_booking(self, db: Session, user: User, request: BookingCreate) -> Dict[str, Any]:
        """
        Book an appointment for one of the customer's quotes.

        Emergency bookings carry the urgent fee and use the emergency
        capacity instead of regular slots.

        Raises:
            NotFoundError: Quote missing or owned by someone else
            ValidationFailedError: end_at not after start_at
            ConflictError: No capacity left that day or the time is taken
        """
        quote = db.query(Quote).filter(Quote.id == request.quote_id, Quote.customer_id == user.id).first()
        if quote is None:
            raise NotFoundError("Quote")

        start_at = to_naive_utc(request.start_at)
        end_at = to_naive_utc(request.end_at)
        if end_at <= start_at:
            raise ValidationFailedError("end_at must be after start_at", field="end_at")

        self._check_capacity(db, start_at, end_at, request.is_emergency)

        booking = Booking(
            quote_id=quote.id,
            customer_id=user.id,
            start_at=start_at,
            end_at=end_at,
            status=BookingStatus.PENDING,
            is_emergency=request.is_emergency,
            urgent_fee_pct=settings.EMERGENCY_FEE_PCT if request.is_emergency else 0,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)

        metrics.increment("bookings_created")
        logger.info(f"Booking {booking.id} created for quote {quote.id} at {start_at.isoformat()} (emergency={request.is_emergency})")
        service = db.query(Service.name).filter(Service.id == quote.service_id).first()
        return self._to_dict(booking, service[0] if service else None)

    def update_booking(
        self,
        db: Session,
        user: User,
        booking_id: str,
        request: BookingUpdate,
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Reschedule or change the status of a booking.

        Customers may reschedule or cancel their own bookings only.

        Returns:
            Tuple of (booking dict, previous status when it changed else None)
        """
        booking, service_name = self._get_owned(db, user, booking_id)
        previous = booking.status

        if request.status is not None and request.status != booking.status:
            if user.role == UserRole.CUSTOMER and request.status != BookingStatus.CANCELLED:
                raise PermissionDeniedError("Customers may only reschedule or cancel a booking")
            if request.status not in VALID_TRANSITIONS.get(booking.status, set()):
                raise InvalidTransitionError("booking", booking.status.value, request.status.value)

        if request.start_at is not None or request.end_at is not None:
            if booking.status not in ACTIVE_BOOKING_STATUSES:
                raise ConflictError(f"Cannot reschedule a {booking.status.value.lower()} booking")
            start_at = to_naive_utc(request.start_at) if request.start_at else booking.start_at
            end_at = to_naive_utc(request.end_at) if request.end_at else booking.end_at
            if end_at <= start_at:
                raise ValidationFailedError("end_at must be after start_at", field="end_at")
            self._check_capacity(db, start_at, end_at, booking.is_emergency, exclude_id=booking.id)
            booking.start_at = start_at
            booking.end_at = end_at

        if request.status is not None:
            booking.status = request.status

        db.commit()
        db.refresh(booking)

        changed = previous.value if booking.status != previous else None
        if changed:
            logger.info(f"Booking {booking.id} status {previous.value} -> {booking.status.value}")
        return self._to_dict(booking, service_name), changed


# Singleton instance
booking_service = BookingService()
