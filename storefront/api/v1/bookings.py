"""
Booking calendar endpoints.

Availability is public; bookings belong to customers and are managed by
staff.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user, require_roles
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.models.database import BookingStatus
from storefront.models.schemas import BookingCreate, BookingUpdate, ErrorResponse
from storefront.services.booking_service import booking_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])


@router.get("/calendar/availability", responses={400: {"model": ErrorResponse}})
async def get_availability(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """
    Free slots per working day between two dates (inclusive).

    Non-working days and blackout dates are left out.
    """
    return booking_service.get_availability(db, start_date, end_date)


@router.get("/bookings")
async def list_bookings(
    status: Optional[BookingStatus] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return booking_service.list_bookings(db, user, status=status, start_date=start_date, end_date=end_date)


@router.post(
    "/bookings",
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_booking(
    request: BookingCreate,
    user=Depends(require_roles("CUSTOMER")),
    db: Session = Depends(get_db),
):
    booking = booking_service.create_booking(db, user, request)
    await event_hub.publish(
        "booking/created",
        event_payload(
            "booking_created",
            booking_id=booking["id"],
            quote_id=booking["quote_id"],
            customer_id=user.id,
            start_at=booking["start_at"],
            is_emergency=booking["is_emergency"],
        ),
        customer_id=user.id,
    )
    return booking


@router.get("/bookings/{booking_id}", responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def get_booking(booking_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return booking_service.get_booking(db, user, booking_id)


@router.patch(
    "/bookings/{booking_id}",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_booking(
    booking_id: str,
    request: BookingUpdate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reschedule a booking or move it along PENDING -> CONFIRMED -> COMPLETED."""
    booking, previous = booking_service.update_booking(db, user, booking_id, request)
    if previous is not None and booking["status"] == BookingStatus.CONFIRMED.value:
        await event_hub.publish(
            "booking/confirmed",
            event_payload(
                "booking_confirmed",
                booking_id=booking["id"],
                customer_id=booking["customer_id"],
                start_at=booking["start_at"],
                confirmed_by_user_id=user.id,
            ),
            customer_id=booking["customer_id"],
        )
    return booking
