"""
Guest quote endpoints.

Visitors without an account submit a quote and receive a magic link token
that lets them follow it and approve or reject it.

Rate Limiting:
- Per-client limit on guest quote submission
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.core.rate_limit import enforce_rate_limit
from storefront.models.schemas import ErrorResponse, GuestQuoteCreate, GuestQuoteStatusUpdate
from storefront.services.quote_service import quote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/guest/quotes", tags=["Guest quotes"])

TOKEN_ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    410: {"model": ErrorResponse},
}


@router.post("", status_code=201, responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}})
async def create_guest_quote(request: GuestQuoteCreate, http_request: Request, db: Session = Depends(get_db)):
    """
    Submit a quote without an account.

    Returns:
        quote, quote_answers and the magic_link_token for follow-up
    """
    enforce_rate_limit(http_request, "guest_quote", settings.RATE_LIMIT_MAX_GUEST_QUOTES)
    result = quote_service.create_guest_quote(db, request)
    quote = result["quote"]
    await event_hub.publish(
        "quote/status_updated",
        event_payload(
            "guest_quote_submitted",
            quote_id=quote["id"],
            is_guest=True,
            guest_email=quote["guest_email"],
            old_status=None,
            new_status=quote["status"],
        ),
    )
    return result


@router.get("/{token}", responses=TOKEN_ERRORS)
async def get_guest_quote(token: str, db: Session = Depends(get_db)):
    return quote_service.get_guest_quote(db, token)


@router.patch("/{token}/status", responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, **TOKEN_ERRORS})
async def update_guest_quote_status(token: str, request: GuestQuoteStatusUpdate, db: Session = Depends(get_db)):
    """Approve or reject a guest quote through its magic link."""
    quote, previous = quote_service.update_guest_quote_status(db, token, request.status)
    await event_hub.publish(
        "quote/status_updated",
        event_payload(
            "guest_quote_status_updated",
            quote_id=quote["id"],
            is_guest=True,
            old_status=previous,
            new_status=quote["status"],
        ),
    )
    return {"quote": quote, "message": f"Quote {quote['status'].lower()} successfully"}
