"""
Customer quote endpoints.

Quote lifecycle: SUBMITTED -> IN_REVIEW -> APPROVED | REJECTED. Customers
only decide on their own quotes; staff move quotes through review and set
pricing. Every status change is published on ``quote/status_updated``.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user, require_roles
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.core.rate_limit import client_address
from storefront.models.database import QuoteStatus
from storefront.models.schemas import ErrorResponse, QuoteCreate, QuoteUpdate
from storefront.services.quote_service import quote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


@router.get("")
async def list_quotes(
    status: Optional[QuoteStatus] = Query(None),
    page: int = Query(1, ge=1),
    user=Depends(require_roles("CUSTOMER")),
    db: Session = Depends(get_db),
):
    """The caller's quotes, newest first, 20 per page."""
    return quote_service.list_quotes(db, user, status=status, page=page)


@router.post("", status_code=201, responses={404: {"model": ErrorResponse}})
async def create_quote(
    request: QuoteCreate,
    http_request: Request,
    user=Depends(require_roles("CUSTOMER")),
    db: Session = Depends(get_db),
):
    """
    Submit a quote request.

    Wizard answers in ``project_details`` become quote answers and the
    caller's own uploads listed in ``file_ids`` are attached.
    """
    result = quote_service.create_quote(db, user, request, ip_address=client_address(http_request))
    quote = result["quote"]
    await event_hub.publish(
        "quote/status_updated",
        event_payload(
            "quote_status_updated",
            quote_id=quote["id"],
            customer_id=user.id,
            old_status=None,
            new_status=quote["status"],
        ),
        customer_id=user.id,
    )
    return result


@router.get("/{quote_id}", responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def get_quote(quote_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return quote_service.get_quote_detail(db, user, quote_id)


@router.patch(
    "/{quote_id}",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_quote(
    quote_id: str,
    request: QuoteUpdate,
    http_request: Request,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update a quote.

    Customers may approve a priced quote or reject it. Staff may also set
    IN_REVIEW and ``final_subtotal``.
    """
    quote, previous = quote_service.update_quote(db, user, quote_id, request, ip_address=client_address(http_request))
    if previous is not None:
        await event_hub.publish(
            "quote/status_updated",
            event_payload(
                "quote_status_updated",
                quote_id=quote["id"],
                customer_id=quote["customer_id"],
                old_status=previous,
                new_status=quote["status"],
                updated_by_user_id=user.id,
            ),
            customer_id=quote["customer_id"],
        )
    return quote
