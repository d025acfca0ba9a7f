"""
Admin endpoints: quote finalization.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.core.auth import require_roles
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.core.rate_limit import client_address
from storefront.models.schemas import ErrorResponse, QuoteFinalize
from storefront.services.quote_service import quote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/quotes/{quote_id}/finalize",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_quote(
    quote_id: str,
    request: QuoteFinalize,
    http_request: Request,
    admin=Depends(require_roles("ADMIN")),
    db: Session = Depends(get_db),
):
    """
    Price a quote and open an order awaiting deposit.

    Creates the order, its invoice and binds the quote's message thread
    to the order.
    """
    result = quote_service.finalize_quote(db, admin, quote_id, request, ip_address=client_address(http_request))
    quote, order, invoice = result["quote"], result["order"], result["invoice"]
    await event_hub.publish(
        "quote/finalized",
        event_payload(
            "quote_finalized",
            quote_id=quote["id"],
            order_id=order["id"],
            customer_id=quote["customer_id"],
            final_subtotal=order["total_subtotal"],
            tax_amount=order["tax_amount"],
            total_amount=order["total_amount"],
            finalized_by_admin_id=admin.id,
            invoice_number=invoice["invoice_number"],
        ),
        customer_id=quote["customer_id"],
    )
    await event_hub.notify_customer(
        quote["customer_id"],
        f"Quote priced at {order['total_amount']:.2f}: pay the deposit to start production",
        priority="HIGH",
        link=f"/app/orders/{order['id']}",
        order_id=order["id"],
    )
    return result
