"""
Order endpoints: order tracking, proofs, payments and invoices.

Customers only see their own orders. Staff and admins manage status,
assignment and proofs.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user, get_optional_user, require_roles
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.core.rate_limit import client_address
from storefront.models.database import OrderStatus
from storefront.models.schemas import (
    ErrorResponse,
    OrderUpdate,
    PaymentCreate,
    PaymentIntentCreate,
    PaymentIntentResponse,
    ProofChangeRequest,
    ProofCreate,
)
from storefront.services.cart_service import cart_service
from storefront.services.order_service import order_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"])

ACCESS_ERRORS = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.get("/orders")
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user=Depends(require_roles("CUSTOMER")),
    db: Session = Depends(get_db),
):
    return order_service.list_orders(db, user, status=status, page=page, limit=limit)


# Declared before /orders/{order_id} so "product" is never read as an id
@router.get("/orders/product/{order_id}", responses=ACCESS_ERRORS)
async def get_product_order(
    order_id: str,
    x_guest_email: Optional[str] = Header(None, alias="X-Guest-Email"),
    user=Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Product order for its signed-in owner or the guest who placed it."""
    return cart_service.get_product_order(db, order_id, user=user, guest_email=x_guest_email)


@router.get("/orders/{order_id}", responses=ACCESS_ERRORS)
async def get_order(order_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Everything the order detail page shows in one payload."""
    return order_service.get_order_detail(db, user, order_id)


@router.patch("/orders/{order_id}", responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, **ACCESS_ERRORS})
async def update_order(
    order_id: str,
    request: OrderUpdate,
    http_request: Request,
    staff=Depends(require_roles("STAFF", "ADMIN")),
    db: Session = Depends(get_db),
):
    order, previous, assigned = order_service.update_order(
        db, staff, order_id, request, ip_address=client_address(http_request)
    )
    customer_id = order["customer_id"]
    if previous is not None:
        await event_hub.publish(
            "order/status_updated",
            event_payload(
                "order_status_updated",
                order_id=order["id"],
                customer_id=customer_id,
                old_status=previous,
                new_status=order["status"],
                updated_by_user_id=staff.id,
            ),
            customer_id=customer_id,
        )
    if assigned:
        await event_hub.publish(
            "order/assigned",
            event_payload(
                "order_assigned",
                order_id=order["id"],
                customer_id=customer_id,
                assigned_staff_id=order["assigned_staff_id"],
            ),
            customer_id=customer_id,
        )
    return order


# ---------- proofs ----------

@router.get("/orders/{order_id}/proofs", responses=ACCESS_ERRORS)
async def list_proofs(order_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.list_proofs(db, user, order_id)


@router.post("/orders/{order_id}/proofs", status_code=201, responses={409: {"model": ErrorResponse}, **ACCESS_ERRORS})
async def create_proof(
    order_id: str,
    request: ProofCreate,
    staff=Depends(require_roles("STAFF", "ADMIN")),
    db: Session = Depends(get_db),
):
    proof, order = order_service.create_proof(db, staff, order_id, request)
    await event_hub.publish(
        "proof/uploaded",
        event_payload(
            "proof_uploaded",
            proof_id=proof["id"],
            order_id=order.id,
            customer_id=order.customer_id,
            version_number=proof["version_number"],
        ),
        customer_id=order.customer_id,
    )
    await event_hub.notify_customer(
        order.customer_id,
        f"Proof version {proof['version_number']} is ready for review",
        priority="HIGH",
        link=f"/app/orders/{order.id}",
        order_id=order.id,
    )
    return proof


@router.post("/proofs/{proof_id}/approve", responses={409: {"model": ErrorResponse}, **ACCESS_ERRORS})
async def approve_proof(proof_id: str, user=Depends(require_roles("CUSTOMER")), db: Session = Depends(get_db)):
    proof, order = order_service.approve_proof(db, user, proof_id)
    await event_hub.publish(
        "proof/approved",
        event_payload(
            "proof_approved",
            proof_id=proof["id"],
            order_id=order.id,
            customer_id=order.customer_id,
            version_number=proof["version_number"],
        ),
        customer_id=order.customer_id,
    )
    return proof


@router.post(
    "/proofs/{proof_id}/request-changes",
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, **ACCESS_ERRORS},
)
async def request_proof_changes(
    proof_id: str,
    request: ProofChangeRequest,
    user=Depends(require_roles("CUSTOMER")),
    db: Session = Depends(get_db),
):
    """
    Ask for a revision of a proof.

    Basic tiers include no revisions, standard two, premium and enterprise
    are unlimited.
    """
    proof, order, info = order_service.request_changes(db, user, proof_id, request.customer_comment)
    await event_hub.publish(
        "proof/revision_requested",
        event_payload(
            "proof_revision_requested",
            proof_id=proof["id"],
            order_id=order.id,
            customer_id=order.customer_id,
            customer_comment=proof["customer_comment"],
            **info,
        ),
        customer_id=order.customer_id,
    )
    return {"proof": proof, **info}


# ---------- payments & invoices ----------

@router.get("/orders/{order_id}/payments", responses=ACCESS_ERRORS)
async def list_payments(order_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.list_payments(db, user, order_id)


@router.post("/orders/{order_id}/payments", status_code=201, responses=ACCESS_ERRORS)
async def create_payment(
    order_id: str,
    request: PaymentCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment, order = order_service.create_payment(db, user, order_id, request)
    await event_hub.publish(
        "payment/created",
        event_payload(
            "payment_created",
            payment_id=payment["id"],
            order_id=order.id,
            customer_id=order.customer_id,
            amount=payment["amount"],
            method=payment["method"],
        ),
        customer_id=order.customer_id,
    )
    return payment


@router.post("/payments/create-intent", response_model=PaymentIntentResponse, responses=ACCESS_ERRORS)
async def create_payment_intent(
    request: PaymentIntentCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return order_service.create_payment_intent(db, user, request.order_id, request.amount)


@router.get("/invoices/{invoice_id}", responses=ACCESS_ERRORS)
async def get_invoice(invoice_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.get_invoice(db, user, invoice_id)
