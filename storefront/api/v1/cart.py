"""
Shopping cart and product checkout endpoints.

The cart is resolved from the bearer token when present, otherwise from
the ``X-Guest-ID`` header. Responses carry ``guest_id`` so anonymous
clients can persist it.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user, get_optional_user, validate_guest_id
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.core.rate_limit import client_address
from storefront.models.schemas import (
    CartItemCreate,
    CartItemUpdate,
    CheckoutRequest,
    ErrorResponse,
    PaymentIntentResponse,
    ProductIntentCreate,
)
from storefront.services.cart_service import cart_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cart"])


@router.get("/cart", responses={400: {"model": ErrorResponse}})
async def get_cart(
    user=Depends(get_optional_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    return cart_service.get_cart(db, user, guest_id)


@router.post("/cart/items", status_code=201, responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def add_cart_item(
    request: CartItemCreate,
    user=Depends(get_optional_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    """
    Add a product to the cart.

    Priced from the variant when one is given, otherwise base price times
    quantity.
    """
    return cart_service.add_item(db, user, guest_id, request)


@router.patch("/cart/items/{item_id}", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def update_cart_item(
    item_id: str,
    request: CartItemUpdate,
    user=Depends(get_optional_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    return cart_service.update_item(db, user, guest_id, item_id, request)


@router.delete("/cart/items/{item_id}", status_code=204, responses={404: {"model": ErrorResponse}})
async def remove_cart_item(
    item_id: str,
    user=Depends(get_optional_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    cart_service.remove_item(db, user, guest_id, item_id)
    return Response(status_code=204)


@router.post("/cart/merge", responses={400: {"model": ErrorResponse}})
async def merge_cart(
    user=Depends(get_current_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    """Move the guest cart's items into the signed-in user's cart."""
    return cart_service.merge_guest_cart(db, user, guest_id)


@router.post("/checkout/product", status_code=201, responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def checkout_product(
    request: CheckoutRequest,
    http_request: Request,
    user=Depends(get_optional_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    """
    Pay for the cart and create a PRODUCT order.

    Guests must give a name, email and shipping address.
    """
    result = cart_service.checkout(db, user, guest_id, request, ip_address=client_address(http_request))
    await event_hub.publish(
        "order/product_order_created",
        event_payload(
            "product_order_created",
            order_id=result["order_id"],
            customer_id=result["customer_id"],
            total_amount=result["total_amount"],
            items_count=result["items_count"],
            is_guest=result["is_guest"],
        ),
        customer_id=result["customer_id"],
    )
    return {
        "order_id": result["order_id"],
        "invoice_number": result["invoice_number"],
        "total_amount": result["total_amount"],
        "status": result["status"],
    }


@router.post("/payments/create-product-intent", response_model=PaymentIntentResponse, responses={404: {"model": ErrorResponse}})
async def create_product_intent(
    request: ProductIntentCreate,
    user=Depends(get_optional_user),
    guest_id: Optional[str] = Depends(validate_guest_id),
    db: Session = Depends(get_db),
):
    return cart_service.create_product_intent(db, user, guest_id, request.cart_id, request.amount)
