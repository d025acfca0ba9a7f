"""
Message thread endpoints.

Each quote (and the order it becomes) has one thread between the customer
and the shop.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.models.schemas import ErrorResponse, MessageCreate, MessageResponse, UnreadCountResponse
from storefront.services.message_service import message_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Messages"])


@router.get("/message-threads/{thread_id}/messages", responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def list_messages(thread_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return message_service.list_messages(db, user, thread_id)


@router.post(
    "/message-threads/{thread_id}/messages",
    status_code=201,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def send_message(
    thread_id: str,
    request: MessageCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message, customer_id = message_service.send_message(db, user, thread_id, request.body)
    await event_hub.publish(
        "message/received",
        event_payload(
            "message_received",
            message_id=message["id"],
            thread_id=thread_id,
            customer_id=customer_id,
            sender_user_id=user.id,
            sender_name=user.name,
        ),
        customer_id=customer_id,
    )
    return message


@router.patch("/messages/{message_id}/mark-read", response_model=MessageResponse)
async def mark_read(message_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    message_service.mark_read(db, user, message_id)
    return MessageResponse(message="Marked as read")


@router.get("/messages/unread-count", response_model=UnreadCountResponse)
async def unread_count(user=Depends(get_current_user), db: Session = Depends(get_db)):
    return UnreadCountResponse(unread=message_service.unread_count(db, user))
