"""
Message service: quote/order conversation threads between customers and staff.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.audit import log_authorization_failed
from storefront.core.exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from storefront.core.metrics import metrics
from storefront.models.database import Message, MessageThread, Order, Quote, User, UserRole

logger = logging.getLogger(__name__)


class MessageService:
    """Service for thread access and messages."""

    def thread_customer_id(self, db: Session, thread: MessageThread) -> Optional[str]:
        """Customer who owns the quote or order behind a thread."""
        if thread.quote_id:
            quote = db.query(Quote.customer_id).filter(Quote.id == thread.quote_id).first()
            if quote and quote[0]:
                return quote[0]
        if thread.order_id:
            order = db.query(Order.customer_id).filter(Order.id == thread.order_id).first()
            if order and order[0]:
                return order[0]
        return None

    def get_thread(self, db: Session, user: User, thread_id: str) -> Tuple[MessageThread, Optional[str]]:
        """
        Fetch a thread the caller participates in.

        Returns:
            Tuple of (thread, owning customer id)

        Raises:
            NotFoundError: Unknown thread
            PermissionDeniedError: Customer is not the thread owner
        """
        thread = db.query(MessageThread).filter(MessageThread.id == thread_id).first()
        if thread is None:
            raise NotFoundError("Message thread")
        customer_id = self.thread_customer_id(db, thread)
        if user.role == UserRole.CUSTOMER and customer_id != user.id:
            log_authorization_failed(user.id, "message_thread", thread_id)
            raise PermissionDeniedError("Access denied")
        return thread, customer_id

    def list_messages(self, db: Session, user: User, thread_id: str) -> List[Dict[str, Any]]:
        thread, _ = self.get_thread(db, user, thread_id)
        rows = (
            db.query(Message, User.name, User.role)
            .join(User, Message.sender_user_id == User.id)
            .filter(Message.thread_id == thread.id)
            .order_by(Message.created_at)
            .all()
        )
        messages = []
        for message, sender_name, sender_role in rows:
            data = message.to_dict()
            data["sender_name"] = sender_name
            data["sender_role"] = sender_role.value
            messages.append(data)
        return messages

    def send_message(self, db: Session, user: User, thread_id: str, body: Optional[str]) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Post a message to a thread.

        Returns:
            Tuple of (message dict with sender fields, owning customer id)

        Raises:
            ValidationFailedError: Empty body or longer than MESSAGE_MAX_LENGTH
        """
        text = (body or "").strip()
        if not text or len(text) > settings.MESSAGE_MAX_LENGTH:
            raise ValidationFailedError(
                f"Body required and must be <= {settings.MESSAGE_MAX_LENGTH} characters",
                field="body",
            )

        thread, customer_id = self.get_thread(db, user, thread_id)
        message = Message(thread_id=thread.id, sender_user_id=user.id, body=text, is_read=False)
        db.add(message)
        db.commit()
        db.refresh(message)

        metrics.increment("messages_sent")
        logger.info(f"Message {message.id} posted to thread {thread.id} by {user.role.value}")
        data = message.to_dict()
        data["sender_name"] = user.name
        data["sender_role"] = user.role.value
        return data, customer_id

    def mark_read(self, db: Session, user: User, message_id: str) -> None:
        """Recipients mark a message as read; senders cannot."""
        message = db.query(Message).filter(Message.id == message_id).first()
        if message is None:
            raise NotFoundError("Message")
        self.get_thread(db, user, message.thread_id)
        if message.sender_user_id == user.id:
            raise PermissionDeniedError("Only the recipient can mark a message as read")
        if not message.is_read:
            message.is_read = True
            db.commit()

    def unread_count(self, db: Session, user: User) -> int:
        """Unread messages addressed to the caller across their threads."""
        query = db.query(Message).filter(Message.is_read.is_(False), Message.sender_user_id != user.id)
        if user.role == UserRole.CUSTOMER:
            quote_ids = select(Quote.id).where(Quote.customer_id == user.id)
            order_ids = select(Order.id).where(Order.customer_id == user.id)
            thread_ids = select(MessageThread.id).where(
                or_(MessageThread.quote_id.in_(quote_ids), MessageThread.order_id.in_(order_ids))
            )
            query = query.filter(Message.thread_id.in_(thread_ids))
        return query.count()


# Singleton instance
message_service = MessageService()
