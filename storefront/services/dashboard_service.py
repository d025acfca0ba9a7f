"""
Customer dashboard aggregation: counters, recent activity and next actions.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.models.database import (
    Booking,
    BookingStatus,
    Order,
    OrderStatus,
    Quote,
    QuoteStatus,
    User,
    utcnow,
)
from storefront.services.message_service import message_service
from storefront.services.order_service import order_service

logger = logging.getLogger(__name__)

ACTIVE_ORDER_STATUSES = (
    OrderStatus.QUOTE_REQUESTED,
    OrderStatus.APPROVED,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.PROOF_SENT,
    OrderStatus.AWAITING_APPROVAL,
    OrderStatus.READY_FOR_PICKUP,
)
PENDING_QUOTE_STATUSES = (QuoteStatus.SUBMITTED, QuoteStatus.IN_REVIEW)
RECENT_ACTIVITY_LIMIT = 10

PRIORITY_RANK = {"HIGH": 0, "MEDIUM": 1, "LOW": 2}


def status_label(status: OrderStatus) -> str:
    return status.value.replace("_", " ")


class DashboardService:
    """Build the customer home screen from orders, quotes and bookings."""

    def summary(self, db: Session, user: User) -> Dict[str, Any]:
        orders = db.query(Order).filter(Order.customer_id == user.id).all()

        pending_quotes = db.query(Quote).filter(
            Quote.customer_id == user.id,
            Quote.status.in_(PENDING_QUOTE_STATUSES),
        ).count()

        upcoming = (
            db.query(Booking)
            .filter(
                Booking.customer_id == user.id,
                Booking.start_at >= utcnow(),
                Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)),
            )
            .order_by(Booking.start_at)
            .all()
        )

        balance_due = 0.0
        for order in orders:
            if order.status == OrderStatus.CANCELLED:
                continue
            balance_due += order_service.payment_status(db, order)["balance_due"]

        return {
            "active_orders_count": sum(1 for o in orders if o.status in ACTIVE_ORDER_STATUSES),
            "pending_quotes_count": pending_quotes,
            "upcoming_bookings_count": len(upcoming),
            "next_booking_date": upcoming[0].start_at if upcoming else None,
            "balance_due_amount": round(balance_due, 2),
            "unread_messages_count": message_service.unread_count(db, user),
        }

    def recent_activity(self, db: Session, user: User) -> List[Dict[str, Any]]:
        orders = (
            db.query(Order)
            .filter(Order.customer_id == user.id)
            .order_by(Order.updated_at.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
            .all()
        )
        return [
            {
                "id": order.id,
                "type": "order",
                "message": f"Order status: {status_label(order.status)}",
                "timestamp": order.updated_at,
                "link": f"/app/orders/{order.id}",
            }
            for order in orders
        ]

    def next_actions(self, db: Session, user: User) -> List[Dict[str, Any]]:
        """Things the customer should do now, highest priority first."""
        actions = []
        orders = db.query(Order).filter(Order.customer_id == user.id).order_by(Order.created_at.desc()).all()
        for order in orders:
            short_id = order.id[:8]
            if order.status in (OrderStatus.PROOF_SENT, OrderStatus.AWAITING_APPROVAL):
                actions.append({
                    "action_type": "APPROVE_PROOF",
                    "message": f"Review and approve the proof for order {short_id}",
                    "link": f"/app/orders/{order.id}?tab=proofs",
                    "priority": "HIGH",
                })
            elif order.status == OrderStatus.PENDING_DEPOSIT:
                actions.append({
                    "action_type": "PAY_DEPOSIT",
                    "message": f"Pay the deposit for order {short_id}",
                    "link": f"/app/orders/{order.id}?tab=payments",
                    "priority": "HIGH",
                })
            elif order.status == OrderStatus.READY_FOR_PICKUP:
                if order_service.payment_status(db, order)["balance_due"] > 0:
                    actions.append({
                        "action_type": "PAY_BALANCE",
                        "message": f"Pay the remaining balance for order {short_id}",
                        "link": f"/app/orders/{order.id}?tab=payments",
                        "priority": "MEDIUM",
                    })
        actions.sort(key=lambda a: PRIORITY_RANK.get(a["priority"], len(PRIORITY_RANK)))
        return actions

    def get_dashboard(self, db: Session, user: User) -> Dict[str, Any]:
        data = {
            "summary": self.summary(db, user),
            "recent_activity": self.recent_activity(db, user),
            "next_actions": self.next_actions(db, user),
        }
        logger.debug(f"Dashboard for {user.id}: {len(data['next_actions'])} next actions")
        return data


# Singleton instance
dashboard_service = DashboardService()
