"""
Order service: order tracking, proof versions, payments and invoices.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.core.audit import AuditAction, log_authorization_failed, record_audit
from storefront.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from storefront.core.security import generate_invoice_number, truncate_secret
from storefront.models.database import (
    Booking,
    Invoice,
    MessageThread,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    ProofStatus,
    ProofVersion,
    Quote,
    Service,
    TierPackage,
    User,
    UserRole,
    utcnow,
)
from storefront.models.schemas import OrderUpdate, PaymentCreate, ProofCreate
from storefront.services.common import clamp_page, money, safe_json_loads

logger = logging.getLogger(__name__)

# Revisions a customer may request per tier slug (None = unlimited)
TIER_REVISION_LIMITS = {
    "basic": 0,
    "standard": 2,
    "premium": None,
    "enterprise": None,
}

TERMINAL_ORDER_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

INVOICE_NUMBER_ATTEMPTS = 10


def allocate_invoice_number(db: Session, prefix: str, year: int) -> str:
    """Pick an unused invoice number with a random 5-digit suffix."""
    for _ in range(INVOICE_NUMBER_ATTEMPTS):
        number = generate_invoice_number(prefix, year)
        if db.query(Invoice.id).filter(Invoice.invoice_number == number).first() is None:
            return number
    raise ConflictError("Could not allocate an invoice number, please retry")


def revision_limit_for(tier_slug: Optional[str]) -> Optional[int]:
    """Revision allowance for a tier; unknown tiers get none."""
    if tier_slug is None:
        return 0
    return TIER_REVISION_LIMITS.get(tier_slug.lower(), 0)


class OrderService:
    """Service for order lifecycle operations."""

    # ---------- lookups ----------

    def get_order(self, db: Session, order_id: str) -> Order:
        order = db.query(Order).filter(Order.id == order_id).first()
        if order is None:
            raise NotFoundError("Order")
        return order

    def get_owned_order(self, db: Session, user: User, order_id: str) -> Order:
        """Fetch an order, enforcing that customers only see their own."""
        order = self.get_order(db, order_id)
        if user.role == UserRole.CUSTOMER and order.customer_id != user.id:
            logger.warning(f"Unauthorized access attempt: user {truncate_secret(user.id)} tried to access order {order_id}")
            log_authorization_failed(user.id, "order", order_id)
            raise PermissionDeniedError("You don't have permission to access this order")
        return order

    def total_paid(self, db: Session, order_id: str) -> float:
        """Sum of COMPLETED payments for an order."""
        paid = db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(
            Payment.order_id == order_id,
            Payment.status == PaymentStatus.COMPLETED,
        ).scalar()
        return money(paid)

    def payment_status(self, db: Session, order: Order) -> Dict[str, Any]:
        paid = self.total_paid(db, order.id)
        return {
            "total_paid": paid,
            "deposit_paid": paid >= money(order.deposit_amount) and paid > 0,
            "balance_due": money(max(0.0, order.total_amount - paid)),
        }

    def _service_and_tier(self, db: Session, order: Order) -> Tuple[Optional[dict], Optional[dict], Optional[Quote]]:
        quote = db.query(Quote).filter(Quote.id == order.quote_id).first() if order.quote_id else None
        service = db.query(Service).filter(Service.id == quote.service_id).first() if quote else None
        tier = db.query(TierPackage).filter(TierPackage.id == order.tier_id).first() if order.tier_id else None
        return (service.to_dict() if service else None, tier.to_dict() if tier else None, quote)

    # ---------- orders ----------

    def list_orders(
        self,
        db: Session,
        user: User,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """List the caller's orders with payment status, newest first."""
        page, limit, offset = clamp_page(page, limit)
        query = db.query(Order).filter(Order.customer_id == user.id)
        if status:
            query = query.filter(Order.status == status)

        total = query.count()
        orders = query.order_by(Order.created_at.desc()).offset(offset).limit(limit).all()

        items = []
        for order in orders:
            service, tier, _ = self._service_and_tier(db, order)
            items.append({
                "order": order.to_dict(),
                "service": service,
                "tier": tier,
                "payment_status": self.payment_status(db, order),
            })
        return {"orders": items, "total": total}

    def get_order_detail(self, db: Session, user: User, order_id: str) -> Dict[str, Any]:
        order = self.get_owned_order(db, user, order_id)
        service, tier, quote = self._service_and_tier(db, order)

        booking = None
        if order.quote_id:
            booking = (
                db.query(Booking)
                .filter(Booking.quote_id == order.quote_id)
                .order_by(Booking.start_at.desc())
                .first()
            )
        proofs = db.query(ProofVersion).filter(ProofVersion.order_id == order.id).order_by(ProofVersion.version_number.desc()).all()
        invoice = db.query(Invoice).filter(Invoice.order_id == order.id).first()
        payments = db.query(Payment).filter(Payment.order_id == order.id).order_by(Payment.created_at).all()
        items = db.query(OrderItem).filter(OrderItem.order_id == order.id).order_by(OrderItem.created_at).all()
        thread = db.query(MessageThread).filter(MessageThread.order_id == order.id).first()

        return {
            "order": order.to_dict(),
            "quote": quote.to_dict() if quote else None,
            "service": service,
            "tier": tier,
            "booking": booking.to_dict() if booking else None,
            "proof_versions": [p.to_dict() for p in proofs],
            "invoice": invoice.to_dict() if invoice else None,
            "payments": [p.to_dict() for p in payments],
            "items": [item_to_dict(i) for i in items],
            "payment_status": self.payment_status(db, order),
            "message_thread": thread.to_dict() if thread else None,
        }

    def update_order(
        self,
        db: Session,
        staff: User,
        order_id: str,
        request: OrderUpdate,
        ip_address: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], Optional[str], bool]:
        """
        Staff update of order status and assignment.

        Returns:
            Tuple of (order dict, previous status if changed, assignment changed)
        """
        order = self.get_order(db, order_id)
        previous_status = order.status
        previous_assignee = order.assigned_staff_id

        if request.status is not None and request.status != order.status:
            if order.status in TERMINAL_ORDER_STATUSES:
                raise InvalidTransitionError("order", order.status.value, request.status.value)
            order.status = request.status

        if request.assigned_staff_id is not None:
            assignee = db.query(User).filter(User.id == request.assigned_staff_id).first()
            if assignee is None or assignee.role == UserRole.CUSTOMER:
                raise ValidationFailedError("assigned_staff_id must reference a staff member", field="assigned_staff_id")
            order.assigned_staff_id = assignee.id

        record_audit(
            db, staff.id, AuditAction.UPDATE, "order", order.id,
            metadata=request.model_dump(exclude_none=True, mode="json"), ip_address=ip_address,
        )
        db.commit()
        db.refresh(order)

        status_changed = previous_status.value if order.status != previous_status else None
        assigned = order.assigned_staff_id != previous_assignee
        logger.info(f"Order {order.id} updated by {truncate_secret(staff.id)} (status_changed={bool(status_changed)}, assigned={assigned})")
        return order.to_dict(), status_changed, assigned

    # ---------- proofs ----------

    def list_proofs(self, db: Session, user: User, order_id: str) -> List[Dict[str, Any]]:
        order = self.get_owned_order(db, user, order_id)
        proofs = db.query(ProofVersion).filter(ProofVersion.order_id == order.id).order_by(ProofVersion.version_number.desc()).all()
        return [p.to_dict() for p in proofs]

    def create_proof(self, db: Session, staff: User, order_id: str, request: ProofCreate) -> Tuple[Dict[str, Any], Order]:
        """Upload the next proof version and mark the order PROOF_SENT."""
        order = self.get_order(db, order_id)
        if order.status in TERMINAL_ORDER_STATUSES:
            raise InvalidTransitionError("order", order.status.value, OrderStatus.PROOF_SENT.value)

        latest = db.query(func.max(ProofVersion.version_number)).filter(ProofVersion.order_id == order.id).scalar()
        proof = ProofVersion(
            order_id=order.id,
            version_number=(latest or 0) + 1,
            file_url=request.file_url,
            created_by_staff_id=staff.id,
            status=ProofStatus.SENT,
            internal_notes=request.internal_notes,
        )
        db.add(proof)
        order.status = OrderStatus.PROOF_SENT
        db.commit()
        db.refresh(proof)
        db.refresh(order)
        logger.info(f"Proof v{proof.version_number} sent for order {order.id}")
        return proof.to_dict(), order

    def _get_customer_proof(self, db: Session, user: User, proof_id: str) -> Tuple[ProofVersion, Order]:
        proof = db.query(ProofVersion).filter(ProofVersion.id == proof_id).first()
        if proof is None:
            raise NotFoundError("Proof")
        order = self.get_order(db, proof.order_id)
        if order.customer_id != user.id:
            log_authorization_failed(user.id, "proof", proof_id)
            raise PermissionDeniedError("Access denied")
        if proof.status != ProofStatus.SENT:
            raise ConflictError(f"Proof is already {proof.status.value}")
        return proof, order

    def approve_proof(self, db: Session, user: User, proof_id: str) -> Tuple[Dict[str, Any], Order]:
        """Customer approves a proof; production starts."""
        proof, order = self._get_customer_proof(db, user, proof_id)
        proof.status = ProofStatus.APPROVED
        proof.approved_at = utcnow()
        order.status = OrderStatus.IN_PRODUCTION
        db.commit()
        db.refresh(proof)
        db.refresh(order)
        logger.info(f"Proof {proof.id} approved for order {order.id}")
        return proof.to_dict(), order

    def request_changes(
        self,
        db: Session,
        user: User,
        proof_id: str,
        customer_comment: Optional[str],
    ) -> Tuple[Dict[str, Any], Order, Dict[str, Any]]:
        """
        Customer asks for a revision, bounded by the order's tier.

        Returns:
            Tuple of (proof dict, order, revision info with revisions_remaining)

        Raises:
            ValidationFailedError: Missing comment or tier revision limit reached
        """
        comment = (customer_comment or "").strip()
        if not comment:
            raise ValidationFailedError("customer_comment required", field="customer_comment")

        proof, order = self._get_customer_proof(db, user, proof_id)
        tier = db.query(TierPackage).filter(TierPackage.id == order.tier_id).first() if order.tier_id else None
        limit = revision_limit_for(tier.slug if tier else None)
        if limit is not None and order.revision_count >= limit:
            raise ValidationFailedError("Revision limit reached for your tier")

        proof.status = ProofStatus.REVISION_REQUESTED
        proof.customer_comment = comment
        order.status = OrderStatus.IN_PRODUCTION
        order.revision_count = (order.revision_count or 0) + 1
        db.commit()
        db.refresh(proof)
        db.refresh(order)

        info = {
            "revision_count": order.revision_count,
            "tier_revision_limit": limit,
            "revisions_remaining": None if limit is None else max(0, limit - order.revision_count),
        }
        logger.info(f"Revision requested on proof {proof.id} (order {order.id}, {info['revision_count']} used)")
        return proof.to_dict(), order, info

    # ---------- payments & invoices ----------

    def list_payments(self, db: Session, user: User, order_id: str) -> List[Dict[str, Any]]:
        order = self.get_owned_order(db, user, order_id)
        payments = db.query(Payment).filter(Payment.order_id == order.id).order_by(Payment.created_at).all()
        return [p.to_dict() for p in payments]

    def create_payment(self, db: Session, user: User, order_id: str, request: PaymentCreate) -> Tuple[Dict[str, Any], Order]:
        """Record a pending payment against an order."""
        order = self.get_owned_order(db, user, order_id)
        payment = Payment(
            order_id=order.id,
            amount=money(request.amount),
            method=request.method,
            status=PaymentStatus.PENDING,
            transaction_ref=request.transaction_ref,
            recorded_by_admin_id=user.id if user.role == UserRole.ADMIN else None,
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        logger.info(f"Payment {payment.id} of {payment.amount} recorded for order {order.id}")
        return payment.to_dict(), order

    def create_payment_intent(self, db: Session, user: User, order_id: str, amount: float) -> Dict[str, str]:
        """Mock card payment intent for the deposit/balance screen."""
        order = self.get_owned_order(db, user, order_id)
        intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        logger.info(f"Created mock payment intent {intent_id} for order {order.id} amount={money(amount)}")
        return {"client_secret": f"{intent_id}_secret_{uuid.uuid4().hex[:16]}", "payment_intent_id": intent_id}

    def get_invoice(self, db: Session, user: User, invoice_id: str) -> Dict[str, Any]:
        invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if invoice is None:
            raise NotFoundError("Invoice")
        order = self.get_owned_order(db, user, invoice.order_id)
        customer = db.query(User).filter(User.id == order.customer_id).first() if order.customer_id else None
        if customer is not None:
            customer_data = {"id": customer.id, "name": customer.name, "email": customer.email}
        else:
            customer_data = {"id": None, "name": order.guest_name, "email": order.guest_email}
        return {"invoice": invoice.to_dict(), "order": order.to_dict(), "customer": customer_data}


def item_to_dict(item) -> Dict[str, Any]:
    """Order/cart item with the JSON config snapshot decoded."""
    data = item.to_dict()
    data["config"] = safe_json_loads(data.pop("config_snapshot", None), default=None)
    return data


# Singleton instance
order_service = OrderService()
