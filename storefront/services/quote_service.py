"""
Quote service: customer and guest quote requests, the quote lifecycle
and admin finalization into an order with an invoice.
"""
import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.audit import AuditAction, log_authorization_failed, record_audit
from storefront.core.exceptions import (
    ConflictError,
    ExpiredTokenError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from storefront.core.metrics import metrics
from storefront.core.security import generate_magic_link_token, truncate_secret
from storefront.models.database import (
    GuestQuoteToken,
    Invoice,
    MessageThread,
    Order,
    OrderStatus,
    OrderType,
    Quote,
    QuoteAnswer,
    QuoteStatus,
    Service,
    TierPackage,
    Upload,
    User,
    UserRole,
    utcnow,
)
from storefront.models.schemas import (
    GuestQuoteCreate,
    QuoteCreate,
    QuoteFinalize,
    QuoteUpdate,
    is_valid_email,
    normalize_email,
)
from storefront.services.common import clamp_page, money
from storefront.services.order_service import allocate_invoice_number

logger = logging.getLogger(__name__)

# Valid status transitions for the quote lifecycle
VALID_TRANSITIONS = {
    QuoteStatus.SUBMITTED: {QuoteStatus.IN_REVIEW, QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.IN_REVIEW: {QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.APPROVED: set(),  # Terminal state
    QuoteStatus.REJECTED: set(),  # Terminal state
}

# Statuses a customer (or guest) may set on their own quote
CUSTOMER_DECISIONS = {QuoteStatus.APPROVED, QuoteStatus.REJECTED}


def stringify_answer(value: Any) -> str:
    """Store wizard answers as text; lists and dicts as JSON."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def check_transition(current: QuoteStatus, requested: QuoteStatus) -> None:
    """Raise InvalidTransitionError if ``current -> requested`` is illegal."""
    if requested not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError("quote", current.value, requested.value)


class QuoteService:
    """Service for quote management operations."""

    # ---------- lookups ----------

    def get_quote(self, db: Session, quote_id: str) -> Quote:
        quote = db.query(Quote).filter(Quote.id == quote_id).first()
        if quote is None:
            raise NotFoundError("Quote")
        return quote

    def get_owned_quote(self, db: Session, user: User, quote_id: str) -> Quote:
        """Fetch a quote, enforcing that customers only see their own.

        Raises:
            NotFoundError: Quote does not exist
            PermissionDeniedError: Customer does not own the quote
        """
        quote = self.get_quote(db, quote_id)
        if user.role == UserRole.CUSTOMER and quote.customer_id != user.id:
            logger.warning(f"Unauthorized access attempt: user {truncate_secret(user.id)} tried to access quote {quote_id}")
            log_authorization_failed(user.id, "quote", quote_id)
            raise PermissionDeniedError("You don't have permission to access this quote")
        return quote

    def _require_service_and_tier(self, db: Session, service_id: str, tier_id: str) -> Tuple[Service, TierPackage]:
        service = db.query(Service).filter(Service.id == service_id, Service.is_active.is_(True)).first()
        if service is None:
            raise NotFoundError("Service")
        tier = db.query(TierPackage).filter(TierPackage.id == tier_id, TierPackage.is_active.is_(True)).first()
        if tier is None:
            raise NotFoundError("Tier")
        return service, tier

    def _service_and_tier_dicts(self, db: Session, quote: Quote) -> Tuple[Optional[dict], Optional[dict]]:
        service = db.query(Service).filter(Service.id == quote.service_id).first()
        tier = db.query(TierPackage).filter(TierPackage.id == quote.tier_id).first()
        return (service.to_dict() if service else None, tier.to_dict() if tier else None)

    def get_answers(self, db: Session, quote_id: str) -> List[Dict[str, Any]]:
        answers = db.query(QuoteAnswer).filter(QuoteAnswer.quote_id == quote_id).order_by(QuoteAnswer.created_at).all()
        return [a.to_dict() for a in answers]

    def _add_answers(self, db: Session, quote: Quote, project_details: Optional[Dict[str, Any]]) -> None:
        for key, value in (project_details or {}).items():
            if value is None:
                continue
            db.add(QuoteAnswer(quote_id=quote.id, option_key=str(key)[:100], value=stringify_answer(value)))

    # ---------- customer quotes ----------

    def list_quotes(
        self,
        db: Session,
        user: User,
        status: Optional[QuoteStatus] = None,
        page: int = 1,
    ) -> Dict[str, Any]:
        """List the caller's quotes, newest first."""
        page, limit, offset = clamp_page(page)
        query = db.query(Quote).filter(Quote.customer_id == user.id)
        if status:
            query = query.filter(Quote.status == status)

        total = query.count()
        quotes = query.order_by(Quote.created_at.desc()).offset(offset).limit(limit).all()

        items = []
        for quote in quotes:
            service, tier = self._service_and_tier_dicts(db, quote)
            items.append({"quote": quote.to_dict(), "service": service, "tier": tier})
        return {"quotes": items, "total": total}

    def create_quote(
        self,
        db: Session,
        user: User,
        request: QuoteCreate,
        ip_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a quote for a customer.

        Args:
            db: Database session
            user: Requesting customer
            request: Quote payload with wizard answers and upload ids
            ip_address: Client address for the audit trail

        Returns:
            Dict with quote, quote_answers and message_thread
        """
        self._require_service_and_tier(db, request.service_id, request.tier_id)

        quote = Quote(
            customer_id=user.id,
            service_id=request.service_id,
            tier_id=request.tier_id,
            status=QuoteStatus.SUBMITTED,
            notes=request.notes,
            is_guest=False,
        )
        db.add(quote)
        db.flush()

        thread = MessageThread(quote_id=quote.id)
        db.add(thread)
        self._add_answers(db, quote, request.project_details)

        attached = 0
        if request.file_ids:
            uploads = db.query(Upload).filter(
                Upload.id.in_(request.file_ids),
                Upload.owner_user_id == user.id,
            ).all()
            for upload in uploads:
                upload.quote_id = quote.id
            attached = len(uploads)

        record_audit(db, user.id, AuditAction.CREATE, "quote", quote.id, ip_address=ip_address)
        db.commit()
        db.refresh(quote)

        metrics.increment("quotes_created")
        logger.info(f"Created quote {quote.id} for customer {truncate_secret(user.id)} ({attached} uploads attached)")
        return {
            "quote": quote.to_dict(),
            "quote_answers": self.get_answers(db, quote.id),
            "message_thread": thread.to_dict(),
        }

    def get_quote_detail(self, db: Session, user: User, quote_id: str) -> Dict[str, Any]:
        quote = self.get_owned_quote(db, user, quote_id)
        service, tier = self._service_and_tier_dicts(db, quote)
        uploads = db.query(Upload).filter(Upload.quote_id == quote.id).order_by(Upload.created_at).all()
        thread = db.query(MessageThread).filter(MessageThread.quote_id == quote.id).first()
        return {
            "quote": quote.to_dict(),
            "service": service,
            "tier": tier,
            "quote_answers": self.get_answers(db, quote.id),
            "uploads": [u.to_dict() for u in uploads],
            "message_thread": thread.to_dict() if thread else None,
        }

    def _apply_decision(self, quote: Quote, status: QuoteStatus) -> None:
        """Customer/guest decision on a quote."""
        if status not in CUSTOMER_DECISIONS:
            raise PermissionDeniedError("Customers may only approve or reject a quote")
        check_transition(quote.status, status)
        if status == QuoteStatus.APPROVED and not quote.final_subtotal:
            raise ConflictError("Quote has not been priced yet")
        quote.status = status

    def update_quote(
        self,
        db: Session,
        user: User,
        quote_id: str,
        request: QuoteUpdate,
        ip_address: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Update status/notes (customers) or pricing too (staff).

        Returns:
            Tuple of (quote dict, previous status when it changed else None)
        """
        quote = self.get_owned_quote(db, user, quote_id)
        previous = quote.status
        is_customer = user.role == UserRole.CUSTOMER

        if request.final_subtotal is not None:
            if is_customer:
                raise PermissionDeniedError("Only staff can set quote pricing")
            quote.final_subtotal = money(request.final_subtotal)

        if request.status is not None and request.status != quote.status:
            if is_customer:
                self._apply_decision(quote, request.status)
            else:
                check_transition(quote.status, request.status)
                quote.status = request.status

        if request.notes is not None:
            quote.notes = request.notes

        record_audit(
            db, user.id, AuditAction.UPDATE, "quote", quote.id,
            metadata=request.model_dump(exclude_none=True, mode="json"), ip_address=ip_address,
        )
        db.commit()
        db.refresh(quote)

        changed = previous.value if quote.status != previous else None
        if changed:
            logger.info(f"Quote {quote.id} status {previous.value} -> {quote.status.value}")
        return quote.to_dict(), changed

    # ---------- guest quotes ----------

    def create_guest_quote(self, db: Session, request: GuestQuoteCreate) -> Dict[str, Any]:
        """
        Create a quote for a visitor and issue a magic link token.

        Raises:
            ValidationFailedError: Missing guest name/email or malformed email
        """
        name = (request.guest_name or "").strip()
        email = normalize_email(request.guest_email)
        if not name or not email:
            raise ValidationFailedError("Guest name and email are required")
        if not is_valid_email(email):
            raise ValidationFailedError("Invalid email format", field="guest_email")

        self._require_service_and_tier(db, request.service_id, request.tier_id)

        quote = Quote(
            customer_id=None,
            service_id=request.service_id,
            tier_id=request.tier_id,
            status=QuoteStatus.SUBMITTED,
            notes=request.notes,
            is_guest=True,
            guest_name=name,
            guest_email=email,
            guest_phone=request.guest_phone,
            guest_company_name=request.guest_company_name,
        )
        db.add(quote)
        db.flush()

        db.add(MessageThread(quote_id=quote.id))
        self._add_answers(db, quote, request.project_details)

        token = generate_magic_link_token()
        db.add(GuestQuoteToken(
            quote_id=quote.id,
            token=token,
            expires_at=utcnow() + timedelta(days=settings.GUEST_QUOTE_TOKEN_TTL_DAYS),
        ))
        db.commit()
        db.refresh(quote)

        metrics.increment("guest_quotes_created")
        logger.info(f"Created guest quote {quote.id} ({truncate_secret(email)}), magic link {truncate_secret(token)}")
        return {
            "quote": quote.to_dict(),
            "quote_answers": self.get_answers(db, quote.id),
            "magic_link_token": token,
            "message": "Quote submitted successfully. Check your email for a link to track your quote.",
        }

    def _resolve_guest_token(self, db: Session, token: str) -> Quote:
        """
        Map a magic link token to its guest quote.

        Raises:
            NotFoundError: Unknown token
            ExpiredTokenError: Token past its expiry
            PermissionDeniedError: Quote is not a guest quote
        """
        record = db.query(GuestQuoteToken).filter(GuestQuoteToken.token == token).first()
        if record is None:
            raise NotFoundError("Quote", message="Invalid or unknown link")
        if record.expires_at < utcnow():
            raise ExpiredTokenError("This link has expired")
        quote = self.get_quote(db, record.quote_id)
        if not quote.is_guest:
            raise PermissionDeniedError("This link is not valid for this quote")
        return quote

    def get_guest_quote(self, db: Session, token: str) -> Dict[str, Any]:
        quote = self._resolve_guest_token(db, token)
        service, tier = self._service_and_tier_dicts(db, quote)
        return {
            "quote": quote.to_dict(),
            "service": service,
            "tier": tier,
            "quote_answers": self.get_answers(db, quote.id),
            "token_valid": True,
        }

    def update_guest_quote_status(self, db: Session, token: str, status: str) -> Tuple[Dict[str, Any], str]:
        """
        Guest approves or rejects their quote.

        Returns:
            Tuple of (quote dict, previous status)
        """
        try:
            requested = QuoteStatus(str(status).upper())
        except ValueError:
            requested = None
        if requested not in CUSTOMER_DECISIONS:
            raise ValidationFailedError("Status must be APPROVED or REJECTED", field="status")

        quote = self._resolve_guest_token(db, token)
        previous = quote.status
        self._apply_decision(quote, requested)
        db.commit()
        db.refresh(quote)
        logger.info(f"Guest quote {quote.id} status {previous.value} -> {quote.status.value}")
        return quote.to_dict(), previous.value

    # ---------- admin ----------

    def finalize_quote(
        self,
        db: Session,
        admin: User,
        quote_id: str,
        request: QuoteFinalize,
        ip_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Price a quote and turn it into an order awaiting deposit.

        tax = subtotal * TAX_RATE, total = subtotal + tax,
        deposit = total * DEFAULT_DEPOSIT_PCT / 100.

        Raises:
            ValidationFailedError: final_subtotal not positive
            ConflictError: Quote already has an order or was rejected
        """
        if request.final_subtotal is None or request.final_subtotal <= 0:
            raise ValidationFailedError("final_subtotal must be greater than zero", field="final_subtotal")

        quote = self.get_quote(db, quote_id)
        if db.query(Order).filter(Order.quote_id == quote.id).first() is not None:
            raise ConflictError("Quote has already been finalized")
        if quote.status == QuoteStatus.REJECTED:
            raise InvalidTransitionError("quote", quote.status.value, QuoteStatus.APPROVED.value)

        subtotal = money(request.final_subtotal)
        tax = money(subtotal * settings.TAX_RATE)
        total = money(subtotal + tax)
        deposit_pct = settings.DEFAULT_DEPOSIT_PCT
        deposit = money(total * deposit_pct / 100)

        quote.final_subtotal = subtotal
        quote.status = QuoteStatus.APPROVED
        if request.notes is not None:
            quote.notes = request.notes

        order = Order(
            quote_id=quote.id,
            customer_id=quote.customer_id,
            tier_id=quote.tier_id,
            order_type=OrderType.SERVICE,
            status=OrderStatus.PENDING_DEPOSIT,
            total_subtotal=subtotal,
            tax_amount=tax,
            total_amount=total,
            deposit_pct=deposit_pct,
            deposit_amount=deposit,
        )
        db.add(order)
        db.flush()

        now = utcnow()
        invoice = Invoice(
            order_id=order.id,
            invoice_number=allocate_invoice_number(db, "INV", now.year),
            amount_due=total,
            issued_at=now,
        )
        db.add(invoice)

        thread = db.query(MessageThread).filter(MessageThread.quote_id == quote.id).first()
        if thread is None:
            thread = MessageThread(quote_id=quote.id)
            db.add(thread)
        thread.order_id = order.id

        record_audit(
            db, admin.id, AuditAction.FINALIZE, "quote", quote.id,
            metadata={"order_id": order.id, "total_amount": total}, ip_address=ip_address,
        )
        db.commit()
        for obj in (quote, order, invoice):
            db.refresh(obj)

        metrics.increment("orders_created")
        logger.info(f"Finalized quote {quote.id} -> order {order.id} total={total} deposit={deposit}")
        return {"quote": quote.to_dict(), "order": order.to_dict(), "invoice": invoice.to_dict()}


# Singleton instance
quote_service = QuoteService()
