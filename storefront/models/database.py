"""
SQLAlchemy ORM models for the storefront: accounts, catalog, quotes,
orders, bookings, messaging and the product shop.
"""
import enum
import uuid
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Text,
    DateTime,
    Enum,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)

from storefront.core.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo on the way back)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


class QuoteStatus(str, enum.Enum):
    """Quote lifecycle: submitted -> reviewed -> approved/rejected."""

    SUBMITTED = "SUBMITTED"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class OrderStatus(str, enum.Enum):
    QUOTE_REQUESTED = "QUOTE_REQUESTED"
    APPROVED = "APPROVED"
    PENDING_DEPOSIT = "PENDING_DEPOSIT"
    IN_PRODUCTION = "IN_PRODUCTION"
    PROOF_SENT = "PROOF_SENT"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PAID = "PAID"


class OrderType(str, enum.Enum):
    SERVICE = "SERVICE"
    PRODUCT = "PRODUCT"


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class ProofStatus(str, enum.Enum):
    SENT = "SENT"
    APPROVED = "APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    STRIPE = "STRIPE"
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"


class OptionType(str, enum.Enum):
    TEXT = "TEXT"
    SELECT = "SELECT"
    CHECKBOX = "CHECKBOX"
    NUMBER = "NUMBER"


class InquiryStatus(str, enum.Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    CLOSED = "CLOSED"


class SerializerMixin:
    """Column-driven ``to_dict`` shared by all tables."""

    _hidden_fields: Iterable[str] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = {}
        for column in self.__table__.columns:
            if column.key in self._hidden_fields:
                continue
            value = getattr(self, column.key)
            if isinstance(value, enum.Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[column.key] = value
        return data


# ========== Accounts ==========

class User(SerializerMixin, Base):
    """Login identity for customers, staff and admins."""

    __tablename__ = "users"
    _hidden_fields = ("password_hash",)

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class CustomerProfile(SerializerMixin, Base):
    __tablename__ = "customer_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    phone = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class StaffProfile(SerializerMixin, Base):
    __tablename__ = "staff_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    department = Column(String(100), nullable=True)
    permissions = Column(Text, nullable=False, default="{}")  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class NotificationPreference(SerializerMixin, Base):
    __tablename__ = "notification_preferences"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    email_order_updates = Column(Boolean, nullable=False, default=True)
    email_proof_ready = Column(Boolean, nullable=False, default=True)
    email_messages = Column(Boolean, nullable=False, default=True)
    email_marketing = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class AuthSession(SerializerMixin, Base):
    """Opaque bearer token issued at login/registration."""

    __tablename__ = "sessions"
    _hidden_fields = ("token",)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class PasswordResetToken(SerializerMixin, Base):
    __tablename__ = "password_reset_tokens"
    _hidden_fields = ("token",)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class AuditLog(SerializerMixin, Base):
    """Business audit trail (who changed which object)."""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    object_type = Column(String(50), nullable=False)
    object_id = Column(String(36), nullable=False)
    metadata_json = Column("metadata", Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ========== Service catalog ==========

class ServiceCategory(SerializerMixin, Base):
    __tablename__ = "service_categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Service(SerializerMixin, Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(String(36), ForeignKey("service_categories.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    requires_booking = Column(Boolean, nullable=False, default=False)
    requires_proof = Column(Boolean, nullable=False, default=False)
    is_top_seller = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    slot_duration_hours = Column(Float, nullable=False, default=2)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ServiceOption(SerializerMixin, Base):
    """Configurable question shown in the quote wizard for a service."""

    __tablename__ = "service_options"

    id = Column(String(36), primary_key=True, default=new_id)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    label = Column(String(255), nullable=False)
    type = Column(Enum(OptionType), nullable=False, default=OptionType.TEXT)
    required = Column(Boolean, nullable=False, default=False)
    choices = Column(Text, nullable=True)  # JSON list
    pricing_impact = Column(Text, nullable=True)  # JSON
    help_text = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TierPackage(SerializerMixin, Base):
    __tablename__ = "tier_packages"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TierFeature(SerializerMixin, Base):
    __tablename__ = "tier_features"

    id = Column(String(36), primary_key=True, default=new_id)
    tier_id = Column(String(36), ForeignKey("tier_packages.id"), nullable=False, index=True)
    group_name = Column(String(100), nullable=False)
    feature_key = Column(String(100), nullable=False)
    feature_label = Column(String(255), nullable=False)
    feature_value = Column(String(255), nullable=True)
    is_included = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class GalleryImage(SerializerMixin, Base):
    __tablename__ = "gallery_images"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    image_url = Column(String(500), nullable=False)
    thumbnail_url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    alt_text = Column(String(255), nullable=True)
    categories = Column(Text, nullable=True)  # comma-separated service slugs
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class CaseStudy(SerializerMixin, Base):
    __tablename__ = "case_studies"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    tier_id = Column(String(36), ForeignKey("tier_packages.id"), nullable=False)
    gallery_image_id = Column(String(36), ForeignKey("gallery_images.id"), nullable=False)
    description = Column(Text, nullable=True)
    client_testimonial = Column(Text, nullable=True)
    additional_images = Column(Text, nullable=True)  # JSON list
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class MarketingContent(SerializerMixin, Base):
    __tablename__ = "marketing_content"
    __table_args__ = (UniqueConstraint("page_key", "section_key"),)

    id = Column(String(36), primary_key=True, default=new_id)
    page_key = Column(String(100), nullable=False, index=True)
    section_key = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ContactInquiry(SerializerMixin, Base):
    __tablename__ = "contact_inquiries"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    service_interested_in = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(Enum(InquiryStatus), nullable=False, default=InquiryStatus.NEW)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ========== Quotes ==========

class Quote(SerializerMixin, Base):
    """Customer (or guest) request for pricing on a print job."""

    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    tier_id = Column(String(36), ForeignKey("tier_packages.id"), nullable=False)
    status = Column(Enum(QuoteStatus), nullable=False, default=QuoteStatus.SUBMITTED, index=True)
    estimate_subtotal = Column(Float, nullable=True)
    final_subtotal = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    # Guest submissions have no customer account
    is_guest = Column(Boolean, nullable=False, default=False)
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(50), nullable=True)
    guest_company_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class QuoteAnswer(SerializerMixin, Base):
    __tablename__ = "quote_answers"

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=False, index=True)
    option_key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class GuestQuoteToken(SerializerMixin, Base):
    """Magic link token granting a guest access to one quote."""

    __tablename__ = "guest_quote_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ========== Orders ==========

class Order(SerializerMixin, Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=True, unique=True)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    tier_id = Column(String(36), ForeignKey("tier_packages.id"), nullable=True)
    order_type = Column(Enum(OrderType), nullable=False, default=OrderType.SERVICE)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.QUOTE_REQUESTED, index=True)
    due_at = Column(DateTime, nullable=True)

    # Money
    total_subtotal = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False, default=0)
    deposit_pct = Column(Float, nullable=False, default=50)
    deposit_amount = Column(Float, nullable=False, default=0)

    revision_count = Column(Integer, nullable=False, default=0)
    assigned_staff_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    # Guest checkout details (product orders)
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True, index=True)
    guest_phone = Column(String(50), nullable=True)
    guest_address = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class OrderItem(SerializerMixin, Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    product_variant_id = Column(String(36), ForeignKey("product_variants.id"), nullable=True)
    description = Column(String(500), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0)
    total_price = Column(Float, nullable=False, default=0)
    config_snapshot = Column(Text, nullable=True)  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Upload(SerializerMixin, Base):
    __tablename__ = "uploads"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True, index=True)
    file_url = Column(String(500), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size_bytes = Column(Integer, nullable=False, default=0)
    dpi_warning = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Booking(SerializerMixin, Base):
    """Scheduled appointment tied to a quote."""

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    is_emergency = Column(Boolean, nullable=False, default=False)
    urgent_fee_pct = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ProofVersion(SerializerMixin, Base):
    __tablename__ = "proof_versions"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False, default=1)
    file_url = Column(String(500), nullable=False)
    created_by_staff_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    status = Column(Enum(ProofStatus), nullable=False, default=ProofStatus.SENT)
    customer_comment = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Invoice(SerializerMixin, Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False)
    amount_due = Column(Float, nullable=False, default=0)
    issued_at = Column(DateTime, nullable=False, default=utcnow)
    paid_at = Column(DateTime, nullable=True)


class Payment(SerializerMixin, Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False, default=0)
    method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.STRIPE)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    transaction_ref = Column(String(255), nullable=True)
    recorded_by_admin_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ========== Messaging ==========

class MessageThread(SerializerMixin, Base):
    __tablename__ = "message_threads"

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Message(SerializerMixin, Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    thread_id = Column(String(36), ForeignKey("message_threads.id"), nullable=False, index=True)
    sender_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ========== Booking calendar ==========

class CalendarSetting(SerializerMixin, Base):
    __tablename__ = "calendar_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    working_days = Column(Text, nullable=False, default="[1,2,3,4,5]")  # JSON, 0=Sunday
    start_hour = Column(Integer, nullable=False, default=9)
    end_hour = Column(Integer, nullable=False, default=18)
    slot_duration_minutes = Column(Integer, nullable=False, default=120)
    slots_per_day = Column(Integer, nullable=False, default=4)
    emergency_slots_per_day = Column(Integer, nullable=False, default=2)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class BlackoutDate(SerializerMixin, Base):
    __tablename__ = "blackout_dates"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ========== Product shop ==========

class ProductCategory(SerializerMixin, Base):
    __tablename__ = "product_categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Product(SerializerMixin, Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Float, nullable=False, default=0)
    thumbnail_url = Column(String(500), nullable=True)
    category_id = Column(String(36), ForeignKey("product_categories.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    purchase_mode = Column(String(50), nullable=False, default="DIRECT_ONLY")
    config_schema = Column(Text, nullable=True)  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ProductVariant(SerializerMixin, Base):
    """Quantity pack with fixed pricing, e.g. 250 cards for 29.00."""

    __tablename__ = "product_variants"

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0)
    total_price = Column(Float, nullable=False, default=0)
    compare_at_price = Column(Float, nullable=True)
    discount_label = Column(String(100), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ProductImage(SerializerMixin, Base):
    __tablename__ = "product_images"

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    alt_text = Column(String(255), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Cart(SerializerMixin, Base):
    """Shopping cart owned by a user or by a guest identifier."""

    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    guest_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class CartItem(SerializerMixin, Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True, default=new_id)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    product_variant_id = Column(String(36), ForeignKey("product_variants.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0)
    total_price = Column(Float, nullable=False, default=0)
    config_snapshot = Column(Text, nullable=True)  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
