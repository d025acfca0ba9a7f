"""
Pydantic schemas for API request/response validation.

Business rules that must answer 400 (password length, guest contact
details, message length) are checked in the services, not here, so the
HTTP contract matches what the portal expects. Schemas only reject
structurally wrong payloads (422).
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models.database import (
    BookingStatus,
    OrderStatus,
    PaymentMethod,
    QuoteStatus,
    UserRole,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Lowercase and trim an email address."""
    if value is None:
        return None
    return value.strip().lower()


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_PATTERN.match(value))


class _EmailModel(BaseModel):
    """Mixin validator for a required ``email`` field."""

    email: str = Field(..., min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = normalize_email(v)
        if not is_valid_email(v):
            raise ValueError("Invalid email format")
        return v


# ========== Auth ==========

class CheckEmailRequest(BaseModel):
    email: Optional[str] = Field(None, max_length=255)


class CheckEmailResponse(BaseModel):
    available: bool


class RegisterRequest(_EmailModel):
    """Request schema for customer registration."""

    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., max_length=128)
    phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Aoife Byrne",
                "email": "aoife@example.com",
                "password": "correct-horse-battery",
                "company_name": "Byrne Bakery",
            }
        }
    )


class LoginRequest(_EmailModel):
    password: str = Field(..., max_length=128)
    role: Optional[UserRole] = None


class ForgotPasswordRequest(_EmailModel):
    pass


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., max_length=128)


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str


# ========== Public catalog ==========

class ContactInquiryCreate(_EmailModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    service_interested_in: Optional[str] = Field(None, max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)


# ========== Quotes ==========

class QuoteCreate(BaseModel):
    """Request schema for a customer quote."""

    service_id: str = Field(..., min_length=1, max_length=36)
    tier_id: str = Field(..., min_length=1, max_length=36)
    project_details: Optional[Dict[str, Any]] = None
    file_ids: Optional[List[str]] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=5000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "service_id": "svc_business_cards",
                "tier_id": "tier_standard",
                "project_details": {"quantity": "500", "finish": "matte"},
                "file_ids": [],
            }
        }
    )


class QuoteUpdate(BaseModel):
    status: Optional[QuoteStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)
    final_subtotal: Optional[float] = Field(None, gt=0)


class QuoteFinalize(BaseModel):
    final_subtotal: float
    notes: Optional[str] = Field(None, max_length=5000)


class GuestQuoteCreate(BaseModel):
    """Quote request from a visitor without an account."""

    service_id: str = Field(..., min_length=1, max_length=36)
    tier_id: str = Field(..., min_length=1, max_length=36)
    guest_name: Optional[str] = Field(None, max_length=255)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=50)
    guest_company_name: Optional[str] = Field(None, max_length=255)
    project_details: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=5000)


class GuestQuoteStatusUpdate(BaseModel):
    status: str = Field(..., max_length=32)


# ========== Bookings ==========

class BookingCreate(BaseModel):
    quote_id: str = Field(..., min_length=1, max_length=36)
    start_at: datetime
    end_at: datetime
    is_emergency: bool = False


class BookingUpdate(BaseModel):
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    status: Optional[BookingStatus] = None


# ========== Orders, proofs, payments ==========

class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    assigned_staff_id: Optional[str] = Field(None, max_length=36)


class ProofCreate(BaseModel):
    file_url: str = Field(..., min_length=1, max_length=500)
    internal_notes: Optional[str] = Field(None, max_length=5000)


class ProofChangeRequest(BaseModel):
    customer_comment: Optional[str] = Field(None, max_length=5000)


class PaymentCreate(BaseModel):
    amount: float = Field(..., gt=0)
    method: PaymentMethod
    transaction_ref: Optional[str] = Field(None, max_length=255)


class PaymentIntentCreate(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=36)
    amount: float = Field(..., gt=0)


class ProductIntentCreate(BaseModel):
    cart_id: str = Field(..., min_length=1, max_length=36)
    amount: float = Field(..., gt=0)


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str


# ========== Messaging ==========

class MessageCreate(BaseModel):
    body: str = Field(..., max_length=10000)


class UnreadCountResponse(BaseModel):
    unread: int


# ========== Account settings ==========

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=1000)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., max_length=128)
    new_password: str = Field(..., max_length=128)


class NotificationPreferencesUpdate(BaseModel):
    email_order_updates: Optional[bool] = None
    email_proof_ready: Optional[bool] = None
    email_messages: Optional[bool] = None
    email_marketing: Optional[bool] = None


class NotificationPreferencesResponse(BaseModel):
    user_id: str
    email_order_updates: bool
    email_proof_ready: bool
    email_messages: bool
    email_marketing: bool

    model_config = ConfigDict(from_attributes=True)


# ========== Cart & checkout ==========

class CartItemCreate(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=36)
    product_variant_id: Optional[str] = Field(None, max_length=36)
    quantity: int = 1
    config: Optional[Dict[str, Any]] = None


class CartItemUpdate(BaseModel):
    product_variant_id: Optional[str] = Field(None, max_length=36)
    quantity: Optional[int] = None
    config: Optional[Dict[str, Any]] = None


class CheckoutRequest(BaseModel):
    cart_id: str = Field(..., min_length=1, max_length=36)
    guest_name: Optional[str] = Field(None, max_length=255)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=50)
    shipping_address: Optional[str] = Field(None, max_length=1000)
    payment_method: PaymentMethod = PaymentMethod.STRIPE


class CheckoutResponse(BaseModel):
    order_id: str
    invoice_number: str
    total_amount: float
    status: str


# ========== Dashboard ==========

class DashboardSummary(BaseModel):
    active_orders_count: int
    pending_quotes_count: int
    upcoming_bookings_count: int
    next_booking_date: Optional[datetime] = None
    balance_due_amount: float
    unread_messages_count: int


class ActivityItem(BaseModel):
    id: str
    type: str
    message: str
    timestamp: Optional[datetime] = None
    link: Optional[str] = None


class NextAction(BaseModel):
    action_type: str
    message: str
    link: str
    priority: str


class DashboardResponse(BaseModel):
    summary: DashboardSummary
    recent_activity: List[ActivityItem]
    next_actions: List[NextAction]


# ========== Health ==========

class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: bool
    websocket_connections: int
    timestamp: datetime


class ErrorResponse(BaseModel):
    detail: str
    error_code: Optional[str] = None
