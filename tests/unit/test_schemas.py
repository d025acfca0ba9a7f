"""
Unit tests for request schemas.
"""
import pytest
from pydantic import ValidationError


class TestEmailHandling:

    def test_email_is_normalized(self):
        from storefront.models.schemas import LoginRequest

        request = LoginRequest(email="  Aoife@Example.COM ", password="x")
        assert request.email == "aoife@example.com"

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "two words@example.com"])
    def test_invalid_email_rejected(self, email):
        from storefront.models.schemas import RegisterRequest

        with pytest.raises(ValidationError):
            RegisterRequest(name="A", email=email, password="long-enough")

    def test_is_valid_email_handles_none(self):
        from storefront.models.schemas import is_valid_email, normalize_email

        assert is_valid_email(None) is False
        assert normalize_email(None) is None


class TestRegisterRequest:

    def test_blank_name_rejected(self):
        from storefront.models.schemas import RegisterRequest

        with pytest.raises(ValidationError):
            RegisterRequest(name="   ", email="a@example.com", password="long-enough")

    def test_short_password_passes_schema(self):
        """Password length is a business rule answered with 400 by the service."""
        from storefront.models.schemas import RegisterRequest

        request = RegisterRequest(name="A", email="a@example.com", password="short")
        assert request.password == "short"

    def test_role_defaults_to_none(self):
        from storefront.models.schemas import LoginRequest

        assert LoginRequest(email="a@example.com", password="x").role is None


class TestQuoteSchemas:

    def test_quote_update_rejects_negative_price(self):
        from storefront.models.schemas import QuoteUpdate

        with pytest.raises(ValidationError):
            QuoteUpdate(final_subtotal=-1)

    def test_quote_update_rejects_zero_price(self):
        from storefront.models.schemas import QuoteUpdate

        with pytest.raises(ValidationError):
            QuoteUpdate(final_subtotal=0)

    def test_quote_update_status_enum(self):
        from storefront.models.database import QuoteStatus
        from storefront.models.schemas import QuoteUpdate

        assert QuoteUpdate(status="REJECTED").status == QuoteStatus.REJECTED
        with pytest.raises(ValidationError):
            QuoteUpdate(status="ARCHIVED")

    def test_guest_quote_contact_is_optional_in_schema(self):
        from storefront.models.schemas import GuestQuoteCreate

        request = GuestQuoteCreate(service_id="s", tier_id="t")
        assert request.guest_email is None


class TestPaymentSchemas:

    def test_payment_amount_must_be_positive(self):
        from storefront.models.schemas import PaymentCreate

        with pytest.raises(ValidationError):
            PaymentCreate(amount=0, method="CASH")

    def test_checkout_defaults_to_card(self):
        from storefront.models.database import PaymentMethod
        from storefront.models.schemas import CheckoutRequest

        assert CheckoutRequest(cart_id="c1").payment_method == PaymentMethod.STRIPE


class TestSerializer:

    def test_to_dict_converts_enums_and_dates_and_hides_password(self):
        from storefront.models.database import User, UserRole, utcnow

        now = utcnow()
        user = User(id="u1", name="A", email="a@example.com", password_hash="secret",
                    role=UserRole.STAFF, is_active=True, created_at=now, updated_at=now)
        data = user.to_dict()

        assert data["role"] == "STAFF"
        assert data["created_at"] == now.isoformat()
        assert "password_hash" not in data
