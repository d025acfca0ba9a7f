"""
Authentication service: registration, login, bearer sessions and
password resets.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.audit import (
    AuditAction,
    AuditEvent,
    log_login,
    log_security_event,
    record_audit,
)
from storefront.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ValidationFailedError,
)
from storefront.core.metrics import metrics
from storefront.core.security import (
    generate_token,
    hash_password,
    truncate_secret,
    verify_password,
)
from storefront.models.database import (
    AuthSession,
    CustomerProfile,
    NotificationPreference,
    PasswordResetToken,
    StaffProfile,
    User,
    UserRole,
    utcnow,
)
from storefront.models.schemas import RegisterRequest, normalize_email

logger = logging.getLogger(__name__)


def check_password_length(password: Optional[str]) -> None:
    """Raise if a new password is shorter than the configured minimum."""
    if not password or len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationFailedError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
            field="password",
        )


class AuthService:
    """Service for account identity and session management."""

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    def email_available(self, db: Session, email: str) -> bool:
        """True when no account uses ``email``."""
        return self.get_user_by_email(db, email) is None

    def issue_session(
        self,
        db: Session,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """Create a bearer session for ``user`` and return its token."""
        token = generate_token()
        db.add(AuthSession(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(days=settings.SESSION_TOKEN_TTL_DAYS),
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
        ))
        return token

    def resolve_token(self, db: Session, token: str) -> Optional[User]:
        """Return the active user owning an unexpired session token."""
        session = db.query(AuthSession).filter(AuthSession.token == token).first()
        if session is None:
            return None
        if session.expires_at < utcnow():
            logger.debug(f"Expired session token {truncate_secret(token)}")
            return None
        user = db.query(User).filter(User.id == session.user_id).first()
        if user is None or not user.is_active:
            return None
        return user

    def get_profile(self, db: Session, user: User) -> Optional[Dict[str, Any]]:
        """Customer profile for customers, staff profile for staff/admin."""
        if user.role == UserRole.CUSTOMER:
            profile = db.query(CustomerProfile).filter(CustomerProfile.user_id == user.id).first()
        else:
            profile = db.query(StaffProfile).filter(StaffProfile.user_id == user.id).first()
        return profile.to_dict() if profile else None

    def register(
        self,
        db: Session,
        request: RegisterRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a customer account with profile and default preferences.

        Args:
            db: Database session
            request: Validated registration payload
            ip_address: Client address for the audit trail
            user_agent: Client user agent stored on the session

        Returns:
            Dict with user, customer_profile and token

        Raises:
            ValidationFailedError: Password too short
            ConflictError: Email already registered
        """
        check_password_length(request.password)
        if not self.email_available(db, request.email):
            raise ConflictError("Email already exists")

        user = User(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            role=UserRole.CUSTOMER,
            is_active=True,
        )
        db.add(user)
        db.flush()

        profile = CustomerProfile(
            user_id=user.id,
            phone=request.phone,
            company_name=request.company_name,
            address=request.address,
        )
        db.add(profile)
        db.add(NotificationPreference(user_id=user.id))

        token = self.issue_session(db, user, ip_address, user_agent)
        record_audit(db, user.id, AuditAction.REGISTER, "user", user.id, ip_address=ip_address)
        db.commit()
        db.refresh(user)
        db.refresh(profile)

        metrics.increment("registrations")
        log_security_event(AuditEvent.REGISTERED, actor=user.id, severity="info")
        logger.info(f"Registered customer {user.id} ({truncate_secret(user.email)})")
        return {"user": user.to_dict(), "customer_profile": profile.to_dict(), "token": token}

    def login(
        self,
        db: Session,
        email: str,
        password: str,
        role: Optional[UserRole] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Authenticate by email and password for a given role.

        The same message is returned for unknown email, wrong role and wrong
        password so the endpoint does not reveal which accounts exist.

        Raises:
            AuthenticationError: Invalid credentials or inactive account
        """
        role = role or UserRole.CUSTOMER
        user = self.get_user_by_email(db, email)

        if user is None or user.role != role or not verify_password(password, user.password_hash):
            metrics.increment("logins_failed")
            log_login(truncate_secret(normalize_email(email)), succeeded=False, reason="invalid_credentials")
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            metrics.increment("logins_failed")
            log_login(user.id, succeeded=False, reason="inactive")
            raise AuthenticationError("Account inactive")

        token = self.issue_session(db, user, ip_address, user_agent)
        record_audit(
            db, user.id, AuditAction.LOGIN, "user", user.id,
            metadata={"role": role.value}, ip_address=ip_address,
        )
        db.commit()

        metrics.increment("logins")
        log_login(user.id, succeeded=True)
        logger.info(f"User {user.id} logged in as {role.value}")
        return {"user": user.to_dict(), "profile": self.get_profile(db, user), "token": token}

    def logout(self, db: Session, token: str) -> bool:
        """Delete the session for ``token``. Returns False if unknown."""
        deleted = db.query(AuthSession).filter(AuthSession.token == token).delete()
        db.commit()
        return bool(deleted)

    def revoke_all_sessions(self, db: Session, user_id: str) -> int:
        return db.query(AuthSession).filter(AuthSession.user_id == user_id).delete()

    def request_password_reset(self, db: Session, email: str) -> Optional[str]:
        """
        Create a single-use reset token when the account exists.

        Returns:
            The token (delivered out of band), or None for unknown emails
        """
        user = self.get_user_by_email(db, email)
        if user is None:
            logger.info(f"Password reset requested for unknown email {truncate_secret(normalize_email(email))}")
            return None

        token = generate_token()
        db.add(PasswordResetToken(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES),
        ))
        db.commit()

        log_security_event(AuditEvent.PASSWORD_RESET_REQUESTED, actor=user.id, severity="info")
        logger.info(f"Password reset token issued for user {user.id}: {truncate_secret(token)}")
        return token

    def reset_password(self, db: Session, token: str, new_password: str) -> None:
        """
        Consume a reset token and set a new password.

        All sessions of the user are revoked.

        Raises:
            ValidationFailedError: Short password, unknown/used or expired token
        """
        check_password_length(new_password)

        reset = db.query(PasswordResetToken).filter(
            PasswordResetToken.token == token,
            PasswordResetToken.is_used.is_(False),
        ).first()
        if reset is None:
            raise ValidationFailedError("Invalid or expired token", field="token")
        if reset.expires_at < utcnow():
            raise ValidationFailedError("Token expired", field="token")

        user = db.query(User).filter(User.id == reset.user_id).first()
        if user is None:
            raise ValidationFailedError("Invalid or expired token", field="token")

        user.password_hash = hash_password(new_password)
        reset.is_used = True
        revoked = self.revoke_all_sessions(db, user.id)
        db.commit()

        log_security_event(AuditEvent.PASSWORD_RESET, actor=user.id, details={"sessions_revoked": revoked}, severity="info")
        logger.info(f"Password reset for user {user.id} ({revoked} sessions revoked)")


# Singleton instance
auth_service = AuthService()
