"""
Account settings: profile, password change and notification preferences.
"""
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.core.audit import AuditEvent, log_security_event
from storefront.core.exceptions import ValidationFailedError
from storefront.core.security import hash_password, verify_password
from storefront.models.database import CustomerProfile, NotificationPreference, User, UserRole
from storefront.models.schemas import (
    ChangePasswordRequest,
    NotificationPreferencesUpdate,
    ProfileUpdate,
)
from storefront.services.auth_service import auth_service, check_password_length

logger = logging.getLogger(__name__)


class AccountService:
    """Service for the signed-in user's own settings."""

    def get_profile(self, db: Session, user: User) -> Dict[str, Any]:
        return {"user": user.to_dict(), "profile": auth_service.get_profile(db, user)}

    def update_profile(self, db: Session, user: User, request: ProfileUpdate) -> Dict[str, Any]:
        """Update name and, for customers, contact fields. Unset fields are kept."""
        changes = request.model_dump(exclude_unset=True)

        name = changes.pop("name", None)
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationFailedError("Name cannot be empty", field="name")
            user.name = name

        if user.role == UserRole.CUSTOMER and changes:
            profile = db.query(CustomerProfile).filter(CustomerProfile.user_id == user.id).first()
            if profile is None:
                profile = CustomerProfile(user_id=user.id)
                db.add(profile)
            for key, value in changes.items():
                setattr(profile, key, value)

        db.commit()
        db.refresh(user)
        logger.info(f"Profile updated for user {user.id} ({sorted(request.model_dump(exclude_unset=True))})")
        return self.get_profile(db, user)

    def change_password(self, db: Session, user: User, request: ChangePasswordRequest) -> None:
        """
        Replace the password after checking the current one.

        Raises:
            ValidationFailedError: New password too short or current incorrect
        """
        check_password_length(request.new_password)
        if not verify_password(request.current_password, user.password_hash):
            raise ValidationFailedError("Current password incorrect", field="current_password")

        user.password_hash = hash_password(request.new_password)
        db.commit()
        log_security_event(AuditEvent.PASSWORD_CHANGED, actor=user.id, severity="info")
        logger.info(f"Password changed for user {user.id}")

    def get_preferences(self, db: Session, user: User) -> NotificationPreference:
        """Notification preferences, created with defaults on first access."""
        prefs = db.query(NotificationPreference).filter(NotificationPreference.user_id == user.id).first()
        if prefs is None:
            prefs = NotificationPreference(
                user_id=user.id,
                email_order_updates=True,
                email_proof_ready=True,
                email_messages=True,
                email_marketing=False,
            )
            db.add(prefs)
            db.commit()
            db.refresh(prefs)
        return prefs

    def update_preferences(self, db: Session, user: User, request: NotificationPreferencesUpdate) -> NotificationPreference:
        prefs = self.get_preferences(db, user)
        for key, value in request.model_dump(exclude_none=True).items():
            setattr(prefs, key, value)
        db.commit()
        db.refresh(prefs)
        return prefs


# Singleton instance
account_service = AccountService()
