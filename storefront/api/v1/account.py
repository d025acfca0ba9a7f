"""
Account settings endpoints: profile, password and notification preferences.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user
from storefront.core.database import get_db
from storefront.models.schemas import (
    ChangePasswordRequest,
    ErrorResponse,
    MessageResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    ProfileUpdate,
)
from storefront.services.account_service import account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Account"])


@router.get("/profile")
async def get_profile(user=Depends(get_current_user), db: Session = Depends(get_db)):
    return account_service.get_profile(db, user)


@router.patch("/profile")
async def update_profile(request: ProfileUpdate, user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Only the fields present in the request are changed."""
    return account_service.update_profile(db, user, request)


@router.post("/change-password", response_model=MessageResponse, responses={400: {"model": ErrorResponse}})
async def change_password(request: ChangePasswordRequest, user=Depends(get_current_user), db: Session = Depends(get_db)):
    account_service.change_password(db, user, request)
    return MessageResponse(message="Password changed successfully")


@router.get("/notification-preferences", response_model=NotificationPreferencesResponse)
async def get_notification_preferences(user=Depends(get_current_user), db: Session = Depends(get_db)):
    return account_service.get_preferences(db, user)


@router.patch("/notification-preferences", response_model=NotificationPreferencesResponse)
async def update_notification_preferences(
    request: NotificationPreferencesUpdate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return account_service.update_preferences(db, user, request)
