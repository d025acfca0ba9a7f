"""
Authentication endpoints: registration, login, logout and password reset.

Rate Limiting:
- Per-client limit on login, register and forgot-password
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.auth import get_bearer_token, get_current_user
from storefront.core.database import get_db
from storefront.core.rate_limit import client_address, enforce_rate_limit
from storefront.models.schemas import (
    CheckEmailRequest,
    CheckEmailResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    is_valid_email,
    normalize_email,
)
from storefront.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/check-email", response_model=CheckEmailResponse)
async def check_email(request: CheckEmailRequest, db: Session = Depends(get_db)):
    """Tell the registration form whether an email is still free."""
    email = normalize_email(request.email)
    if not email:
        raise HTTPException(status_code=400, detail="Email required")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return CheckEmailResponse(available=auth_service.email_available(db, email))


@router.post(
    "/register",
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def register(request: RegisterRequest, http_request: Request, db: Session = Depends(get_db)):
    """
    Create a customer account and sign it in.

    Returns:
        user, customer_profile and a bearer token
    """
    enforce_rate_limit(http_request, "register", settings.RATE_LIMIT_MAX_AUTH)
    return auth_service.register(
        db,
        request,
        ip_address=client_address(http_request),
        user_agent=http_request.headers.get("user-agent"),
    )


@router.post("/login", responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}})
async def login(request: LoginRequest, http_request: Request, db: Session = Depends(get_db)):
    """
    Exchange email and password for a bearer token.

    ``role`` defaults to CUSTOMER; staff and admins log in with their role.
    """
    enforce_rate_limit(http_request, "login", settings.RATE_LIMIT_MAX_AUTH)
    return auth_service.login(
        db,
        request.email,
        request.password,
        role=request.role,
        ip_address=client_address(http_request),
        user_agent=http_request.headers.get("user-agent"),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    user=Depends(get_current_user),
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
):
    auth_service.logout(db, token)
    logger.info(f"User {user.id} logged out")
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest, http_request: Request, db: Session = Depends(get_db)):
    """
    Start a password reset.

    The response is the same whether or not the account exists.
    """
    enforce_rate_limit(http_request, "forgot_password", settings.RATE_LIMIT_MAX_AUTH)
    auth_service.request_password_reset(db, request.email)
    return MessageResponse(message="If email exists, reset link sent")


@router.post("/reset-password", response_model=MessageResponse, responses={400: {"model": ErrorResponse}})
async def reset_password(request: ResetPasswordRequest, db: Session = Depends(get_db)):
    auth_service.reset_password(db, request.token, request.password)
    return MessageResponse(message="Password reset successfully")


@router.get("/me")
async def me(user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Current user and their profile."""
    return {"user": user.to_dict(), "profile": auth_service.get_profile(db, user)}
