"""Request authentication for API endpoints.

- Bearer tokens (``Authorization: Bearer <token>``) resolve to a user via
  the ``sessions`` table.
- Guest carts are identified by an ``X-Guest-ID`` header that must be a
  UUID, which keeps arbitrary strings out of cart lookups.
"""
import re
import logging
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.core.audit import log_authorization_failed
from storefront.core.database import get_db
from storefront.core.security import truncate_secret

logger = logging.getLogger(__name__)

# Valid guest ID format: UUID v4
GUEST_ID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE
)


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: Session = Depends(get_db),
):
    """Resolve the current user, or None for anonymous/invalid tokens."""
    if not token:
        return None
    from storefront.services.auth_service import auth_service

    return auth_service.resolve_token(db, token)


def get_current_user(user=Depends(get_optional_user)):
    """Require an authenticated user.

    Raises:
        HTTPException: 401 if no valid bearer token was presented
    """
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: str) -> Callable:
    """Build a dependency that only admits users with one of ``roles``.

    Example:
        >>> @router.post("/finalize", dependencies=[Depends(require_roles("ADMIN"))])
    """
    allowed = {r.upper() for r in roles}

    def _dependency(user=Depends(get_current_user)):
        role = user.role.value if hasattr(user.role, "value") else str(user.role)
        if role not in allowed:
            logger.warning(f"User {truncate_secret(user.id)} with role {role} denied (needs {sorted(allowed)})")
            log_authorization_failed(user.id, "role", ",".join(sorted(allowed)))
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _dependency


def validate_guest_id(x_guest_id: Optional[str] = Header(None, alias="X-Guest-ID")) -> Optional[str]:
    """Validate and return the guest cart ID.

    Args:
        x_guest_id: Guest identifier from X-Guest-ID header

    Returns:
        Validated guest ID, or None when the header is absent

    Raises:
        HTTPException: If the guest ID format is invalid
    """
    if not x_guest_id:
        return None

    x_guest_id = x_guest_id.strip()

    if not GUEST_ID_PATTERN.match(x_guest_id):
        logger.warning(f"Invalid guest ID format: {x_guest_id[:8]}...")
        raise HTTPException(
            status_code=400,
            detail="Invalid guest ID format. Must be a valid UUID."
        )

    return x_guest_id.lower()


def is_staff(user) -> bool:
    """True for STAFF and ADMIN users."""
    if user is None:
        return False
    role = user.role.value if hasattr(user.role, "value") else str(user.role)
    return role in ("STAFF", "ADMIN")
