"""
Audit logging for security-relevant and business events.

Two sinks:
- a dedicated ``audit`` logger writing JSON lines to DATA_DIR/logs/audit.log
  for security events (failed logins, rate limits, authorization failures)
- the ``audit_logs`` table for business actions performed by a user
  (registration, login, quote and order changes)

Security Events Logged:
- Login success and failure
- Registration
- Password reset requests and completions
- Rate limit exceeded
- Authorization failures (wrong role or not the owner)
- Rejected uploads
"""
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from storefront.config import settings


class AuditEvent(str, Enum):
    """Types of security-relevant events."""
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    REGISTERED = "registered"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    AUTHORIZATION_FAILED = "authorization_failed"
    UPLOAD_REJECTED = "upload_rejected"


class AuditAction(str, Enum):
    """Actions recorded in the audit_logs table."""
    REGISTER = "REGISTER"
    LOGIN = "LOGIN"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    FINALIZE = "FINALIZE"
    CHECKOUT = "CHECKOUT"


# Configure audit logger
AUDIT_LOG_DIR = Path(settings.DATA_DIR) / "logs"
AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)

# Separate audit logger with its own file
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)
audit_logger.propagate = False

if not audit_logger.handlers:
    audit_handler = logging.FileHandler(AUDIT_LOG_DIR / "audit.log", encoding="utf-8")
    audit_handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
    audit_logger.addHandler(audit_handler)


def log_security_event(
    event: AuditEvent,
    actor: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    severity: str = "warning"
) -> None:
    """
    Log a security-relevant event to the audit log.

    Args:
        event: Type of security event
        actor: User id, truncated email or client address
        details: Additional details about the event
        severity: Log level (info, warning, error, critical)
    """
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event.value,
        "actor": actor or "anonymous",
        "details": details or {},
    }

    message = json.dumps(log_entry, default=str)

    if severity == "critical":
        audit_logger.critical(message)
    elif severity == "error":
        audit_logger.error(message)
    elif severity == "warning":
        audit_logger.warning(message)
    else:
        audit_logger.info(message)


def log_login(actor: str, succeeded: bool, reason: Optional[str] = None) -> None:
    """Log a login attempt."""
    log_security_event(
        AuditEvent.LOGIN_SUCCEEDED if succeeded else AuditEvent.LOGIN_FAILED,
        actor=actor,
        details={"reason": reason} if reason else None,
        severity="info" if succeeded else "warning",
    )


def log_rate_limit_exceeded(actor: str, limit_type: str, limit_value: int) -> None:
    """Log when a rate limit is exceeded."""
    log_security_event(
        AuditEvent.RATE_LIMIT_EXCEEDED,
        actor=actor,
        details={
            "limit_type": limit_type,
            "limit_value": limit_value,
        },
        severity="warning"
    )


def log_authorization_failed(actor: str, resource: str, resource_id: Optional[str] = None) -> None:
    """Log when a user touches a resource they do not own or lack the role for."""
    log_security_event(
        AuditEvent.AUTHORIZATION_FAILED,
        actor=actor,
        details={"resource": resource, "resource_id": resource_id},
        severity="warning"
    )


def log_upload_rejected(actor: str, file_name: str, reason: str) -> None:
    """Log when an upload is refused."""
    # Truncate value to avoid logging very long inputs
    truncated = file_name[:100] + "..." if len(file_name) > 100 else file_name
    log_security_event(
        AuditEvent.UPLOAD_REJECTED,
        actor=actor,
        details={"file_name": truncated, "reason": reason},
        severity="warning"
    )


def record_audit(
    db: Session,
    user_id: str,
    action: AuditAction,
    object_type: str,
    object_id: str,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
):
    """Add an ``audit_logs`` row to the current transaction.

    Args:
        db: Database session (caller commits)
        user_id: Acting user
        action: What was done
        object_type: Table-level name, e.g. 'quote'
        object_id: Affected record id
        metadata: Extra JSON-serializable context
        ip_address: Client address if known

    Returns:
        The pending AuditLog row
    """
    from storefront.models.database import AuditLog

    entry = AuditLog(
        user_id=user_id,
        action=action.value,
        object_type=object_type,
        object_id=object_id,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
        ip_address=ip_address,
    )
    db.add(entry)
    return entry
