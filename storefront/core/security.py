"""
Password hashing and token generation.

Passwords are stored as ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``
so the iteration count can be raised without invalidating old hashes.
"""
import hashlib
import hmac
import secrets
import uuid
from datetime import datetime
from typing import Optional

from storefront.config import settings

HASH_ALGORITHM = "pbkdf2_sha256"


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Hash a password with a random salt.

    Args:
        password: Plain-text password
        iterations: PBKDF2 iterations (default from settings)

    Returns:
        Encoded hash string safe to store in ``users.password_hash``
    """
    iterations = iterations or settings.PASSWORD_HASH_ITERATIONS
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations
    ).hex()
    return f"{HASH_ALGORITHM}${iterations}${salt}${digest}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a plain-text password against an encoded hash."""
    if not password or not encoded:
        return False
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        iterations = int(iterations)
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations
    ).hex()
    return hmac.compare_digest(digest, expected)


def generate_token() -> str:
    """Opaque URL-safe token for sessions and password resets."""
    return secrets.token_urlsafe(32)


def generate_magic_link_token() -> str:
    """Token for guest quote links: uuid plus millisecond timestamp."""
    return f"{uuid.uuid4()}-{int(datetime.now().timestamp() * 1000)}"


def generate_invoice_number(prefix: str, year: int) -> str:
    """Invoice number like ``INV-2026-04821`` or ``INV-PROD-2026-04821``."""
    return f"{prefix}-{year}-{secrets.randbelow(100000):05d}"


def truncate_secret(value: Optional[str]) -> str:
    """Truncate a token or email for safe logging."""
    if not value:
        return "unknown"
    return f"{value[:8]}..."
