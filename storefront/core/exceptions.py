"""Domain exceptions raised by the service layer.

Services never import FastAPI; they raise these instead and the
application maps each one to an HTTP status in ``storefront.main``.

Exception Hierarchy:
    StorefrontError (base, 400)
    ├── ValidationFailedError (400)
    ├── AuthenticationError (401)
    ├── PermissionDeniedError (403)
    ├── NotFoundError (404)
    ├── ConflictError (409)
    │   └── InvalidTransitionError
    ├── ExpiredTokenError (410)
    └── PayloadTooLargeError (413)
"""
from typing import Optional


class StorefrontError(Exception):
    """Base exception for storefront business rules."""

    status_code = 400

    def __init__(self, message: str = "Request could not be processed"):
        self.message = message
        super().__init__(self.message)


class ValidationFailedError(StorefrontError):
    """Input is well-formed but breaks a business rule."""

    def __init__(self, message: str = "Validation failed", field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class AuthenticationError(StorefrontError):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class PermissionDeniedError(StorefrontError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(StorefrontError):
    """Raised when a record does not exist (or is hidden from the caller).

    Example:
        >>> raise NotFoundError("Quote")
        NotFoundError: Quote not found
    """

    status_code = 404

    def __init__(self, resource: str = "Resource", message: Optional[str] = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class ConflictError(StorefrontError):
    status_code = 409

    def __init__(self, message: str = "Conflict with current state"):
        super().__init__(message)


class InvalidTransitionError(ConflictError):
    """Raised when a status change is not allowed by a lifecycle.

    Attributes:
        entity: Name of the entity (e.g. 'quote', 'booking')
        current: Current status value
        requested: Requested status value
    """

    def __init__(self, entity: str, current: str, requested: str):
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change {entity} status from {current} to {requested}")


class ExpiredTokenError(StorefrontError):
    status_code = 410

    def __init__(self, message: str = "This link has expired"):
        super().__init__(message)


class PayloadTooLargeError(StorefrontError):
    status_code = 413

    def __init__(self, message: str = "File too large"):
        super().__init__(message)
