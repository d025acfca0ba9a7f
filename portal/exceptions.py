"""Custom exceptions for the SultanStamp portal.

Exception Hierarchy:
    PortalError (base)
    ├── ValidationError
    ├── BackendUnavailableError
    └── APIError
        ├── AuthenticationError
        ├── PermissionDeniedError
        ├── NotFoundError
        ├── ConflictError
        └── RateLimitError
"""
from typing import Optional


class PortalError(Exception):
    """Base exception for the portal.

    Example:
        >>> try:
        ...     client.get_cart()
        ... except PortalError as e:
        ...     store.show_toast(e.message, "error")
    """

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Raised for input rejected before it reaches the backend.

    Attributes:
        field: Name of the offending field (optional)
    """

    def __init__(self, message: str = "Invalid input", field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class BackendUnavailableError(PortalError):
    """Raised when the backend API cannot be reached."""

    def __init__(self, message: str = "Backend API is unavailable"):
        super().__init__(message)


class APIError(PortalError):
    """Raised when the backend answers with an error status.

    Attributes:
        status_code: HTTP status returned by the backend
        detail: The ``detail`` field of the error body, when present

    Example:
        >>> raise APIError("Quote has not been priced yet", status_code=409)
    """

    def __init__(self, message: str = "API request failed", status_code: Optional[int] = None, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail or message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code!r}, message={self.message!r})"


class AuthenticationError(APIError):
    """401: missing, expired or invalid credentials."""

    def __init__(self, message: str = "Authentication required", status_code: int = 401, detail: Optional[str] = None):
        super().__init__(message, status_code=status_code, detail=detail)


class PermissionDeniedError(APIError):
    """403: the caller may not access this resource."""

    def __init__(self, message: str = "Access denied", status_code: int = 403, detail: Optional[str] = None):
        super().__init__(message, status_code=status_code, detail=detail)


class NotFoundError(APIError):
    """404: the resource does not exist."""

    def __init__(self, message: str = "Not found", status_code: int = 404, detail: Optional[str] = None):
        super().__init__(message, status_code=status_code, detail=detail)


class ConflictError(APIError):
    """409: the request conflicts with the resource state."""

    def __init__(self, message: str = "Conflict", status_code: int = 409, detail: Optional[str] = None):
        super().__init__(message, status_code=status_code, detail=detail)


class RateLimitError(APIError):
    """429: too many requests.

    Attributes:
        retry_after: Seconds to wait before retrying (optional)
    """

    def __init__(
        self,
        message: str = "Too many requests",
        status_code: int = 429,
        detail: Optional[str] = None,
        retry_after: Optional[int] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=status_code, detail=detail)


STATUS_EXCEPTIONS = {
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitError,
}
