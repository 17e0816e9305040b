"""Custom exception classes for the API."""

from typing import Any


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int = 400, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Bad input shape or size."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=400, details=details)


class AuthenticationError(APIError):
    """Missing or invalid identity token."""

    def __init__(self, message: str = "Unauthorized: No token provided"):
        super().__init__(message=message, status_code=401)


class ForbiddenError(APIError):
    """Authenticated caller does not own the resource."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=403)


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            details={"resource": resource, "id": resource_id},
        )


class DatabaseError(APIError):
    """Database operation error."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=500, details=details)


class ServiceUnavailableError(APIError):
    """A required backend is not configured or not reachable."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=503, details=details)
