"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class AuthorizationError(ApplicationError):
    """Raised when the acting user may not touch a resource."""

    def __init__(self, message: str = "Permission denied", code: str = "AUTHZ_FORBIDDEN") -> None:
        super().__init__(message, code=code)


class AuthenticationError(AuthorizationError):
    """Raised when there is no acting user (missing or invalid session)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class ExternalServiceError(ApplicationError):
    """Raised when an external service call fails."""

    def __init__(
        self,
        message: str = "External service error",
        code: str = "SYS_EXTERNAL_SERVICE_ERROR",
    ) -> None:
        super().__init__(message, code=code)


class StorageError(ExternalServiceError):
    """Raised when an object storage upload, signing or removal fails."""

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(message, code="SYS_STORAGE_ERROR")


class PersistenceError(ApplicationError):
    """Raised when a database operation fails."""

    def __init__(self, message: str = "Database error") -> None:
        super().__init__(message, code="SYS_PERSISTENCE_ERROR")
