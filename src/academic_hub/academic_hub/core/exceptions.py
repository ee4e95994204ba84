class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ConflictError(ValidationError):
    """Raised when a write would break a uniqueness rule."""


class AuthenticationError(DomainError):
    """Raised when the caller cannot be identified (missing/invalid credentials)."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404
