from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AuthenticationError(DomainError):
    """Raised when there is no valid session or the credentials are wrong."""

    code = "UNAUTHORIZED"


class AuthorizationError(DomainError):
    """Raised when a member lacks the capability for an action."""

    code = "FORBIDDEN"


class AccountSuspendedError(AuthorizationError):
    """Raised when a suspended member attempts a write action."""

    code = "ACCOUNT_SUSPENDED"


class ConflictError(DomainError):
    """Raised when a state transition does not match the current state."""

    code = "CONFLICT"


class NotFoundError(DomainError):
    code = "NOT_FOUND"
