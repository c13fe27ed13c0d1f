class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ConflictError(DomainError):
    """Raised when a uniqueness rule is violated (duplicate period, overlapping week)."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class StateError(DomainError):
    """Raised when an operation is not allowed in the current workflow status."""


class NotFoundError(DomainError):
    """Raised when an id does not resolve to a record."""


class DuplicateKeyError(Exception):
    """Raised by repositories when the store rejects a row on a unique constraint."""
