class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTimeRangeError(ValidationError):
    """Raised when a back-dated entry time is unparsable or not in the past."""


class DuplicateVisitorError(DomainError):
    """Raised when a visitor with the same first and last name already exists."""


class NotFoundError(DomainError):
    """Raised when a visitor or an open visit cannot be found."""


class NoPriorVisitError(NotFoundError):
    """Raised when a known visitor has no visit to copy details from."""


class BannedError(NotFoundError):
    """Raised when a banned visitor tries to sign in.

    Reported as 403 rather than 404 by the HTTP layer.
    """


class AuthorizationError(DomainError):
    """Raised when a shared secret does not match."""
