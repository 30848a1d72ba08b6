class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced user, team or outcome does not exist."""


class ConflictError(DomainError):
    """Raised on duplicate primary outcomes and cross-month bulk updates."""


class ConfigurationError(DomainError):
    """Raised when the operation cannot proceed without policy (no active settings, no date)."""


class UpstreamIOError(DomainError):
    """Raised when the punch source cannot be reached or answers with an error."""
