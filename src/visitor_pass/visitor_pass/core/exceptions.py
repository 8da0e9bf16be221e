class DomainError(Exception):
    """Base exception for business rule violations.

    ``kind`` is the stable identifier surfaced to API clients; ``status_code``
    is the HTTP status the controllers answer with.
    """

    kind = "domain_error"
    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation_error"
    status_code = 400


class AuthenticationError(DomainError):
    """Raised when a credential is missing, invalid, expired or belongs to a suspended user."""

    kind = "authentication_error"
    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "authorization_error"
    status_code = 403


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(DomainError):
    """Raised when the current state does not allow the transition (double entry/exit...)."""

    kind = "conflict"
    status_code = 409


class PersistenceError(DomainError):
    """Raised when the underlying store fails. The message never carries driver details."""

    kind = "persistence_error"
    status_code = 500
