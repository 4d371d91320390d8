"""Domain-level exceptions.

Services and adapters raise these errors to express business rule violations
and storage failures. The HTTP layer catches them and maps each one to a
status code in a single place (api/errors.py).
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class DuplicateError(DomainError):
    """Entity with the same unique key already exists."""


class EmailTakenError(DuplicateError):
    """A user with the same normalized email is already registered."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


class PermissionDeniedError(DomainError):
    """Caller lacks permission for the requested action."""


class ValidationError(DomainError):
    """Input violates a business validation rule."""


class InvalidCredentialsError(DomainError):
    """Email/password pair rejected.

    Raised for both unknown emails and wrong passwords so callers
    cannot tell which one failed.
    """

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class UnauthorizedError(DomainError):
    """Bearer token missing, malformed, expired or badly signed."""


class StorageError(DomainError):
    """Storage backend rejected an operation."""


class StorageUnavailableError(StorageError):
    """Storage backend cannot be reached."""
