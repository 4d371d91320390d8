from typing import Any, Protocol

from domain.model.user import User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Implementations translate backend failures into domain errors:
    DuplicateError, NotFoundError, StorageUnavailableError, StorageError.
    Soft-deleted users are invisible to every read and update.
    """

    def insert(self, email: str, password_hash: str, display_name: str | None = None) -> User:
        """Create a new user with generated id and timestamps.

        Raises DuplicateError if the email is already taken.
        """
        ...

    def find_by_email(self, email: str) -> User | None:
        """Find an active user by (already normalized) email."""
        ...

    def find_by_id(self, user_id: str) -> User | None:
        """Find an active user by ID."""
        ...

    def update(self, user_id: str, fields: dict[str, Any]) -> User:
        """Apply a partial update and move updated_at forward.

        Raises NotFoundError if the user does not exist.
        """
        ...

    def ping(self) -> bool:
        """Return True if the backend can currently serve requests."""
        ...
