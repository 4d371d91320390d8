"""In-memory implementation of UserRepository for testing."""

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

from domain.model.errors import DuplicateError, NotFoundError, StorageUnavailableError
from domain.model.user import User

_PROTECTED_FIELDS = {'id', 'created_at', 'updated_at'}


class FakeUserRepository:
    """Thread-safe in-memory store.

    Returns copies so callers never share mutable state with the store.
    Set ``available = False`` to simulate a storage outage.
    """

    def __init__(self):
        self.store: dict[str, User] = {}
        self.available = True
        self._lock = threading.Lock()

    def _check_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("Storage unavailable")

    # ── write operations ─────────────────────────────────────

    def insert(self, email: str, password_hash: str, display_name: str | None = None) -> User:
        self._check_available()
        with self._lock:
            # deleted users keep their email reserved, like the unique index
            if any(u.email == email for u in self.store.values()):
                raise DuplicateError("Email already registered")

            now = datetime.now(timezone.utc)
            user = User(
                id=uuid.uuid4().hex,
                email=email,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
                display_name=display_name,
            )
            self.store[user.id] = user
            return replace(user)

    def update(self, user_id: str, fields: dict[str, Any]) -> User:
        self._check_available()
        with self._lock:
            user = self.store.get(user_id)
            if user is None or user.is_deleted:
                raise NotFoundError("User not found")

            changes = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}
            # storage keeps millisecond precision
            bumped = user.updated_at + timedelta(milliseconds=1)
            changes['updated_at'] = max(datetime.now(timezone.utc), bumped)

            updated = replace(user, **changes)
            self.store[user_id] = updated
            return replace(updated)

    # ── read operations ──────────────────────────────────────

    def find_by_email(self, email: str) -> User | None:
        self._check_available()
        with self._lock:
            for user in self.store.values():
                if user.email == email and not user.is_deleted:
                    return replace(user)
        return None

    def find_by_id(self, user_id: str) -> User | None:
        self._check_available()
        with self._lock:
            user = self.store.get(user_id)
            if user is None or user.is_deleted:
                return None
            return replace(user)

    def ping(self) -> bool:
        return self.available
