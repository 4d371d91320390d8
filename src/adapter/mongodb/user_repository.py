"""MongoDB implementation of UserRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    DuplicateKeyError,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from adapter.mongodb.connection import USERS_COLLECTION_NAME
from adapter.mongodb.indexes import IndexSpec, ensure_indexes
from domain.model.errors import (
    DuplicateError,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
)
from domain.model.user import User

logger = getLogger(__name__)

USER_INDEXES = [
    IndexSpec('idx_users_email', [('email', 1)], {'unique': True}),
    IndexSpec('idx_users_created_at', [('created_at', -1)]),
]

_UNAVAILABLE_ERRORS = (ConnectionFailure, ServerSelectionTimeoutError, AutoReconnect, NetworkTimeout)
_PROTECTED_FIELDS = {'_id', 'id', 'created_at', 'updated_at'}
_ACTIVE = {'deleted_at': None}


def _translate(e: PyMongoError, action: str, **extra) -> StorageError:
    """Map a driver exception onto the domain storage errors."""
    if isinstance(e, _UNAVAILABLE_ERRORS):
        logger.error(f"MongoDB unavailable during {action}", extra={**extra, "error": str(e)[:200]})
        return StorageUnavailableError("Storage unavailable")
    logger.error(f"MongoDB error during {action}", extra={**extra, "error": str(e)[:200]})
    return StorageError(f"Failed to {action}")


class MongoUserRepository:
    def __init__(self, db: Database):
        self.db = db
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        try:
            return ensure_indexes(self.collection, USER_INDEXES)
        except PyMongoError as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            email=doc['email'],
            password_hash=doc['password_hash'],
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            display_name=doc.get('display_name'),
            deleted_at=doc.get('deleted_at'),
        )

    def insert(self, email: str, password_hash: str, display_name: str | None = None) -> User:
        """Create a new user and return the User object."""
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'email': email,
            'password_hash': password_hash,
            'display_name': display_name,
            'created_at': now,
            'updated_at': now,
            'deleted_at': None,
        }
        try:
            self.collection.insert_one(user_doc)
        except DuplicateKeyError as e:
            logger.warning("User creation failed: email already exists", extra={"email": email})
            raise DuplicateError("Email already registered") from e
        except PyMongoError as e:
            raise _translate(e, "create user", email=email) from e

        logger.info("User created", extra={"userId": user_id})
        return self._to_domain(user_doc)

    def find_by_email(self, email: str) -> User | None:
        try:
            doc = self.collection.find_one({'email': email, **_ACTIVE})
        except PyMongoError as e:
            raise _translate(e, "get user by email") from e
        return self._to_domain(doc) if doc else None

    def find_by_id(self, user_id: str) -> User | None:
        try:
            doc = self.collection.find_one({'_id': user_id, **_ACTIVE})
        except PyMongoError as e:
            raise _translate(e, "get user by id", userId=user_id) from e
        return self._to_domain(doc) if doc else None

    def update(self, user_id: str, fields: dict[str, Any]) -> User:
        """Apply a partial update atomically and return the updated user.

        updated_at becomes max($$NOW, previous + 1ms), so it strictly
        increases even when two writes land in the same millisecond.
        """
        changes = {k: {'$literal': v} for k, v in fields.items() if k not in _PROTECTED_FIELDS}
        changes['updated_at'] = {'$max': ['$$NOW', {'$add': ['$updated_at', 1]}]}
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id, **_ACTIVE},
                [{'$set': changes}],
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise DuplicateError("Email already registered") from e
        except PyMongoError as e:
            raise _translate(e, "update user", userId=user_id) from e

        if doc is None:
            raise NotFoundError("User not found")

        logger.debug("User updated", extra={"userId": user_id, "fields": sorted(fields)})
        return self._to_domain(doc)

    def ping(self) -> bool:
        try:
            self.db.client.admin.command('ping')
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed", extra={"error": str(e)[:200]})
            return False
