"""MongoDB connection lifecycle.

The handle is created once by the process bootstrap and passed to the
repositories that need it. Nothing in this module caches a client globally.
"""

import logging

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConfigurationError, ConnectionFailure, PyMongoError

from domain.model.errors import StorageError, StorageUnavailableError

logger = logging.getLogger(__name__)

# Suppress verbose PyMongo driver logs
logging.getLogger('pymongo').setLevel(logging.WARNING)

DEFAULT_DATABASE_NAME = 'userdb'
USERS_COLLECTION_NAME = 'users'


class MongoHandle:
    """Owned MongoDB client plus the database the service works in."""

    def __init__(self, client: MongoClient, database: Database):
        self.client = client
        self.database = database
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self.client.close()
        self._closed = True
        logger.info("MongoDB connection closed", extra={"database": self.database.name})


def connect(
    connection_string: str,
    database_name: str | None = None,
    max_pool_size: int = 10,
    timeout_ms: int = 5000,
) -> MongoHandle:
    """Open a pooled MongoDB client and verify it with a single ping.

    The database is taken from ``database_name``, else from the path of the
    connection string, else DEFAULT_DATABASE_NAME.

    Does not retry: callers own the retry policy.

    Raises:
        StorageUnavailableError: server not reachable within ``timeout_ms``
        StorageError: connection string is invalid
    """
    try:
        client = MongoClient(
            connection_string,
            tz_aware=True,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms * 6,
            maxPoolSize=max_pool_size,
            minPoolSize=0,
            maxIdleTimeMS=30000,
            waitQueueTimeoutMS=timeout_ms * 2,
            # Writes are never replayed behind the caller's back
            retryWrites=False,
            retryReads=True,
        )
    except ConfigurationError as e:
        raise StorageError(f"Invalid MongoDB configuration: {e}") from e

    try:
        client.admin.command('ping')
    except (ConnectionFailure, PyMongoError) as e:
        client.close()
        logger.error("MongoDB connection failed", extra={"error": str(e)[:200]})
        raise StorageUnavailableError("MongoDB is unreachable") from e

    if database_name:
        database = client[database_name]
    else:
        database = client.get_default_database(default=DEFAULT_DATABASE_NAME)

    logger.info("Connected to MongoDB", extra={"database": database.name, "maxPoolSize": max_pool_size})
    return MongoHandle(client, database)
