"""FastAPI application factory and process bootstrap.

Run with ``user-service`` (console script) or ``python -m api.main``.
"""

import logging
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version

import anyio.to_thread
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from adapter.mongodb.connection import MongoHandle, connect
from adapter.mongodb.indexes import ensure_all_indexes
from adapter.mongodb.user_repository import MongoUserRepository
from api.errors import register_exception_handlers
from api.middleware.request_context import request_context_middleware
from api.routes import health, sessions, users
from domain.model.errors import StorageError, StorageUnavailableError
from port.user_repository import UserRepository
from services.token_service import TokenIssuer
from services.user_service import UserService
from utils.config import ConfigError, Settings
from utils.logging import setup_structured_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "User Service"

try:
    VERSION = version("user-service")
except PackageNotFoundError:
    VERSION = "0.0.0"


def connect_with_retry(settings: Settings) -> MongoHandle:
    """Open the storage connection, retrying with exponential backoff.

    Only StorageUnavailableError is retried; a malformed connection string
    fails on the first attempt.

    Raises:
        StorageError: retries exhausted or configuration invalid
    """
    retrying = Retrying(
        retry=retry_if_exception_type(StorageUnavailableError),
        stop=stop_after_attempt(settings.startup_retry_attempts),
        wait=wait_exponential(multiplier=settings.startup_retry_base_delay, max=30),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(
        connect,
        settings.mongo_url,
        database_name=settings.mongodb_database,
        max_pool_size=settings.mongo_max_pool_size,
        timeout_ms=settings.mongo_timeout_ms,
    )


def _wire(app: FastAPI, repo: UserRepository, settings: Settings) -> None:
    """Build the service graph for one process and hang it on app.state."""
    app.state.user_repo = repo
    app.state.user_service = UserService(
        repo,
        app.state.token_issuer,
        password_min_length=settings.password_min_length,
        bcrypt_rounds=settings.bcrypt_rounds,
        admin_emails=settings.admin_emails,
    )


def create_app(
    settings: Settings | None = None,
    storage: MongoHandle | None = None,
    repository: UserRepository | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: configuration; read from the environment when omitted
        storage: an already-open MongoDB handle, closed at shutdown
        repository: a ready UserRepository (e.g. the in-memory fake). When
            given, no MongoDB connection is made.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown logic."""
        # Bounded pool for the blocking handlers
        anyio.to_thread.current_default_thread_limiter().total_tokens = settings.worker_threads

        handle = storage
        if app.state.user_repo is None:
            if handle is None:
                handle = await anyio.to_thread.run_sync(connect_with_retry, settings)
            if await anyio.to_thread.run_sync(ensure_all_indexes, handle.database):
                logger.info("MongoDB indexes verified/created successfully")
            else:
                logger.warning("Failed to create some MongoDB indexes")
            _wire(app, MongoUserRepository(handle.database), settings)

        try:
            yield  # App runs here
        finally:
            if handle is not None:
                handle.close()
            logger.info("Shutdown complete")

    app = FastAPI(
        title=SERVICE_NAME,
        description="User accounts: registration, login and profiles",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_issuer = TokenIssuer(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        ttl_minutes=settings.jwt_expiration_minutes,
    )
    app.state.user_repo = None
    app.state.user_service = None
    if repository is not None:
        _wire(app, repository, settings)

    # When using JWT authentication with Authorization header:
    # - If CORS_ORIGINS="*": allow_credentials must be False (browsers don't support credentials with wildcard)
    # - If CORS_ORIGINS is a specific list: allow_credentials can be True
    if settings.cors_origins == "*":
        cors_origins = ["*"]
        allow_credentials = False
    else:
        cors_origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
        allow_credentials = True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it wraps everything else
    app.middleware("http")(request_context_middleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(sessions.router)
    app.include_router(users.router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {"service": SERVICE_NAME, "version": VERSION, "status": "running"}

    return app


def main() -> None:
    """Process entry point.

    Exit codes: 0 after a clean shutdown, 1 when configuration is invalid or
    storage stays unreachable after all retries.
    """
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        setup_structured_logging()
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_structured_logging(settings.log_level)
    logger.info("Starting User Service", extra={"port": settings.port, "version": VERSION})

    try:
        storage = connect_with_retry(settings)
    except StorageError as e:
        logger.error("Cannot start: storage unavailable", extra={
            "error": str(e),
            "attempts": settings.startup_retry_attempts,
        })
        sys.exit(1)

    app = create_app(settings, storage=storage)
    try:
        # uvicorn stops accepting on SIGTERM/SIGINT and drains in-flight
        # requests for up to timeout_graceful_shutdown before the lifespan closes storage
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            access_log=False,
            log_config=None,
            timeout_graceful_shutdown=settings.graceful_shutdown_seconds,
        )
    finally:
        # Normally already closed by the lifespan; covers a startup that never reached it
        storage.close()
    logger.info("User Service stopped")


if __name__ == "__main__":
    main()
