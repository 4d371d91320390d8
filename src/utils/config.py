"""Service configuration read from environment variables.

Local development can put the same variables in a .env file; the
bootstrap loads it with python-dotenv before calling Settings.from_env().
"""

import os
from dataclasses import dataclass, field
from typing import Mapping


class ConfigError(ValueError):
    """Required configuration is missing or malformed."""


def _required(env: Mapping[str, str], keys: str | tuple[str, ...], hint: str = "") -> str:
    """Return the first non-empty value among ``keys``."""
    keys = (keys,) if isinstance(keys, str) else keys
    for key in keys:
        value = env.get(key, "").strip()
        if value:
            return value
    raise ConfigError(f"{' or '.join(keys)} environment variable is required. {hint}".strip())


def _int(env: Mapping[str, str], key: str, default: int, minimum: int = 0) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def _list(env: Mapping[str, str], key: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in env.get(key, "").split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    mongo_url: str
    jwt_secret_key: str
    mongodb_database: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 60
    host: str = "0.0.0.0"
    port: int = 5001
    password_min_length: int = 8
    bcrypt_rounds: int = 12
    admin_emails: tuple[str, ...] = field(default_factory=tuple)
    max_body_bytes: int = 16 * 1024
    request_timeout_seconds: float = 10.0
    graceful_shutdown_seconds: int = 20
    startup_retry_attempts: int = 5
    startup_retry_base_delay: float = 0.5
    mongo_max_pool_size: int = 10
    mongo_timeout_ms: int = 5000
    worker_threads: int = 40
    cors_origins: str = "*"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``env`` (defaults to os.environ).

        Raises:
            ConfigError: a required variable is missing or a value is malformed
        """
        env = os.environ if env is None else env
        return cls(
            mongo_url=_required(env, ("MONGO_URI", "MONGO_URL"), "Example: mongodb://mongodb:27017/userdb"),
            jwt_secret_key=_required(
                env, "JWT_SECRET_KEY", "Generate a secure key with: openssl rand -hex 32"
            ),
            mongodb_database=env.get("MONGODB_DATABASE") or None,
            jwt_algorithm=env.get("JWT_ALGORITHM", "HS256"),
            jwt_expiration_minutes=_int(env, "JWT_EXPIRATION_MINUTES", 60, minimum=1),
            host=env.get("HOST", "0.0.0.0"),
            port=_int(env, "PORT", 5001, minimum=1),
            password_min_length=_int(env, "PASSWORD_MIN_LENGTH", 8, minimum=1),
            bcrypt_rounds=_int(env, "BCRYPT_ROUNDS", 12, minimum=4),
            admin_emails=_list(env, "ADMIN_EMAILS"),
            max_body_bytes=_int(env, "MAX_BODY_BYTES", 16 * 1024, minimum=1),
            request_timeout_seconds=_float(env, "REQUEST_TIMEOUT_SECONDS", 10.0),
            graceful_shutdown_seconds=_int(env, "GRACEFUL_SHUTDOWN_SECONDS", 20),
            startup_retry_attempts=_int(env, "STARTUP_RETRY_ATTEMPTS", 5, minimum=1),
            startup_retry_base_delay=_float(env, "STARTUP_RETRY_BASE_DELAY", 0.5),
            mongo_max_pool_size=_int(env, "MONGO_MAX_POOL_SIZE", 10, minimum=1),
            mongo_timeout_ms=_int(env, "MONGO_TIMEOUT_MS", 5000, minimum=1),
            worker_threads=_int(env, "WORKER_THREADS", 40, minimum=1),
            cors_origins=env.get("CORS_ORIGINS", "*"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
