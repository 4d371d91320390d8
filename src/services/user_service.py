"""User service: registration, authentication and profile business logic.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers map to HTTP status codes.
Every user leaving this module is projected to a UserProfile.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

import bcrypt
from email_validator import EmailNotValidError, validate_email

from domain.model.errors import (
    DuplicateError,
    EmailTakenError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from domain.model.user import AuthToken, UserProfile
from port.user_repository import UserRepository
from services.token_service import TokenIssuer

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72
DISPLAY_NAME_MAX_LENGTH = 100
MUTABLE_PROFILE_FIELDS = frozenset({'display_name'})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _hash_password(password: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _verify_password(plain: str, hashed: str) -> bool:
    """Check ``plain`` against a bcrypt hash.

    Passwords over the bcrypt limit never match but still cost one hash check.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        bcrypt.checkpw(encoded[:BCRYPT_MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
        return False
    return bcrypt.checkpw(encoded, hashed.encode("utf-8"))


def _validate_email(email: str) -> str:
    """Return the normalized email or raise ValidationError."""
    normalized = normalize_email(email)
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}") from e
    return normalized


def _validate_display_name(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("display_name must be a string")
    value = value.strip()
    if not value:
        raise ValidationError("display_name must not be blank")
    if len(value) > DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError(f"display_name must be at most {DISPLAY_NAME_MAX_LENGTH} characters")
    return value


class UserService:
    """Domain operations on users, expressed over the UserRepository port."""

    def __init__(
        self,
        repo: UserRepository,
        tokens: TokenIssuer,
        password_min_length: int = 8,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
        admin_emails: Iterable[str] = (),
    ):
        self._repo = repo
        self._tokens = tokens
        self._password_min_length = password_min_length
        self._bcrypt_rounds = bcrypt_rounds
        self._admin_emails = frozenset(normalize_email(e) for e in admin_emails)
        # checked for unknown emails: every failed login costs one bcrypt verification
        self._dummy_hash = _hash_password("dummy-password-for-timing", bcrypt_rounds)

    def _validate_password(self, password: str) -> None:
        if len(password) < self._password_min_length:
            raise ValidationError(f"Password must be at least {self._password_min_length} characters")
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")

    def _scopes_for(self, email: str) -> tuple[str, ...]:
        if email in self._admin_emails:
            return ("user", "admin")
        return ("user",)

    def register(self, email: str, password: str, display_name: str | None = None) -> UserProfile:
        """Register a new user.

        Raises:
            ValidationError: malformed email, display name or password
            EmailTakenError: normalized email already registered
        """
        normalized = _validate_email(email)
        self._validate_password(password)
        display_name = _validate_display_name(display_name)

        password_hash = _hash_password(password, self._bcrypt_rounds)
        try:
            user = self._repo.insert(normalized, password_hash, display_name)
        except DuplicateError as e:
            raise EmailTakenError() from e

        logger.info("User registered", extra={"userId": user.id})
        return user.to_profile()

    def authenticate(self, email: str, password: str) -> AuthToken:
        """Authenticate a user by email and password and issue a token.

        Unknown emails and wrong passwords raise the same error after the
        same amount of hashing work.

        Raises:
            InvalidCredentialsError: credentials rejected (deliberately vague)
        """
        user = self._repo.find_by_email(normalize_email(email))
        if user is None:
            _verify_password(password, self._dummy_hash)
            raise InvalidCredentialsError()

        if not _verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        token = self._tokens.issue(user.id, self._scopes_for(user.email))
        logger.info("User authenticated", extra={"userId": user.id})
        return token

    def get_profile(self, user_id: str) -> UserProfile:
        """Raises NotFoundError if the user does not exist."""
        user = self._repo.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.to_profile()

    def update_profile(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        """Update mutable profile fields.

        Raises:
            ValidationError: empty update, disallowed field, or malformed value
            NotFoundError: unknown user
        """
        if not fields:
            raise ValidationError("No fields to update")
        disallowed = sorted(set(fields) - MUTABLE_PROFILE_FIELDS)
        if disallowed:
            raise ValidationError(f"Fields cannot be updated: {', '.join(disallowed)}")

        changes = {'display_name': _validate_display_name(fields['display_name'])}
        user = self._repo.update(user_id, changes)
        logger.info("Profile updated", extra={"userId": user_id})
        return user.to_profile()

    def change_password(self, user_id: str, current_password: str, new_password: str) -> UserProfile:
        """Replace the password hash after checking the current password.

        Raises:
            NotFoundError: unknown user
            InvalidCredentialsError: current password is wrong
            ValidationError: new password rejected
        """
        user = self._repo.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not _verify_password(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")

        self._validate_password(new_password)
        updated = self._repo.update(user_id, {'password_hash': _hash_password(new_password, self._bcrypt_rounds)})
        logger.info("Password changed", extra={"userId": user_id})
        return updated.to_profile()

    def deactivate(self, user_id: str) -> None:
        """Soft-delete a user. Raises NotFoundError if unknown or already deleted."""
        self._repo.update(user_id, {'deleted_at': datetime.now(timezone.utc)})
        logger.info("User deactivated", extra={"userId": user_id})
