"""Bearer token issuing and verification.

Tokens are stateless JWTs bound to a user id, so any replica can verify a
token issued by any other replica sharing the same secret.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable

from jose import ExpiredSignatureError, JWTError, jwt

from domain.model.errors import UnauthorizedError
from domain.model.user import AuthToken, TokenClaims

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"
DEFAULT_TTL_MINUTES = 60


class TokenIssuer:
    def __init__(self, secret: str, algorithm: str = DEFAULT_ALGORITHM, ttl_minutes: int = DEFAULT_TTL_MINUTES):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        if ttl_minutes <= 0:
            raise ValueError("Token lifetime must be positive")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=ttl_minutes)

    def issue(self, user_id: str, scopes: Iterable[str] = ("user",)) -> AuthToken:
        """Create a signed, time-limited access token for ``user_id``."""
        now = datetime.now(timezone.utc)
        expire = now + self._ttl
        payload = {
            "sub": user_id,
            "scope": " ".join(scopes),
            "iat": now,
            "exp": expire,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return AuthToken(
            access_token=token,
            expires_at=expire,
            expires_in=int(self._ttl.total_seconds()),
        )

    def verify(self, token: str) -> TokenClaims:
        """Verify signature and expiry, returning the token's claims.

        Raises:
            UnauthorizedError: token expired, tampered with, or missing a subject
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise UnauthorizedError("Token expired") from e
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            raise UnauthorizedError("Invalid authentication credentials") from e

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid authentication credentials")

        return TokenClaims(
            user_id=user_id,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            scopes=tuple(payload.get("scope", "").split()),
        )
