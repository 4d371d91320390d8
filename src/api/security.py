"""Bearer token authentication and authorization dependencies."""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.dependencies import get_token_issuer
from domain.model.errors import PermissionDeniedError, UnauthorizedError
from domain.model.user import TokenClaims
from services.token_service import TokenIssuer

logger = logging.getLogger(__name__)

ADMIN_SCOPE = "admin"

security = HTTPBearer(auto_error=False)


def get_token_claims_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """Verify the bearer token (required). Raises 401 if missing or invalid."""
    if not credentials:
        raise UnauthorizedError("Not authenticated")
    return tokens.verify(credentials.credentials)


def ensure_can_access(claims: TokenClaims, user_id: str, allow_admin: bool = False) -> None:
    """Allow the token's own user, and admins when ``allow_admin`` is set.

    Raises:
        PermissionDeniedError: token belongs to someone else
    """
    if claims.user_id == user_id:
        return
    if allow_admin and claims.has_scope(ADMIN_SCOPE):
        logger.info("Admin access", extra={"adminId": claims.user_id, "userId": user_id})
        return
    raise PermissionDeniedError("You don't have permission to access this user")
