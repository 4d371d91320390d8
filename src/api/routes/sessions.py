"""Login route: POST /sessions exchanges credentials for a bearer token.

Sessions are stateless; nothing is stored server-side.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_user_service
from api.models import AuthTokenResponse, ErrorResponse, LoginRequest
from services.user_service import UserService

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post(
    "",
    response_model=AuthTokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid email or password"}},
)
def login(request: LoginRequest, service: UserService = Depends(get_user_service)):
    """Authenticate and return a signed, time-limited access token."""
    token = service.authenticate(request.email, request.password)
    return AuthTokenResponse.from_domain(token)
