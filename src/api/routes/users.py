"""User account routes.

- POST /users: register
- GET /users/{user_id}: fetch profile (owner or admin)
- PATCH /users/{user_id}: update profile (owner)
- PUT /users/{user_id}/password: change password (owner)
- DELETE /users/{user_id}: deactivate (owner or admin)

Handlers are plain ``def`` so the blocking storage driver runs on the
worker thread pool instead of the event loop.
"""

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_user_service
from api.models import (
    ChangePasswordRequest,
    ErrorResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserProfileResponse,
)
from api.security import ensure_can_access, get_token_claims_required
from domain.model.user import TokenClaims
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])

_AUTH_ERRORS = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Token belongs to another user"},
    404: {"model": ErrorResponse, "description": "User not found"},
}


@router.post(
    "",
    response_model=UserProfileResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email, password or display name"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
def register(request: RegisterRequest, service: UserService = Depends(get_user_service)):
    """Register a new user."""
    profile = service.register(request.email, request.password, request.display_name)
    return UserProfileResponse.from_domain(profile)


@router.get("/{user_id}", response_model=UserProfileResponse, responses=_AUTH_ERRORS)
def get_user(
    user_id: str,
    claims: TokenClaims = Depends(get_token_claims_required),
    service: UserService = Depends(get_user_service),
):
    """Get a user's profile."""
    ensure_can_access(claims, user_id, allow_admin=True)
    return UserProfileResponse.from_domain(service.get_profile(user_id))


@router.patch(
    "/{user_id}",
    response_model=UserProfileResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid update"}, **_AUTH_ERRORS},
)
def update_user(
    user_id: str,
    request: UpdateProfileRequest,
    claims: TokenClaims = Depends(get_token_claims_required),
    service: UserService = Depends(get_user_service),
):
    """Update mutable profile fields. Only fields present in the body are changed."""
    ensure_can_access(claims, user_id)
    profile = service.update_profile(user_id, request.model_dump(exclude_unset=True))
    return UserProfileResponse.from_domain(profile)


@router.put(
    "/{user_id}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"model": ErrorResponse, "description": "New password rejected"}, **_AUTH_ERRORS},
)
def change_password(
    user_id: str,
    request: ChangePasswordRequest,
    claims: TokenClaims = Depends(get_token_claims_required),
    service: UserService = Depends(get_user_service),
):
    """Change the password. Requires the current password."""
    ensure_can_access(claims, user_id)
    service.change_password(user_id, request.current_password, request.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_AUTH_ERRORS)
def deactivate_user(
    user_id: str,
    claims: TokenClaims = Depends(get_token_claims_required),
    service: UserService = Depends(get_user_service),
):
    """Soft-delete the account. The email stays reserved."""
    ensure_can_access(claims, user_id, allow_admin=True)
    service.deactivate(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
