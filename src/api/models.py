"""Pydantic models for API request/response."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.model.user import AuthToken, UserProfile


class _StrictRequest(BaseModel):
    """Request bodies reject unknown keys."""
    model_config = ConfigDict(extra='forbid')


class RegisterRequest(_StrictRequest):
    """Request model for user registration."""
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=1024)
    display_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(_StrictRequest):
    """Request model for POST /sessions."""
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=1024)


class UpdateProfileRequest(_StrictRequest):
    """Partial profile update. Only display_name is mutable."""
    display_name: Optional[str] = Field(None, max_length=100)


class ChangePasswordRequest(_StrictRequest):
    current_password: str = Field(..., min_length=1, max_length=1024)
    new_password: str = Field(..., min_length=1, max_length=1024)


class UserProfileResponse(BaseModel):
    """Public user profile. Never includes the password hash."""
    id: str = Field(..., description="User ID")
    email: str
    display_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, profile: UserProfile) -> 'UserProfileResponse':
        return cls(
            id=profile.id,
            email=profile.email,
            display_name=profile.display_name,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class AuthTokenResponse(BaseModel):
    """Response model for POST /sessions."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Seconds until the token expires")
    expires_at: datetime

    @classmethod
    def from_domain(cls, token: AuthToken) -> 'AuthTokenResponse':
        return cls(
            access_token=token.access_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            expires_at=token.expires_at,
        )


class ErrorResponse(BaseModel):
    detail: str
    correlation_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
