from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class User:
    """Domain model representing a stored user."""
    id: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    display_name: str | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_profile(self) -> 'UserProfile':
        """Project the user onto its public profile (no credentials)."""
        return UserProfile(
            id=self.id,
            email=self.email,
            display_name=self.display_name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserProfile:
    """User as seen outside the service layer. Never carries password_hash."""
    id: str
    email: str
    display_name: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class AuthToken:
    """Signed bearer token issued on successful authentication."""
    access_token: str
    expires_at: datetime
    expires_in: int
    token_type: str = 'bearer'


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a bearer token."""
    user_id: str
    expires_at: datetime
    scopes: tuple[str, ...] = field(default_factory=tuple)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes
