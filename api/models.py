"""
API request and response models for the CredStore REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

JSON keys are camelCase (userId, createdAt) via an alias generator; Python
attribute names stay snake_case. FastAPI serializes response_model output by
alias, so routes can return these models directly.

No response model has a password field. That is the API-side half of the
"digest never leaves the server" rule; the store's public projection is the
other half.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import AuthResult, UserProfile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
#
# Every field is Optional so an absent field reaches AuthService and becomes a
# MissingFieldsError (400 missing_fields) rather than a generic schema error.
# Passwords are never whitespace-stripped.


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    username: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    password: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: Optional[str] = Field(default=None, max_length=100)
    password: Optional[str] = Field(default=None, max_length=255)


class ProfileUpdateRequest(BaseModel):
    """Request body for PUT /auth/profile. Any subset of the three fields."""

    username: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=100)
    password: Optional[str] = Field(default=None, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AuthData(_CamelModel):
    """Identity plus bearer token returned by register and login."""

    user_id: int
    username: str
    email: str
    token: str

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthData":
        return cls(
            user_id=result.user_id,
            username=result.username,
            email=result.email,
            token=result.token,
        )


class UserPublic(_CamelModel):
    """Public view of a user -- the only user shape the API ever emits."""

    id: int
    username: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserPublic":
        """Factory Method -- the mapping lives next to the output model."""
        return cls(
            id=profile.id,
            username=profile.username,
            email=profile.email,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class AuthResponse(BaseModel):
    """Envelope for POST /auth/register and POST /auth/login."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: AuthData


class ProfileResponse(BaseModel):
    """Envelope for GET and PUT /auth/profile."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: Optional[str] = None
    data: UserPublic


class UserListResponse(BaseModel):
    """Envelope for GET /auth/users."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[UserPublic]
    count: int


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    code: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    timestamp: str
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class ServiceInfoResponse(BaseModel):
    """Response for GET / -- a banner listing the available endpoints."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    version: str
    endpoints: list[str]
