"""
api/routes/auth.py -- Registration, login and profile REST endpoints.

Routes:
  POST /auth/register   -- create account; 201 with token
  POST /auth/login      -- password login; 200 with token
  GET  /auth/profile    -- current user's public view (requires bearer token)
  PUT  /auth/profile    -- update username/email/password (requires bearer token)
  GET  /auth/users      -- list every user, newest first (requires bearer token)

Handlers are thin: parse the body, call AuthService, wrap the result in the
success envelope. Domain errors propagate to the AuthError handler in
api/main.py, which owns the error -> status mapping.

Handlers are plain ``def`` because AuthService and the stores are blocking;
FastAPI runs them in its threadpool.

Security:
  [C1] Login failures are a single InvalidCredentialsError, whatever the cause.
  [M5] Cache-Control: no-store on responses that carry a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from api.models import (
    AuthData,
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    UserListResponse,
    UserPublic,
)
from auth.dependencies import get_auth_service, get_current_claims
from auth.models import TokenClaims
from auth.service import AuthService

# Auth policy:
# - POST /auth/register: public
# - POST /auth/login:    public
# - GET  /auth/profile:  requires bearer token (get_current_claims)
# - PUT  /auth/profile:  requires bearer token (get_current_claims)
# - GET  /auth/users:    requires bearer token (get_current_claims); no roles exist
router = APIRouter(prefix="/auth")


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    body: RegisterRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Create an account and return its identity plus a bearer token."""
    result = service.register(body.username, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return AuthResponse(message="User registered successfully", data=AuthData.from_result(result))


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Authenticate with email and password; return a fresh bearer token."""
    result = service.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return AuthResponse(message="Login successful", data=AuthData.from_result(result))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Return the public view of the token's user. 404 if the account is gone."""
    profile = service.get_profile(claims.user_id)
    return ProfileResponse(data=UserPublic.from_profile(profile))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdateRequest,
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Update any subset of username, email and password."""
    profile = service.update_profile(
        claims.user_id,
        username=body.username,
        email=body.email,
        password=body.password,
    )
    return ProfileResponse(message="Profile updated successfully", data=UserPublic.from_profile(profile))


@router.get("/users", response_model=UserListResponse)
def list_users(
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
) -> UserListResponse:
    """List every account, newest first."""
    users = [UserPublic.from_profile(p) for p in service.list_users()]
    return UserListResponse(data=users, count=len(users))
