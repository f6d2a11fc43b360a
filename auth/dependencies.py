"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The bearer gate is a plain ordered check, not middleware:
  1. Read the Authorization header; no "Bearer <token>" -> TokenMissingError (401).
  2. Verify the token; any failure -> TokenInvalidError (403).
  3. Hand the extracted TokenClaims to the route.

The errors propagate to the AuthError handler in api/main.py, which renders
the {success: false, message} envelope.

Layer rule: may import from fastapi (for Request/Depends) because this module
is part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.models import TokenClaims
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService built once in the application lifespan."""
    return request.app.state.auth_service


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_claims(request: Request, service: AuthService = Depends(get_auth_service)) -> TokenClaims:
    """Require a valid bearer token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: TokenClaims = Depends(get_current_claims)): ...
    """
    return service.authenticate(extract_bearer_token(request))
