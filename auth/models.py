"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the service
do the work; api/models.py owns the JSON shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A stored account, including its password digest.

    Only the stores' email/username lookups return this type -- the service
    needs hashed_password to verify a login. Everything that leaves the core
    is converted to UserProfile first.

    id is None before the record is written to the database.
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, refreshed by store on every update


@dataclass(frozen=True)
class UserProfile:
    """Public view of a user. Never carries the password digest."""

    id: int
    username: str
    email: str
    created_at: str
    updated_at: str


@dataclass
class UserUpdate:
    """Partial update for a user record. None means "leave unchanged"."""

    username: str | None = None
    email: str | None = None
    hashed_password: str | None = None

    def fields(self) -> dict[str, str]:
        return {k: v for k, v in vars(self).items() if v is not None}


@dataclass(frozen=True)
class TokenClaims:
    """Identity extracted from a verified bearer token."""

    user_id: int
    email: str | None = None


@dataclass(frozen=True)
class AuthResult:
    """Successful register/login outcome."""

    user_id: int
    username: str
    email: str
    token: str
