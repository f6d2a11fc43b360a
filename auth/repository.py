"""
auth/repository.py -- The user persistence contract.

AuthService depends on this Protocol, never on a concrete store. Two
implementations satisfy it: UserStore (SQLAlchemy, auth/store.py) for real
deployments and InMemoryUserStore (auth/memory_store.py) for tests and demos.

Every method may raise StorageUnavailableError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from typing import Protocol

from auth.models import User, UserProfile, UserUpdate


class UserRepository(Protocol):
    """Protocol defining the interface for user data access."""

    def get_by_email(self, email: str) -> User | None:
        """Find a user by exact email. Includes the password digest."""
        ...

    def get_by_username(self, username: str) -> User | None:
        """Find a user by exact username. Includes the password digest."""
        ...

    def get_by_id(self, user_id: int) -> UserProfile | None:
        """Find a user by primary key. Public view only -- no digest."""
        ...

    def create_user(self, username: str, email: str, hashed_password: str) -> int:
        """Insert a user and return its new id. Raises DuplicateKeyError on a uniqueness violation."""
        ...

    def update_user(self, user_id: int, update: UserUpdate) -> bool:
        """Apply a partial update. Returns False if user_id does not exist.

        Raises NoFieldsProvidedError for an empty update and DuplicateKeyError
        if the new email or username belongs to another user.
        """
        ...

    def list_users(self) -> list[UserProfile]:
        """Return every user, newest first."""
        ...

    def delete_user(self, user_id: int) -> bool:
        """Delete a user. Returns False if user_id does not exist."""
        ...

    def ping(self) -> bool:
        """Return True if the backing storage is reachable."""
        ...

    def close(self) -> None:
        ...
