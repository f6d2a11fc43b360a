"""
auth/memory_store.py -- In-memory UserRepository for tests and demos.

Satisfies the same contract as UserStore (auth/store.py): unique email and
username enforced as DuplicateKeyError, monotonic ids that are never reused,
public views without the password digest, newest-first listing.

Thread safety: a single lock guards every write. Reads return copies, so
callers can never mutate stored records in place.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from auth.errors import DuplicateKeyError, NoFieldsProvidedError
from auth.models import User, UserProfile, UserUpdate


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _to_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class InMemoryUserStore:
    """Dict-backed UserRepository.

    Usage:
        store = InMemoryUserStore()
        user_id = store.create_user("alice", "alice@x.com", hash_password("secret1"))
        profile = store.get_by_id(user_id)
    """

    def __init__(self) -> None:
        self.store: dict[int, User] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, username: str, email: str, hashed_password: str) -> int:
        with self._lock:
            if any(u.email == email or u.username == username for u in self.store.values()):
                raise DuplicateKeyError()
            user_id = self._next_id
            self._next_id += 1
            now = _now_iso()
            self.store[user_id] = User(
                id=user_id,
                username=username,
                email=email,
                hashed_password=hashed_password,
                created_at=now,
                updated_at=now,
            )
            return user_id

    def update_user(self, user_id: int, update: UserUpdate) -> bool:
        """Apply a partial update. Returns False if user_id does not exist."""
        fields = update.fields()
        if not fields:
            raise NoFieldsProvidedError()
        with self._lock:
            user = self.store.get(user_id)
            if user is None:
                return False
            for other in self.store.values():
                if other.id == user_id:
                    continue
                if other.email == fields.get("email") or other.username == fields.get("username"):
                    raise DuplicateKeyError()
            self.store[user_id] = replace(user, **fields, updated_at=_now_iso())
            return True

    def delete_user(self, user_id: int) -> bool:
        with self._lock:
            return self.store.pop(user_id, None) is not None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        for user in list(self.store.values()):
            if user.email == email:
                return replace(user)
        return None

    def get_by_username(self, username: str) -> User | None:
        for user in list(self.store.values()):
            if user.username == username:
                return replace(user)
        return None

    def get_by_id(self, user_id: int) -> UserProfile | None:
        user = self.store.get(user_id)
        return _to_profile(user) if user is not None else None

    def list_users(self) -> list[UserProfile]:
        """Return all users, newest first. Ties on created_at fall back to id."""
        users = sorted(self.store.values(), key=lambda u: (u.created_at, u.id), reverse=True)
        return [_to_profile(u) for u in users]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass
