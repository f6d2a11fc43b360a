"""
auth/service.py -- Registration, login and profile business logic.

Pure business logic with no HTTP dependencies. Raises the domain errors in
auth/errors.py; the API layer maps them to status codes.

Validation always completes before the first write, so a rejected request
never leaves a partial mutation behind.

Anti-enumeration [C1]: login() returns the same InvalidCredentialsError for an
unknown email and a wrong password, and runs bcrypt in both cases so the two
paths take the same time.

Race handling: the existence checks in register() and update_profile() give
friendly errors in the common case, but two concurrent requests can both pass
them. The store's UNIQUE constraints are authoritative; a DuplicateKeyError at
write time is re-classified as EmailTakenError or UsernameTakenError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import re

from auth.errors import (
    DuplicateKeyError,
    EmailTakenError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidUsernameError,
    MissingFieldsError,
    TokenInvalidError,
    TokenMissingError,
    UsernameTakenError,
    UserNotFoundError,
    WeakPasswordError,
)
from auth.models import AuthResult, TokenClaims, UserProfile, UserUpdate
from auth.repository import UserRepository
from auth.tokens import BCRYPT_ROUNDS, TokenIssuer, equalize_timing, hash_password, verify_password

logger = logging.getLogger("credstore.auth")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
MAX_USERNAME_LENGTH = 50
MAX_EMAIL_LENGTH = 100


def _is_valid_email(email: str) -> bool:
    return len(email) <= MAX_EMAIL_LENGTH and bool(EMAIL_PATTERN.match(email))


def _check_username(username: str) -> None:
    if len(username) > MAX_USERNAME_LENGTH:
        raise InvalidUsernameError()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError()


class AuthService:
    """Orchestrates validation, repository lookups, hashing and token issuance.

    Usage:
        service = AuthService(UserStore(url), TokenIssuer(secret))
        result = service.register("alice", "alice@x.com", "secret1")
        claims = service.authenticate(result.token)
        profile = service.get_profile(claims.user_id)
    """

    def __init__(self, repo: UserRepository, tokens: TokenIssuer, bcrypt_rounds: int = BCRYPT_ROUNDS) -> None:
        self.repo = repo
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def register(self, username: str | None, email: str | None, password: str | None) -> AuthResult:
        """Create an account and return its identity plus a fresh token.

        Raises:
            MissingFieldsError, InvalidUsernameError, InvalidEmailError, WeakPasswordError,
            EmailTakenError, UsernameTakenError, StorageUnavailableError
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password:
            raise MissingFieldsError("Please provide username, email, and password")
        _check_username(username)
        if not _is_valid_email(email):
            raise InvalidEmailError()
        _check_password(password)

        if self.repo.get_by_email(email) is not None:
            raise EmailTakenError()
        if self.repo.get_by_username(username) is not None:
            raise UsernameTakenError()

        hashed = hash_password(password, rounds=self.bcrypt_rounds)
        try:
            user_id = self.repo.create_user(username, email, hashed)
        except DuplicateKeyError:
            raise self._classify_duplicate(email) from None

        logger.info("User registered (user_id=%s)", user_id)
        return AuthResult(
            user_id=user_id,
            username=username,
            email=email,
            token=self.tokens.issue(user_id, email),
        )

    def login(self, email: str | None, password: str | None) -> AuthResult:
        """Verify email/password and return a fresh token.

        Raises:
            MissingFieldsError, InvalidCredentialsError, StorageUnavailableError
        """
        email = (email or "").strip()
        if not email or not password:
            raise MissingFieldsError("Please provide email and password")

        user = self.repo.get_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return early before running bcrypt [C1]
            equalize_timing(password)
            raise InvalidCredentialsError()
        if not verify_password(password, user.hashed_password):
            raise InvalidCredentialsError()

        logger.info("User logged in (user_id=%s)", user.id)
        return AuthResult(
            user_id=user.id,
            username=user.username,
            email=user.email,
            token=self.tokens.issue(user.id, user.email),
        )

    def authenticate(self, token: str | None) -> TokenClaims:
        """Gate for protected operations: missing -> TokenMissingError, bad -> TokenInvalidError."""
        if not token:
            raise TokenMissingError()
        claims = self.tokens.verify(token)
        if claims is None:
            raise TokenInvalidError()
        return claims

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, user_id: int) -> UserProfile:
        profile = self.repo.get_by_id(user_id)
        if profile is None:
            raise UserNotFoundError()
        return profile

    def update_profile(
        self,
        user_id: int,
        username: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> UserProfile:
        """Apply any subset of username/email/password and return the new public view.

        Empty strings count as "not provided", matching register().

        Raises:
            MissingFieldsError, InvalidEmailError, InvalidUsernameError, EmailTakenError,
            UsernameTakenError, WeakPasswordError, UserNotFoundError,
            StorageUnavailableError
        """
        username = (username or "").strip() or None
        email = (email or "").strip() or None
        password = password or None
        if username is None and email is None and password is None:
            raise MissingFieldsError("Please provide at least one field to update")

        if email is not None:
            if not _is_valid_email(email):
                raise InvalidEmailError()
            owner = self.repo.get_by_email(email)
            if owner is not None and owner.id != user_id:
                raise EmailTakenError("Email already taken by another user")

        if username is not None:
            _check_username(username)
            owner = self.repo.get_by_username(username)
            if owner is not None and owner.id != user_id:
                raise UsernameTakenError()

        update = UserUpdate(username=username, email=email)
        if password is not None:
            _check_password(password)
            update.hashed_password = hash_password(password, rounds=self.bcrypt_rounds)

        try:
            updated = self.repo.update_user(user_id, update)
        except DuplicateKeyError:
            raise self._classify_duplicate(email, exclude_id=user_id) from None
        if not updated:
            raise UserNotFoundError()

        logger.info("Profile updated (user_id=%s, fields=%s)", user_id, sorted(update.fields()))
        return self.get_profile(user_id)

    def list_users(self) -> list[UserProfile]:
        return self.repo.list_users()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _classify_duplicate(self, email: str | None, exclude_id: int | None = None) -> Exception:
        """Decide which UNIQUE constraint fired after a DuplicateKeyError."""
        if email is not None:
            owner = self.repo.get_by_email(email)
            if owner is not None and owner.id != exclude_id:
                return EmailTakenError()
        return UsernameTakenError()
