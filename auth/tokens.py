"""
auth/tokens.py -- Password hashing and JWT issue/verify.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (user id as string), user_id,
       email, iat, exp (24h by default) and a random jti so two tokens issued
       for the same user never collide, even inside one clock second.
       Verification returns None on any failure -- malformed, bad signature
       and expired are indistinguishable to the caller.

  Signing key: TokenIssuer is constructed once at startup from
       core.config.Settings and injected; there is no module-level key and no
       hardcoded fallback [M7].

  Passwords: bcrypt directly, cost factor 12. The _DUMMY_HASH constant
       enables timing equalization in AuthService.login() so response time
       does not reveal whether an email is registered [C1].

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenClaims

logger = logging.getLogger("credstore.auth")

BCRYPT_ROUNDS = 12
DEFAULT_EXPIRE_SECONDS = 24 * 60 * 60

_ALGORITHM = "HS256"
_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def _encode(plain: str) -> bytes:
    # bcrypt only reads the first 72 bytes; bcrypt>=5 rejects longer input outright.
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError for empty or non-string input.
    """
    if not isinstance(plain, str) or not plain:
        raise ValueError("password must be a non-empty string")
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Never raises: a malformed digest or non-string input is a mismatch.
    """
    if not isinstance(plain, str) or not isinstance(hashed, str):
        return False
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash [C1]. Computed once at module load.
_DUMMY_HASH: str = hash_password("credstore_timing_dummy")


def equalize_timing(plain: str) -> None:
    """Burn one bcrypt verification for a login whose account does not exist."""
    verify_password(plain if isinstance(plain, str) else "", _DUMMY_HASH)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies bearer tokens with one process-wide key.

    Usage:
        tokens = TokenIssuer(settings.secret_key)
        token = tokens.issue(user_id=1, email="alice@x.com")
        claims = tokens.verify(token)   # TokenClaims or None
    """

    def __init__(self, secret_key: str, expire_seconds: int = DEFAULT_EXPIRE_SECONDS) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a signing key")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, user_id: int, email: str | None = None) -> str:
        """Encode a signed JWT for the given identity."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "email": email,
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims | None:
        """Decode and verify a JWT. Returns the claims or None on any failure."""
        if not isinstance(token, str) or not token:
            return None
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.debug("JWT verification failed: %s", exc)
            return None
        user_id = payload.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        email = payload.get("email")
        return TokenClaims(user_id=user_id, email=email if isinstance(email, str) else None)
