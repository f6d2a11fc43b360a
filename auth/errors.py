"""
auth/errors.py -- Domain-level exceptions for the auth core.

Services and stores raise these errors to express business rule violations
and storage failures. The HTTP layer catches AuthError once (api/main.py) and
maps each subclass to a status code -- nothing below api/ knows about HTTP.

Each subclass carries a machine-readable ``code`` and a default client-facing
``message``. Callers may pass a more specific message; StorageUnavailableError
deliberately keeps its message generic because it is shown to clients.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all auth-core errors."""

    code: str = "auth_error"
    message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingFieldsError(AuthError):
    code = "missing_fields"
    message = "Required fields are missing"


class InvalidEmailError(AuthError):
    code = "invalid_email"
    message = "Please provide a valid email address"


class InvalidUsernameError(AuthError):
    code = "invalid_username"
    message = "Username must be at most 50 characters long"


class WeakPasswordError(AuthError):
    code = "weak_password"
    message = "Password must be at least 6 characters long"


class EmailTakenError(AuthError):
    code = "email_taken"
    message = "User with this email already exists"


class UsernameTakenError(AuthError):
    code = "username_taken"
    message = "Username already taken"


class InvalidCredentialsError(AuthError):
    """Login failure. Unknown email and wrong password are indistinguishable."""

    code = "invalid_credentials"
    message = "Invalid email or password"


class UserNotFoundError(AuthError):
    code = "user_not_found"
    message = "User not found"


class TokenInvalidError(AuthError):
    """Malformed, forged or expired bearer token. Never says which."""

    code = "token_invalid"
    message = "Invalid or expired token"


class TokenMissingError(TokenInvalidError):
    code = "token_missing"
    message = "Access token required"


class StorageUnavailableError(AuthError):
    """Pool exhausted, connection lost, or any other storage failure.

    The underlying exception is chained (``raise ... from exc``) and logged by
    the store; only the generic message below ever reaches a client.
    """

    code = "storage_unavailable"
    message = "Internal server error"


# ---------------------------------------------------------------------------
# Repository-level errors -- handled inside AuthService, not mapped to HTTP
# ---------------------------------------------------------------------------


class DuplicateKeyError(AuthError):
    """A unique constraint (email or username) rejected an insert or update."""

    code = "duplicate_key"
    message = "Duplicate key"


class NoFieldsProvidedError(AuthError):
    code = "no_fields"
    message = "No fields to update"
