"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for CredStore happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used for the DEBUG-conditional SECRET_KEY
      rule and for resolving the storage URL.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key weakens every issued token.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure. There is no hardcoded fallback signing key.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote_plus

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("credstore.config")

_DEV_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'credstore.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". JWT_SECRET is accepted
    # as an alias for deployments that already export it under that name.
    secret_key: str = Field(default="", validation_alias=AliasChoices("secret_key", "jwt_secret"))

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    token_expire_seconds: int = 24 * 60 * 60

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = ""
    db_host: str = ""
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""
    db_pool_size: int = Field(default=10, ge=1)
    db_pool_timeout: float = Field(default=10.0, gt=0)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["*"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def resolve_database_url(self) -> "Settings":
        """Resolve the SQLAlchemy URL from DATABASE_URL or the DB_* quartet.

        DATABASE_URL wins when set. Otherwise all four of DB_HOST, DB_USER,
        DB_PASSWORD and DB_NAME must be present to build a MySQL URL. With
        nothing configured, dev mode falls back to a local SQLite file and
        production mode refuses to start.
        """
        if self.database_url:
            return self
        parts = (self.db_host, self.db_user, self.db_password, self.db_name)
        if all(parts):
            self.database_url = (
                f"mysql+pymysql://{quote_plus(self.db_user)}:{quote_plus(self.db_password)}"
                f"@{self.db_host}/{self.db_name}"
            )
            return self
        if any(parts):
            missing = [
                name
                for name, value in zip(("DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME"), parts)
                if not value
            ]
            raise ValueError(f"Incomplete database configuration, missing: {', '.join(missing)}")
        if self.debug:
            self.database_url = _DEV_DB_URL
            logger.warning("No database configured -- using local SQLite file %s", _DEV_DB_URL)
            return self
        raise ValueError(
            "Database configuration is required in production mode. "
            "Set DATABASE_URL, or DB_HOST, DB_USER, DB_PASSWORD and DB_NAME."
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
