"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Pharmabolt happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): dev mode generates a SECRET_KEY with a
      warning, production mode refuses to start without one.

Database selection:
  DATABASE_URL wins when set. Otherwise DB_HOST (plus DB_PORT, DB_USERNAME,
  DB_PASSWORD, DB_NAME) selects PostgreSQL. With neither, a local SQLite file
  next to this package is used. DB_SSL_CA points at a CA bundle and turns on
  certificate verification for PostgreSQL connections.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or catalog/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = logging.getLogger("pharmabolt.config")

_DEFAULT_SQLITE_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'pharmabolt.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". JWT_SECRET is
    # accepted as an alias for deployments carrying the older variable name.
    secret_key: str = Field(default="", validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"))
    port: int = 8000
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = 3600
    # When false, a role sent to POST /auth/register is ignored and every
    # self-registered account is created as "user".
    registration_role_enabled: bool = True

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = ""
    db_host: str = ""
    db_port: int = 5432
    db_username: str = ""
    db_password: str = ""
    db_name: str = ""
    db_ssl_ca: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def sqlalchemy_url(self) -> str | URL:
        """Return the URL handed to create_engine()."""
        if self.database_url:
            return self.database_url
        if self.db_host:
            return URL.create(
                "postgresql+psycopg2",
                username=self.db_username or None,
                password=self.db_password or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name or None,
            )
        return _DEFAULT_SQLITE_URL

    def db_connect_args(self) -> dict:
        """Driver-level connect arguments. TLS verification for PostgreSQL."""
        if self.db_ssl_ca:
            return {"sslmode": "verify-full", "sslrootcert": self.db_ssl_ca}
        return {}


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
