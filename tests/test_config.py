"""Unit tests for core/config.py -- SECRET_KEY policy and database selection.

Every test builds Settings(_env_file=None) after clearing the relevant
variables so a developer's .env file or shell cannot leak in.
"""

import pytest
from pydantic import ValidationError

from core.config import Settings

_VARS = (
    "DEBUG",
    "SECRET_KEY",
    "JWT_SECRET",
    "DATABASE_URL",
    "DB_HOST",
    "DB_PORT",
    "DB_USERNAME",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_SSL_CA",
    "TOKEN_EXPIRE_SECONDS",
)

_KEY = "k" * 40


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def _settings() -> Settings:
    return Settings(_env_file=None)


class TestSecretKey:
    def test_debug_generates_key(self, monkeypatch) -> None:
        monkeypatch.setenv("DEBUG", "true")
        assert len(_settings().secret_key) >= 32

    def test_production_requires_key(self) -> None:
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            _settings()

    def test_short_key_rejected(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", "too-short")
        with pytest.raises(ValidationError, match="at least 32"):
            _settings()

    def test_jwt_secret_alias(self, monkeypatch) -> None:
        monkeypatch.setenv("JWT_SECRET", _KEY)
        assert _settings().secret_key == _KEY

    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)
        settings = _settings()
        assert settings.token_expire_seconds == 3600
        assert settings.port == 8000
        assert settings.registration_role_enabled is True


class TestDatabaseSelection:
    @pytest.fixture(autouse=True)
    def key(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)

    def test_sqlite_fallback(self) -> None:
        url = _settings().sqlalchemy_url()
        assert str(url).startswith("sqlite:///")
        assert str(url).endswith("pharmabolt.db")

    def test_database_url_wins(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite:///elsewhere.db")
        monkeypatch.setenv("DB_HOST", "db.internal")
        assert _settings().sqlalchemy_url() == "sqlite:///elsewhere.db"

    def test_postgres_from_parts(self, monkeypatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("DB_USERNAME", "pharma")
        monkeypatch.setenv("DB_PASSWORD", "p@ss")
        monkeypatch.setenv("DB_NAME", "catalog")
        url = _settings().sqlalchemy_url()
        assert url.drivername == "postgresql+psycopg2"
        assert (url.host, url.port, url.username, url.password, url.database) == (
            "db.internal",
            6543,
            "pharma",
            "p@ss",
            "catalog",
        )

    def test_ssl_ca_enables_verification(self, monkeypatch) -> None:
        monkeypatch.setenv("DB_SSL_CA", "/etc/ssl/rds-bundle.pem")
        assert _settings().db_connect_args() == {"sslmode": "verify-full", "sslrootcert": "/etc/ssl/rds-bundle.pem"}

    def test_no_ssl_ca_no_connect_args(self) -> None:
        assert _settings().db_connect_args() == {}
