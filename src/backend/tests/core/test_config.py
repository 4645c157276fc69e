"""
Tests for application settings.
"""

import pytest

from core.config import Settings


@pytest.mark.unit
class TestSettings:
    """Test settings parsing and derived values."""

    def test_secret_key_required(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", "")
        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_postgres_url_from_parts(self, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(
            _env_file=None,
            SECRET_KEY="k",
            POSTGRES_USER="u",
            POSTGRES_PASSWORD="p",
            POSTGRES_HOST="db",
            POSTGRES_PORT=5433,
            POSTGRES_DB="votes",
        )
        assert settings.database_url == "postgresql+asyncpg://u:p@db:5433/votes"

    def test_database_url_override(self) -> None:
        settings = Settings(_env_file=None, SECRET_KEY="k", DATABASE_URL="sqlite+aiosqlite:///./dev.db")
        assert settings.database_url == "sqlite+aiosqlite:///./dev.db"

    def test_cors_origins(self) -> None:
        settings = Settings(_env_file=None, SECRET_KEY="k", CORS_ORIGINS="http://a.test, http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
