"""
Tests for peopledesk/core/config.py - Configuration and settings validation.
"""
import pytest

from peopledesk.core.config import Settings

SECURE_KEY = "a-very-secure-secret-key-that-is-long-enough-32chars"


def _production(monkeypatch, **overrides):
    env = {
        "ENVIRONMENT": "production",
        "DEBUG": "false",
        "SECRET_KEY": SECURE_KEY,
        "POSTGRES_PASSWORD": "secure-db-password",
        "ALLOWED_ORIGINS": "https://hr.example.com",
    }
    env.update(overrides)
    for key, value in env.items():
        monkeypatch.setenv(key, value)


class TestSettingsValidation:
    """Test configuration validation logic."""

    def test_development_mode_allows_default_secrets(self, monkeypatch):
        """Development mode should allow default/insecure secrets."""
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.delenv("SECRET_KEY", raising=False)

        settings = Settings()

        assert settings.ENVIRONMENT == "development"

    def test_production_mode_rejects_default_secret_key(self, monkeypatch):
        """Production mode must reject default SECRET_KEY."""
        _production(monkeypatch)
        monkeypatch.delenv("SECRET_KEY")

        with pytest.raises(ValueError) as exc_info:
            Settings()

        assert "SECRET_KEY is insecure" in str(exc_info.value)

    def test_production_mode_rejects_short_secret_key(self, monkeypatch):
        _production(monkeypatch, SECRET_KEY="short")

        with pytest.raises(ValueError) as exc_info:
            Settings()

        assert "SECRET_KEY is insecure" in str(exc_info.value)

    def test_production_mode_rejects_insecure_db_password(self, monkeypatch):
        """Production mode must reject default database passwords."""
        _production(monkeypatch, POSTGRES_PASSWORD="postgres")
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ValueError) as exc_info:
            Settings()

        assert "POSTGRES_PASSWORD is insecure" in str(exc_info.value)

    def test_production_mode_rejects_insecure_password_in_url(self, monkeypatch):
        _production(monkeypatch, DATABASE_URL="postgresql+asyncpg://app:changeme@db:5432/peopledesk")

        with pytest.raises(ValueError) as exc_info:
            Settings()

        assert "DATABASE_URL contains an insecure password" in str(exc_info.value)

    def test_production_mode_rejects_debug(self, monkeypatch):
        _production(monkeypatch, DEBUG="true")

        with pytest.raises(ValueError) as exc_info:
            Settings()

        assert "DEBUG must be False" in str(exc_info.value)

    def test_production_mode_rejects_localhost_origins(self, monkeypatch):
        _production(monkeypatch, ALLOWED_ORIGINS="http://localhost:5173")

        with pytest.raises(ValueError) as exc_info:
            Settings()

        assert "ALLOWED_ORIGINS" in str(exc_info.value)

    def test_errors_are_reported_together(self, monkeypatch):
        """All configuration problems should surface in one error."""
        _production(monkeypatch, SECRET_KEY="short", DEBUG="true")

        with pytest.raises(ValueError) as exc_info:
            Settings()

        message = str(exc_info.value)
        assert "SECRET_KEY is insecure" in message
        assert "DEBUG must be False" in message

    def test_secure_production_config_is_accepted(self, monkeypatch):
        _production(monkeypatch)

        settings = Settings()

        assert settings.ENVIRONMENT == "production"
        assert settings.ALLOWED_ORIGINS == ["https://hr.example.com"]


class TestDerivedSettings:

    def test_database_url_built_from_components(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("SQLALCHEMY_DATABASE_URI", raising=False)
        monkeypatch.setenv("POSTGRES_USER", "hr")
        monkeypatch.setenv("POSTGRES_PASSWORD", "pw")
        monkeypatch.setenv("POSTGRES_SERVER", "dbhost")
        monkeypatch.setenv("POSTGRES_DB", "people")

        settings = Settings()

        assert settings.DATABASE_URL == "postgresql+asyncpg://hr:pw@dbhost:5432/people"

    def test_explicit_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./people.db")

        assert Settings().DATABASE_URL == "sqlite+aiosqlite:///./people.db"

    def test_allowed_origins_comma_separated(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example.com, https://b.example.com")

        assert Settings().ALLOWED_ORIGINS == ["https://a.example.com", "https://b.example.com"]

    def test_max_document_bytes(self, monkeypatch):
        monkeypatch.setenv("MAX_DOCUMENT_SIZE_MB", "2")

        assert Settings().max_document_bytes == 2 * 1024 * 1024

    def test_non_positive_document_size_rejected(self, monkeypatch):
        monkeypatch.setenv("MAX_DOCUMENT_SIZE_MB", "0")

        with pytest.raises(ValueError):
            Settings()
