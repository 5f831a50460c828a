from typing import Optional, List
from urllib.parse import urlsplit

from pydantic import Field, AliasChoices, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Known insecure default values that must be changed in production
_INSECURE_SECRET_KEYS = {
    "your-secret-key-change-this-in-production-min-32-chars",
    "changeme",
    "secret",
    "development-secret",
}
_INSECURE_DB_PASSWORDS = {
    "postgres",
    "password",
    "changeme",
}

_INSECURE_ALLOWED_ORIGINS_DEFAULTS = {
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
}


def _extract_password_from_database_url(database_url: str | None) -> str | None:
    if not database_url:
        return None
    try:
        return urlsplit(database_url).password
    except ValueError:
        return None


class Settings(BaseSettings):
    # Allow comma-separated env vars for list fields like ALLOWED_ORIGINS
    model_config = SettingsConfigDict(env_file=".env", env_parse_delimiter=",")
    PROJECT_NAME: str = "PeopleDesk"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # CORS
    # Accept either a JSON array or a comma-separated string, normalized below.
    ALLOWED_ORIGINS: List[str] | str = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        validation_alias=AliasChoices("ALLOWED_ORIGINS", "BACKEND_CORS_ORIGINS"),
    )

    # Database settings
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_SERVER: str = Field(
        default="db",
        validation_alias=AliasChoices("POSTGRES_SERVER", "POSTGRES_HOST", "POSTGRES_HOSTNAME"),
    )
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "peopledesk"

    DB_POOL_SIZE: int = Field(default=10, description="Number of persistent DB connections")
    DB_MAX_OVERFLOW: int = Field(default=20, description="Max additional connections under load")

    # Full DB URL. If not provided, we build it from POSTGRES_*.
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "SQLALCHEMY_DATABASE_URI"),
    )
    SQLALCHEMY_ECHO: bool = False

    # Security settings
    SECRET_KEY: str = Field(
        default="your-secret-key-change-this-in-production-min-32-chars",
        validation_alias=AliasChoices("JWT_SECRET_KEY", "SECRET_KEY"),
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8
    MIN_PASSWORD_LENGTH: int = 8

    # Change feed and token revocations. Without REDIS_URL both are in-process only.
    REDIS_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("REDIS_URL", "REALTIME_REDIS_URL"),
    )
    REALTIME_CHANNEL_PREFIX: str = "peopledesk:changes"
    REVOCATION_KEY_PREFIX: str = "peopledesk:token:revoked"

    # Blob storage for employee documents
    STORAGE_PATH: str = Field(
        default="./peopledesk_data/storage",
        validation_alias=AliasChoices("STORAGE_PATH", "PEOPLEDESK_STORAGE_PATH"),
    )
    DOCUMENTS_BUCKET: str = "employee_documents"
    MAX_DOCUMENT_SIZE_MB: int = 10

    ACTIVITY_FEED_LIMIT: int = 10

    def model_post_init(self, __context):
        """
        Validate configuration on startup. In production, fail hard if insecure defaults are detected.
        """
        built_from_components = not self.DATABASE_URL
        if built_from_components:
            self.DATABASE_URL = (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        is_prod = self.ENVIRONMENT.lower() == "production"
        errors = []
        db_url_password = _extract_password_from_database_url(self.DATABASE_URL)

        if is_prod and (self.SECRET_KEY in _INSECURE_SECRET_KEYS or len(self.SECRET_KEY) < 32):
            errors.append(
                "SECRET_KEY is insecure. Generate a new key with: "
                f"python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )

        if is_prod:
            if built_from_components and self.POSTGRES_PASSWORD in _INSECURE_DB_PASSWORDS:
                errors.append(
                    "POSTGRES_PASSWORD is insecure. "
                    "Set a strong password in your environment (or provide DATABASE_URL with a strong password)."
                )
            elif db_url_password and db_url_password in _INSECURE_DB_PASSWORDS:
                errors.append("DATABASE_URL contains an insecure password.")

        if is_prod and (not self.ALLOWED_ORIGINS or set(self.ALLOWED_ORIGINS).issubset(_INSECURE_ALLOWED_ORIGINS_DEFAULTS)):
            errors.append(
                "ALLOWED_ORIGINS must be set to your domain(s) in production (not localhost defaults)."
            )

        if is_prod and self.DEBUG:
            errors.append("DEBUG must be False in production.")

        if self.MAX_DOCUMENT_SIZE_MB <= 0:
            errors.append("MAX_DOCUMENT_SIZE_MB must be positive.")

        # Report every error at once
        if errors:
            error_msg = "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ValueError(error_msg)

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value

    @property
    def max_document_bytes(self) -> int:
        return self.MAX_DOCUMENT_SIZE_MB * 1024 * 1024


settings = Settings()
