"""Application settings and configuration.

This module defines all configuration options for the Spectr application.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Spectr", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    domain: str = Field(default="http://localhost:8000", alias="DOMAIN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./spectr.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=False, alias="AUTO_CREATE_TABLES")

    # Redis configuration for cross-process presence delivery
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    presence_backend: Literal["local", "redis"] = Field(default="local", alias="PRESENCE_BACKEND")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    oauth_state_expire_minutes: int = Field(default=10, alias="OAUTH_STATE_EXPIRE_MINUTES")

    # Google OAuth provider
    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")
    google_client_secret: str | None = Field(default=None, alias="GOOGLE_CLIENT_SECRET")
    oauth_http_timeout_seconds: float = Field(default=10.0, alias="OAUTH_HTTP_TIMEOUT_SECONDS")

    # Realtime delivery
    session_write_timeout_seconds: float = Field(
        default=5.0,
        alias="SESSION_WRITE_TIMEOUT_SECONDS",
    )
    session_queue_size: int = Field(default=256, alias="SESSION_QUEUE_SIZE")
    persistence_timeout_seconds: float = Field(
        default=10.0,
        alias="PERSISTENCE_TIMEOUT_SECONDS",
    )
    max_message_length: int = Field(default=4000, alias="MAX_MESSAGE_LENGTH")

    # File uploads
    upload_dir: str = Field(default="public/uploads", alias="UPLOAD_DIR")
    upload_url_prefix: str = Field(default="/uploads", alias="UPLOAD_URL_PREFIX")
    max_upload_bytes: int = Field(default=25 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # Report notifications
    admin_email: str | None = Field(default=None, alias="ADMIN_EMAIL")
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def oauth_redirect_uri(self) -> str:
        """Callback URL registered with the OAuth provider."""
        return self.domain.rstrip("/") + "/api/v1/auth/google/callback"

    @property
    def smtp_enabled(self) -> bool:
        """Return True when report emails can be sent."""
        return bool(self.smtp_host and self.admin_email)


settings = Settings()  # type: ignore[call-arg]
