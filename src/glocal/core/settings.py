"""Application settings and configuration.

This module defines all configuration options for the Glocal Stage application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Glocal Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Keyed hashing secret for anonymous poll votes. Never logged or returned.
    poll_vote_secret: SecretStr | None = Field(default=None, alias="POLL_VOTE_SECRET")

    # Database configuration
    database_url: str = Field(default="sqlite:///./glocal.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Notification feed
    notifications_page_size: int = Field(default=20, alias="NOTIFICATIONS_PAGE_SIZE")
    notifications_max_page_size: int = Field(default=100, alias="NOTIFICATIONS_MAX_PAGE_SIZE")
    notification_batch_window_seconds: int = Field(
        default=300,
        alias="NOTIFICATION_BATCH_WINDOW_SECONDS",
    )
    site_domain: str = Field(default="theglocal.in", alias="SITE_DOMAIN")

    # Polls
    poll_min_options: int = Field(default=2, alias="POLL_MIN_OPTIONS")
    poll_max_options: int = Field(default=10, alias="POLL_MAX_OPTIONS")
    poll_analytics_default_points: int = Field(default=24, alias="POLL_ANALYTICS_DEFAULT_POINTS")
    poll_analytics_max_points: int = Field(default=168, alias="POLL_ANALYTICS_MAX_POINTS")

    # Request throttling
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_requests: int = Field(default=120, alias="RATE_LIMIT_REQUESTS")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_redis_url: str | None = Field(default=None, alias="RATE_LIMIT_REDIS_URL")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
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
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def voting_secret(self) -> str:
        """Return the key used to derive anonymous voting tokens.

        Falls back to ``SECRET_KEY`` when no dedicated poll secret is configured.
        """
        if self.poll_vote_secret is not None:
            return self.poll_vote_secret.get_secret_value()
        return self.secret_key


settings = Settings()  # type: ignore[call-arg]
