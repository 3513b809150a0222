"""Application settings and configuration.

This module defines all configuration options for the Snapfeed application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Snapfeed", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    session_cookie_name: str = Field(default="snapfeed_session", alias="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")

    # Database configuration
    database_url: str = Field(default="sqlite:///./snapfeed.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Sessions and the per-session user snapshot cache
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    session_backend: str = Field(default="redis", alias="SESSION_BACKEND")
    session_ttl_seconds: int = Field(default=60 * 60 * 24 * 7, alias="SESSION_TTL_SECONDS")
    user_cache_ttl_seconds: int = Field(default=300, alias="USER_CACHE_TTL_SECONDS")

    # Media storage
    media_root: str = Field(default="./uploads", alias="MEDIA_ROOT")
    media_max_bytes: int = Field(default=10 * 1024 * 1024, alias="MEDIA_MAX_BYTES")

    # Cross-posting gateway (OAuth 1.0a)
    crosspost_api_key: str | None = Field(default=None, alias="CROSSPOST_API_KEY")
    crosspost_api_secret: str | None = Field(default=None, alias="CROSSPOST_API_SECRET")
    crosspost_callback_url: str = Field(
        default="http://localhost:8000/api/v1/crosspost/callback",
        alias="CROSSPOST_CALLBACK_URL",
    )
    crosspost_api_base_url: str = Field(
        default="https://api.twitter.com",
        alias="CROSSPOST_API_BASE_URL",
    )
    crosspost_upload_base_url: str = Field(
        default="https://upload.twitter.com",
        alias="CROSSPOST_UPLOAD_BASE_URL",
    )
    crosspost_http_timeout_seconds: float = Field(
        default=10.0,
        alias="CROSSPOST_HTTP_TIMEOUT_SECONDS",
    )
    crosspost_cooldown_seconds: int = Field(default=60, alias="CROSSPOST_COOLDOWN_SECONDS")

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
    def crosspost_configured(self) -> bool:
        """Return True when usable gateway consumer credentials are present."""
        placeholders = {"your-api-key-here", "your-api-secret-here"}
        return bool(
            self.crosspost_api_key
            and self.crosspost_api_secret
            and self.crosspost_api_key not in placeholders
            and self.crosspost_api_secret not in placeholders
        )


settings = Settings()
