"""Threadhub configuration, read from the environment and an optional .env file."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Every tunable of the service; field aliases are the environment variable names."""

    # Application metadata
    app_name: str = Field(default="Threadhub", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./threadhub.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Clerk identity provider
    clerk_secret_key: str | None = Field(default=None, alias="CLERK_SECRET_KEY")
    clerk_api_url: str = Field(default="https://api.clerk.com/v1", alias="CLERK_API_URL")
    clerk_http_timeout_seconds: float = Field(
        default=10.0,
        alias="CLERK_HTTP_TIMEOUT_SECONDS",
    )
    clerk_page_size: int = Field(default=100, alias="CLERK_PAGE_SIZE")
    clerk_webhook_secret: str | None = Field(default=None, alias="CLERK_WEBHOOK_SECRET")

    # Session token verification. In production this is Clerk's RS256 PEM key.
    clerk_jwt_key: str = Field(default="", alias="CLERK_JWT_KEY")
    jwt_algorithm: str = Field(default="RS256", alias="JWT_ALGORITHM")

    # Backoff policy applied to every identity provider call
    retry_attempts: int = Field(default=3, ge=0, alias="RETRY_ATTEMPTS")
    retry_initial_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        alias="RETRY_INITIAL_DELAY_SECONDS",
    )
    retry_multiplier: float = Field(default=2.0, ge=1.0, alias="RETRY_MULTIPLIER")

    # Pagination and view caching
    default_page_size: int = Field(default=20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")
    view_cache_ttl_seconds: float = Field(default=60.0, alias="VIEW_CACHE_TTL_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
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
    def clerk_enabled(self) -> bool:
        """True when the Clerk Backend API can be called."""
        return bool(self.clerk_secret_key)


settings = Settings()
