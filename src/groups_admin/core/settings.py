"""Application settings and configuration.

This module defines all configuration options for the Groups Admin console.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Telegram's own service account (channel posts, anonymous admins).
TELEGRAM_SERVICE_ACCOUNT_ID = 777000


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Groups Admin", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./groups_admin.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Reporting
    default_time_zone: str = Field(default="UTC", alias="DEFAULT_TIME_ZONE")
    veto_check_name: str = Field(default="OpenAI", alias="VETO_CHECK_NAME")
    recent_vetoes_limit: int = Field(default=20, alias="RECENT_VETOES_LIMIT")
    veto_preview_length: int = Field(default=100, alias="VETO_PREVIEW_LENGTH")

    # Moderation state projection
    protected_user_ids: list[int] = Field(
        default=[TELEGRAM_SERVICE_ACCOUNT_ID],
        alias="PROTECTED_USER_IDS",
    )
    projection_max_retries: int = Field(default=3, alias="PROJECTION_MAX_RETRIES")
    projection_retry_delay: float = Field(default=0.05, alias="PROJECTION_RETRY_DELAY")
    projection_retry_backoff: float = Field(default=2.0, alias="PROJECTION_RETRY_BACKOFF")

    # Warning escalation
    auto_ban_enabled: bool = Field(default=True, alias="AUTO_BAN_ENABLED")
    auto_ban_threshold: int = Field(default=3, alias="AUTO_BAN_THRESHOLD")
    auto_ban_reason: str = Field(
        default="Exceeded warning threshold ({count} warnings)",
        alias="AUTO_BAN_REASON",
    )

    # CORS configuration for the admin web frontend
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
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


settings = Settings()
