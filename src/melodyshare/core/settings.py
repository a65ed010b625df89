"""Application settings and configuration.

This module defines all configuration options for the MelodyShare service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="MelodyShare", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session tokens handed to clients after create/join
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="SESSION_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./melodyshare.db",
        alias="DATABASE_URL",
    )
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    store_timeout_seconds: float = Field(default=10.0, alias="STORE_TIMEOUT_SECONDS")
    store_conflict_retries: int = Field(default=3, alias="STORE_CONFLICT_RETRIES")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # Communities
    join_code_max_attempts: int = Field(default=20, alias="JOIN_CODE_MAX_ATTEMPTS")
    public_base_url: str = Field(default="http://localhost:8080", alias="PUBLIC_BASE_URL")

    # Song submission rules
    submission_cooldown_hours: float = Field(default=24.0, alias="SUBMISSION_COOLDOWN_HOURS")
    mood_required: bool = Field(default=False, alias="MOOD_REQUIRED")
    mood_options: list[str] = Field(
        default=["Happy", "Energetic", "Chill", "Sad", "Focused", "Romantic", "Nostalgic"],
        alias="MOOD_OPTIONS",
    )
    feed_limit: int = Field(default=100, alias="FEED_LIMIT")

    # Cross-process change detection for live feeds (0 disables the watcher)
    realtime_poll_interval_seconds: float = Field(
        default=2.0,
        alias="REALTIME_POLL_INTERVAL_SECONDS",
    )

    # Spotify track search
    spotify_client_id: str | None = Field(default=None, alias="SPOTIFY_CLIENT_ID")
    spotify_client_secret: str | None = Field(default=None, alias="SPOTIFY_CLIENT_SECRET")
    spotify_token_url: str = Field(
        default="https://accounts.spotify.com/api/token",
        alias="SPOTIFY_TOKEN_URL",
    )
    spotify_api_base_url: str = Field(
        default="https://api.spotify.com/v1",
        alias="SPOTIFY_API_BASE_URL",
    )
    track_search_limit: int = Field(default=10, ge=1, le=10, alias="TRACK_SEARCH_LIMIT")
    track_search_timeout_seconds: float = Field(
        default=10.0,
        alias="TRACK_SEARCH_TIMEOUT_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts async driver URLs so Alembic migrations can run with
        synchronous drivers.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        if url.startswith("sqlite+aiosqlite"):
            return url.replace("sqlite+aiosqlite", "sqlite", 1)
        return url


settings = Settings()
