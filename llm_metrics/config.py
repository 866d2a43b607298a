"""
LLM Metrics Service Configuration Module

This module manages application settings and environment variables using
pydantic-settings for type-safe configuration management.

Environment variables are loaded from .env file or system environment.
Database credentials and API keys use SecretStr to prevent accidental logging.
"""

from functools import lru_cache
from typing import Literal
import logging
import sys

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here

    Every value has a default suitable for local/demo operation against the
    docker-compose TimescaleDB instance.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    # Database

    timescale_host: str = Field(default="localhost", description="TimescaleDB host")

    timescale_port: int = Field(default=5432, description="TimescaleDB port")

    timescale_db: str = Field(default="metrics", description="Database name")

    timescale_user: str = Field(default="prometheus", description="Database user")

    timescale_password: SecretStr = Field(
        default=SecretStr("prometheus_password"), description="Database password"
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the TIMESCALE_* connection parts",
    )

    db_schema: str | None = Field(
        default="metrics",
        description="Schema holding the llm_metrics table (ignored for SQLite)",
    )

    db_pool_size: int = Field(default=20, gt=0, description="Connection pool size")

    db_max_overflow: int = Field(
        default=0, ge=0, description="Connections allowed beyond the pool size"
    )

    db_pool_timeout: float = Field(
        default=2.0, gt=0, description="Seconds to wait for a pooled connection"
    )

    db_pool_recycle: int = Field(
        default=30, gt=0, description="Seconds before an idle connection is recycled"
    )

    db_create_tables: bool = Field(
        default=False, description="Create the metrics table at startup if missing"
    )

    # Persistence strategy

    persistence_mode: Literal["direct", "buffered"] = Field(
        default="direct",
        description="'direct' writes each outcome immediately; 'buffered' batches writes",
    )

    batch_size: int = Field(default=100, gt=0, description="Buffered writer batch size")

    batch_flush_interval: float = Field(
        default=5.0, gt=0, description="Seconds between buffered writer flushes"
    )

    batch_max_buffer_size: int = Field(
        default=10_000, gt=0, description="Buffered writer cap; oldest metrics are dropped beyond it"
    )

    # Completion defaults

    openai_api_key: SecretStr = Field(
        default=SecretStr("demo_key"),
        description="Placeholder API key (completions are simulated)",
    )

    default_model: str = Field(
        default="gpt-3.5-turbo", description="Model used when a request names none"
    )

    default_user_id: str = Field(
        default="demo-user", description="Caller id used when a request names none"
    )

    default_max_tokens: int = Field(default=500, gt=0, description="Default max tokens")

    default_temperature: float = Field(
        default=0.7, ge=0.0, le=2.0, description="Default sampling temperature"
    )

    # Test/demo knob. Reported TTFT and generation time are the waited values,
    # so 0 makes successful outcomes report a zero TTFT.
    simulator_latency_scale: float = Field(
        default=1.0,
        ge=0.0,
        description="Multiplier applied to simulated latency (0 disables waiting; tests only)",
    )

    # Demo batch generation

    demo_error_rate: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Fraction of demo requests forced to fail when errors are requested",
    )

    demo_request_delay: float = Field(
        default=0.1, ge=0.0, description="Pause between demo requests in seconds"
    )

    demo_error_message: str = Field(
        default="API rate limit exceeded",
        description="Error message recorded for forced demo failures",
    )

    # Server

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="0.0.0.0", description="Server bind host")

    port: int = Field(default=8080, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    def get_database_url(self) -> str:
        """
        Build the SQLAlchemy connection URL.

        Returns:
            The explicit DATABASE_URL if set, otherwise an asyncpg URL
            assembled from the TIMESCALE_* settings.
        """
        if self.database_url:
            return self.database_url

        url = URL.create(
            "postgresql+asyncpg",
            username=self.timescale_user,
            password=self.timescale_password.get_secret_value(),
            host=self.timescale_host,
            port=self.timescale_port,
            database=self.timescale_db,
        )
        return url.render_as_string(hide_password=False)

    @property
    def has_real_api_key(self) -> bool:
        """Whether an API key other than the demo placeholder is configured."""
        key = self.openai_api_key.get_secret_value()
        return bool(key) and key != "demo_key"


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from third-party HTTP and database libraries.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
