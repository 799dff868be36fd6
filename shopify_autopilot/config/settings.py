"""
Shopify Autopilot Backend
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="shopify_autopilot", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="autopilot", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Configuration (run locks)"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class ShopifySettings(BaseSettings):
    """Shopify Admin API Configuration"""

    model_config = SettingsConfigDict(env_prefix="SHOPIFY_")

    api_key: Optional[str] = Field(default=None, description="App API key")
    api_secret: Optional[SecretStr] = Field(default=None, description="App API secret")
    api_version: str = Field(default="2025-10", description="Admin REST API version")
    app_url: str = Field(default="http://localhost:8000", description="Public app URL")
    products_page_size: int = Field(default=50, description="Products fetched per sync")
    request_timeout: float = Field(default=10.0, description="HTTP timeout in seconds")
    connect_timeout: float = Field(default=5.0, description="HTTP connect timeout in seconds")


class AutopilotSettings(BaseSettings):
    """Autopilot Engine Configuration"""

    model_config = SettingsConfigDict(env_prefix="AUTOPILOT_")

    price_update_timeout_seconds: float = Field(
        default=15.0,
        description="Upper bound for one outbound price update",
    )
    persist_runs: bool = Field(default=True, description="Store a run record after each run")
    run_lock_enabled: bool = Field(default=True, description="Guard runs with a per-shop Redis lock")
    run_lock_timeout_seconds: int = Field(default=900, description="Run lock expiry")
    advice_min_feedback: int = Field(default=10, description="Feedback rows needed before advice changes")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="shopify-autopilot", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)
    autopilot: AutopilotSettings = Field(default_factory=AutopilotSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
