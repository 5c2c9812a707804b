"""Pydantic settings for application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="",
        description="SQLAlchemy async database URL",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size",
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Max connections beyond pool size",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements",
    )


class AzureStorageSettings(BaseSettings):
    """Azure Storage settings for user-uploaded files."""

    model_config = SettingsConfigDict(env_prefix="AZURE_STORAGE_")

    connection_string: str = Field(
        default="",
        description="Azure Storage connection string",
    )
    account_url: str = Field(
        default="",
        description="Azure Storage account URL (for managed identity)",
    )
    use_managed_identity: bool = Field(
        default=False,
        description="Use Azure managed identity for authentication",
    )
    container: str = Field(
        default="user-files",
        description="Container holding per-user files under users/{user_id}/",
    )


class StripeSettings(BaseSettings):
    """Stripe payment processor settings."""

    model_config = SettingsConfigDict(env_prefix="STRIPE_")

    api_key: str = Field(
        default="",
        description="Stripe secret API key",
    )
    max_network_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries performed by the Stripe client on network errors",
    )


class Auth0Settings(BaseSettings):
    """Auth0 Management API settings used for identity deletion."""

    model_config = SettingsConfigDict(env_prefix="AUTH0_")

    domain: str = Field(
        default="",
        description="Auth0 tenant domain (e.g., 'example.us.auth0.com')",
    )
    client_id: str = Field(
        default="",
        description="Machine-to-machine client ID",
    )
    client_secret: str = Field(
        default="",
        description="Machine-to-machine client secret",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for Management API calls",
    )


class QuotaSettings(BaseSettings):
    """Quota enforcement and overage billing settings."""

    model_config = SettingsConfigDict(env_prefix="QUOTA_")

    absolute_hours_cap: float = Field(
        default=100.0,
        gt=0,
        description="Hard monthly ceiling for tiers that allow overage",
    )
    overage_rate_cents_per_hour: int = Field(
        default=50,
        ge=0,
        description="Overage price per hour in cents",
    )
    payg_rate_cents_per_hour: int = Field(
        default=150,
        ge=0,
        description="Pay-as-you-go price per hour in cents (usage records only)",
    )
    max_estimated_minutes: int = Field(
        default=480,
        ge=1,
        description="Upper bound for duration estimates from file size",
    )
    default_mb_per_minute: float = Field(
        default=1.0,
        gt=0,
        description="Compression rate for unknown mime types",
    )
    warning_threshold_percent: float = Field(
        default=80.0,
        ge=0,
        le=100,
        description="Percent of quota at which usage warnings start",
    )
    low_payg_credit_hours: float = Field(
        default=5.0,
        ge=0,
        description="Remaining PAYG hours below which a warning is shown",
    )


class SchedulerSettings(BaseSettings):
    """Recurring job scheduler settings."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    enabled: bool = Field(
        default=True,
        description="Run recurring jobs in this process",
    )
    checkpoint_interval: int = Field(
        default=10,
        ge=1,
        description="Successful user resets between reset job checkpoints",
    )
    shutdown_max_wait_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Max time to wait for active jobs on shutdown",
    )
    shutdown_poll_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Poll interval while waiting for active jobs",
    )
    usage_record_retention_months: int = Field(
        default=12,
        ge=1,
        description="Usage records older than this are deleted monthly",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for logs",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
    )

    service_name: str = Field(
        default="transcribe-usage",
        description="Service name for logging",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: AzureStorageSettings = Field(default_factory=AzureStorageSettings)
    stripe: StripeSettings = Field(default_factory=StripeSettings)
    auth0: Auth0Settings = Field(default_factory=Auth0Settings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        The application settings.
    """
    return Settings()


def refresh_settings() -> Settings:
    """Clear settings cache and return fresh settings.

    Returns:
        Fresh application settings.
    """
    get_settings.cache_clear()
    return get_settings()
