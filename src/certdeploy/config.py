"""
Application configuration and environment variables.

This module unifies configuration using pydantic-settings.
Variables can come from:
1. .env file
2. System environment variables (have priority)
3. Default values

Naming convention:
- In Python code: snake_case (http_timeout_seconds)
- In .env or ENV vars: UPPER_CASE (HTTP_TIMEOUT_SECONDS)
- Pydantic automatically converts between both

Vendor credentials are NOT part of the settings: they arrive per deployment
through ProviderFactoryOptions.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Unified application configuration.

    Example:
        # In .env or as environment variable:
        LOG_LEVEL=DEBUG
        HTTP_TIMEOUT_SECONDS=60
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # PROJECT SETTINGS
    # ============================================================================
    project_name: str = Field(default="certdeploy", description="Project name")
    project_version: str = Field(default="0.1.0", description="Project version")

    # ============================================================================
    # LOGGING SETTINGS
    # ============================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | deployment_id={extra[deployment_id]} | {name}:{function}:{line} - {message}",  # noqa: E501
        description="Log format",
    )
    logger_enqueue: bool = Field(
        default=False, description="Enqueue logs using multiprocessing"
    )

    # ============================================================================
    # VENDOR CLIENT SETTINGS
    # ============================================================================
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for plain HTTP vendor APIs (seconds)",
    )
    flyio_api_base_url: str = Field(
        default="https://api.machines.dev/v1",
        description="Fly.io Machines API base URL",
    )
    aws_cloudfront_acm_region: str = Field(
        default="us-east-1",
        description="ACM region used for CloudFront viewer certificates",
    )
    tencentcloud_endpoint_intl_suffix: str = Field(
        default="intl.tencentcloudapi.com",
        description="Endpoint suffix identifying the Tencent Cloud international site",
    )


# ============================================================================
# SINGLETON PATTERN - Global settings instance
# ============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings (LRU cached).

    This function is cached, so the .env file is only read once.
    To refresh the configuration, clear the cache:
        get_settings.cache_clear()

    Returns:
        Settings: Application configuration instance.
    """
    return Settings()


settings = get_settings()
