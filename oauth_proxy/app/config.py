"""
Configuration module for the OAuth Proxy.

This module uses Pydantic Settings to load and validate environment variables
for the upstream OAuth endpoints, the listener address and logging.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_FILE = ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Upstream URLs are read once here and handed to the application at
    construction; request handlers never look at the environment.
    """

    # =========================================================================
    # Upstream OAuth Provider
    # =========================================================================

    OAUTH_TOKEN_URL: str = Field(
        default="",
        description="Token endpoint of the OAuth provider (e.g., https://auth.example.com/oauth/token)",
    )

    USER_INFO_URL: str = Field(
        default="",
        description="User-info endpoint of the OAuth provider (e.g., https://auth.example.com/userinfo)",
    )

    UPSTREAM_TIMEOUT_SECONDS: Optional[float] = Field(
        default=30.0,
        description="Timeout for upstream calls in seconds (\"none\" for no timeout)",
        gt=0,
    )

    # =========================================================================
    # Proxy Server Configuration
    # =========================================================================

    PROXY_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the proxy server",
    )

    PROXY_PORT: int = Field(
        default=8080,
        description="Port to bind the proxy server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_parse_none_str="none",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate that LOG_LEVEL names a standard logging level.

        Raises:
            ValueError: If the level is unknown
        """
        level = v.strip().upper()
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        if level not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If environment variables are invalid.
    """
    return Settings()


def validate_configuration(settings: Settings) -> dict:
    """
    Check the upstream configuration and return a status report.

    An unset URL is only a warning: the proxy still starts and calls to that
    endpoint fail with 502. A URL without an http(s) scheme is an error.

    Example:
        >>> report = validate_configuration(Settings(OAUTH_TOKEN_URL="ftp://x"))
        >>> report["valid"]
        False
    """
    errors = []
    warnings = []

    for name in ("OAUTH_TOKEN_URL", "USER_INFO_URL"):
        url = getattr(settings, name)
        if not url:
            warnings.append(f"{name} is not set; requests to this endpoint will fail")
            continue

        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            errors.append(f"{name} must be an absolute http(s) URL, got: {url}")

    if settings.UPSTREAM_TIMEOUT_SECONDS is None:
        warnings.append("UPSTREAM_TIMEOUT_SECONDS is unset; upstream calls may block indefinitely")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }
