"""Service configuration with pydantic-settings.

Requires: DATABASE_URL
Optional: OPENROUTER_API_KEY, E2B_API_KEY (generation and sandboxes fail without them)

Usage:
    from explorable_research.config import get_settings

    settings = get_settings()
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict

MEGABYTE = 1024 * 1024


class BaseSettings(PydanticBaseSettings):
    """Base settings shared by the API service and the admin CLI.

    All fields here are optional with sensible defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging configuration
    service_name: str = Field(
        default="explorable-research",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


def database_url_field(required: bool = True):
    """Database URL field definition."""
    if required:
        return Field(
            ...,
            description="Async SQLAlchemy connection URL",
            examples=["postgresql+asyncpg://user:pass@db:5432/explorables"],
        )
    return Field(
        default=None,
        description="Async SQLAlchemy connection URL (optional)",
    )


class Settings(BaseSettings):
    """API service settings."""

    # Required
    database_url: str = database_url_field(required=True)

    # Deployment environment; development templates carry a "-dev" suffix
    environment: Literal["development", "production"] = Field(default="production")

    # LLM gateway
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1")
    openrouter_app_name: str = Field(default="Explorable Research")
    openrouter_site_url: str | None = Field(default=None)
    default_model: str = Field(
        default="google/gemini-3-pro-preview",
        description="Model used when a request does not name one",
    )
    generation_max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Automatic retries of a failed structured generation call",
    )

    # Sandbox service
    e2b_api_key: str = Field(default="", description="E2B API key")
    sandbox_timeout_seconds: int = Field(default=10 * 60, ge=30)
    sandbox_command_timeout_seconds: int = Field(default=5 * 60, ge=1)

    # ArXiv
    arxiv_base_url: str = Field(default="https://arxiv.org")
    arxiv_user_agent: str = Field(
        default="Explorable-Research/1.0 (https://github.com/michaltakac/explorable-research)"
    )
    http_timeout_seconds: float = Field(default=60.0, gt=0)

    # PDF size ceilings in bytes
    max_pdf_size: int = Field(default=10 * MEGABYTE, ge=1)
    inline_pdf_max_size: int = Field(
        default=int(3.3 * MEGABYTE),
        ge=1,
        description="Ceiling for PDFs carried inline when blob storage is unavailable",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Validates required env vars on first call.
    Raises ValidationError if DATABASE_URL is missing.
    """
    return Settings()
