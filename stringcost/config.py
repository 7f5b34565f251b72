"""Configuration management for stringcost.

This module provides a centralized configuration system that loads settings
from environment variables (via .env file) with sensible defaults.
"""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables with defaults."""

    model_config = SettingsConfigDict(
        # Look for .env file in the project root (parent of the package)
        env_file=str(Path(__file__).parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Billing Configuration
    billing_currency: str = Field(
        default="USD",
        description="Currency tag stamped on every ledger and invoice",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Level applied to the stringcost logger by configure_logging",
    )
    input_preview_length: int = Field(
        default=64,
        description="Maximum length of string previews in run.start logs",
    )

    # Langfuse Configuration
    tracing_enabled: bool = Field(
        default=True,
        description="Master switch for exporting spans to Langfuse",
    )
    langfuse_secret_key: str = Field(default="", description="Langfuse Secret Key")

    langfuse_public_key: str = Field(default="", description="Langfuse Public Key")

    langfuse_base_url: str = Field(
        default="https://us.cloud.langfuse.com", description="Langfuse Base URL"
    )

    @field_validator("billing_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Normalize the currency tag to upper case."""
        v = v.strip().upper()
        if not v:
            raise ValueError("Billing currency must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a standard logging level name."""
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @field_validator("input_preview_length")
    @classmethod
    def validate_preview_length(cls, v: int) -> int:
        """Validate that previews leave room for the ellipsis."""
        if v < 4:
            raise ValueError("Input preview length must be at least 4")
        return v


# Global settings instance
settings = Settings()
