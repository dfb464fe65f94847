"""
Configuration Settings
======================

Centralized configuration using Pydantic V2 Settings.
"""

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Repository settings loaded from environment variables (``REPOKIT_*``)."""

    app_env: str = Field(default="development")
    app_debug: bool = Field(default=False)
    database_url: str = Field(default="sqlite:///./data/repokit.db")
    max_per_page: int = Field(default=1000, ge=1)
    default_per_page: int = Field(default=15, ge=1)
    default_chunk_size: int = Field(default=100, ge=1)
    commit_on_write: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator("default_per_page")
    @classmethod
    def validate_per_page(cls, v: int, info: ValidationInfo) -> int:
        """Ensure the default page size fits under the clamp."""
        max_per_page = info.data.get("max_per_page")
        if max_per_page is not None and v > max_per_page:
            raise ValueError(f"default_per_page ({v}) must be <= max_per_page ({max_per_page})")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = SettingsConfigDict(
        env_prefix="REPOKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
