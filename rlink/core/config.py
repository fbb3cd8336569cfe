"""
rlink Configuration

Single source of truth for all configuration.
Uses Pydantic Settings for environment variable parsing.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """rlink configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RLINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local", description="Environment: local, staging, production")
    debug: bool = Field(default=False, description="Log every engine command at DEBUG level")

    # R Engine (Rserve)
    r_engine_host: str = Field(default="localhost")
    r_engine_port: int = Field(default=6311)

    # Channel
    chunk_size: int = Field(
        default=10000,
        description="Maximum number of characters sent to the engine in one batch",
    )
    mirror_prefix: str = Field(default="rlink.mirrored")

    # Logging
    log_level: str = Field(default="INFO")
    structured_logs: bool = Field(default=False)

    @field_validator("chunk_size")
    @classmethod
    def check_chunk_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chunk_size must be a positive number of characters")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
