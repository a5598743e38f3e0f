"""Configuration management for Parley conversations."""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Runtime defaults loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # API Keys
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")

    # Local backend
    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")

    # Backend used when neither the engine nor the participant names one
    default_provider: str = Field(default="openai", alias="PARLEY_DEFAULT_PROVIDER")
    default_temperature: float = Field(default=0.7, alias="PARLEY_TEMPERATURE")
    default_max_tokens: int = Field(default=4096, alias="PARLEY_MAX_TOKENS")

    # Conversation limits
    max_rounds: int = Field(default=100, alias="PARLEY_MAX_ROUNDS")
    group_round_limit: int = Field(default=10, alias="PARLEY_GROUP_ROUND_LIMIT")

    log_level: str = Field(default="INFO", alias="PARLEY_LOG_LEVEL")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def configure_logging(level: Optional[str] = None):
    """Configure root logging for applications embedding the engine."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
