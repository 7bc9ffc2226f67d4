"""
Application configuration using Pydantic Settings
"""

import logging
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    # Database
    DATABASE_URL: str = "sqlite:///spendwise.db"
    SQL_ECHO: bool = False

    # Generation collaborators (compliance review, articles)
    USE_LLM_STUB: bool = True
    LLM_API_URL: str = "https://api.openai.com/v1/chat/completions"
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "gpt-4o-mini"
    COMPLIANCE_TIMEOUT_SECONDS: float = 10.0
    ARTICLE_TIMEOUT_SECONDS: float = 45.0

    # Recommendation limits
    MAX_EDUCATION: int = 5
    MAX_OFFERS: int = 3

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SPENDWISE_",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def llm_enabled(self) -> bool:
        """True when a live model endpoint should be called."""
        return not self.USE_LLM_STUB and bool(self.LLM_API_KEY)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance
    """
    return Settings()


def configure_logging(level: str = None) -> None:
    """Configure root logging for command-line entry points."""
    if level is None:
        level = get_settings().LOG_LEVEL
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
