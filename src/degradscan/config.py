"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from degradscan.constants import DEFAULT_CACHE_DIR, DEFAULT_LLM_MODEL


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    open_router_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("open_router_api_key", "openrouter_api_key"),
    )
    ncbi_api_key: str = ""

    # LLM Settings
    open_router_model: str = Field(
        default=DEFAULT_LLM_MODEL,
        validation_alias=AliasChoices("open_router_model", "openrouter_model"),
    )
    force_ai: bool = Field(
        default=False,
        validation_alias=AliasChoices("force_ai", "degradscan_force_ai"),
    )
    llm_timeout: float = 120.0

    # Storage
    database_url: str = "sqlite:///degradscan.db"
    cache_dir: Path = DEFAULT_CACHE_DIR

    # References
    crossref_mailto: str = "degradscan.app@example.com"
    reference_concurrency: int = 5

    # App Settings
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        frozen = True

    @property
    def has_llm_credential(self) -> bool:
        return bool(self.open_router_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
