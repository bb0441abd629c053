"""Configuration settings for the movie identifier, loaded from the environment."""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from clipit.identifier.errors import ConfigurationError


class Settings(BaseSettings):
    """Identifier configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPIT_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Credentials (conventional names, no prefix)
    youtube_api_key: Optional[str] = Field(default=None, validation_alias="YOUTUBE_API_KEY")
    llm_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LLM_API_KEY", "LOVABLE_API_KEY"),
    )
    tmdb_api_key: Optional[str] = Field(default=None, validation_alias="TMDB_API_KEY")

    # Generative model
    llm_base_url: str = Field(default="https://ai.gateway.lovable.dev/v1", validation_alias="LLM_BASE_URL")
    llm_model: str = Field(default="google/gemini-2.5-flash", validation_alias="LLM_MODEL")

    # Pipeline tuning
    watch_region: str = "US"
    candidate_count: int = 3
    comment_page_size: int = 50  # commentThreads maximum
    description_prompt_limit: int = 1000
    request_timeout: float = 15.0
    log_level: str = "INFO"

    def require_credentials(self) -> None:
        """Raise ConfigurationError when a credential the pipeline cannot run without is absent."""
        missing = []
        if not self.llm_api_key:
            missing.append("LLM_API_KEY")
        if not self.tmdb_api_key:
            missing.append("TMDB_API_KEY")
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} is not configured")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
