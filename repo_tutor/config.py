from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (one level up from repo_tutor/)
PROJECT_ROOT = Path(__file__).parent.parent

# Export these for app-wide use
__all__ = ["Settings", "settings", "get_settings"]


class Settings(BaseSettings):
    # App Settings
    app_name: str = "Repo Tutor"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v):
        """Normalize log level names ('debug' -> 'DEBUG')"""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    # GitHub API
    github_access_token: Optional[str] = None  # Maps to GITHUB_ACCESS_TOKEN
    github_api_url: str = "https://api.github.com"
    github_raw_url: str = "https://raw.githubusercontent.com"

    # Repository ingestion limits
    ingest_max_files: int = 28
    ingest_max_bytes: int = 240_000
    ingest_max_file_bytes: int = 60_000
    ingest_max_depth: int = 4
    ingest_timeout_ms: int = 12_000  # Per request, not per batch

    # LLM API (any OpenAI-compatible chat completions endpoint, Groq by default)
    llm_api_key: Optional[str] = None  # Maps to LLM_API_KEY
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_timeout_ms: int = 30_000
    llm_temperature: Optional[float] = 0.2
    llm_max_output_tokens: Optional[int] = 4096
    llm_max_attempts: int = 3

    @field_validator("github_api_url", "github_raw_url", "llm_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Base URLs are joined with '/...' paths"""
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    model_config = SettingsConfigDict(
        # Look for .env in project root
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env that aren't defined
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Create and cache a single Settings instance (Singleton pattern).
    Returns the same instance on subsequent calls.
    """
    return Settings()


# Create a global settings instance for convenience
settings = get_settings()
