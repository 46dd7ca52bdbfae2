"""
Configuration management for the Transmission Finder backend.
Uses pydantic-settings for environment variable handling.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from transfinder.exceptions import ConfigurationError

DEFAULT_CATALOG_URL = (
    "https://raw.githubusercontent.com/manuelnamarupa-wq/transmision-api/main/api/transmissions.json"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # API Configuration
    api_title: str = "Transmission Finder API"
    api_version: str = "1.0.0"
    debug: bool = False

    # Gemini (text completion) Configuration
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_timeout: float = 20.0
    llm_temperature: float = 0.1
    llm_max_output_tokens: int = 512

    # Catalog Configuration
    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_refresh_seconds: int = 3600  # 0 = load once, never refresh
    catalog_retry_seconds: int = 60  # back-off after a failed refresh while serving stale data
    catalog_timeout: float = 10.0

    # Matching Configuration
    max_candidates: int = 25
    min_token_length: int = 1  # tokens this short or shorter are dropped
    candidate_group_key: Literal["trans_model", "model", "year_range", "engine_size"] | None = None

    # Suggestion ("did you mean") Configuration
    spell_corrector: Literal["gemini", "local"] = "gemini"
    local_suggestion_cutoff: float = 70.0
    suggestion_max_names: int = 300

    # Redis reply cache
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None
    reply_cache_enabled: bool = False
    reply_cache_ttl_seconds: int = 21600  # 6 hours
    reply_cache_ttl_degraded_seconds: int = 300  # 5 minutes for suggestion / no-match replies


def require_gemini_api_key(current: Settings | None = None) -> str:
    """Return the Gemini API key or fail with a clear configuration error."""
    key = (current or settings).gemini_api_key
    if not key or not key.strip():
        raise ConfigurationError(
            "GEMINI_API_KEY is not set. Add it to the environment or .env before starting the service."
        )
    return key.strip()


# Global settings instance
settings = Settings()
