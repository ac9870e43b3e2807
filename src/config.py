"""Application configuration using pydantic-settings.

Provides a centralized Settings class for all environment variables.
Supports both LLM_API_KEY and OPENAI_API_KEY for the provider credential.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file and environment variables.
    Environment variables take precedence over .env file values.
    """

    # Language model provider (litellm model string)
    llm_model: str = "gemini/gemini-2.0-flash"
    llm_api_key: str = ""
    openai_api_key: str = ""  # Accepted as a fallback credential
    llm_timeout_seconds: float = 15.0
    llm_max_retries: int = 2  # Retries on rate-limit responses only

    # Credentials
    # Comma-separated "key:secret[:tenantId]" entries for legacy/dev callers
    relay_legacy_keys: str = ""
    relay_hmac_secret: str = ""
    signature_mode: Literal["enforce", "log-only"] = "log-only"

    # Relay state
    idempotency_ttl_seconds: int = 120
    memory_max_turns: int = 8

    # Metering
    billing_usage_url: str = ""
    billing_api_key: str = ""

    # Storage
    database_path: str = "data/relay.db"

    # Observability
    logfire_token: str = ""

    # API Security
    api_rate_limit: int = 120  # Requests per minute per API key

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,  # Allow case-insensitive env var names
    )

    @property
    def provider_api_key(self) -> str:
        """Get the provider API key with fallback support.

        Returns LLM_API_KEY if set, otherwise falls back to OPENAI_API_KEY.

        Returns:
            The API key string, or empty string if neither is set.
        """
        return self.llm_api_key or self.openai_api_key


# Singleton instance - import this in your code
settings = Settings()
