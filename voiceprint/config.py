"""Configuration settings for Voiceprint."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Voiceprint"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./voiceprint.db"
    persist_profiles: bool = True

    # Anthropic
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-20250514"
    llm_timeout_seconds: float = 30.0

    # Channel adapters
    channel_timeout_seconds: float = 20.0
    max_messages_per_channel: int = 100
    sync_max_per_channel: int = 20

    # Reply drafting defaults
    user_name: str = "User"
    user_role: str = "Team Member"
    company_name: str = "Our Company"
    max_response_length: int = 200
    custom_instructions: str = ""
    org_context: str = ""
    include_signature: bool = True

    # Refinement loop
    min_confidence_threshold: int = 90
    max_refinement_attempts: int = 2
    draft_batch_size: int = 5

    # Voice learning
    min_messages_for_profile: int = 10
    ideal_messages_for_profile: int = 50
    min_channel_messages: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
