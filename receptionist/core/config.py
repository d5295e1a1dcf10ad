"""Application configuration."""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    completion_max_tokens: int = 150
    completion_timeout_seconds: float = 10.0

    # Database
    database_url: str

    # Client configs (defaults to the packaged clients.yaml)
    clients_file: Optional[str] = None

    # Public URL Twilio uses to reach the webhooks
    base_url: Optional[str] = None

    # Conversation limits
    max_turns: int = 12
    record_max_length_seconds: int = 120
    max_consecutive_completion_failures: int = 3

    # Idle session reclaim
    session_idle_timeout_seconds: int = 900
    session_sweep_interval_seconds: int = 60

    # Call log writes
    log_write_max_attempts: int = 3
    log_write_backoff_seconds: float = 0.5

    # Server
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
