"""Application configuration."""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI (teaching prompts fall back to a fixed pool without a key)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Database
    database_url: str = "sqlite+aiosqlite:///./language_exchange.db"

    # Call timing (seconds)
    tick_interval_seconds: float = 1.0
    switch_after_seconds: int = 15 * 60
    extension_gate_seconds: int = 30 * 60
    extension_seconds: int = 15 * 60
    call_budget_seconds: int = 30 * 60
    ended_session_retention_seconds: int = 5 * 60

    # Teaching aids
    teaching_prompt_timeout_seconds: float = 10.0
    default_difficulty: str = "intermediate"

    # Media transport
    stun_servers: List[str] = [
        "stun:stun.l.google.com:19302",
        "stun:stun1.l.google.com:19302",
    ]

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
