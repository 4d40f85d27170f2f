"""
ORI Relay Configuration
=======================

Centralized application settings.
Built once per process and handed to the flows explicitly.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings

from .prompts import DEFAULT_FALLBACK_REPLY, DEFAULT_RUN_INSTRUCTIONS, DEFAULT_SYSTEM_PROMPT
from .exceptions import ConfigurationError


# Env var names reported when a required secret is missing
_ENV_NAMES = {
    "openai_api_key": "OPENAI_API_KEY",
    "assistant_id": "ASSISTANT_ID",
}


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App info
    app_name: str = "ORI Relay"
    app_version: str = "1.0.0"

    # OpenAI
    openai_api_key: str = ""
    assistant_id: str = ""
    openai_api_base: str = "https://api.openai.com/v1"
    # v1 and v2 threads are not interchangeable, every stateful call uses this
    assistants_beta: str = "assistants=v2"
    chat_model: str = "gpt-4o-mini"

    # Flow selection: stateful thread/run or stateless streaming completion
    chat_flow: Literal["run", "stream"] = "run"
    run_instructions: str = DEFAULT_RUN_INSTRUCTIONS
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Polling (~90 * 700ms = 63s ceiling)
    poll_interval_ms: int = 700
    poll_max_attempts: int = 90
    poll_backoff: float = 1.0

    # Network
    request_timeout: float = 30.0
    stream_idle_timeout: float = 30.0

    # Responses
    end_marker: str = "[DONE]"
    fallback_reply: str = DEFAULT_FALLBACK_REPLY

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api"
    debug: bool = False

    # CORS - Allow all origins for Vercel deployment
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = False  # Must be False with wildcard origins
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError for the first empty field."""
        for field in fields:
            if not getattr(self, field):
                name = _ENV_NAMES.get(field, field.upper())
                raise ConfigurationError(f"Missing {name}")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
