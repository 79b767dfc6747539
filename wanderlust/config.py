"""
Configuration management for the itinerary assistant.
Supports multiple LLM providers: OpenAI, Mistral, OpenRouter, Ollama and an offline mock.
"""
from pydantic_settings import BaseSettings
from typing import Literal


# Providers that refuse requests without an API key
PROVIDERS_REQUIRING_KEY = ("openai", "mistral", "openrouter")

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "mistral": "https://api.mistral.ai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "ollama": "http://localhost:11434/v1",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Configuration
    llm_provider: Literal["openai", "mistral", "openrouter", "ollama", "mock"] = "mock"
    llm_api_key: str = ""
    llm_base_url: str = ""
    llm_model: str = "gpt-4o-mini"

    # LLM Parameters
    llm_temperature: float = 0.2
    chat_temperature: float = 0.4
    llm_max_tokens: int = 4000
    llm_timeout_seconds: float = 60.0

    # Only the head of long documents is sent for itinerary extraction
    summary_char_limit: int = 50_000

    # Server Configuration
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_llm_config(config: Settings = None) -> dict:
    """Get LLM configuration based on provider."""
    config = config or settings
    return {
        "provider": config.llm_provider,
        "api_key": config.llm_api_key,
        "model": config.llm_model,
        "temperature": config.llm_temperature,
        "max_tokens": config.llm_max_tokens,
        "timeout": config.llm_timeout_seconds,
        "base_url": config.llm_base_url or DEFAULT_BASE_URLS.get(config.llm_provider, ""),
    }
