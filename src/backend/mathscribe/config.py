"""
Application configuration via environment variables.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    # App
    app_name: str = "Mathscribe"
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    # OpenAI
    openai_api_key: str = ""
    openai_base_url: str = ""  # empty = SDK default endpoint
    primary_model: str = "gpt-4o"
    fallback_model: str = "gpt-4o-mini"  # empty disables fallback
    vision_model: str = "gpt-4o"
    transcription_model: str = "whisper-1"
    transcription_language: str = "en"
    tts_model: str = "tts-1"
    tts_voice: str = "nova"
    llm_max_retries: int = 3
    llm_retry_base_delay: float = 1.0  # seconds, doubles on each retry
    llm_max_tokens: int = 2048

    # Refinement defaults
    refine_max_iterations: int = 2
    refine_temperature: float = 0.2
    refine_timeout_ms: int = 30000
    refine_use_cache: bool = True
    refine_confidence_threshold: float = 0.8

    # Cache
    cache_ttl_seconds: float = 3600.0
    cache_max_entries: int = 512

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
