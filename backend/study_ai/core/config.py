"""
Study AI - Core Configuration
Pydantic Settings for application configuration with environment variable support
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "Study AI"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Upstream AI gateway (OpenAI-compatible chat completions)
    AI_GATEWAY_API_KEY: str = ""
    AI_GATEWAY_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    AI_GATEWAY_MODEL: str = "google/gemini-3-flash-preview"

    # LLM Performance
    LLM_TIMEOUT_SECONDS: int = 60

    # Client side: where the study-ai endpoint lives
    STUDY_AI_URL: str = "http://localhost:8000/api/v1/study-ai"
    STUDY_AI_PUBLISHABLE_KEY: str = ""

    # Stream parser bounds (0 disables a bound)
    STREAM_MAX_STALLED_READS: int = 32
    STREAM_MAX_BUFFER_BYTES: int = 1_048_576

    # Observability
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "study-ai-backend"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"

    # CORS - stored as comma-separated string
    CORS_ALLOW_HEADERS_STR: str = (
        "authorization,x-client-info,apikey,content-type,"
        "x-supabase-client-platform,x-supabase-client-platform-version,"
        "x-supabase-client-runtime,x-supabase-client-runtime-version"
    )

    @property
    def CORS_ALLOW_HEADERS(self) -> list[str]:
        """Parse allowed CORS headers from comma-separated string."""
        return [header.strip() for header in self.CORS_ALLOW_HEADERS_STR.split(",") if header.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
