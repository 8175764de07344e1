"""
Application settings and configuration management.

Uses pydantic-settings for environment variable loading.
"""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "MockVoice"
    app_version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # OpenAI-compatible services (chat, speech, transcription)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3

    # TTS configuration
    tts_backend: str = "openai"  # Options: openai, edge-tts
    tts_model: str = "tts-1"
    tts_voice: str = "ash"
    tts_speed: float = 0.9
    edge_tts_voice: str = "pt-BR-AntonioNeural"

    # STT configuration
    stt_backend: str = "api"  # Options: api, local
    stt_model: str = "whisper-1"
    local_whisper_model: str = "base"
    language: str = "pt"

    # Langfuse tracing
    langfuse_enabled: bool = False
    langfuse_public_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_base_url: str = "https://cloud.langfuse.com"

    # Timeouts (seconds)
    start_timeout: float = 45.0
    audio_output_timeout: float = 15.0
    microphone_timeout: float = 25.0
    session_warmup: float = 2.0
    tts_timeout: float = 15.0
    playback_timeout: float = 120.0
    stt_timeout: float = 20.0
    llm_timeout: float = 12.0

    # Interview policy
    max_questions_per_topic: int = Field(default=2, ge=1)
    max_generation_attempts: int = Field(default=3, ge=1)
    max_answer_attempts: int = Field(default=3, ge=1)
    follow_up_score_threshold: int = Field(default=70, ge=0, le=100)
    follow_up_min_words: int = Field(default=12, ge=0)
    min_transcript_confidence: float = Field(default=0.5, ge=0, le=1)
    max_recording_seconds: float = 300.0
    context_max_length: int = 280
    question_max_words: int = 14
    feedback_max_length: int = 120
    summary_max_length: int = 600

    # Audio settings
    audio_sample_rate: int = 16000
    audio_channels: int = 1
    audio_block_size: int = 1024

    # CORS - stored as comma-separated string in env
    # Uses validation_alias to read from CORS_ORIGINS env var
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        validation_alias="cors_origins"
    )

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
