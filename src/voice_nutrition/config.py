"""Application configuration."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from voice_nutrition.domain.attempts import StrategyName
from voice_nutrition.domain.transcripts import TranscriptionBackend

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    whisper_model: str = "whisper-1"
    gpt4o_transcribe_model: str = "gpt-4o-transcribe"
    transcription_backend: TranscriptionBackend = TranscriptionBackend.WHISPER
    language_hint: str | None = "ar"
    two_stage_model: str = "gpt-4o-mini"
    structured_model: str = "gpt-4o"
    default_strategy: StrategyName = StrategyName.STRUCTURED
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    transcription_timeout_seconds: float = Field(default=60.0, gt=0)
    detect_timeout_seconds: float = Field(default=30.0, gt=0)
    estimate_timeout_seconds: float = Field(default=45.0, gt=0)
    macro_tolerance: float = Field(default=0.10, ge=0, le=1)
    review_confidence_threshold: float = Field(default=0.6, ge=0, le=1)
    max_recording_seconds: float = Field(default=300.0, gt=0)
    food_lexicon_path: Path | None = None
    review_keywords_path: Path | None = None
    attempt_log_capacity: int = Field(default=100, gt=0)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def transcription_models(self) -> dict[TranscriptionBackend, str]:
        """Map each transcription backend to its configured model."""
        return {
            TranscriptionBackend.WHISPER: self.whisper_model,
            TranscriptionBackend.GPT4O_TRANSCRIBE: self.gpt4o_transcribe_model,
        }


def parse_language_hint(raw: str | None) -> str | None:
    """Normalize a language hint from env; blank or ``auto`` means detect."""
    if raw is None:
        return None
    cleaned = raw.strip().lower()
    if cleaned in {"", "auto", "*"}:
        return None
    return cleaned.split("-")[0]
