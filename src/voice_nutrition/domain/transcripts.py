"""Audio and transcript models."""

from dataclasses import dataclass, field
from enum import StrEnum


class TranscriptionBackend(StrEnum):
    """Speech backends with different cost and accuracy trade-offs."""

    WHISPER = "whisper"
    GPT4O_TRANSCRIBE = "gpt-4o-transcribe"


@dataclass(frozen=True)
class AudioClip:
    """A finished recording handed to the pipeline."""

    data: bytes
    duration_seconds: float
    filename: str = "audio.m4a"
    content_type: str = "audio/m4a"


@dataclass(frozen=True)
class RawTranscript:
    """Transcribed text plus source metadata."""

    text: str
    duration_seconds: float
    backend: TranscriptionBackend
    language_hint: str | None = None
    confidence: float | None = None
    token_confidences: tuple[float, ...] = field(default_factory=tuple)
