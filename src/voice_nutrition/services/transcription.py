"""Speech transcription with response-shape normalization."""

import asyncio
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from voice_nutrition.domain.errors import TranscriptionError, TranscriptionErrorKind
from voice_nutrition.domain.transcripts import (
    AudioClip,
    RawTranscript,
    TranscriptionBackend,
)

_logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDING_SECONDS = 300.0
DEFAULT_TRANSCRIPTION_MODELS = {
    TranscriptionBackend.WHISPER: "whisper-1",
    TranscriptionBackend.GPT4O_TRANSCRIBE: "gpt-4o-transcribe",
}


class TranscriptionClient(Protocol):
    """Interface for a speech-to-text backend."""

    async def transcribe(  # noqa: PLR0913
        self,
        *,
        model: str,
        audio: AudioClip,
        language: str | None,
        response_format: str,
        include_logprobs: bool,
    ) -> object:
        """Return the backend response in whatever shape it arrives."""


@dataclass
class TranscriptionService:
    """Turn a finished recording into a transcript."""

    client: TranscriptionClient
    models: Mapping[TranscriptionBackend, str] = field(
        default_factory=lambda: dict(DEFAULT_TRANSCRIPTION_MODELS)
    )
    max_recording_seconds: float = DEFAULT_MAX_RECORDING_SECONDS
    timeout_seconds: float = 60.0

    async def transcribe(
        self,
        audio: AudioClip,
        language_hint: str | None = None,
        backend: TranscriptionBackend = TranscriptionBackend.WHISPER,
    ) -> RawTranscript:
        """Transcribe a clip with the chosen backend; no retries, no backend switch."""
        if not audio.data:
            raise TranscriptionError(
                TranscriptionErrorKind.NO_SPEECH_DETECTED, "Recording is empty."
            )
        if audio.duration_seconds > self.max_recording_seconds:
            raise TranscriptionError(
                TranscriptionErrorKind.PAYLOAD_TOO_LARGE,
                f"Recording is {audio.duration_seconds:.0f}s; the limit is "
                f"{self.max_recording_seconds:.0f}s.",
            )
        whisper = backend == TranscriptionBackend.WHISPER
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self.client.transcribe(
                    model=self.models[backend],
                    audio=audio,
                    language=language_hint,
                    response_format="verbose_json" if whisper else "json",
                    include_logprobs=not whisper,
                )
        except TimeoutError as exc:
            raise TranscriptionError(
                TranscriptionErrorKind.NETWORK_FAILURE, "Transcription timed out."
            ) from exc

        text, confidences = normalize_transcription(response)
        if not text:
            raise TranscriptionError(
                TranscriptionErrorKind.NO_SPEECH_DETECTED,
                "No speech detected. Please try speaking more clearly.",
            )
        confidence = sum(confidences) / len(confidences) if confidences else None
        _logger.info(
            "Transcribed %.1fs with %s: %s chars, confidence=%s",
            audio.duration_seconds,
            backend,
            len(text),
            "n/a" if confidence is None else f"{confidence:.2f}",
        )
        return RawTranscript(
            text=text,
            duration_seconds=audio.duration_seconds,
            backend=backend,
            language_hint=language_hint,
            confidence=confidence,
            token_confidences=tuple(confidences),
        )


def normalize_transcription(response: object) -> tuple[str, list[float]]:
    """Return trimmed text and per-token or per-segment probabilities.

    Accepts a plain string, a JSON string wrapping ``{"text": ...}``, a
    mapping, or an SDK object exposing ``model_dump`` or ``text``.
    """
    payload = response
    if isinstance(payload, str):
        stripped = payload.strip()
        if not stripped.startswith("{"):
            return stripped, []
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            return stripped, []
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump()
    elif not isinstance(payload, Mapping) and hasattr(payload, "text"):
        payload = {"text": payload.text}
    if not isinstance(payload, Mapping):
        raise TranscriptionError(
            TranscriptionErrorKind.BACKEND_PROTOCOL_ERROR,
            f"Unexpected transcription response: {type(response).__name__}",
        )
    text = payload.get("text")
    if not isinstance(text, str):
        raise TranscriptionError(
            TranscriptionErrorKind.BACKEND_PROTOCOL_ERROR,
            "Transcription response has no text field",
        )
    return text.strip(), _probabilities(payload)


def _probabilities(payload: Mapping[str, object]) -> list[float]:
    values: list[float] = []
    for key, logprob_key in (("logprobs", "logprob"), ("segments", "avg_logprob")):
        entries = payload.get(key)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            logprob = entry.get(logprob_key) if isinstance(entry, Mapping) else None
            if isinstance(logprob, int | float):
                values.append(min(math.exp(logprob), 1.0))
    return values
