"""OpenAI audio transcription client."""

import logging
from dataclasses import dataclass

import httpx
import openai
from openai import AsyncOpenAI

from voice_nutrition.domain.errors import (
    TranscriptionError,
    TranscriptionErrorKind,
    transcription_error_for_status,
)
from voice_nutrition.domain.transcripts import AudioClip
from voice_nutrition.services.transcription import TranscriptionClient

_logger = logging.getLogger(__name__)


@dataclass
class OpenAITranscriptionClient(TranscriptionClient):
    """Transcription client backed by the OpenAI audio API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 60.0
    ) -> "OpenAITranscriptionClient":
        """Create a client that never retries on its own."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                max_retries=0,
                timeout=httpx.Timeout(timeout_seconds),
            )
        )

    async def transcribe(  # noqa: PLR0913
        self,
        *,
        model: str,
        audio: AudioClip,
        language: str | None,
        response_format: str,
        include_logprobs: bool,
    ) -> object:
        """Send audio bytes and return the SDK response unchanged."""
        request: dict[str, object] = {
            "model": model,
            "file": (audio.filename, audio.data, audio.content_type),
            "response_format": response_format,
        }
        if language:
            request["language"] = language
        if include_logprobs:
            request["include"] = ["logprobs"]
        try:
            return await self.client.audio.transcriptions.create(**request)
        except openai.APIStatusError as exc:
            _logger.warning(
                "Transcription failed (status=%s): %s", exc.status_code, exc.message
            )
            raise transcription_error_for_status(exc.status_code, exc.message) from exc
        except openai.APIConnectionError as exc:
            _logger.warning("Transcription connection failed: %s", exc)
            raise TranscriptionError(
                TranscriptionErrorKind.NETWORK_FAILURE,
                "Network error. Please check your connection and try again.",
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
