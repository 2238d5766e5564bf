"""Tests for the transcription service."""

import asyncio
import json
import math
from types import SimpleNamespace

import pytest

from tests.conftest import FakeTranscriptionClient
from voice_nutrition.domain.errors import (
    ErrorCause,
    TranscriptionError,
    TranscriptionErrorKind,
)
from voice_nutrition.domain.transcripts import AudioClip, TranscriptionBackend
from voice_nutrition.services.transcription import (
    TranscriptionService,
    normalize_transcription,
)


def test_whisper_uses_verbose_json_and_segment_confidence(audio) -> None:
    client = FakeTranscriptionClient(
        response={
            "text": "  نص كيلو فراخ مشوي ",
            "segments": [{"avg_logprob": -0.1}, {"avg_logprob": -0.3}],
        }
    )
    service = TranscriptionService(client=client)

    transcript = asyncio.run(service.transcribe(audio, language_hint="ar"))

    assert transcript.text == "نص كيلو فراخ مشوي"
    assert transcript.backend == TranscriptionBackend.WHISPER
    assert transcript.language_hint == "ar"
    assert transcript.confidence == pytest.approx(
        (math.exp(-0.1) + math.exp(-0.3)) / 2
    )
    assert client.calls == [
        {
            "model": "whisper-1",
            "language": "ar",
            "response_format": "verbose_json",
            "include_logprobs": False,
        }
    ]


def test_gpt4o_requests_logprobs(audio) -> None:
    client = FakeTranscriptionClient(
        response={"text": "rice", "logprobs": [{"token": "rice", "logprob": 0.0}]}
    )
    service = TranscriptionService(client=client)

    transcript = asyncio.run(
        service.transcribe(audio, backend=TranscriptionBackend.GPT4O_TRANSCRIBE)
    )

    assert transcript.confidence == 1.0
    assert transcript.token_confidences == (1.0,)
    assert client.calls[0]["model"] == "gpt-4o-transcribe"
    assert client.calls[0]["response_format"] == "json"
    assert client.calls[0]["include_logprobs"]


def test_normalize_transcription_shapes() -> None:
    assert normalize_transcription(" plain text ") == ("plain text", [])
    assert normalize_transcription(json.dumps({"text": " hi "})) == ("hi", [])
    assert normalize_transcription(SimpleNamespace(text="from sdk")) == (
        "from sdk",
        [],
    )
    assert normalize_transcription("{not json") == ("{not json", [])


def test_normalize_transcription_rejects_unknown_shapes() -> None:
    with pytest.raises(TranscriptionError) as exc_info:
        normalize_transcription(42)
    with pytest.raises(TranscriptionError):
        normalize_transcription({"segments": []})

    assert exc_info.value.kind == TranscriptionErrorKind.BACKEND_PROTOCOL_ERROR


def test_empty_text_is_no_speech(audio) -> None:
    service = TranscriptionService(client=FakeTranscriptionClient(response="   "))

    with pytest.raises(TranscriptionError) as exc_info:
        asyncio.run(service.transcribe(audio))

    assert exc_info.value.kind == TranscriptionErrorKind.NO_SPEECH_DETECTED
    assert exc_info.value.cause == ErrorCause.CONTENT_UNDERSTANDING


def test_empty_or_long_recordings_are_rejected_before_upload() -> None:
    client = FakeTranscriptionClient()
    service = TranscriptionService(client=client, max_recording_seconds=60)

    with pytest.raises(TranscriptionError) as empty:
        asyncio.run(service.transcribe(AudioClip(data=b"", duration_seconds=0)))
    with pytest.raises(TranscriptionError) as too_long:
        asyncio.run(service.transcribe(AudioClip(data=b"x", duration_seconds=61)))

    assert empty.value.kind == TranscriptionErrorKind.NO_SPEECH_DETECTED
    assert too_long.value.kind == TranscriptionErrorKind.PAYLOAD_TOO_LARGE
    assert client.calls == []


def test_timeout_is_network_failure(audio) -> None:
    client = FakeTranscriptionClient(delay_seconds=1.0)
    service = TranscriptionService(client=client, timeout_seconds=0.01)

    with pytest.raises(TranscriptionError) as exc_info:
        asyncio.run(service.transcribe(audio))

    assert exc_info.value.kind == TranscriptionErrorKind.NETWORK_FAILURE
    assert exc_info.value.cause == ErrorCause.CONNECTIVITY


def test_client_errors_propagate_unchanged(audio) -> None:
    error = TranscriptionError(TranscriptionErrorKind.RATE_LIMITED, "slow down")
    service = TranscriptionService(client=FakeTranscriptionClient(error=error))

    with pytest.raises(TranscriptionError) as exc_info:
        asyncio.run(service.transcribe(audio))

    assert exc_info.value is error
    assert exc_info.value.cause == ErrorCause.QUOTA
