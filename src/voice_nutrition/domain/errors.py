"""Error taxonomy for the voice-to-nutrition pipeline."""

from enum import StrEnum


class ErrorCause(StrEnum):
    """Likely cause of a failure, used for user-facing classification."""

    CREDENTIAL = "credential"
    QUOTA = "quota"
    CONNECTIVITY = "connectivity"
    CONTENT_UNDERSTANDING = "content_understanding"


class TranscriptionErrorKind(StrEnum):
    """Distinct failure modes of speech transcription."""

    NO_SPEECH_DETECTED = "no_speech_detected"
    AUTHENTICATION_FAILURE = "authentication_failure"
    RATE_LIMITED = "rate_limited"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    NETWORK_FAILURE = "network_failure"
    BACKEND_PROTOCOL_ERROR = "backend_protocol_error"


class ExtractionErrorKind(StrEnum):
    """Failure modes of quantity detection and nutrition estimation."""

    NO_FOOD_DETECTED = "no_food_detected"
    BACKEND_PROTOCOL_ERROR = "backend_protocol_error"
    VALIDATION_FAILED = "validation_failed"
    BACKEND_UNAVAILABLE = "backend_unavailable"


_TRANSCRIPTION_CAUSES = {
    TranscriptionErrorKind.NO_SPEECH_DETECTED: ErrorCause.CONTENT_UNDERSTANDING,
    TranscriptionErrorKind.AUTHENTICATION_FAILURE: ErrorCause.CREDENTIAL,
    TranscriptionErrorKind.RATE_LIMITED: ErrorCause.QUOTA,
    TranscriptionErrorKind.PAYLOAD_TOO_LARGE: ErrorCause.CONTENT_UNDERSTANDING,
    TranscriptionErrorKind.NETWORK_FAILURE: ErrorCause.CONNECTIVITY,
    TranscriptionErrorKind.BACKEND_PROTOCOL_ERROR: ErrorCause.CONTENT_UNDERSTANDING,
}

USER_MESSAGES = {
    ErrorCause.CREDENTIAL: "API key configuration error. Please check your settings.",
    ErrorCause.QUOTA: "Rate limit exceeded. Please try again in a moment.",
    ErrorCause.CONNECTIVITY: (
        "Network error. Please check your connection and try again."
    ),
    ErrorCause.CONTENT_UNDERSTANDING: (
        "Failed to understand the food description. "
        "Please try describing your meal differently."
    ),
}


class TranscriptionError(Exception):
    """Raised when audio cannot be turned into text."""

    def __init__(self, kind: TranscriptionErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def cause(self) -> ErrorCause:
        """Return the likely cause of this failure."""
        return _TRANSCRIPTION_CAUSES[self.kind]


class ExtractionError(Exception):
    """Raised when food items cannot be extracted from a transcript."""

    def __init__(
        self,
        kind: ExtractionErrorKind,
        message: str,
        cause: ErrorCause = ErrorCause.CONTENT_UNDERSTANDING,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    @property
    def user_message(self) -> str:
        """Return a human-readable message for the failure cause."""
        return USER_MESSAGES[self.cause]


def transcription_error_for_status(
    status_code: int, detail: str
) -> TranscriptionError:
    """Map an HTTP-style status code onto a transcription error."""
    if status_code in {401, 403}:
        return TranscriptionError(
            TranscriptionErrorKind.AUTHENTICATION_FAILURE,
            "Invalid API key. Please check your API key configuration.",
        )
    if status_code == 429:
        return TranscriptionError(
            TranscriptionErrorKind.RATE_LIMITED,
            "Rate limit exceeded. Please try again in a moment.",
        )
    if status_code == 413:
        return TranscriptionError(
            TranscriptionErrorKind.PAYLOAD_TOO_LARGE,
            "Audio file too large. Please record a shorter message.",
        )
    return TranscriptionError(
        TranscriptionErrorKind.BACKEND_PROTOCOL_ERROR,
        f"Transcription backend error: {status_code} - {detail}",
    )


def extraction_error_for_status(status_code: int, detail: str) -> ExtractionError:
    """Map an HTTP-style status code onto an extraction backend error."""
    if status_code in {401, 403}:
        cause = ErrorCause.CREDENTIAL
    elif status_code == 429:
        cause = ErrorCause.QUOTA
    elif status_code >= 500:
        cause = ErrorCause.CONNECTIVITY
    else:
        return ExtractionError(
            ExtractionErrorKind.BACKEND_PROTOCOL_ERROR,
            f"Language backend error: {status_code} - {detail}",
        )
    return ExtractionError(
        ExtractionErrorKind.BACKEND_UNAVAILABLE,
        f"Language backend error: {status_code} - {detail}",
        cause=cause,
    )
