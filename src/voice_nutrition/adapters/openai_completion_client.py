"""OpenAI Responses API client for food extraction prompts."""

import logging
from dataclasses import dataclass

import httpx
import openai
from openai import AsyncOpenAI

from voice_nutrition.domain.errors import (
    ErrorCause,
    ExtractionError,
    ExtractionErrorKind,
    extraction_error_for_status,
)
from voice_nutrition.services.prompts import CompletionClient

_logger = logging.getLogger(__name__)


@dataclass
class OpenAICompletionClient(CompletionClient):
    """Completion client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 60.0
    ) -> "OpenAICompletionClient":
        """Create a client that never retries on its own."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                max_retries=0,
                timeout=httpx.Timeout(timeout_seconds),
            )
        )

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        instructions: str,
        prompt: str,
        schema: dict[str, object] | None,
        schema_name: str,
    ) -> str:
        """Call OpenAI Responses API, with structured outputs when a schema is set."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": instructions,
            "input": prompt,
            "store": store,
        }
        if schema is not None:
            request_payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APIStatusError as exc:
            _logger.warning(
                "Completion %s failed (status=%s): %s",
                schema_name,
                exc.status_code,
                exc.message,
            )
            raise extraction_error_for_status(exc.status_code, exc.message) from exc
        except openai.APIConnectionError as exc:
            _logger.warning("Completion %s connection failed: %s", schema_name, exc)
            raise ExtractionError(
                ExtractionErrorKind.BACKEND_UNAVAILABLE,
                f"Language backend unreachable: {exc}",
                cause=ErrorCause.CONNECTIVITY,
            ) from exc
        output_text = response.output_text
        if not output_text:
            raise ExtractionError(
                ExtractionErrorKind.BACKEND_PROTOCOL_ERROR,
                "OpenAI returned an empty response",
            )
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
