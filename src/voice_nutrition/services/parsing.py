"""Defensive extraction of structured payloads from backend text."""

import json
import re
from dataclasses import dataclass

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_WRAPPER_KEYS = ("foods", "items")
_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class ParseResult:
    """Either a list of records or a reason why none could be extracted."""

    value: list[dict[str, object]] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


def extract_json_array(payload: object) -> ParseResult:
    """Return the first well-formed array of JSON objects found in a payload.

    Accepts a bare array, an object wrapping the array under ``foods`` or
    ``items``, arrays inside code fences, and arrays surrounded by prose.
    """
    if not isinstance(payload, str):
        return ParseResult(error=f"expected text payload, got {type(payload).__name__}")
    text = payload.strip()
    if not text:
        return ParseResult(error="empty response")

    direct = _records_from_value(_loads_or_none(text))
    if direct is not None:
        return ParseResult(value=direct)

    for block in _FENCE_PATTERN.findall(text):
        fenced = _records_from_value(_loads_or_none(block.strip()))
        if fenced is not None:
            return ParseResult(value=fenced)

    scanned = _scan_for_records(text)
    if scanned is not None:
        return ParseResult(value=scanned)
    return ParseResult(error="no JSON array found in response")


def _loads_or_none(text: str) -> object | None:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _records_from_value(value: object) -> list[dict[str, object]] | None:
    if isinstance(value, list):
        return value if _is_record_array(value) else None
    if isinstance(value, dict):
        for key in _WRAPPER_KEYS:
            inner = value.get(key)
            if isinstance(inner, list) and _is_record_array(inner):
                return inner
    return None


def _is_record_array(value: list[object]) -> bool:
    return all(isinstance(entry, dict) for entry in value)


def _scan_for_records(text: str) -> list[dict[str, object]] | None:
    """Try every bracket position in order and keep the first array that decodes."""
    for index, char in enumerate(text):
        if char not in "[{":
            continue
        try:
            value, _ = _decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            continue
        records = _records_from_value(value)
        if records is not None:
            return records
    return None
