"""Tests for the attempt log."""

from datetime import UTC, datetime, timedelta

import pytest

from voice_nutrition.domain.attempts import (
    AttemptOutcome,
    ExtractionAttempt,
    OrchestratorState,
    StrategyName,
)
from voice_nutrition.services.attempts import InMemoryAttemptLog, summarize_attempts

_START = datetime(2026, 1, 1, tzinfo=UTC)


def _attempt(
    outcome: AttemptOutcome,
    primary: StrategyName = StrategyName.STRUCTURED,
    duration_ms: int = 100,
    item_count: int = 0,
) -> ExtractionAttempt:
    fallback = (
        None if outcome == AttemptOutcome.SUCCEEDED else StrategyName.TWO_STAGE
    )
    return ExtractionAttempt(
        primary_strategy=primary,
        started_at=_START,
        finished_at=_START + timedelta(milliseconds=duration_ms),
        outcome=outcome,
        states=(OrchestratorState.IDLE, OrchestratorState.RUNNING_PRIMARY),
        fallback_strategy=fallback,
        item_count=item_count,
    )


def test_log_keeps_only_newest_entries() -> None:
    log = InMemoryAttemptLog(capacity=3)

    for count in range(5):
        log.append(_attempt(AttemptOutcome.SUCCEEDED, item_count=count))

    assert len(log) == 3
    assert [attempt.item_count for attempt in log.recent()] == [2, 3, 4]
    assert [attempt.item_count for attempt in log.recent(2)] == [3, 4]
    assert log.recent(0) == []


def test_attempt_properties() -> None:
    fallback = _attempt(AttemptOutcome.FALLBACK_SUCCEEDED, duration_ms=250)
    failed = _attempt(AttemptOutcome.FAILED)

    assert fallback.duration_ms == 250
    assert fallback.strategy_used == StrategyName.TWO_STAGE
    assert failed.strategy_used is None


def test_summarize_attempts() -> None:
    attempts = [
        _attempt(AttemptOutcome.SUCCEEDED, duration_ms=100),
        _attempt(AttemptOutcome.FALLBACK_SUCCEEDED, duration_ms=300),
        _attempt(AttemptOutcome.FAILED, duration_ms=200),
        _attempt(AttemptOutcome.SUCCEEDED, StrategyName.TWO_STAGE, duration_ms=50),
    ]

    stats = {row.strategy: row for row in summarize_attempts(attempts)}

    structured = stats[StrategyName.STRUCTURED]
    assert structured.attempts == 3
    assert structured.success_rate == 2 / 3
    assert structured.fallback_rate == 2 / 3
    assert structured.average_duration_ms == pytest.approx(200)
    assert stats[StrategyName.TWO_STAGE].success_rate == 1.0
