"""Append-only, bounded log of extraction attempts."""

from collections import deque
from dataclasses import dataclass, field
from typing import Protocol

from voice_nutrition.domain.attempts import (
    AttemptOutcome,
    ExtractionAttempt,
    StrategyName,
)

DEFAULT_ATTEMPT_CAPACITY = 100


class AttemptLog(Protocol):
    """Sink for orchestrator attempt records."""

    def append(self, attempt: ExtractionAttempt) -> None:
        """Record a finished attempt."""

    def recent(self, limit: int | None = None) -> list[ExtractionAttempt]:
        """Return the most recent attempts, newest last."""


@dataclass
class InMemoryAttemptLog(AttemptLog):
    """Attempt log keeping only the newest ``capacity`` records."""

    capacity: int = DEFAULT_ATTEMPT_CAPACITY
    _entries: deque[ExtractionAttempt] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._entries = deque(maxlen=self.capacity)

    def append(self, attempt: ExtractionAttempt) -> None:
        self._entries.append(attempt)

    def recent(self, limit: int | None = None) -> list[ExtractionAttempt]:
        entries = list(self._entries)
        if limit is None:
            return entries
        return entries[-limit:] if limit > 0 else []

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class StrategyStats:
    """Aggregate performance of one primary strategy."""

    strategy: StrategyName
    attempts: int
    success_rate: float
    fallback_rate: float
    average_duration_ms: float


def summarize_attempts(attempts: list[ExtractionAttempt]) -> list[StrategyStats]:
    """Group attempts by primary strategy and compute success and fallback rates."""
    grouped: dict[StrategyName, list[ExtractionAttempt]] = {}
    for attempt in attempts:
        grouped.setdefault(attempt.primary_strategy, []).append(attempt)
    stats = []
    for strategy, rows in grouped.items():
        count = len(rows)
        succeeded = sum(row.outcome != AttemptOutcome.FAILED for row in rows)
        fell_back = sum(row.fallback_strategy is not None for row in rows)
        stats.append(
            StrategyStats(
                strategy=strategy,
                attempts=count,
                success_rate=succeeded / count,
                fallback_rate=fell_back / count,
                average_duration_ms=sum(row.duration_ms for row in rows) / count,
            )
        )
    return stats
