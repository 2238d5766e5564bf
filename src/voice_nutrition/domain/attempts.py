"""Bookkeeping models for extraction attempts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class StrategyName(StrEnum):
    """Closed set of interchangeable extraction strategies."""

    TWO_STAGE = "two_stage"
    STRUCTURED = "structured"


class OrchestratorState(StrEnum):
    """States of one orchestrator run."""

    IDLE = "idle"
    RUNNING_PRIMARY = "running_primary"
    RUNNING_FALLBACK = "running_fallback"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AttemptOutcome(StrEnum):
    """Final outcome of one extraction attempt."""

    SUCCEEDED = "succeeded"
    FALLBACK_SUCCEEDED = "fallback-succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractionAttempt:
    """One run of the orchestrator, kept for diagnostics only."""

    primary_strategy: StrategyName
    started_at: datetime
    finished_at: datetime
    outcome: AttemptOutcome
    states: tuple[OrchestratorState, ...]
    fallback_strategy: StrategyName | None = None
    primary_error: str | None = None
    terminal_error: str | None = None
    item_count: int = 0
    notes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def duration_ms(self) -> float:
        """Wall-clock time of the attempt in milliseconds."""
        return (self.finished_at - self.started_at).total_seconds() * 1000.0

    @property
    def strategy_used(self) -> StrategyName | None:
        """Strategy whose output was returned, if any."""
        if self.outcome == AttemptOutcome.SUCCEEDED:
            return self.primary_strategy
        if self.outcome == AttemptOutcome.FALLBACK_SUCCEEDED:
            return self.fallback_strategy
        return None
