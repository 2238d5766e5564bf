"""Run an extraction strategy with exactly one fallback."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from voice_nutrition.domain.attempts import (
    AttemptOutcome,
    ExtractionAttempt,
    OrchestratorState,
    StrategyName,
)
from voice_nutrition.domain.errors import (
    USER_MESSAGES,
    ErrorCause,
    ExtractionError,
    ExtractionErrorKind,
)
from voice_nutrition.domain.foods import FoodCandidate
from voice_nutrition.domain.nutrition import NutritionEstimate
from voice_nutrition.services.attempts import AttemptLog
from voice_nutrition.services.strategies import ExtractionStrategy, alternate

_logger = logging.getLogger(__name__)

_CAUSE_PRIORITY = (
    ErrorCause.CREDENTIAL,
    ErrorCause.QUOTA,
    ErrorCause.CONNECTIVITY,
    ErrorCause.CONTENT_UNDERSTANDING,
)


@dataclass(frozen=True)
class OrchestratorRun:
    """Candidates and estimates from the strategy that succeeded."""

    strategy: ExtractionStrategy
    candidates: list[FoodCandidate]
    estimates: list[NutritionEstimate]
    attempt: ExtractionAttempt


@dataclass
class _Tracker:
    primary: StrategyName
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    states: list[OrchestratorState] = field(
        default_factory=lambda: [OrchestratorState.IDLE]
    )
    fallback: StrategyName | None = None
    primary_error: str | None = None

    def enter(self, state: OrchestratorState) -> None:
        self.states.append(state)

    def finish(
        self,
        outcome: AttemptOutcome,
        *,
        terminal_error: str | None = None,
        item_count: int = 0,
    ) -> ExtractionAttempt:
        return ExtractionAttempt(
            primary_strategy=self.primary,
            started_at=self.started_at,
            finished_at=datetime.now(tz=UTC),
            outcome=outcome,
            states=tuple(self.states),
            fallback_strategy=self.fallback,
            primary_error=self.primary_error,
            terminal_error=terminal_error,
            item_count=item_count,
        )


@dataclass
class ExtractionOrchestrator:
    """Run the preferred strategy and fall back to the other one once."""

    strategies: Mapping[StrategyName, ExtractionStrategy]
    attempt_log: AttemptLog
    detect_timeout_seconds: float = 30.0
    estimate_timeout_seconds: float = 45.0

    async def run(self, text: str, preferred: StrategyName) -> OrchestratorRun:
        """Extract candidates and estimates from a transcript.

        Raises ``ExtractionError`` when both strategies fail. Cancellation is
        recorded as a failed attempt and re-raised.
        """
        tracker = _Tracker(primary=preferred)
        primary = self.strategies[preferred]
        tracker.enter(OrchestratorState.RUNNING_PRIMARY)
        try:
            candidates, estimates = await self._attempt(primary, text)
        except asyncio.CancelledError:
            self._record(tracker, AttemptOutcome.FAILED, terminal_error="cancelled")
            raise
        except Exception as exc:
            tracker.primary_error = _describe(exc)
            fallback_name = alternate(preferred)
            _logger.warning(
                "Strategy %s failed, falling back to %s: %s",
                preferred,
                fallback_name,
                tracker.primary_error,
            )
            return await self._run_fallback(tracker, fallback_name, text, exc)

        attempt = self._record(
            tracker, AttemptOutcome.SUCCEEDED, item_count=len(candidates)
        )
        return OrchestratorRun(primary, candidates, estimates, attempt)

    async def _run_fallback(
        self,
        tracker: _Tracker,
        name: StrategyName,
        text: str,
        primary_exc: Exception,
    ) -> OrchestratorRun:
        tracker.fallback = name
        tracker.enter(OrchestratorState.RUNNING_FALLBACK)
        fallback = self.strategies[name]
        try:
            candidates, estimates = await self._attempt(fallback, text)
        except asyncio.CancelledError:
            self._record(tracker, AttemptOutcome.FAILED, terminal_error="cancelled")
            raise
        except Exception as exc:
            error = terminal_error(primary_exc, exc)
            _logger.error(
                "Extraction failed with both strategies (cause=%s): %s",
                error.cause,
                _describe(exc),
            )
            self._record(tracker, AttemptOutcome.FAILED, terminal_error=_describe(exc))
            raise error from exc

        attempt = self._record(
            tracker, AttemptOutcome.FALLBACK_SUCCEEDED, item_count=len(candidates)
        )
        return OrchestratorRun(fallback, candidates, estimates, attempt)

    async def _attempt(
        self, strategy: ExtractionStrategy, text: str
    ) -> tuple[list[FoodCandidate], list[NutritionEstimate]]:
        if not text.strip():
            return [], []
        async with asyncio.timeout(self.detect_timeout_seconds):
            candidates = await strategy.detect(text)
        if not candidates:
            return [], []
        async with asyncio.timeout(self.estimate_timeout_seconds):
            estimates = await strategy.estimate(candidates)
        return candidates, estimates

    def _record(
        self,
        tracker: _Tracker,
        outcome: AttemptOutcome,
        *,
        terminal_error: str | None = None,
        item_count: int = 0,
    ) -> ExtractionAttempt:
        final_state = (
            OrchestratorState.FAILED
            if outcome == AttemptOutcome.FAILED
            else OrchestratorState.SUCCEEDED
        )
        tracker.enter(final_state)
        attempt = tracker.finish(
            outcome, terminal_error=terminal_error, item_count=item_count
        )
        self.attempt_log.append(attempt)
        _logger.info(
            "Extraction attempt %s: primary=%s fallback=%s items=%s duration_ms=%.0f",
            outcome,
            attempt.primary_strategy,
            attempt.fallback_strategy,
            item_count,
            attempt.duration_ms,
        )
        return attempt


def cause_of(exc: BaseException) -> ErrorCause:
    """Classify a strategy failure by its likely cause."""
    if isinstance(exc, ExtractionError):
        return exc.cause
    if isinstance(exc, TimeoutError):
        return ErrorCause.CONNECTIVITY
    return ErrorCause.CONTENT_UNDERSTANDING


def terminal_error(primary: BaseException, fallback: BaseException) -> ExtractionError:
    """Build the user-facing error after both strategies failed.

    The most actionable cause wins: credentials, then quota, then
    connectivity, then content understanding.
    """
    cause = min(
        (cause_of(primary), cause_of(fallback)), key=_CAUSE_PRIORITY.index
    )
    if cause != ErrorCause.CONTENT_UNDERSTANDING:
        kind = ExtractionErrorKind.BACKEND_UNAVAILABLE
    elif isinstance(fallback, ExtractionError):
        kind = fallback.kind
    else:
        kind = ExtractionErrorKind.BACKEND_PROTOCOL_ERROR
    return ExtractionError(kind, USER_MESSAGES[cause], cause=cause)


def _describe(exc: BaseException) -> str:
    """Summarize a strategy failure for the attempt log."""
    if isinstance(exc, TimeoutError):
        return "stage timed out"
    return f"{type(exc).__name__}: {exc}"
