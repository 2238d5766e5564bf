"""Tests for strategy orchestration with a single fallback."""

import asyncio

import pytest

from tests.conftest import FakeStrategy, make_candidate, make_estimate
from voice_nutrition.domain.attempts import (
    AttemptOutcome,
    OrchestratorState,
    StrategyName,
)
from voice_nutrition.domain.errors import (
    USER_MESSAGES,
    ErrorCause,
    ExtractionError,
    ExtractionErrorKind,
)
from voice_nutrition.services.attempts import InMemoryAttemptLog
from voice_nutrition.services.orchestrator import (
    ExtractionOrchestrator,
    cause_of,
    terminal_error,
)


def _working(name: StrategyName) -> FakeStrategy:
    return FakeStrategy(
        name=name,
        backend=f"{name}-model",
        candidates=[make_candidate()],
        estimates=[make_estimate()],
    )


def _failing(name: StrategyName, error: Exception) -> FakeStrategy:
    return FakeStrategy(name=name, detect_error=error)


def _orchestrator(
    two_stage: FakeStrategy, structured: FakeStrategy, **kwargs
) -> ExtractionOrchestrator:
    return ExtractionOrchestrator(
        strategies={
            StrategyName.TWO_STAGE: two_stage,
            StrategyName.STRUCTURED: structured,
        },
        attempt_log=InMemoryAttemptLog(),
        **kwargs,
    )


def _unavailable(cause: ErrorCause) -> ExtractionError:
    return ExtractionError(
        ExtractionErrorKind.BACKEND_UNAVAILABLE, f"backend down: {cause}", cause=cause
    )


def test_primary_success_skips_fallback() -> None:
    two_stage = _working(StrategyName.TWO_STAGE)
    structured = _working(StrategyName.STRUCTURED)
    orchestrator = _orchestrator(two_stage, structured)

    run = asyncio.run(orchestrator.run("نص كيلو فراخ", StrategyName.STRUCTURED))

    assert run.strategy is structured
    assert run.attempt.outcome == AttemptOutcome.SUCCEEDED
    assert run.attempt.states == (
        OrchestratorState.IDLE,
        OrchestratorState.RUNNING_PRIMARY,
        OrchestratorState.SUCCEEDED,
    )
    assert run.attempt.strategy_used == StrategyName.STRUCTURED
    assert two_stage.detect_calls == 0
    assert orchestrator.attempt_log.recent() == [run.attempt]


def test_fallback_runs_exactly_once() -> None:
    structured = _failing(StrategyName.STRUCTURED, ValueError("bad json"))
    two_stage = _working(StrategyName.TWO_STAGE)

    run = asyncio.run(
        _orchestrator(two_stage, structured).run("text", StrategyName.STRUCTURED)
    )

    assert run.strategy is two_stage
    assert run.attempt.outcome == AttemptOutcome.FALLBACK_SUCCEEDED
    assert run.attempt.fallback_strategy == StrategyName.TWO_STAGE
    assert run.attempt.primary_error == "ValueError: bad json"
    assert OrchestratorState.RUNNING_FALLBACK in run.attempt.states
    assert structured.detect_calls == 1
    assert two_stage.detect_calls == 1
    assert len(run.candidates) == len(run.estimates) == 1


def test_estimate_failure_also_falls_back() -> None:
    two_stage = _working(StrategyName.TWO_STAGE)
    two_stage.estimate_error = _unavailable(ErrorCause.CONNECTIVITY)
    structured = _working(StrategyName.STRUCTURED)

    run = asyncio.run(
        _orchestrator(two_stage, structured).run("text", StrategyName.TWO_STAGE)
    )

    assert run.strategy is structured
    assert two_stage.estimate_calls == 1


def test_double_failure_reports_most_actionable_cause() -> None:
    structured = _failing(StrategyName.STRUCTURED, ValueError("unparseable"))
    two_stage = _failing(
        StrategyName.TWO_STAGE, _unavailable(ErrorCause.CONNECTIVITY)
    )
    orchestrator = _orchestrator(two_stage, structured)

    with pytest.raises(ExtractionError) as exc_info:
        asyncio.run(orchestrator.run("text", StrategyName.STRUCTURED))

    error = exc_info.value
    assert error.cause == ErrorCause.CONNECTIVITY
    assert str(error) == USER_MESSAGES[ErrorCause.CONNECTIVITY]
    assert structured.detect_calls == 1
    assert two_stage.detect_calls == 1
    [attempt] = orchestrator.attempt_log.recent()
    assert attempt.outcome == AttemptOutcome.FAILED
    assert attempt.states[-1] == OrchestratorState.FAILED


def test_empty_candidates_are_success_without_estimation() -> None:
    two_stage = FakeStrategy(name=StrategyName.TWO_STAGE)
    structured = _working(StrategyName.STRUCTURED)

    run = asyncio.run(
        _orchestrator(two_stage, structured).run(
            "it is raining today", StrategyName.TWO_STAGE
        )
    )

    assert run.candidates == []
    assert run.estimates == []
    assert run.attempt.outcome == AttemptOutcome.SUCCEEDED
    assert two_stage.estimate_calls == 0
    assert structured.detect_calls == 0


def test_blank_text_calls_no_backend() -> None:
    two_stage = _working(StrategyName.TWO_STAGE)
    structured = _working(StrategyName.STRUCTURED)

    run = asyncio.run(
        _orchestrator(two_stage, structured).run("   ", StrategyName.TWO_STAGE)
    )

    assert run.candidates == []
    assert two_stage.detect_calls == 0


def test_stage_timeout_triggers_fallback() -> None:
    structured = _working(StrategyName.STRUCTURED)
    structured.delay_seconds = 1.0
    two_stage = _working(StrategyName.TWO_STAGE)
    orchestrator = _orchestrator(two_stage, structured, detect_timeout_seconds=0.01)

    run = asyncio.run(orchestrator.run("text", StrategyName.STRUCTURED))

    assert run.strategy is two_stage
    assert run.attempt.primary_error == "stage timed out"


def test_cancellation_is_recorded_and_propagated() -> None:
    structured = _working(StrategyName.STRUCTURED)
    structured.delay_seconds = 10.0
    two_stage = _working(StrategyName.TWO_STAGE)
    orchestrator = _orchestrator(two_stage, structured)

    async def scenario() -> None:
        task = asyncio.create_task(orchestrator.run("text", StrategyName.STRUCTURED))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    [attempt] = orchestrator.attempt_log.recent()
    assert attempt.outcome == AttemptOutcome.FAILED
    assert attempt.terminal_error == "cancelled"
    assert two_stage.detect_calls == 0


def test_cause_of_classifies_exceptions() -> None:
    assert cause_of(_unavailable(ErrorCause.QUOTA)) == ErrorCause.QUOTA
    assert cause_of(TimeoutError()) == ErrorCause.CONNECTIVITY
    assert cause_of(KeyError("x")) == ErrorCause.CONTENT_UNDERSTANDING


def test_terminal_error_priority() -> None:
    credential = terminal_error(
        _unavailable(ErrorCause.QUOTA), _unavailable(ErrorCause.CREDENTIAL)
    )
    content = terminal_error(ValueError("a"), ValueError("b"))
    validation = terminal_error(
        ValueError("a"),
        ExtractionError(ExtractionErrorKind.VALIDATION_FAILED, "count mismatch"),
    )

    assert credential.cause == ErrorCause.CREDENTIAL
    assert credential.kind == ExtractionErrorKind.BACKEND_UNAVAILABLE
    assert content.cause == ErrorCause.CONTENT_UNDERSTANDING
    assert content.kind == ExtractionErrorKind.BACKEND_PROTOCOL_ERROR
    assert validation.kind == ExtractionErrorKind.VALIDATION_FAILED
