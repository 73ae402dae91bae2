"""Tests for retry logic and graceful degradation."""

import random

import pytest

from batch_review import RetryPolicy
from batch_review.strategies import (
    RETRY_POLICIES,
    Err,
    ErrorKind,
    Ok,
    RetryEngine,
    ReviewError,
)


class RecordingSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_engine(**kwargs) -> tuple[RetryEngine, RecordingSleep]:
    sleep = RecordingSleep()
    return RetryEngine(sleep=sleep, rng=random.Random(0), **kwargs), sleep


class FlakyOperation:
    """Fails with ``error`` on the first ``failures`` calls."""

    def __init__(self, failures: int, error: Exception, value: str = "ok"):
        self.failures = failures
        self.error = error
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


@pytest.mark.asyncio
async def test_retry_succeeds_after_transient_failures():
    """Retryable failures are retried until the operation succeeds."""
    engine, sleep = make_engine()
    operation = FlakyOperation(failures=2, error=ConnectionError("connection reset"))

    result = await engine.with_retry(operation, ErrorKind.NETWORK_ERROR)

    assert result == "ok"
    assert operation.calls == 3
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_max_attempts_respected():
    """An always failing operation is attempted exactly max_attempts times."""
    engine, sleep = make_engine()
    operation = FlakyOperation(failures=100, error=ConnectionError("connection reset"))

    with pytest.raises(ReviewError) as exc_info:
        await engine.with_retry(operation, ErrorKind.NETWORK_ERROR)

    assert operation.calls == RETRY_POLICIES[ErrorKind.NETWORK_ERROR].max_attempts == 4
    # No sleep after the last attempt
    assert len(sleep.delays) == 3
    assert exc_info.value.kind is ErrorKind.NETWORK_ERROR
    assert isinstance(exc_info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_non_retryable_kind_attempted_once():
    """Kinds without a policy run a single time."""
    engine, sleep = make_engine()
    operation = FlakyOperation(failures=5, error=RuntimeError("401 Unauthorized"))

    with pytest.raises(ReviewError) as exc_info:
        await engine.with_retry(
            operation, ErrorKind.AUTHENTICATION_FAILED, policy=RetryPolicy(max_attempts=5)
        )

    assert operation.calls == 1
    assert sleep.delays == []
    assert exc_info.value.kind is ErrorKind.AUTHENTICATION_FAILED


@pytest.mark.asyncio
async def test_non_retryable_error_stops_retry_loop():
    """A non-retryable classification ends the loop even under a retryable policy."""
    engine, sleep = make_engine()
    operation = FlakyOperation(failures=5, error=PermissionError("403 Forbidden"))

    with pytest.raises(ReviewError) as exc_info:
        await engine.with_retry(operation, ErrorKind.NETWORK_ERROR)

    assert operation.calls == 1
    assert sleep.delays == []
    assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_review_error_raised_by_operation_is_preserved():
    """A ReviewError from the operation surfaces unchanged."""
    engine, _ = make_engine()
    original = ReviewError(ErrorKind.FILE_NOT_FOUND, "gone.py")

    async def operation():
        raise original

    with pytest.raises(ReviewError) as exc_info:
        await engine.with_retry(operation, ErrorKind.ANALYSIS_FAILED)

    assert exc_info.value is original


@pytest.mark.asyncio
async def test_backoff_delays_grow_and_cap():
    """Delays follow base * multiplier**(n-1), capped at max_delay, plus jitter."""
    policy = RetryPolicy(
        max_attempts=5, base_delay=1.0, max_delay=5.0, backoff_multiplier=2.0, jitter=0.0
    )
    engine, sleep = make_engine(policies={ErrorKind.NETWORK_ERROR: policy})
    operation = FlakyOperation(failures=100, error=ConnectionError("connection reset"))

    with pytest.raises(ReviewError):
        await engine.with_retry(operation, ErrorKind.NETWORK_ERROR)

    assert sleep.delays == [1.0, 2.0, 4.0, 5.0]


def test_compute_delay_jitter_bounds():
    """Jitter adds between 0 and policy.jitter seconds."""
    engine, _ = make_engine()
    policy = RETRY_POLICIES[ErrorKind.API_RATE_LIMITED]
    for attempt in range(1, 6):
        delay = engine.compute_delay(policy, attempt)
        base = min(5.0 * 2 ** (attempt - 1), 60.0)
        assert base <= delay <= base + 1.0


def test_policy_table():
    """Retryable kinds have policies and non-retryable kinds have none."""
    for kind, policy in RETRY_POLICIES.items():
        assert (policy is not None) == kind.retryable

    assert RETRY_POLICIES[ErrorKind.API_RATE_LIMITED].max_attempts == 5
    assert RETRY_POLICIES[ErrorKind.ANALYSIS_FAILED].max_attempts == 2
    assert RETRY_POLICIES[ErrorKind.TIMEOUT_ERROR].base_delay == 3.0


def test_policy_for_non_retryable_kind_rejected():
    """Custom policies cannot make a non-retryable kind retryable."""
    with pytest.raises(ValueError, match="not retryable"):
        RetryEngine(policies={ErrorKind.PERMISSION_DENIED: RetryPolicy()})


@pytest.mark.asyncio
async def test_override_policy_applies():
    """A per-call policy replaces the kind's default."""
    engine, sleep = make_engine()
    operation = FlakyOperation(failures=100, error=RuntimeError("503 Service Unavailable"))

    with pytest.raises(ReviewError):
        await engine.with_retry(
            operation,
            ErrorKind.SERVICE_UNAVAILABLE,
            policy=RetryPolicy(max_attempts=2, base_delay=0.0, max_delay=0.0, jitter=0.0),
        )

    assert operation.calls == 2
    assert sleep.delays == [0.0]


@pytest.mark.asyncio
async def test_attempt_returns_ok_or_err():
    """attempt() reports outcomes as Ok/Err without raising."""
    engine, _ = make_engine()

    ok = await engine.attempt(FlakyOperation(0, RuntimeError()), ErrorKind.ANALYSIS_FAILED)
    assert isinstance(ok, Ok) and ok.is_ok and ok.unwrap() == "ok"

    err = await engine.attempt(
        FlakyOperation(10, RuntimeError("bad output")), ErrorKind.ANALYSIS_FAILED
    )
    assert isinstance(err, Err) and not err.is_ok
    assert err.error.kind is ErrorKind.ANALYSIS_FAILED
    with pytest.raises(ReviewError):
        err.unwrap()


@pytest.mark.asyncio
async def test_graceful_degradation_uses_fallback():
    """The fallback result is returned when the primary exhausts its retries."""
    engine, _ = make_engine()
    primary = FlakyOperation(100, RuntimeError("500 error posting comment"))
    fallback = FlakyOperation(0, RuntimeError(), value="printed locally")

    result = await engine.with_graceful_degradation(
        primary, fallback, ErrorKind.COMMENT_POST_FAILED
    )

    assert result == "printed locally"
    assert primary.calls == RETRY_POLICIES[ErrorKind.COMMENT_POST_FAILED].max_attempts
    assert fallback.calls == 1


@pytest.mark.asyncio
async def test_graceful_degradation_skips_fallback_on_success():
    """The fallback never runs when the primary succeeds."""
    engine, _ = make_engine()
    fallback = FlakyOperation(0, RuntimeError())

    result = await engine.with_graceful_degradation(
        FlakyOperation(0, RuntimeError(), value="primary"), fallback, ErrorKind.NETWORK_ERROR
    )

    assert result == "primary"
    assert fallback.calls == 0


@pytest.mark.asyncio
async def test_graceful_degradation_reraises_primary_error():
    """When both fail, the primary's error is surfaced."""
    engine, _ = make_engine()
    primary = FlakyOperation(100, RuntimeError("401 Unauthorized"))
    fallback = FlakyOperation(100, RuntimeError("fallback broke"))

    with pytest.raises(ReviewError) as exc_info:
        await engine.with_graceful_degradation(
            primary, fallback, ErrorKind.AUTHENTICATION_FAILED
        )

    assert exc_info.value.kind is ErrorKind.AUTHENTICATION_FAILED
    assert primary.calls == 1
    assert fallback.calls == 1


def test_engine_lookups():
    """policy_for, guidance_for and is_retryable reflect the policy table."""
    engine = RetryEngine()

    assert engine.policy_for(ErrorKind.NETWORK_ERROR) is RETRY_POLICIES[ErrorKind.NETWORK_ERROR]
    assert engine.policy_for(ErrorKind.FILE_NOT_FOUND) is None
    assert engine.guidance_for(ErrorKind.TIMEOUT_ERROR) == ErrorKind.TIMEOUT_ERROR.guidance

    assert engine.is_retryable(ReviewError(ErrorKind.NETWORK_ERROR, "reset"))
    assert not engine.is_retryable(ReviewError(ErrorKind.FILE_NOT_FOUND, "gone"))
    assert not engine.is_retryable(ReviewError(ErrorKind.NETWORK_ERROR, "reset", retryable=False))


def test_disabling_a_retryable_kind():
    """Mapping a retryable kind to None turns its retries off."""
    engine = RetryEngine(policies={ErrorKind.NETWORK_ERROR: None})
    assert not engine.is_retryable(ReviewError(ErrorKind.NETWORK_ERROR, "reset"))
