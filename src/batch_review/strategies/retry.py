"""Retry with exponential backoff and graceful degradation."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..core import RetryPolicy, SleepFunc
from .errors import (
    DefaultErrorClassifier,
    Err,
    ErrorClassifier,
    ErrorKind,
    Ok,
    Result,
    ReviewError,
)

T = TypeVar("T")
F = TypeVar("F")

# Per-kind retry policies (seconds). None means the kind is never retried.
RETRY_POLICIES: dict[ErrorKind, RetryPolicy | None] = {
    ErrorKind.REPOSITORY_NOT_DETECTED: None,
    ErrorKind.AUTHENTICATION_FAILED: None,
    ErrorKind.API_RATE_LIMITED: RetryPolicy(
        max_attempts=5, base_delay=5.0, max_delay=60.0, backoff_multiplier=2.0, jitter=1.0
    ),
    ErrorKind.FILE_NOT_FOUND: None,
    ErrorKind.ANALYSIS_FAILED: RetryPolicy(
        max_attempts=2, base_delay=2.0, max_delay=10.0, backoff_multiplier=2.0, jitter=0.5
    ),
    ErrorKind.COMMENT_POST_FAILED: RetryPolicy(
        max_attempts=3, base_delay=2.0, max_delay=15.0, backoff_multiplier=2.0, jitter=0.5
    ),
    ErrorKind.NETWORK_ERROR: RetryPolicy(
        max_attempts=4, base_delay=1.0, max_delay=20.0, backoff_multiplier=2.0, jitter=0.2
    ),
    ErrorKind.PERMISSION_DENIED: None,
    ErrorKind.SERVICE_UNAVAILABLE: RetryPolicy(
        max_attempts=3, base_delay=5.0, max_delay=30.0, backoff_multiplier=2.0, jitter=1.0
    ),
    ErrorKind.TIMEOUT_ERROR: RetryPolicy(
        max_attempts=2, base_delay=3.0, max_delay=15.0, backoff_multiplier=2.0, jitter=0.5
    ),
    ErrorKind.INVALID_CONFIGURATION: None,
    ErrorKind.GIT_OPERATION_FAILED: RetryPolicy(
        max_attempts=2, base_delay=1.0, max_delay=5.0, backoff_multiplier=2.0, jitter=0.2
    ),
    ErrorKind.LLM_PROVIDER_ERROR: RetryPolicy(
        max_attempts=3, base_delay=2.0, max_delay=15.0, backoff_multiplier=2.0, jitter=0.5
    ),
}


class RetryEngine:
    """
    Executes operations with per-kind retry policies.

    The engine classifies every failure through its ErrorClassifier, retries
    retryable kinds with exponential backoff plus jitter, and surfaces
    non-retryable kinds after a single attempt.
    """

    def __init__(
        self,
        classifier: ErrorClassifier | None = None,
        policies: dict[ErrorKind, RetryPolicy | None] | None = None,
        sleep: SleepFunc | None = None,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the retry engine.

        Args:
            classifier: Strategy for classifying failures (default: DefaultErrorClassifier)
            policies: Per-kind policy overrides merged over RETRY_POLICIES
            sleep: Awaitable sleep used between attempts (default: asyncio.sleep)
            rng: Random source for jitter
            logger: Logger to report attempts on (default: module logger)

        Raises:
            ValueError: If a policy is given for a non-retryable kind
        """
        self.classifier = classifier or DefaultErrorClassifier()
        self.policies: dict[ErrorKind, RetryPolicy | None] = dict(RETRY_POLICIES)
        for kind, policy in (policies or {}).items():
            kind = ErrorKind(kind)
            if policy is not None:
                if not kind.retryable:
                    raise ValueError(
                        f"{kind.value} is not retryable and cannot be given a retry policy. "
                        f"Remove it from the policies mapping."
                    )
                policy.validate()
            self.policies[kind] = policy
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)

    def policy_for(self, kind: ErrorKind) -> RetryPolicy | None:
        """Retry policy for ``kind``, or None if it is never retried."""
        return self.policies.get(ErrorKind(kind))

    def guidance_for(self, kind: ErrorKind) -> str:
        """User guidance for ``kind``."""
        return ErrorKind(kind).guidance

    def is_retryable(self, error: ReviewError) -> bool:
        """Whether a classified error may be retried."""
        return error.retryable and self.policy_for(error.kind) is not None

    def compute_delay(self, policy: RetryPolicy, attempt: int) -> float:
        """Backoff delay after ``attempt`` failed, jitter included."""
        jitter = self._rng.uniform(0, policy.jitter) if policy.jitter > 0 else 0.0
        return policy.backoff(attempt) + jitter

    def _classified(self, exc: BaseException, context: dict[str, Any]) -> ReviewError:
        return self.classifier.classify(exc, context)

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        kind: ErrorKind,
        context: dict[str, Any] | None = None,
        policy: RetryPolicy | None = None,
    ) -> T:
        """
        Execute ``operation`` with the retry policy of ``kind``.

        Args:
            operation: Zero-argument coroutine function to execute
            kind: Error kind whose policy governs the retries
            context: Details attached to any classified error
            policy: Replacement policy; ignored for non-retryable kinds

        Returns:
            The operation's return value

        Raises:
            ReviewError: Classified error of the final failed attempt
        """
        context = dict(context or {})
        kind = ErrorKind(kind)
        base_policy = self.policy_for(kind)

        if base_policy is None:
            # Not retryable, execute once
            try:
                return await operation()
            except Exception as exc:
                error = self._classified(exc, context)
                self.logger.debug(f"Error not retryable ({kind.value}): {error.kind.value}")
                if error is exc:
                    raise
                raise error from exc

        if policy is not None:
            policy.validate()
        active = policy or base_policy

        for attempt in range(1, active.max_attempts + 1):
            try:
                self.logger.debug(
                    f"Executing operation (attempt {attempt}/{active.max_attempts})"
                )
                result = await operation()
                if attempt > 1:
                    self.logger.info(
                        f"✓ SUCCESS on attempt {attempt} (after {attempt - 1} failure(s))"
                    )
                return result
            except Exception as exc:
                error = self._classified(exc, {**context, "attempt": attempt})

                if not self.is_retryable(error):
                    self.logger.warning(
                        f"⚠️  Attempt {attempt} failed with non-retryable {error.kind.value}: "
                        f"{error.message[:200]}"
                    )
                    if error is exc:
                        raise
                    raise error from exc

                if attempt >= active.max_attempts:
                    self.logger.error(
                        f"✗ ALL {active.max_attempts} ATTEMPTS EXHAUSTED:\n"
                        f"  Final error kind: {error.kind.value}\n"
                        f"  Final error message: {error.message[:500]}"
                    )
                    if error is exc:
                        raise
                    raise error from exc

                delay = self.compute_delay(active, attempt)
                self.logger.warning(
                    f"⚠️  Attempt {attempt}/{active.max_attempts} failed: "
                    f"{error.kind.value} - {error.message[:150]}. Retrying in {delay:.2f}s..."
                )
                await self._sleep(delay)

        # Unreachable - all paths raise or return
        raise RuntimeError("Unexpected: all retry attempts should have raised")

    async def attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        kind: ErrorKind,
        context: dict[str, Any] | None = None,
        policy: RetryPolicy | None = None,
    ) -> Result[T]:
        """Like ``with_retry`` but return Ok/Err instead of raising."""
        try:
            return Ok(await self.with_retry(operation, kind, context, policy))
        except ReviewError as error:
            return Err(error)

    async def with_graceful_degradation(
        self,
        primary: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[F]],
        kind: ErrorKind,
        context: dict[str, Any] | None = None,
    ) -> T | F:
        """
        Run ``primary`` with retries, falling back to ``fallback`` once on failure.

        Raises:
            ReviewError: The primary's error, when the fallback fails as well
        """
        try:
            return await self.with_retry(primary, kind, context)
        except ReviewError as primary_error:
            self.logger.warning(
                f"⚠️  Primary operation failed ({primary_error.kind.value}), "
                f"falling back to degraded mode"
            )
            try:
                return await fallback()
            except Exception as fallback_error:
                self.logger.error(
                    f"✗ Fallback operation also failed:\n"
                    f"  Primary error: {primary_error.kind.value}: {primary_error.message[:200]}\n"
                    f"  Fallback error: {type(fallback_error).__name__}: {str(fallback_error)[:200]}"
                )
                raise primary_error
