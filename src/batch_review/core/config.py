"""Configuration management for batch review execution."""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..strategies.errors import ErrorKind


def default_is_warning(output: Any) -> bool:
    """Return True when an analysis outcome carries a ``warning`` verdict.

    Works with pydantic models and plain objects (``output.state``) as well as
    mappings (``output["state"]``).
    """
    if output is None:
        return False
    if isinstance(output, dict):
        state = output.get("state")
    else:
        state = getattr(output, "state", None)
    return isinstance(state, str) and state.lower() == "warning"


@dataclass
class RetryPolicy:
    """Retry behavior for one error kind. Delays are in seconds."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.1

    def validate(self) -> None:
        """Validate retry policy."""
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be >= 1 (got {self.max_attempts}). "
                f"Set policy.max_attempts to a positive integer."
            )
        if self.base_delay < 0:
            raise ValueError(
                f"base_delay must be >= 0 (got {self.base_delay}). "
                f"Set policy.base_delay to a non-negative number in seconds."
            )
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay must be >= base_delay (got max_delay={self.max_delay}, base_delay={self.base_delay}). "
                f"Set policy.max_delay to be at least as large as policy.base_delay."
            )
        if self.backoff_multiplier < 1:
            raise ValueError(
                f"backoff_multiplier must be >= 1 (got {self.backoff_multiplier}). "
                f"Set policy.backoff_multiplier to 1.0 or higher (typical values: 2.0-3.0)."
            )
        if self.jitter < 0:
            raise ValueError(
                f"jitter must be >= 0 (got {self.jitter}). "
                f"Set policy.jitter to 0 to disable or a positive number of seconds."
            )

    def backoff(self, attempt: int) -> float:
        """Exponential delay after ``attempt`` failed, before jitter is added."""
        return min(
            self.base_delay * (self.backoff_multiplier ** (attempt - 1)),
            self.max_delay,
        )

    def with_overrides(self, **changes: Any) -> "RetryPolicy":
        """Return a validated copy with the given fields replaced."""
        policy = replace(self, **changes)
        policy.validate()
        return policy


@dataclass
class CacheConfig:
    """Configuration for the in-memory result cache."""

    max_memory_bytes: int = 100 * 1024 * 1024
    max_entries: int = 1000
    ttl_seconds: float | None = None  # None = entries never expire

    def validate(self) -> None:
        """Validate cache configuration."""
        if self.max_memory_bytes < 1:
            raise ValueError(
                f"max_memory_bytes must be >= 1 (got {self.max_memory_bytes}). "
                f"Set cache.max_memory_bytes to a positive number of bytes."
            )
        if self.max_entries < 1:
            raise ValueError(
                f"max_entries must be >= 1 (got {self.max_entries}). "
                f"Set cache.max_entries to a positive integer."
            )
        if self.ttl_seconds is not None and self.ttl_seconds <= 0:
            raise ValueError(
                f"ttl_seconds must be > 0 or None (got {self.ttl_seconds}). "
                f"Set cache.ttl_seconds to None to disable expiry."
            )


@dataclass
class ExecutionOptions:
    """Batch-level policy shared by the sequential and parallel executors."""

    continue_on_error: bool = True
    max_errors: int | None = None  # None = unbounded
    max_workers: int = 5  # Parallel mode only

    # Error kind whose retry policy wraps each job (None = no retries)
    retry_kind: "ErrorKind | None" = None

    # Progress reporting
    progress_interval: int = 10  # Log every N items

    # Decides whether a successful outcome is reported as WARNING
    is_warning: Callable[[Any], bool] = field(default=default_is_warning)

    def validate(self) -> None:
        """Validate execution options."""
        if self.max_errors is not None and self.max_errors < 0:
            raise ValueError(
                f"max_errors must be >= 0 or None (got {self.max_errors}). "
                f"Set options.max_errors to None for unbounded, or a non-negative integer."
            )
        if self.max_workers < 1:
            raise ValueError(
                f"max_workers must be >= 1 (got {self.max_workers}). "
                f"Set options.max_workers to a positive integer (typical: 2-10)."
            )
        if self.progress_interval < 1:
            raise ValueError(
                f"progress_interval must be >= 1 (got {self.progress_interval}). "
                f"Set options.progress_interval to a positive integer."
            )
        if not callable(self.is_warning):
            raise ValueError(
                "is_warning must be callable. "
                "Pass a function taking the analysis outcome and returning a bool."
            )


@dataclass
class ModeOverrides:
    """Caller overrides for processing mode selection."""

    force_sequential: bool = False
    force_parallel: bool = False


@dataclass
class ReviewerConfig:
    """Complete configuration for a batch reviewer."""

    execution: ExecutionOptions = field(default_factory=ExecutionOptions)
    cache: CacheConfig = field(default_factory=CacheConfig)

    def validate(self) -> None:
        """Validate complete configuration."""
        self.execution.validate()
        self.cache.validate()
