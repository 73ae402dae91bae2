"""Core components for batch review execution."""

from .config import (
    CacheConfig,
    ExecutionOptions,
    ModeOverrides,
    RetryPolicy,
    ReviewerConfig,
    default_is_warning,
)
from .protocols import JobProcessor, SleepFunc, TOutput

__all__ = [
    "CacheConfig",
    "ExecutionOptions",
    "ModeOverrides",
    "RetryPolicy",
    "ReviewerConfig",
    "default_is_warning",
    "JobProcessor",
    "SleepFunc",
    "TOutput",
]
