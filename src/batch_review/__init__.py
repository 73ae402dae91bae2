"""Batch review execution utilities for running analyses over many targets.

This module schedules a per-target analysis over a batch of files, directory
entries, changes or pull request diffs, with content-addressed result caching
and typed error classification with per-kind retry policies.

Key features:
- Mode selection: sequential for files/directory/changes, parallel for PRs
- Ordered job queue with forward-only status tracking
- Memory-bounded LRU result cache keyed by content fingerprint
- Closed error taxonomy with retry, backoff and graceful degradation
- Observer pattern for monitoring

Example:
    >>> from batch_review import BatchDescriptor, BatchReviewer, ResultCache, RetryEngine
    >>> from batch_review.observers import MetricsObserver
    >>>
    >>> metrics = MetricsObserver()
    >>> reviewer = BatchReviewer(
    ...     cache=ResultCache(),
    ...     retry_engine=RetryEngine(),
    ...     observers=[metrics],
    ... )
    >>> batch = BatchDescriptor(kind="files", targets=["src/app.py", "src/db.py"])
    >>> outcome = await reviewer.review(batch, processor)
"""

# Core classes
from .base import (
    BatchExecutor,
    ExecutionStats,
    JobStatus,
    ProcessingResult,
    ProgressCallbacks,
    ReviewAnalysis,
)

# Caching
from .cache import CacheEntry, CacheMetrics, ResultCache

# Configuration
from .core import (
    CacheConfig,
    ExecutionOptions,
    JobProcessor,
    ModeOverrides,
    RetryPolicy,
    ReviewerConfig,
)

# Mode selection
from .mode import BatchDescriptor, BatchKind, ProcessingMode, ProcessingModeSelector

# Observers
from .observers import (
    BaseObserver,
    LoggingObserver,
    MetricsObserver,
    ProcessingEvent,
    ProcessorObserver,
)

# Executors
from .parallel import ParallelExecutor
from .queue import JobQueue, QueuedJob, QueueStats
from .runner import BatchResult, BatchReviewer
from .sequential import SequentialExecutor

# Error classification and retry strategies
from .strategies import (
    ERROR_GUIDANCE,
    RETRY_POLICIES,
    DefaultErrorClassifier,
    Err,
    ErrorClassifier,
    ErrorKind,
    Ok,
    Result,
    RetryEngine,
    ReviewError,
    get_error_message,
    is_review_error,
)

__all__ = [
    # Core
    "BatchExecutor",
    "ExecutionStats",
    "JobStatus",
    "ProcessingResult",
    "ProgressCallbacks",
    "ReviewAnalysis",
    # Queue
    "JobQueue",
    "QueuedJob",
    "QueueStats",
    # Caching
    "CacheEntry",
    "CacheMetrics",
    "ResultCache",
    # Configuration
    "CacheConfig",
    "ExecutionOptions",
    "JobProcessor",
    "ModeOverrides",
    "RetryPolicy",
    "ReviewerConfig",
    # Mode selection
    "BatchDescriptor",
    "BatchKind",
    "ProcessingMode",
    "ProcessingModeSelector",
    # Error Classification Strategies
    "ERROR_GUIDANCE",
    "RETRY_POLICIES",
    "ErrorClassifier",
    "DefaultErrorClassifier",
    "ErrorKind",
    "ReviewError",
    "RetryEngine",
    "Ok",
    "Err",
    "Result",
    "get_error_message",
    "is_review_error",
    # Observers
    "ProcessorObserver",
    "BaseObserver",
    "LoggingObserver",
    "MetricsObserver",
    "ProcessingEvent",
    # Executors
    "SequentialExecutor",
    "ParallelExecutor",
    "BatchResult",
    "BatchReviewer",
]

__version__ = "0.1.0"
