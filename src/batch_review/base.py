"""Base classes and interfaces for batch review execution."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from .core import ExecutionOptions, JobProcessor
from .observers import ProcessingEvent, ProcessorObserver
from .strategies import DefaultErrorClassifier, ErrorClassifier, ReviewError, RetryEngine

if TYPE_CHECKING:
    from .cache import ResultCache
    from .queue import JobQueue, QueuedJob

TOutput = TypeVar("TOutput")  # Analysis outcome type


class JobStatus(str, Enum):
    """Lifecycle of a queued job. Transitions only move forward."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.WARNING, JobStatus.ERROR)

    @property
    def rank(self) -> int:
        """Position in the lifecycle; terminal statuses share the last rank."""
        if self is JobStatus.PENDING:
            return 0
        if self is JobStatus.PROCESSING:
            return 1
        return 2


class ReviewAnalysis(BaseModel):
    """Default outcome of analyzing one target."""

    grade: str = "A"
    coverage: float = Field(default=0.0, ge=0, le=100)
    tests_present: bool = False
    value: str = "medium"
    state: Literal["pass", "warning", "fail"] = "pass"
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    summary: str = ""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessingResult(Generic[TOutput]):
    """
    Result of processing a single target.

    Attributes:
        target: Target that was processed
        index: Position of the target in the input order
        success: Whether the job completed without raising
        status: Terminal status (SUCCESS, WARNING or ERROR)
        duration: Wall-clock seconds spent on the job, retries included
        started_at: When the job started
        ended_at: When the job finished
        output: Analysis outcome if successful
        error: Classified error if failed
        cached: Whether the outcome came from the result cache
        attempts: Number of processor invocations
    """

    target: str
    success: bool
    status: JobStatus
    duration: float
    started_at: datetime
    ended_at: datetime | None = None
    output: TOutput | None = None
    error: ReviewError | None = None
    index: int = 0
    cached: bool = False
    attempts: int = 0

    def __post_init__(self):
        """Validate result consistency."""
        if not self.status.is_terminal:
            raise ValueError(
                f"status must be terminal (got {self.status.value}). "
                f"Use SUCCESS, WARNING or ERROR for processing results."
            )
        if not self.success and self.status is not JobStatus.ERROR:
            raise ValueError(
                f"failed result for {self.target!r} must have status ERROR (got {self.status.value})."
            )
        if not self.success and self.error is None:
            raise ValueError(f"failed result for {self.target!r} must carry a ReviewError.")
        if self.status is JobStatus.WARNING and not self.success:
            raise ValueError(f"warning result for {self.target!r} must be successful.")


@dataclass
class ExecutionStats:
    """Summary statistics derived from a list of processing results."""

    total: int = 0
    successful: int = 0
    warnings: int = 0
    failed: int = 0
    average_duration: float = 0.0
    total_duration: float = 0.0
    success_rate: float = 0.0

    @classmethod
    def from_results(cls, results: Sequence[ProcessingResult[Any]]) -> "ExecutionStats":
        total = len(results)
        successful = sum(1 for r in results if r.success and r.status is JobStatus.SUCCESS)
        warnings = sum(1 for r in results if r.success and r.status is JobStatus.WARNING)
        failed = sum(1 for r in results if not r.success)
        total_duration = sum(r.duration for r in results)
        return cls(
            total=total,
            successful=successful,
            warnings=warnings,
            failed=failed,
            average_duration=total_duration / total if total else 0.0,
            total_duration=total_duration,
            success_rate=successful / total if total else 0.0,
        )


# Callback signatures; each may be a plain function or a coroutine function
FileStartFunc = Callable[[str, int, int], Awaitable[None] | None]
FileCompleteFunc = Callable[[str, ProcessingResult[Any]], Awaitable[None] | None]
FileErrorFunc = Callable[[str, ReviewError], Awaitable[None] | None]


@dataclass
class ProgressCallbacks:
    """Progress hooks invoked by the executors."""

    on_file_start: FileStartFunc | None = None
    on_file_complete: FileCompleteFunc | None = None
    on_error: FileErrorFunc | None = None


class BatchExecutor(ABC, Generic[TOutput]):
    """
    Abstract base class for batch execution strategies.

    Subclasses implement how targets are scheduled:
    - SequentialExecutor: one target at a time, in input order
    - ParallelExecutor: a bounded pool of concurrent workers
    """

    def __init__(
        self,
        cache: "ResultCache | None" = None,
        retry_engine: RetryEngine | None = None,
        error_classifier: ErrorClassifier | None = None,
        observers: list[ProcessorObserver] | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the executor.

        Args:
            cache: Result cache consulted when a target's content is known
            retry_engine: Engine wrapping each job when options.retry_kind is set
            error_classifier: Strategy for classifying job failures
            observers: Observers notified of processing events
            logger: Logger to report progress on (default: module logger)
        """
        self.cache = cache
        self.retry_engine = retry_engine
        self.error_classifier = error_classifier or (
            retry_engine.classifier if retry_engine else DefaultErrorClassifier()
        )
        self.observers = observers or []
        self.logger = logger or logging.getLogger(type(self).__module__)

    async def __aenter__(self):
        """Context manager entry - returns self for use in async with."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensures cleanup of resources."""
        await self.cleanup()
        return False  # Don't suppress exceptions

    async def cleanup(self) -> None:
        """Release resources held by the executor. Default: no-op."""
        pass

    @abstractmethod
    async def run(
        self,
        targets: Sequence[str],
        processor: JobProcessor[TOutput],
        options: ExecutionOptions | None = None,
        callbacks: ProgressCallbacks | None = None,
        contents: Mapping[str, str] | None = None,
    ) -> list[ProcessingResult[TOutput]]:
        """
        Process every target and return results in input order.

        Args:
            targets: Ordered, unique targets
            processor: Job processor invoked once per target (plus retries)
            options: Batch-level policy (default: ExecutionOptions())
            callbacks: Progress hooks
            contents: Target contents, enabling the result cache

        Returns:
            Results for the targets that were processed, in input order

        Raises:
            ValueError: If a target appears more than once or options are invalid
        """
        pass

    @staticmethod
    def stats(results: Sequence[ProcessingResult[Any]]) -> ExecutionStats:
        """Summary statistics for a result list."""
        return ExecutionStats.from_results(results)

    async def _emit_event(self, event: ProcessingEvent, data: dict | None = None) -> None:
        """Emit event to all observers."""
        if not self.observers:
            return

        event_data = data or {}
        for observer in self.observers:
            try:
                await asyncio.wait_for(
                    observer.on_event(event, event_data),
                    timeout=5.0,  # 5 second timeout for observer callbacks
                )
            except (TimeoutError, asyncio.TimeoutError):
                self.logger.warning(
                    f"⚠️  Observer callback timed out after 5s for event {event.name}"
                )
            except Exception as e:
                self.logger.warning(f"⚠️  Observer error: {e}")

    async def _invoke_callback(self, name: str, callback: Callable | None, *args: Any) -> None:
        """Invoke a sync or async progress callback, logging any failure."""
        if callback is None:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            self.logger.warning(f"⚠️  Callback {name} failed: {type(e).__name__}: {e}")

    async def _process_job(
        self,
        job: "QueuedJob",
        queue: "JobQueue",
        processor: JobProcessor[TOutput],
        options: ExecutionOptions,
        callbacks: ProgressCallbacks,
        content: str | None,
    ) -> ProcessingResult[TOutput]:
        """Run one job end to end and map its outcome to a terminal result."""
        target = job.target
        total = len(queue)

        await self._invoke_callback(
            "on_file_start", callbacks.on_file_start, target, job.index, total
        )
        queue.update_status(target, JobStatus.PROCESSING)
        started_at = job.started_at or utcnow()
        start_time = time.time()
        await self._emit_event(
            ProcessingEvent.ITEM_STARTED, {"target": target, "index": job.index}
        )

        attempts = 0

        async def invoke() -> TOutput:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                self.logger.info(f"ℹ️  Retry attempt {attempts} for {target}")
                await self._emit_event(
                    ProcessingEvent.ITEM_RETRIED, {"target": target, "attempt": attempts}
                )
            return await processor.process(target, content)

        async def compute() -> TOutput:
            if self.retry_engine is not None and options.retry_kind is not None:
                return await self.retry_engine.with_retry(
                    invoke, options.retry_kind, {"target": target}
                )
            return await invoke()

        cached = False
        try:
            if self.cache is not None and content is not None:
                output, cached = await self.cache.get_or_compute(target, content, compute)
            else:
                output = await compute()
            warning = options.is_warning(output)
        except Exception as exc:
            error = self.error_classifier.classify(exc, {"target": target})
            queue.update_status(target, JobStatus.ERROR)
            result: ProcessingResult[TOutput] = ProcessingResult(
                target=target,
                index=job.index,
                success=False,
                status=JobStatus.ERROR,
                duration=time.time() - start_time,
                started_at=started_at,
                ended_at=job.ended_at or utcnow(),
                error=error,
                attempts=attempts,
            )
            self.logger.error(
                f"✗ Failed to process {target}: {error.kind.value}: {error.message[:200]}"
            )
            await self._emit_event(
                ProcessingEvent.ITEM_FAILED,
                {"target": target, "error_type": error.kind.value, "duration": result.duration},
            )
            await self._invoke_callback("on_error", callbacks.on_error, target, error)
            return result

        status = JobStatus.WARNING if warning else JobStatus.SUCCESS
        queue.update_status(target, status)
        result = ProcessingResult(
            target=target,
            index=job.index,
            success=True,
            status=status,
            duration=time.time() - start_time,
            started_at=started_at,
            ended_at=job.ended_at or utcnow(),
            output=output,
            cached=cached,
            attempts=attempts,
        )
        if cached:
            self.logger.debug(f"Cache hit for {target}")
            await self._emit_event(ProcessingEvent.CACHE_HIT, {"target": target})
        await self._emit_event(
            ProcessingEvent.ITEM_COMPLETED,
            {"target": target, "status": status.value, "duration": result.duration},
        )
        self.logger.debug(f"Completed processing {target} in {result.duration:.3f}s")
        await self._invoke_callback(
            "on_file_complete", callbacks.on_file_complete, target, result
        )
        return result

    def _log_progress(self, processed: int, total: int, failed: int) -> None:
        self.logger.info(
            f"ℹ️  Progress: {processed}/{total} "
            f"({processed / total * 100:.1f}%) | Failed: {failed}"
        )
