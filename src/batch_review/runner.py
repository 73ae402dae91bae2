"""High-level entry point: pick a mode and run the batch."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Generic

from .base import BatchExecutor, ExecutionStats, ProcessingResult, ProgressCallbacks, TOutput
from .cache import ResultCache
from .core import JobProcessor, ModeOverrides, ReviewerConfig
from .mode import BatchDescriptor, ProcessingMode, ProcessingModeSelector
from .observers import ProcessorObserver
from .parallel import ParallelExecutor
from .sequential import SequentialExecutor
from .strategies import RetryEngine


@dataclass
class BatchResult(Generic[TOutput]):
    """Results of one batch together with the mode that produced them."""

    mode: ProcessingMode
    results: list[ProcessingResult[TOutput]] = field(default_factory=list)
    stats: ExecutionStats = field(init=False)

    def __post_init__(self):
        self.stats = ExecutionStats.from_results(self.results)

    @property
    def failed_targets(self) -> list[str]:
        return [r.target for r in self.results if not r.success]


class BatchReviewer(Generic[TOutput]):
    """
    Review a batch of targets with the processing mode its kind calls for.

    The cache, retry engine and observers are shared by every batch the
    reviewer runs. Without an explicit cache one is built from config.cache.

    Example:
        >>> reviewer = BatchReviewer(cache=ResultCache())
        >>> batch = BatchDescriptor(kind="files", targets=["a.py", "b.py"])
        >>> outcome = await reviewer.review(batch, processor)
        >>> print(outcome.stats.successful)
    """

    def __init__(
        self,
        config: ReviewerConfig | None = None,
        cache: ResultCache | None = None,
        retry_engine: RetryEngine | None = None,
        observers: list[ProcessorObserver] | None = None,
        selector: ProcessingModeSelector | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config or ReviewerConfig()
        self.config.validate()
        self.logger = logger or logging.getLogger(__name__)
        if cache is None:
            cache = ResultCache(self.config.cache, logger=self.logger)
        self.cache = cache
        self.retry_engine = retry_engine
        self.observers = observers or []
        self.selector = selector or ProcessingModeSelector(logger=self.logger)

    def executor_for(self, mode: ProcessingMode) -> BatchExecutor[TOutput]:
        """Build the executor for ``mode`` wired to the shared collaborators."""
        executor_cls = ParallelExecutor if mode is ProcessingMode.PARALLEL else SequentialExecutor
        return executor_cls(
            cache=self.cache,
            retry_engine=self.retry_engine,
            observers=self.observers,
            logger=self.logger,
        )

    async def review(
        self,
        batch: BatchDescriptor,
        processor: JobProcessor[TOutput],
        overrides: ModeOverrides | None = None,
        callbacks: ProgressCallbacks | None = None,
        contents: Mapping[str, str] | None = None,
    ) -> BatchResult[TOutput]:
        """
        Run every target of ``batch`` through ``processor``.

        Args:
            batch: Batch kind and ordered targets
            processor: Job processor invoked per target
            overrides: Force sequential or parallel processing
            callbacks: Progress hooks
            contents: Target contents, enabling the result cache

        Returns:
            BatchResult with the selected mode, per-target results and stats

        Raises:
            ValueError: If a target appears more than once in the batch
        """
        targets = list(batch.targets)
        mode = self.selector.determine_mode_advanced(batch, len(targets), overrides)
        self.logger.info(f"ℹ️  Reviewing {len(targets)} targets in {mode.value} mode")

        async with self.executor_for(mode) as executor:
            results = await executor.run(
                targets,
                processor,
                options=self.config.execution,
                callbacks=callbacks,
                contents=contents,
            )
        return BatchResult(mode=mode, results=results)
