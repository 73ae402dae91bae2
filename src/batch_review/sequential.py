"""Sequential batch executor"""

import time
from collections.abc import Mapping, Sequence

from .base import BatchExecutor, ProcessingResult, ProgressCallbacks, TOutput
from .core import ExecutionOptions, JobProcessor
from .observers import ProcessingEvent
from .queue import JobQueue


class SequentialExecutor(BatchExecutor[TOutput]):
    """
    Executor that processes targets one at a time, strictly in input order.

    Used for file, directory and change reviews where each result is shown
    as soon as it is ready and the processor must not be hit concurrently.
    """

    async def run(
        self,
        targets: Sequence[str],
        processor: JobProcessor[TOutput],
        options: ExecutionOptions | None = None,
        callbacks: ProgressCallbacks | None = None,
        contents: Mapping[str, str] | None = None,
    ) -> list[ProcessingResult[TOutput]]:
        """
        Process targets in order and return their results in the same order.

        Stops early when ``continue_on_error`` is False and a target fails, or
        once ``max_errors`` failures have accumulated. Targets that were never
        started are left out of the returned list.

        Raises:
            ValueError: If a target appears more than once or options are invalid
        """
        options = options or ExecutionOptions()
        options.validate()
        callbacks = callbacks or ProgressCallbacks()
        contents = contents or {}

        if not targets:
            self.logger.info("ℹ️  No targets to process")
            return []

        queue = JobQueue(targets, logger=self.logger)
        total = len(queue)
        results: list[ProcessingResult[TOutput]] = []
        error_count = 0
        start_time = time.time()

        self.logger.info(f"ℹ️  Starting sequential processing of {total} targets")
        await self._emit_event(ProcessingEvent.BATCH_STARTED, {"total": total, "mode": "sequential"})

        for job in queue.get_all():
            if options.max_errors is not None and error_count >= options.max_errors:
                self.logger.warning(
                    f"⚠️  Stopping: reached maximum error limit ({options.max_errors})"
                )
                break

            result = await self._process_job(
                job, queue, processor, options, callbacks, contents.get(job.target)
            )
            results.append(result)

            if not result.success:
                error_count += 1
                if not options.continue_on_error:
                    self.logger.warning(
                        f"⚠️  Stopping after error on {job.target} (continue_on_error=False)"
                    )
                    break

            processed = len(results)
            if processed % options.progress_interval == 0 and processed < total:
                self._log_progress(processed, total, error_count)

        stats = self.stats(results)
        elapsed = time.time() - start_time
        self.logger.info(
            f"✓ Sequential processing complete: {stats.successful} succeeded, "
            f"{stats.warnings} warnings, {stats.failed} failed "
            f"({len(results)}/{total} processed in {elapsed:.2f}s)"
        )
        await self._emit_event(
            ProcessingEvent.BATCH_COMPLETED,
            {
                "total": total,
                "processed": len(results),
                "failed": stats.failed,
                "duration": elapsed,
            },
        )
        return results
