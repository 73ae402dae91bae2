"""Parallel batch executor"""

import asyncio
import time
from collections.abc import Mapping, Sequence

from .base import BatchExecutor, ProcessingResult, ProgressCallbacks, TOutput
from .core import ExecutionOptions, JobProcessor
from .observers import ProcessingEvent
from .queue import JobQueue, QueuedJob


class ParallelExecutor(BatchExecutor[TOutput]):
    """
    Executor that fans targets out to a bounded pool of asyncio workers.

    Used for pull request reviews. Results are written into slots indexed by
    input position, so the returned list is in input order regardless of
    completion order.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._workers: set[asyncio.Task] = set()  # Workers of every run in flight

    async def cleanup(self) -> None:
        """Cancel the workers of every run still in flight."""
        await self._cancel_workers(list(self._workers))

    async def _cancel_workers(self, workers: list[asyncio.Task]) -> None:
        """Cancel ``workers`` and forget them; other runs are left alone."""
        if not workers:
            return

        self.logger.debug(f"Cleaning up {len(workers)} workers")
        for worker in workers:
            if not worker.done():
                worker.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(*workers, return_exceptions=True), timeout=2.0
            )
        except (TimeoutError, asyncio.TimeoutError):
            self.logger.warning("⚠️  Some workers did not cancel within timeout")
        finally:
            self._workers.difference_update(workers)

    async def run(
        self,
        targets: Sequence[str],
        processor: JobProcessor[TOutput],
        options: ExecutionOptions | None = None,
        callbacks: ProgressCallbacks | None = None,
        contents: Mapping[str, str] | None = None,
    ) -> list[ProcessingResult[TOutput]]:
        """
        Process targets concurrently and return their results in input order.

        ``continue_on_error`` and ``max_errors`` stop further dispatch; jobs
        already running are allowed to finish. Jobs never started stay
        PENDING and are left out of the returned list.

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
        num_workers = min(options.max_workers, total)
        slots: list[ProcessingResult[TOutput] | None] = [None] * total
        stop = asyncio.Event()
        counters = {"processed": 0, "failed": 0}
        start_time = time.time()

        work: asyncio.Queue[QueuedJob | None] = asyncio.Queue()
        for job in queue.get_all():
            work.put_nowait(job)
        for _ in range(num_workers):
            work.put_nowait(None)  # Sentinel per worker

        async def worker(worker_id: int) -> None:
            while True:
                job = await work.get()
                if job is None:
                    self.logger.debug(f"Worker {worker_id} finished (no more work)")
                    return
                if stop.is_set():
                    continue

                result = await self._process_job(
                    job, queue, processor, options, callbacks, contents.get(job.target)
                )
                slots[job.index] = result
                counters["processed"] += 1

                if not result.success:
                    counters["failed"] += 1
                    if not options.continue_on_error:
                        self.logger.warning(
                            f"⚠️  Stopping dispatch after error on {job.target} "
                            f"(continue_on_error=False)"
                        )
                        stop.set()
                    elif (
                        options.max_errors is not None
                        and counters["failed"] >= options.max_errors
                    ):
                        self.logger.warning(
                            f"⚠️  Stopping dispatch: reached maximum error limit "
                            f"({options.max_errors})"
                        )
                        stop.set()

                processed = counters["processed"]
                if processed % options.progress_interval == 0 and processed < total:
                    self._log_progress(processed, total, counters["failed"])

        self.logger.info(
            f"ℹ️  Starting parallel processing of {total} targets with {num_workers} workers"
        )
        await self._emit_event(
            ProcessingEvent.BATCH_STARTED,
            {"total": total, "mode": "parallel", "workers": num_workers},
        )

        if options.max_errors == 0:
            stop.set()

        workers = [asyncio.create_task(worker(worker_id)) for worker_id in range(num_workers)]
        self._workers.update(workers)
        try:
            await asyncio.gather(*workers)
        finally:
            await self._cancel_workers(workers)

        results = [result for result in slots if result is not None]
        stats = self.stats(results)
        elapsed = time.time() - start_time
        self.logger.info(
            f"✓ Parallel processing complete: {stats.successful} succeeded, "
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
