"""Example usage of the batch_review module.

This demonstrates reviewing a batch of files sequentially and a pull request in
parallel, with the result cache, retries, observers and testing utilities.
"""

import asyncio
import logging
from pathlib import Path

from batch_review import (
    BatchDescriptor,
    BatchReviewer,
    ErrorKind,
    ExecutionOptions,
    ProgressCallbacks,
    ResultCache,
    RetryEngine,
    ReviewAnalysis,
    ReviewerConfig,
)
from batch_review.observers import MetricsObserver
from batch_review.testing import MockJobProcessor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)


class LineCountReviewer:
    """Toy processor that grades a file by its length."""

    async def process(self, target: str, content: str | None = None) -> ReviewAnalysis:
        if content is None:
            content = Path(target).read_text()
        lines = content.count("\n") + 1
        if lines > 300:
            return ReviewAnalysis(
                grade="C",
                state="warning",
                issues=[f"{target} has {lines} lines"],
                suggestions=["Split the module into smaller units"],
            )
        return ReviewAnalysis(grade="A", summary=f"{target}: {lines} lines")


def print_progress(target: str, index: int, total: int) -> None:
    logging.info(f"[{index + 1}/{total}] Reviewing {target}")


def print_error(target: str, error) -> None:
    logging.info(f"Review of {target} failed:\n{error.to_user_message()}")


async def example_files_review():
    """
    Example 1: Review local files one at a time, twice, to show cache hits.
    """
    logging.info("\n" + "=" * 80)
    logging.info("EXAMPLE 1: Sequential files review with caching")
    logging.info("=" * 80)

    files = sorted(str(p) for p in Path(__file__).parent.glob("*.py"))
    contents = {path: Path(path).read_text() for path in files}
    cache = ResultCache()
    reviewer = BatchReviewer(cache=cache)
    callbacks = ProgressCallbacks(on_file_start=print_progress, on_error=print_error)

    for run in (1, 2):
        outcome = await reviewer.review(
            BatchDescriptor(kind="files", targets=files),
            LineCountReviewer(),
            callbacks=callbacks,
            contents=contents,
        )
        logging.info(
            f"Run {run}: {outcome.stats.successful} passed, {outcome.stats.warnings} warnings, "
            f"{sum(r.cached for r in outcome.results)} from cache"
        )

    metrics = cache.metrics()
    logging.info(f"Cache hit rate: {metrics.hit_rate * 100:.1f}%")


async def example_pr_review_with_mocks():
    """
    Example 2: Review a pull request in parallel with MockJobProcessor (no real analysis).
    """
    logging.info("\n" + "=" * 80)
    logging.info("EXAMPLE 2: Parallel PR review with retries")
    logging.info("=" * 80)

    processor = MockJobProcessor(
        latency=0.05,
        fail_times={"api/client.py": 2},  # Transient network failures
        fail_on={"docs/missing.md": FileNotFoundError("ENOENT: docs/missing.md")},
        warning_targets=["db/models.py"],
    )
    metrics = MetricsObserver()
    reviewer = BatchReviewer(
        config=ReviewerConfig(
            execution=ExecutionOptions(max_workers=3, retry_kind=ErrorKind.NETWORK_ERROR)
        ),
        retry_engine=RetryEngine(),
        observers=[metrics],
    )

    batch = BatchDescriptor(
        kind="pr",
        targets=["api/client.py", "api/routes.py", "db/models.py", "docs/missing.md", "README.md"],
    )
    outcome = await reviewer.review(batch, processor)

    logging.info(f"\nReviewed {outcome.stats.total} files in {outcome.mode.value} mode:")
    for result in outcome.results:
        detail = result.error.kind.value if result.error else result.output.state
        logging.info(f"  {result.target}: {result.status.value} ({detail}, {result.attempts} attempts)")

    collected = await metrics.get_metrics()
    logging.info(f"  Retries: {collected['retries']}")
    logging.info(f"  Errors by kind: {collected['error_counts']}")
    logging.info("\nNote: this example never calls a real analysis service!")


async def main():
    """Run all examples."""
    await example_files_review()
    await example_pr_review_with_mocks()


if __name__ == "__main__":
    asyncio.run(main())
