"""Tests for the BatchReviewer entry point."""

import pytest

from batch_review import (
    BatchDescriptor,
    BatchKind,
    BatchReviewer,
    ExecutionOptions,
    MetricsObserver,
    ModeOverrides,
    ProcessingMode,
    ResultCache,
    ReviewerConfig,
)
from batch_review.parallel import ParallelExecutor
from batch_review.sequential import SequentialExecutor
from batch_review.testing import MockJobProcessor


@pytest.mark.asyncio
async def test_files_batch_runs_sequentially():
    """Files batches use the sequential executor."""
    reviewer = BatchReviewer()
    processor = MockJobProcessor(latency=0.001)
    batch = BatchDescriptor(kind="files", targets=["a.py", "b.py", "c.py"])

    outcome = await reviewer.review(batch, processor)

    assert outcome.mode is ProcessingMode.SEQUENTIAL
    assert [r.target for r in outcome.results] == ["a.py", "b.py", "c.py"]
    assert outcome.stats.successful == 3
    assert processor.max_active == 1


@pytest.mark.asyncio
async def test_pr_batch_runs_in_parallel():
    """PR batches use the parallel executor with the configured worker count."""
    config = ReviewerConfig(execution=ExecutionOptions(max_workers=4))
    reviewer = BatchReviewer(config=config)
    processor = MockJobProcessor(latency=0.01)
    batch = BatchDescriptor(kind=BatchKind.PR, targets=[f"f{i}.py" for i in range(8)])

    outcome = await reviewer.review(batch, processor)

    assert outcome.mode is ProcessingMode.PARALLEL
    assert [r.target for r in outcome.results] == batch.targets
    assert processor.max_active > 1


@pytest.mark.asyncio
async def test_overrides_applied():
    """force_sequential turns a PR batch sequential."""
    reviewer = BatchReviewer()
    batch = BatchDescriptor(kind="pr", targets=["a", "b"])

    outcome = await reviewer.review(
        batch, MockJobProcessor(), overrides=ModeOverrides(force_sequential=True)
    )

    assert outcome.mode is ProcessingMode.SEQUENTIAL


@pytest.mark.asyncio
async def test_shared_collaborators():
    """The cache and observers are shared across batches."""
    cache = ResultCache()
    metrics = MetricsObserver()
    reviewer = BatchReviewer(cache=cache, observers=[metrics])
    processor = MockJobProcessor(fail_on={"bad.py": RuntimeError("bad output")})
    batch = BatchDescriptor(kind="changes", targets=["a.py", "bad.py"])
    contents = {"a.py": "a", "bad.py": "b"}

    first = await reviewer.review(batch, processor, contents=contents)
    second = await reviewer.review(batch, processor, contents=contents)

    assert first.failed_targets == ["bad.py"]
    assert second.results[0].cached
    assert processor.calls_per_target == {"a.py": 1, "bad.py": 2}
    assert (await metrics.get_metrics())["batches_started"] == 2


def test_executor_for_mode():
    """Each mode maps to its executor class."""
    reviewer = BatchReviewer()
    assert isinstance(reviewer.executor_for(ProcessingMode.SEQUENTIAL), SequentialExecutor)
    assert isinstance(reviewer.executor_for(ProcessingMode.PARALLEL), ParallelExecutor)


def test_invalid_config_rejected():
    """Configuration is validated up front."""
    with pytest.raises(ValueError, match="max_workers"):
        BatchReviewer(config=ReviewerConfig(execution=ExecutionOptions(max_workers=0)))


@pytest.mark.asyncio
async def test_duplicate_targets_rejected():
    """A batch listing a target twice is refused before anything runs."""
    processor = MockJobProcessor()
    batch = BatchDescriptor(kind="files", targets=["a.py", "b.py", "a.py"])

    with pytest.raises(ValueError, match="duplicate target"):
        await BatchReviewer().review(batch, processor)

    assert processor.call_count == 0
