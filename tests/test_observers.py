"""Tests for observers."""

import asyncio
import json
import logging

import pytest

from batch_review import (
    BaseObserver,
    ExecutionOptions,
    LoggingObserver,
    MetricsObserver,
    ProcessingEvent,
    ResultCache,
    RetryEngine,
    SequentialExecutor,
)
from batch_review.strategies import ErrorKind
from batch_review.testing import MockJobProcessor


async def no_sleep(delay: float) -> None:
    pass


class RecordingObserver(BaseObserver):
    def __init__(self):
        self.events = []

    async def on_event(self, event, data):
        self.events.append((event, data))


@pytest.mark.asyncio
async def test_event_sequence():
    """Batch and item events are emitted in order."""
    observer = RecordingObserver()
    executor = SequentialExecutor(observers=[observer])

    await executor.run(["a"], MockJobProcessor())

    assert [event for event, _ in observer.events] == [
        ProcessingEvent.BATCH_STARTED,
        ProcessingEvent.ITEM_STARTED,
        ProcessingEvent.ITEM_COMPLETED,
        ProcessingEvent.BATCH_COMPLETED,
    ]


@pytest.mark.asyncio
async def test_metrics_observer():
    """MetricsObserver counts successes, warnings, failures, retries and cache hits."""
    metrics = MetricsObserver()
    cache = ResultCache()
    processor = MockJobProcessor(
        warning_targets=["w"],
        fail_on={"bad": RuntimeError("401 Unauthorized")},
        fail_times={"flaky": 1},
    )
    executor = SequentialExecutor(
        cache=cache, retry_engine=RetryEngine(sleep=no_sleep), observers=[metrics]
    )
    options = ExecutionOptions(retry_kind=ErrorKind.NETWORK_ERROR)
    contents = {"ok": "1", "w": "2"}

    await executor.run(["ok", "w", "bad", "flaky"], processor, options, contents=contents)
    await executor.run(["ok"], processor, options, contents=contents)

    data = await metrics.get_metrics()
    assert data["batches_started"] == 2
    assert data["items_processed"] == 5
    assert data["items_succeeded"] == 3
    assert data["items_warned"] == 1
    assert data["items_failed"] == 1
    assert data["retries"] == 1
    assert data["cache_hits"] == 1
    assert data["error_counts"] == {"AUTHENTICATION_FAILED": 1}
    assert data["success_rate"] == pytest.approx(4 / 5)

    exported = json.loads(await metrics.export_json())
    assert exported["processing_times_count"] == 4
    assert "processing_times" not in exported

    metrics.reset()
    assert (await metrics.get_metrics())["items_processed"] == 0


@pytest.mark.asyncio
async def test_failing_observer_does_not_break_batch():
    """Observer exceptions are logged and ignored."""

    class BrokenObserver(BaseObserver):
        async def on_event(self, event, data):
            raise RuntimeError("observer bug")

    results = await SequentialExecutor(observers=[BrokenObserver()]).run(
        ["a", "b"], MockJobProcessor()
    )

    assert all(r.success for r in results)


@pytest.mark.asyncio
async def test_metrics_observer_concurrent_updates():
    """Concurrent events are all counted."""
    metrics = MetricsObserver()

    await asyncio.gather(
        *(
            metrics.on_event(ProcessingEvent.ITEM_COMPLETED, {"status": "success", "duration": 0.1})
            for _ in range(100)
        )
    )

    data = await metrics.get_metrics()
    assert data["items_processed"] == 100
    assert data["avg_processing_time"] == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_logging_observer(caplog):
    """LoggingObserver writes each event with its payload."""
    observer = LoggingObserver(level=logging.INFO)

    with caplog.at_level(logging.INFO):
        await SequentialExecutor(observers=[observer]).run(
            ["a.py"], MockJobProcessor(fail_on={"a.py": PermissionError("403")})
        )

    assert "[batch_started] total=1, mode=sequential" in caplog.text
    assert "[item_failed] target=a.py, error_type=PERMISSION_DENIED" in caplog.text
