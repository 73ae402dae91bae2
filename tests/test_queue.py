"""Tests for the ordered job queue."""

import logging

import pytest

from batch_review import JobQueue, JobStatus


def test_queue_preserves_input_order():
    """Iteration and processing order follow the input order."""
    queue = JobQueue(["c.py", "a.py", "b.py"])

    assert queue.get_processing_order() == ["c.py", "a.py", "b.py"]
    assert [job.target for job in queue] == ["c.py", "a.py", "b.py"]
    assert [job.index for job in queue.get_all()] == [0, 1, 2]
    assert len(queue) == 3
    assert "a.py" in queue


def test_status_changes_do_not_reorder():
    """Updating statuses never changes the order of get_all()."""
    queue = JobQueue(["a", "b", "c"])
    queue.update_status("c", JobStatus.PROCESSING)
    queue.update_status("c", JobStatus.SUCCESS)
    queue.update_status("a", JobStatus.ERROR)

    assert [job.target for job in queue.get_all()] == ["a", "b", "c"]


def test_duplicate_targets_rejected():
    """A target may appear only once."""
    with pytest.raises(ValueError, match="duplicate target"):
        JobQueue(["a", "b", "a"])


def test_empty_target_rejected():
    """Targets must be non-empty strings."""
    with pytest.raises(ValueError, match="non-empty string"):
        JobQueue(["a", ""])


def test_timestamps_stamped_on_transitions():
    """started_at is set on PROCESSING, ended_at on a terminal status."""
    queue = JobQueue(["a"])
    job = queue.get("a")
    assert job.started_at is None and job.ended_at is None

    queue.update_status("a", JobStatus.PROCESSING)
    assert job.started_at is not None
    assert job.ended_at is None

    queue.update_status("a", JobStatus.WARNING)
    assert job.status is JobStatus.WARNING
    assert job.ended_at is not None
    assert job.ended_at >= job.started_at


def test_backward_transition_ignored(caplog):
    """Terminal jobs do not move back, and the attempt is logged."""
    queue = JobQueue(["a"])
    queue.update_status("a", JobStatus.PROCESSING)
    queue.update_status("a", JobStatus.SUCCESS)

    with caplog.at_level(logging.WARNING):
        queue.update_status("a", JobStatus.PROCESSING)
        queue.update_status("a", JobStatus.ERROR)

    assert queue.get("a").status is JobStatus.SUCCESS
    assert "backward transition" in caplog.text


def test_unknown_target_logged_and_ignored(caplog):
    """Updating an unknown target does nothing but log."""
    queue = JobQueue(["a"])
    with caplog.at_level(logging.WARNING):
        queue.update_status("missing", JobStatus.SUCCESS)
    assert "not found" in caplog.text
    assert queue.get("missing") is None


def test_next_and_completion():
    """next() yields the first pending job; the queue completes when all are terminal."""
    queue = JobQueue(["a", "b"])
    assert queue.next().target == "a"
    assert not queue.is_complete()

    queue.update_status("a", JobStatus.SUCCESS)
    assert queue.next().target == "b"

    queue.update_status("b", JobStatus.ERROR)
    assert queue.next() is None
    assert queue.is_complete()


def test_stats_and_get_by_status():
    """Counts per status and filtered views in input order."""
    queue = JobQueue(["a", "b", "c", "d", "e"])
    queue.update_status("a", JobStatus.SUCCESS)
    queue.update_status("b", JobStatus.WARNING)
    queue.update_status("c", JobStatus.ERROR)
    queue.update_status("e", JobStatus.PROCESSING)

    stats = queue.stats()
    assert stats.total == 5
    assert stats.succeeded == 1
    assert stats.warnings == 1
    assert stats.failed == 1
    assert stats.processing == 1
    assert stats.pending == 1
    assert [job.target for job in queue.get_by_status(JobStatus.PENDING)] == ["d"]


def test_reset_returns_jobs_to_pending():
    """reset() clears statuses and timestamps but keeps order."""
    queue = JobQueue(["a", "b"])
    queue.update_status("a", JobStatus.PROCESSING)
    queue.update_status("a", JobStatus.SUCCESS)

    queue.reset()

    job = queue.get("a")
    assert job.status is JobStatus.PENDING
    assert job.started_at is None and job.ended_at is None
    assert queue.get_processing_order() == ["a", "b"]
