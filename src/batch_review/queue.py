"""Ordered job queue with per-target status tracking."""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime

from .base import JobStatus, utcnow


@dataclass
class QueuedJob:
    """
    A target waiting in (or moving through) the queue.

    Attributes:
        target: Target identifier
        status: Current lifecycle status
        index: Fixed position in the input order
        started_at: First transition into PROCESSING
        ended_at: Transition into a terminal status
    """

    target: str
    status: JobStatus = JobStatus.PENDING
    index: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None


@dataclass
class QueueStats:
    """Job counts per status."""

    total: int = 0
    pending: int = 0
    processing: int = 0
    succeeded: int = 0
    warnings: int = 0
    failed: int = 0


class JobQueue:
    """Holds targets in input order and tracks the status of each one."""

    def __init__(self, targets: Sequence[str], logger: logging.Logger | None = None):
        """
        Initialize the queue with every target PENDING.

        Args:
            targets: Ordered targets; each must be a unique non-empty string
            logger: Logger for queue diagnostics (default: module logger)

        Raises:
            ValueError: If a target is empty or appears twice
        """
        self.logger = logger or logging.getLogger(__name__)
        self._order: list[str] = []
        self._jobs: dict[str, QueuedJob] = {}

        for index, target in enumerate(targets):
            if not isinstance(target, str) or not target.strip():
                raise ValueError(
                    f"target must be a non-empty string (got {type(target).__name__}: {target!r}). "
                    f"Provide a file path or other identifier for every target."
                )
            if target in self._jobs:
                raise ValueError(
                    f"duplicate target {target!r} at position {index}. "
                    f"Each target may appear only once per batch."
                )
            self._order.append(target)
            self._jobs[target] = QueuedJob(target=target, index=index)

        self.logger.debug(f"Initialized processing queue with {len(self._order)} targets")

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[QueuedJob]:
        return iter(self.get_all())

    def __contains__(self, target: object) -> bool:
        return target in self._jobs

    def update_status(self, target: str, status: JobStatus) -> None:
        """
        Move a target to ``status``, stamping start and end times.

        Unknown targets and backward transitions are logged and ignored.
        """
        job = self._jobs.get(target)
        if job is None:
            self.logger.warning(f"⚠️  Target not found in queue: {target}")
            return

        status = JobStatus(status)
        if status.rank <= job.status.rank:
            if status is not job.status:
                self.logger.warning(
                    f"⚠️  Ignoring backward transition for {target}: "
                    f"{job.status.value} -> {status.value}"
                )
            return

        now = utcnow()
        job.status = status
        if status is JobStatus.PROCESSING and job.started_at is None:
            job.started_at = now
        elif status.is_terminal:
            job.ended_at = now

        self.logger.debug(f"Updated status: {target} -> {status.value}")

    def get(self, target: str) -> QueuedJob | None:
        """Job for ``target``, or None if it is not queued."""
        return self._jobs.get(target)

    def get_all(self) -> list[QueuedJob]:
        """All jobs in input order."""
        return [self._jobs[target] for target in self._order]

    def get_by_status(self, status: JobStatus) -> list[QueuedJob]:
        """Jobs currently in ``status``, in input order."""
        status = JobStatus(status)
        return [job for job in self.get_all() if job.status is status]

    def next(self) -> QueuedJob | None:
        """First PENDING job in input order, or None."""
        for job in self.get_all():
            if job.status is JobStatus.PENDING:
                return job
        return None

    def is_complete(self) -> bool:
        """True when no job is PENDING or PROCESSING."""
        return all(job.status.is_terminal for job in self._jobs.values())

    def stats(self) -> QueueStats:
        """Counts per status."""
        jobs = list(self._jobs.values())
        return QueueStats(
            total=len(jobs),
            pending=sum(1 for j in jobs if j.status is JobStatus.PENDING),
            processing=sum(1 for j in jobs if j.status is JobStatus.PROCESSING),
            succeeded=sum(1 for j in jobs if j.status is JobStatus.SUCCESS),
            warnings=sum(1 for j in jobs if j.status is JobStatus.WARNING),
            failed=sum(1 for j in jobs if j.status is JobStatus.ERROR),
        )

    def get_processing_order(self) -> list[str]:
        """Targets in input order."""
        return list(self._order)

    def reset(self) -> None:
        """Return every job to PENDING and clear timestamps; order is kept."""
        for job in self._jobs.values():
            job.status = JobStatus.PENDING
            job.started_at = None
            job.ended_at = None
        self.logger.debug("Reset processing queue")
