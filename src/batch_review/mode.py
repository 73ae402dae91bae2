"""Processing mode selection: sequential vs. parallel."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .core import ModeOverrides


class ProcessingMode(str, Enum):
    """How the targets of a batch are scheduled."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class BatchKind(str, Enum):
    """What a batch of targets was built from."""

    FILES = "files"
    DIRECTORY = "directory"
    CHANGES = "changes"
    PR = "pr"


# Kinds that are always processed one target at a time
SEQUENTIAL_KINDS = frozenset({BatchKind.FILES, BatchKind.DIRECTORY, BatchKind.CHANGES})


@dataclass
class BatchDescriptor:
    """
    A batch of targets submitted together.

    Attributes:
        kind: BatchKind, or any other string for kinds this library does not know
        targets: Ordered targets of the batch
        options: Free-form caller options carried alongside the batch
    """

    kind: BatchKind | str
    targets: Sequence[str] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Coerce known kind strings to BatchKind."""
        if isinstance(self.kind, BatchKind):
            return
        if not isinstance(self.kind, str):
            raise ValueError(
                f"kind must be a BatchKind or string (got {type(self.kind).__name__}: {self.kind!r})."
            )
        try:
            self.kind = BatchKind(self.kind.lower())
        except ValueError:
            pass  # Unknown kinds stay as plain strings


class ProcessingModeSelector:
    """Pure decision rules mapping a batch to a processing mode."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def determine_mode(self, batch: BatchDescriptor) -> ProcessingMode:
        """Select the mode from the batch kind alone."""
        kind = batch.kind
        self.logger.debug(f"Determining processing mode for batch kind: {_kind_name(kind)}")

        if kind in SEQUENTIAL_KINDS:
            self.logger.debug("Selected sequential processing for files/directory/changes analysis")
            return ProcessingMode.SEQUENTIAL

        if kind == BatchKind.PR:
            self.logger.debug("Selected parallel processing for PR analysis")
            return ProcessingMode.PARALLEL

        self.logger.debug("Defaulting to sequential processing")
        return ProcessingMode.SEQUENTIAL

    def determine_mode_advanced(
        self,
        batch: BatchDescriptor,
        target_count: int,
        overrides: ModeOverrides | None = None,
    ) -> ProcessingMode:
        """
        Select the mode honoring caller overrides.

        ``force_sequential`` wins over ``force_parallel``. Files, directory and
        changes batches are sequential whatever ``target_count`` is.
        """
        if overrides is not None:
            if overrides.force_sequential:
                self.logger.debug("Forced sequential processing mode")
                return ProcessingMode.SEQUENTIAL
            if overrides.force_parallel:
                self.logger.debug("Forced parallel processing mode")
                return ProcessingMode.PARALLEL

        if batch.kind in SEQUENTIAL_KINDS:
            self.logger.debug(
                f"Using sequential processing for {target_count} targets (always sequential)"
            )
            return ProcessingMode.SEQUENTIAL

        return self.determine_mode(batch)


def _kind_name(kind: BatchKind | str) -> str:
    return kind.value if isinstance(kind, BatchKind) else str(kind)
