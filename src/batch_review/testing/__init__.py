"""Testing utilities for batch_review."""

from .mocks import MockJobProcessor

__all__ = ["MockJobProcessor"]
