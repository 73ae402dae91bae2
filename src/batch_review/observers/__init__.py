"""Observers for monitoring executor events."""

from .base import BaseObserver, LoggingObserver, ProcessingEvent, ProcessorObserver
from .metrics import MetricsObserver

__all__ = [
    "ProcessorObserver",
    "BaseObserver",
    "LoggingObserver",
    "ProcessingEvent",
    "MetricsObserver",
]
