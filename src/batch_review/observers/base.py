"""Observer system for executor events."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class ProcessingEvent(Enum):
    """
    Events emitted by the executors, with the keys of their payload.

    BATCH_STARTED: total, mode (and workers in parallel mode)
    BATCH_COMPLETED: total, processed, failed, duration
    ITEM_STARTED: target, index
    ITEM_COMPLETED: target, status, duration
    ITEM_FAILED: target, error_type, duration
    ITEM_RETRIED: target, attempt
    CACHE_HIT: target
    """

    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"
    ITEM_STARTED = "item_started"
    ITEM_COMPLETED = "item_completed"
    ITEM_FAILED = "item_failed"
    ITEM_RETRIED = "item_retried"
    CACHE_HIT = "cache_hit"


class ProcessorObserver(ABC):
    """Receives executor events. Must not raise; failures are logged and dropped."""

    @abstractmethod
    async def on_event(self, event: ProcessingEvent, data: dict[str, Any]) -> None:
        """Handle one event and its payload."""


class BaseObserver(ProcessorObserver):
    """Observer that ignores every event; subclass and override what you need."""

    async def on_event(self, event: ProcessingEvent, data: dict[str, Any]) -> None:
        return None


class LoggingObserver(BaseObserver):
    """Write every event and its payload to a logger."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        self.logger = logger or logging.getLogger(__name__)
        self.level = level

    async def on_event(self, event: ProcessingEvent, data: dict[str, Any]) -> None:
        details = ", ".join(f"{key}={value}" for key, value in data.items())
        self.logger.log(self.level, f"[{event.value}] {details}")
