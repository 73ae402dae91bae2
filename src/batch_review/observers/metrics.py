"""Metrics collection observer."""

import asyncio
import json
from typing import Any

from .base import BaseObserver, ProcessingEvent


class MetricsObserver(BaseObserver):
    """Collect execution metrics (safe under concurrent workers)."""

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics: dict[str, Any] = {
            "batches_started": 0,
            "items_processed": 0,
            "items_succeeded": 0,
            "items_warned": 0,
            "items_failed": 0,
            "retries": 0,
            "cache_hits": 0,
            "processing_times": [],
            "error_counts": {},
        }
        self._lock = asyncio.Lock()

    async def on_event(
        self,
        event: ProcessingEvent,
        data: dict[str, Any],
    ) -> None:
        """Collect metrics from events."""
        async with self._lock:
            if event == ProcessingEvent.BATCH_STARTED:
                self.metrics["batches_started"] += 1

            elif event == ProcessingEvent.ITEM_COMPLETED:
                self.metrics["items_processed"] += 1
                if data.get("status") == "warning":
                    self.metrics["items_warned"] += 1
                else:
                    self.metrics["items_succeeded"] += 1
                if "duration" in data:
                    self.metrics["processing_times"].append(data["duration"])

            elif event == ProcessingEvent.ITEM_FAILED:
                self.metrics["items_processed"] += 1
                self.metrics["items_failed"] += 1
                if "error_type" in data:
                    error_type = data["error_type"]
                    self.metrics["error_counts"][error_type] = (
                        self.metrics["error_counts"].get(error_type, 0) + 1
                    )

            elif event == ProcessingEvent.ITEM_RETRIED:
                self.metrics["retries"] += 1

            elif event == ProcessingEvent.CACHE_HIT:
                self.metrics["cache_hits"] += 1

    async def get_metrics(self) -> dict[str, Any]:
        """Get collected metrics with computed statistics."""
        async with self._lock:
            processing_times = self.metrics["processing_times"]
            processed = self.metrics["items_processed"]
            return {
                **self.metrics,
                "processing_times": list(processing_times),
                "error_counts": dict(self.metrics["error_counts"]),
                "avg_processing_time": (
                    sum(processing_times) / len(processing_times) if processing_times else 0
                ),
                "success_rate": (
                    (self.metrics["items_succeeded"] + self.metrics["items_warned"]) / processed
                    if processed > 0
                    else 0
                ),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        self.__init__()

    async def export_json(self) -> str:
        """Export metrics as JSON string.

        The raw processing time list is replaced by its length.
        """
        metrics = await self.get_metrics()
        export_data = {
            **metrics,
            "processing_times_count": len(metrics.get("processing_times", [])),
        }
        export_data.pop("processing_times", None)
        return json.dumps(export_data, indent=2)

    async def export_dict(self) -> dict[str, Any]:
        """Export metrics as a dictionary."""
        return await self.get_metrics()
