"""Performance tracking helpers for detection pipelines."""

from __future__ import annotations

import time
from collections import deque

from detectflow.pipeline.types import PerformanceMetrics


class PerformanceTracker:
    """Track inference latency and result throughput with moving averages."""

    def __init__(self, avg_frames: int = 30) -> None:
        """Initialize the tracker with a rolling window size."""
        self.avg_frames = avg_frames
        self.inference_times: deque[float] = deque(maxlen=avg_frames)
        self.result_times: deque[float] = deque(maxlen=avg_frames + 1)
        self.published = 0
        self.discarded = 0
        self.failures = 0

    def add_inference_time(self, elapsed_ms: float) -> None:
        """Record a single inference duration in milliseconds."""
        self.inference_times.append(elapsed_ms)

    def tick_result(self, now: float | None = None) -> None:
        """Record that a result was published to the tracked snapshot."""
        self.result_times.append(time.perf_counter() if now is None else now)
        self.published += 1

    def tick_discarded(self) -> None:
        """Record a result dropped because its session went stale."""
        self.discarded += 1

    def tick_failure(self) -> None:
        """Record an inference cycle that produced no output."""
        self.failures += 1

    def get_metrics(self) -> PerformanceMetrics:
        """Compute aggregated performance metrics."""
        metrics = PerformanceMetrics(
            published=self.published,
            discarded=self.discarded,
            failures=self.failures,
        )

        if self.inference_times:
            metrics.inference_ms = sum(self.inference_times) / len(self.inference_times)
            metrics.inference_capacity_fps = (
                1000.0 / metrics.inference_ms if metrics.inference_ms > 0 else 0.0
            )

        if len(self.result_times) >= 2:
            span = self.result_times[-1] - self.result_times[0]
            metrics.results_fps = (
                (len(self.result_times) - 1) / span if span > 0 else 0.0
            )

        return metrics
