from __future__ import annotations

from detectflow.pipeline.types import (
    BoundingBox,
    Candidate,
    CoordinateFormat,
    ModelInfo,
    PerformanceMetrics,
    RawTensor,
    RecordFormat,
    TrackedDetection,
)
from detectflow.pipeline.config import DetectorConfig
from detectflow.pipeline.logging import configure_logging
from detectflow.pipeline.metrics.performance import PerformanceTracker
from detectflow.pipeline.runner import DetectionRunner, InferenceRequest
from detectflow.pipeline.session import DetectionSession
from detectflow.pipeline.tracking.temporal import TemporalTracker


__all__ = [
    "BoundingBox",
    "Candidate",
    "CoordinateFormat",
    "DetectionRunner",
    "DetectionSession",
    "DetectorConfig",
    "InferenceRequest",
    "ModelInfo",
    "PerformanceMetrics",
    "PerformanceTracker",
    "RawTensor",
    "RecordFormat",
    "TemporalTracker",
    "TrackedDetection",
    "configure_logging",
]
