"""DetectFlow: real-time decoding of YOLO detection tensors."""

from detectflow.pipeline import (
    BoundingBox,
    Candidate,
    DetectionRunner,
    DetectionSession,
    DetectorConfig,
    InferenceRequest,
    ModelInfo,
    RawTensor,
    RecordFormat,
    TemporalTracker,
    TrackedDetection,
    configure_logging,
)
from detectflow.yolo import (
    FormatDetector,
    decode_output,
    filter_by_confidence,
    load_class_names,
    non_max_suppression,
)


__all__ = [
    "BoundingBox",
    "Candidate",
    "DetectionRunner",
    "DetectionSession",
    "DetectorConfig",
    "FormatDetector",
    "InferenceRequest",
    "ModelInfo",
    "RawTensor",
    "RecordFormat",
    "TemporalTracker",
    "TrackedDetection",
    "configure_logging",
    "decode_output",
    "filter_by_confidence",
    "load_class_names",
    "non_max_suppression",
]
