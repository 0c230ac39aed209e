"""Shared data structures for detection pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np


class CoordinateFormat(Enum):
    """Box encoding used by a detection record."""

    CENTER = "center"
    CORNER = "corner"


class RecordFormat(Enum):
    """Per-detection record layouts produced by common export pipelines."""

    POST_PROCESSED_CORNER = "post-processed"
    NO_OBJECTNESS_CENTER = "no-objectness"
    STANDARD_CENTER = "standard"
    CUSTOM = "custom"


@dataclass(frozen=True)
class RawTensor:
    """Flat model output buffer plus its shape descriptor."""

    data: np.ndarray
    shape: tuple[int, ...]

    @classmethod
    def from_array(cls, arr: object) -> RawTensor:
        """Build a tensor from any array-like engine output."""
        array = np.asarray(arr)
        return cls(data=array.reshape(-1), shape=tuple(int(d) for d in array.shape))

    @property
    def rank(self) -> int:
        """Number of dimensions in the shape."""
        return len(self.shape)


@dataclass(frozen=True)
class ModelInfo:
    """Record layout resolved once per model session."""

    detection_length: int
    num_detections: int
    is_transposed: bool
    coordinate_format: CoordinateFormat
    has_objectness: bool
    num_classes: int
    record_format: RecordFormat
    detected: bool = True


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in canvas pixels, origin top-left."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_dict(self) -> dict[str, float]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class Candidate:
    """Single decoded detection before temporal smoothing."""

    bbox: BoundingBox
    class_index: int
    confidence: float
    class_name: str = ""


@dataclass(frozen=True)
class TrackedDetection:
    """Candidate kept alive across frames that produced no detections."""

    candidate: Candidate
    missed_frames: int = 0

    @property
    def bbox(self) -> BoundingBox:
        return self.candidate.bbox

    @property
    def class_name(self) -> str:
        return self.candidate.class_name

    @property
    def class_index(self) -> int:
        return self.candidate.class_index

    @property
    def confidence(self) -> float:
        return self.candidate.confidence

    def aged(self) -> TrackedDetection:
        """Return a copy with one more missed frame."""
        return TrackedDetection(self.candidate, self.missed_frames + 1)

    def as_dict(self) -> dict[str, object]:
        """Serialize for rendering collaborators."""
        return {
            "class_name": self.class_name,
            "class_index": self.class_index,
            "confidence": self.confidence,
            "bbox": self.bbox.as_dict(),
            "missed_frames": self.missed_frames,
        }


@dataclass
class PerformanceMetrics:
    """Container for performance metrics."""

    inference_ms: float = 0.0
    inference_capacity_fps: float = 0.0
    results_fps: float = 0.0
    published: int = 0
    discarded: int = 0
    failures: int = 0
