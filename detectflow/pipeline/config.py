"""Configuration for the detection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from detectflow.yolo.core.constants import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_NUM_CLASSES,
    MAX_MISSED_FRAMES,
    MIN_BOX_SIZE,
    MODEL_INPUT_SIZE,
    NMS_IOU_THRESHOLD,
)


@dataclass
class DetectorConfig:
    """Detection pipeline configuration settings."""

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    iou_threshold: float = NMS_IOU_THRESHOLD
    max_missed_frames: int = MAX_MISSED_FRAMES
    min_box_size: float = MIN_BOX_SIZE
    model_input_size: tuple[int, int] = MODEL_INPUT_SIZE
    default_num_classes: int = DEFAULT_NUM_CLASSES
    class_names: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate thresholds and freeze the class registry."""
        if not 0.0 < self.confidence_threshold <= 1.0:
            message = (
                "confidence_threshold must lie in (0, 1], got "
                f"{self.confidence_threshold}"
            )
            raise ValueError(message)
        if not 0.0 <= self.iou_threshold <= 1.0:
            message = f"iou_threshold must lie in [0, 1], got {self.iou_threshold}"
            raise ValueError(message)
        if self.max_missed_frames < 0:
            message = "max_missed_frames must be >= 0"
            raise ValueError(message)
        self.class_names = tuple(self.class_names)

    @property
    def num_classes_hint(self) -> int:
        """Class count used when inferring the record layout."""
        return len(self.class_names) or self.default_num_classes
