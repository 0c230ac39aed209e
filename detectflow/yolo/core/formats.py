"""Detection-record layout inference for YOLO exports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from detectflow.pipeline.types import CoordinateFormat, ModelInfo, RecordFormat
from detectflow.yolo.core.constants import DEFAULT_NUM_CLASSES, POST_PROCESSED_LENGTH


if TYPE_CHECKING:
    from collections.abc import Sequence


def expected_record_lengths(num_classes: int) -> tuple[int, int, int]:
    """Return the record lengths of the standard, no-objectness and NMS exports."""
    return (5 + num_classes, 4 + num_classes, POST_PROCESSED_LENGTH)


def _resolve_layout(dim1: int, dim2: int, num_classes: int) -> tuple[int, int, bool]:
    expected = expected_record_lengths(num_classes)
    dim1_matches = dim1 in expected
    dim2_matches = dim2 in expected

    if dim2_matches and not dim1_matches:
        detection_length, num_detections = dim2, dim1
    elif dim1_matches and not dim2_matches:
        detection_length, num_detections = dim1, dim2
    else:
        reason = "both dims match" if dim1_matches else "neither dim matches"
        logger.warning(
            "Ambiguous output layout ({}): dims=[{}, {}], expected lengths={}. "
            "Falling back to size comparison.",
            reason,
            dim1,
            dim2,
            list(expected),
        )
        detection_length, num_detections = min(dim1, dim2), max(dim1, dim2)

    return detection_length, num_detections, detection_length == dim1


def classify_record(
    detection_length: int, num_classes: int
) -> tuple[RecordFormat, CoordinateFormat, bool, int]:
    """Map a record length to (format, coordinates, has_objectness, num_classes)."""
    if detection_length == POST_PROCESSED_LENGTH:
        return (
            RecordFormat.POST_PROCESSED_CORNER,
            CoordinateFormat.CORNER,
            False,
            num_classes,
        )
    if detection_length == 4 + num_classes:
        return RecordFormat.NO_OBJECTNESS_CENTER, CoordinateFormat.CENTER, False, num_classes
    if detection_length == 5 + num_classes:
        return RecordFormat.STANDARD_CENTER, CoordinateFormat.CENTER, True, num_classes

    estimated = max(1, detection_length - 4)
    logger.warning(
        "Unknown record length {}; assuming {} classes without objectness.",
        detection_length,
        estimated,
    )
    return RecordFormat.CUSTOM, CoordinateFormat.CENTER, False, estimated


def detect_model_info(shape: Sequence[int], num_classes: int) -> ModelInfo:
    """Infer the record layout from a rank-3 output shape."""
    if len(shape) != 3:
        message = f"Expected a rank-3 output shape, got {list(shape)}"
        raise ValueError(message)

    _batch, dim1, dim2 = (int(d) for d in shape)
    detection_length, num_detections, is_transposed = _resolve_layout(
        dim1, dim2, num_classes
    )
    record_format, coordinate_format, has_objectness, resolved_classes = (
        classify_record(detection_length, num_classes)
    )
    return ModelInfo(
        detection_length=detection_length,
        num_detections=num_detections,
        is_transposed=is_transposed,
        coordinate_format=coordinate_format,
        has_objectness=has_objectness,
        num_classes=resolved_classes,
        record_format=record_format,
    )


class FormatDetector:
    """Resolve the output layout on the first rank-3 tensor and keep it.

    Later tensors are never re-inspected, even if their shape differs; the
    decoder tolerates the mismatch instead.
    """

    def __init__(self, num_classes: int = DEFAULT_NUM_CLASSES) -> None:
        """Create a detector using ``num_classes`` as the class-count hint."""
        self._num_classes = int(num_classes) if num_classes > 0 else DEFAULT_NUM_CLASSES
        self._info: ModelInfo | None = None

    @property
    def detected(self) -> bool:
        """Whether the layout has been resolved."""
        return self._info is not None

    @property
    def info(self) -> ModelInfo | None:
        """Resolved layout, or None before the first tensor."""
        return self._info

    def detect(self, shape: Sequence[int]) -> ModelInfo:
        """Return the cached layout, inferring it from ``shape`` on first use."""
        if self._info is not None:
            return self._info

        info = detect_model_info(shape, self._num_classes)
        self._info = info
        logger.info(
            "Model structure detected: {} ({} classes), transposed={}, "
            "detections={}, length={}",
            info.record_format.value,
            info.num_classes,
            info.is_transposed,
            info.num_detections,
            info.detection_length,
        )
        return info
