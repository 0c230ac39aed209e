"""Core YOLO utilities (layout detection, decoding, post-processing)."""

from __future__ import annotations

from detectflow.yolo.core.classes import extract_class_names, load_class_names
from detectflow.yolo.core.constants import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_NUM_CLASSES,
    MAX_MISSED_FRAMES,
    MIN_BOX_SIZE,
    MODEL_INPUT_SIZE,
    NMS_IOU_THRESHOLD,
)
from detectflow.yolo.core.decode import decode_output, resolve_class_name
from detectflow.yolo.core.formats import FormatDetector, detect_model_info
from detectflow.yolo.core.geometry import calculate_iou
from detectflow.yolo.core.postprocess import filter_by_confidence, non_max_suppression
from detectflow.yolo.core.preprocess import infer_input_size, preprocess


__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_NUM_CLASSES",
    "MAX_MISSED_FRAMES",
    "MIN_BOX_SIZE",
    "MODEL_INPUT_SIZE",
    "NMS_IOU_THRESHOLD",
    "FormatDetector",
    "calculate_iou",
    "decode_output",
    "detect_model_info",
    "extract_class_names",
    "filter_by_confidence",
    "infer_input_size",
    "load_class_names",
    "non_max_suppression",
    "preprocess",
    "resolve_class_name",
]
