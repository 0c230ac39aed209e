"""Decoding of raw YOLO output tensors into candidate detections."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import numpy as np
from loguru import logger

from detectflow.pipeline.types import (
    BoundingBox,
    Candidate,
    CoordinateFormat,
    RecordFormat,
)
from detectflow.yolo.core.constants import MIN_BOX_SIZE, MODEL_INPUT_SIZE
from detectflow.yolo.core.geometry import (
    center_to_topleft,
    corners_to_topleft,
    scale_to_canvas,
    valid_box_mask,
)


if TYPE_CHECKING:
    from collections.abc import Sequence

    from detectflow.pipeline.types import ModelInfo, RawTensor

    DecodedRows = tuple[np.ndarray, np.ndarray, np.ndarray]


def _sigmoid(values: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-values))


def _squash_logits(values: np.ndarray) -> np.ndarray:
    # Values above 1 cannot be probabilities, so they are taken to be logits.
    # Raw logits inside [0, 1] slip through unchanged.
    with np.errstate(invalid="ignore"):
        return np.where(values > 1, _sigmoid(values), values)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    finite = np.nan_to_num(values, nan=-1.0, posinf=-1.0, neginf=-1.0)
    clipped = np.clip(finite, -1.0, np.iinfo(np.int32).max)
    return np.floor(clipped + 0.5).astype(np.int64)


def _best_class(scores: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    rows = scores.shape[0]
    if scores.shape[1] == 0:
        return np.zeros(rows), np.zeros(rows, dtype=np.int64)
    best = np.argmax(scores, axis=1)
    best_score = scores[np.arange(rows), best]
    with np.errstate(invalid="ignore"):
        positive = best_score > 0
    return np.where(positive, best_score, 0.0), np.where(positive, best, 0)


def extract_records(tensor: RawTensor, info: ModelInfo) -> np.ndarray:
    """View the flat buffer as one row per candidate detection.

    Transposed buffers store field ``v`` of row ``i`` at ``v * N + i``,
    others at ``i * L + v``. A buffer shorter than ``N * L`` is padded with
    NaN so the missing rows fail the validity gate.
    """
    num, length = info.num_detections, info.detection_length
    needed = num * length
    flat = np.asarray(tensor.data, dtype=np.float64).reshape(-1)
    if flat.size < needed:
        logger.debug(
            "Output buffer holds {} values, layout expects {}; padding",
            flat.size,
            needed,
        )
        flat = np.concatenate([flat, np.full(needed - flat.size, np.nan)])
    grid = flat[:needed]
    if info.is_transposed:
        return grid.reshape(length, num).T
    return grid.reshape(num, length)


def _decode_post_processed(records: np.ndarray, _info: ModelInfo) -> DecodedRows:
    coords = records[:, :4]
    confidence = _squash_logits(records[:, 4])
    class_ids = _round_half_up(records[:, 5])
    return coords, confidence, class_ids


def _decode_no_objectness(records: np.ndarray, info: ModelInfo) -> DecodedRows:
    coords = records[:, :4]
    scores = _squash_logits(records[:, 4 : 4 + info.num_classes])
    confidence, class_ids = _best_class(scores)
    return coords, confidence, class_ids


def _decode_standard(records: np.ndarray, info: ModelInfo) -> DecodedRows:
    coords = records[:, :4]
    objectness = _sigmoid(records[:, 4])
    scores = _sigmoid(records[:, 5 : 5 + info.num_classes])
    best_score, class_ids = _best_class(scores)
    return coords, objectness * best_score, class_ids


_DECODERS: dict[RecordFormat, Callable[[np.ndarray, ModelInfo], DecodedRows]] = {
    RecordFormat.POST_PROCESSED_CORNER: _decode_post_processed,
    RecordFormat.NO_OBJECTNESS_CENTER: _decode_no_objectness,
    RecordFormat.CUSTOM: _decode_no_objectness,
    RecordFormat.STANDARD_CENTER: _decode_standard,
}


def resolve_class_name(class_index: int, class_names: Sequence[str]) -> str:
    """Return the registry name for ``class_index`` or a placeholder label."""
    if 0 <= class_index < len(class_names):
        return class_names[class_index]
    return f"class_{class_index}"


def decode_output(
    tensor: RawTensor,
    info: ModelInfo,
    *,
    canvas_width: float,
    canvas_height: float,
    class_names: Sequence[str] = (),
    model_input_size: tuple[int, int] = MODEL_INPUT_SIZE,
    min_box_size: float = MIN_BOX_SIZE,
    debug_boxes: bool = False,
) -> list[Candidate]:
    """Decode every row of ``tensor`` into canvas-space candidates.

    Rows failing the validity gate (tiny, far off-canvas or non-finite) are
    dropped. No confidence threshold is applied here.
    """
    if canvas_width <= 0 or canvas_height <= 0:
        message = f"Canvas size must be positive, got {canvas_width}x{canvas_height}"
        raise ValueError(message)
    if info.detection_length < 4:
        logger.warning(
            "Record length {} cannot hold a box; skipping output",
            info.detection_length,
        )
        return []

    records = extract_records(tensor, info)
    if records.shape[0] == 0:
        return []

    coords, confidence, class_ids = _DECODERS[info.record_format](records, info)
    coords = scale_to_canvas(coords, canvas_width, canvas_height, model_input_size)
    if info.coordinate_format is CoordinateFormat.CORNER:
        boxes = corners_to_topleft(coords)
    else:
        boxes = center_to_topleft(coords)

    keep = valid_box_mask(boxes, canvas_width, canvas_height, min_box_size)
    keep &= np.isfinite(confidence)
    confidence = np.clip(np.nan_to_num(confidence), 0.0, 1.0)

    if debug_boxes:
        logger.info("Decoded boxes (first 3): {}", boxes[:3].round(2).tolist())
        logger.info(
            "Decoded scores/classes (first 3): {}",
            list(zip(confidence[:3].round(3).tolist(), class_ids[:3].tolist())),
        )

    candidates: list[Candidate] = []
    for row in np.flatnonzero(keep):
        x, y, w, h = boxes[row]
        class_index = int(class_ids[row])
        candidates.append(
            Candidate(
                bbox=BoundingBox(float(x), float(y), float(w), float(h)),
                class_index=class_index,
                confidence=float(confidence[row]),
                class_name=resolve_class_name(class_index, class_names),
            )
        )
    return candidates
