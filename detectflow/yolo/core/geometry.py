"""Box geometry helpers shared by decoding and suppression."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np


if TYPE_CHECKING:
    from detectflow.pipeline.types import BoundingBox


def calculate_iou(box1: BoundingBox, box2: BoundingBox) -> float:
    """Intersection over union of two top-left/width/height boxes."""
    x_left = max(box1.x, box2.x)
    y_top = max(box1.y, box2.y)
    x_right = min(box1.right, box2.right)
    y_bottom = min(box1.bottom, box2.bottom)

    if x_right < x_left or y_bottom < y_top:
        return 0.0

    intersection = (x_right - x_left) * (y_bottom - y_top)
    union = box1.area + box2.area - intersection
    if union <= 0:
        return 0.0
    return float(intersection / union)


def center_to_topleft(boxes: np.ndarray) -> np.ndarray:
    """Convert (cx, cy, w, h) rows to (x, y, w, h)."""
    cx, cy, w, h = boxes.T
    return np.stack([cx - w / 2, cy - h / 2, w, h], axis=1)


def corners_to_topleft(boxes: np.ndarray) -> np.ndarray:
    """Convert (x1, y1, x2, y2) rows to (x, y, w, h), tolerating swapped corners."""
    x1, y1, x2, y2 = boxes.T
    return np.stack(
        [np.minimum(x1, x2), np.minimum(y1, y2), np.abs(x2 - x1), np.abs(y2 - y1)],
        axis=1,
    )


def scale_to_canvas(
    coords: np.ndarray,
    canvas_width: float,
    canvas_height: float,
    model_input_size: tuple[int, int],
) -> np.ndarray:
    """Scale four-value coordinate rows into canvas pixels.

    Rows whose four values all lie in [0, 1] are treated as normalized;
    the rest as pixels at the model input resolution.
    """
    model_h, model_w = model_input_size
    with np.errstate(invalid="ignore"):
        normalized = np.all((coords >= 0.0) & (coords <= 1.0), axis=1)
    sx = np.where(normalized, canvas_width, canvas_width / model_w)
    sy = np.where(normalized, canvas_height, canvas_height / model_h)
    factors = np.stack([sx, sy, sx, sy], axis=1)
    return coords * factors


def valid_box_mask(
    boxes: np.ndarray,
    canvas_width: float,
    canvas_height: float,
    min_size: float,
) -> np.ndarray:
    """Mask of (x, y, w, h) rows that are finite, large enough and near the canvas."""
    x, y, w, h = boxes.T
    with np.errstate(invalid="ignore"):
        return (
            np.all(np.isfinite(boxes), axis=1)
            & (w >= min_size)
            & (h >= min_size)
            & (x >= -canvas_width)
            & (x <= canvas_width * 2)
            & (y >= -canvas_height)
            & (y <= canvas_height * 2)
        )
