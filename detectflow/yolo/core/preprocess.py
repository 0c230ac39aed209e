from __future__ import annotations

import cv2
import numpy as np

from detectflow.yolo.core.constants import MODEL_INPUT_SIZE


def infer_input_size(input_shape: list[object] | None) -> tuple[int, int]:
    """Infer (height, width) from an ONNX input shape."""
    if not input_shape or len(input_shape) < 4:
        return MODEL_INPUT_SIZE

    height = input_shape[-2]
    width = input_shape[-1]

    if isinstance(height, int) and isinstance(width, int):
        return (height, width)

    return MODEL_INPUT_SIZE


def preprocess(
    frame: np.ndarray, input_size: tuple[int, int] = MODEL_INPUT_SIZE
) -> np.ndarray:
    """Stretch a BGR frame to the model input and return an NCHW float blob.

    No letterboxing: the decoder maps model pixels back to the canvas with
    independent x and y scale factors.
    """
    height, width = input_size
    resized = cv2.resize(frame, (width, height), interpolation=cv2.INTER_LINEAR)
    blob = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB).astype(np.float32) / 255.0
    return np.ascontiguousarray(blob.transpose(2, 0, 1)[np.newaxis, ...])
