"""ONNX Runtime adapter exposing a model as ``run(input) -> RawTensor``."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import onnxruntime as ort
from loguru import logger

from detectflow.pipeline.types import RawTensor
from detectflow.yolo.core.preprocess import infer_input_size


if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np


class OnnxEngine:
    """Callable wrapper around an ``onnxruntime.InferenceSession``."""

    def __init__(
        self,
        model_path: str | Path,
        providers: Sequence[str] | None = None,
    ) -> None:
        """Load the model; only the first input and output are used."""
        self.model_path = Path(model_path)
        self.session = ort.InferenceSession(
            str(self.model_path),
            providers=list(providers or ort.get_available_providers()),
        )
        model_input = self.session.get_inputs()[0]
        self.input_name = model_input.name
        self.input_size = infer_input_size(model_input.shape)
        logger.success(
            "Loaded {} (input '{}', size {}x{}, providers {})",
            self.model_path.name,
            self.input_name,
            self.input_size[1],
            self.input_size[0],
            self.session.get_providers(),
        )

    def __call__(self, input_tensor: np.ndarray) -> RawTensor:
        outputs = self.session.run(None, {self.input_name: input_tensor})
        return RawTensor.from_array(outputs[0])
