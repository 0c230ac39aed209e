from __future__ import annotations

import importlib

from detectflow.yolo.core.classes import load_class_names
from detectflow.yolo.core.constants import MODEL_INPUT_SIZE
from detectflow.yolo.core.decode import decode_output
from detectflow.yolo.core.formats import FormatDetector
from detectflow.yolo.core.postprocess import filter_by_confidence, non_max_suppression
from detectflow.yolo.core.preprocess import infer_input_size, preprocess


def main(argv: list[str] | None = None) -> int:
    """Run the ``detectflow`` command line via lazy import."""
    module = importlib.import_module("detectflow.yolo.cli")
    return module.main(argv)


def run_monitor(*args: object, **kwargs: object) -> int:
    """Run the live camera monitor via lazy import."""
    module = importlib.import_module("detectflow.yolo.monitor")
    return module.run_monitor(*args, **kwargs)


__all__ = [
    "MODEL_INPUT_SIZE",
    "FormatDetector",
    "decode_output",
    "filter_by_confidence",
    "infer_input_size",
    "load_class_names",
    "main",
    "non_max_suppression",
    "preprocess",
    "run_monitor",
]
