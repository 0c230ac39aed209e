from __future__ import annotations

import argparse
import importlib
import json
import sys
from pathlib import Path

import numpy as np
from loguru import logger

from detectflow.pipeline.config import DetectorConfig
from detectflow.pipeline.logging import configure_logging
from detectflow.pipeline.session import DetectionSession
from detectflow.pipeline.types import RawTensor
from detectflow.yolo.core.classes import load_class_names
from detectflow.yolo.core.constants import DEFAULT_CONFIDENCE_THRESHOLD


LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _threshold(value: str) -> float:
    threshold = float(value)
    if not 0.0 < threshold <= 1.0:
        message = f"confidence threshold must lie in (0, 1], got {value}"
        raise argparse.ArgumentTypeError(message)
    return threshold


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="detectflow",
        description="Decode YOLO detection tensors into stable bounding boxes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  detectflow decode output.npy --width 1280 --height 720
  detectflow run --model resources/models/model.onnx --classes classes.json
  detectflow run --model model.onnx --camera 1 --conf 0.5 --mirror
		""",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=LOG_LEVELS,
    )
    parser.add_argument("--classes", type=Path, default=None)
    parser.add_argument(
        "--conf", type=_threshold, default=DEFAULT_CONFIDENCE_THRESHOLD
    )

    commands = parser.add_subparsers(dest="command", required=True)

    decode = commands.add_parser(
        "decode", help="Decode a saved output tensor (.npy) and print JSON"
    )
    decode.add_argument("tensor", type=Path)
    decode.add_argument("--width", type=int, default=640)
    decode.add_argument("--height", type=int, default=640)
    decode.add_argument(
        "--model",
        type=Path,
        default=None,
        help="Model file to read class names from when --classes is absent",
    )

    run = commands.add_parser("run", help="Run live detection on a camera")
    run.add_argument("--model", type=Path, default=Path("resources/models/model.onnx"))
    run.add_argument("--camera", type=int, default=0)
    run.add_argument("--retries", type=int, default=3)
    run.add_argument("--max-frames", type=int, default=None)
    run.add_argument("--no-display", action="store_true")
    run.add_argument(
        "--mirror",
        action="store_true",
        help="Mirror the displayed frame and boxes horizontally",
    )
    run.add_argument("--log-dir", type=str, default="logs")
    run.add_argument(
        "--json-logs",
        action="store_true",
        help="Also write structured JSONL logs to --log-dir",
    )

    return parser.parse_args(argv)


def decode_command(args: argparse.Namespace) -> int:
    """Decode one tensor file and print the resulting detections as JSON."""
    configure_logging(args.log_level, log_dir=None, stream=sys.stderr)
    try:
        array = np.load(args.tensor, allow_pickle=False)
    except (OSError, ValueError) as exc:
        logger.error("Cannot load tensor {}: {}", args.tensor, exc)
        return 1

    class_names = load_class_names(args.classes, args.model)
    session = DetectionSession(
        DetectorConfig(confidence_threshold=args.conf, class_names=tuple(class_names))
    )
    tracked = session.process(
        RawTensor.from_array(array),
        canvas_width=args.width,
        canvas_height=args.height,
    )
    print(json.dumps([det.as_dict() for det in tracked], indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``detectflow`` command."""
    args = parse_args(argv)
    if args.command == "decode":
        return decode_command(args)
    monitor = importlib.import_module("detectflow.yolo.monitor")
    return monitor.run_monitor(args)


if __name__ == "__main__":
    raise SystemExit(main())
