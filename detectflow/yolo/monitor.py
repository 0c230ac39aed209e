"""Live camera loop: capture and render on the main thread, inference on a worker."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import cv2
import numpy as np
from loguru import logger

from detectflow.pipeline.config import DetectorConfig
from detectflow.pipeline.logging import configure_logging
from detectflow.pipeline.runner import DetectionRunner, InferenceRequest
from detectflow.pipeline.session import DetectionSession
from detectflow.yolo.core.classes import load_class_names
from detectflow.yolo.core.preprocess import preprocess
from detectflow.yolo.engine import OnnxEngine


if TYPE_CHECKING:
    import argparse
    from collections.abc import Callable, Sequence

    from detectflow.pipeline.types import TrackedDetection


class LatestFrame:
    """Hand the newest captured frame to the inference loop, dropping older ones."""

    def __init__(self) -> None:
        """Start empty."""
        self._lock = threading.Lock()
        self._frame: np.ndarray | None = None

    def put(self, frame: np.ndarray) -> None:
        with self._lock:
            self._frame = frame

    def take(self) -> np.ndarray | None:
        with self._lock:
            frame, self._frame = self._frame, None
        return frame


def class_color(class_index: int) -> tuple[int, int, int]:
    """BGR color spread around the hue wheel by class index."""
    hue = (class_index * 137) % 360
    hsv = np.array([[[hue // 2, 255, 255]]], dtype=np.uint8)
    b, g, r = cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)[0, 0]
    return int(b), int(g), int(r)


def draw_detections(
    frame: np.ndarray,
    detections: Sequence[TrackedDetection],
    *,
    mirror: bool = False,
) -> np.ndarray:
    """Draw boxes and labels; ``mirror`` flips the frame and box x-coordinates."""
    if mirror:
        frame = cv2.flip(frame, 1)
    canvas_width = frame.shape[1]

    for det in detections:
        box = det.bbox
        x = canvas_width - box.x - box.width if mirror else box.x
        x1, y1 = int(x), int(box.y)
        x2, y2 = int(x + box.width), int(box.y + box.height)
        color = class_color(det.class_index)
        label = f"{det.class_name} {round(det.confidence * 100)}%"

        cv2.rectangle(frame, (x1, y1), (x2, y2), color, 2)
        (tw, th), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        cv2.rectangle(frame, (x1, y1 - th - 10), (x1 + tw + 10, y1), color, -1)
        cv2.putText(
            frame,
            label,
            (x1 + 5, y1 - 5),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            (255, 255, 255),
            1,
        )
    return frame


def _make_source(
    latest: LatestFrame,
    input_size: tuple[int, int],
    threshold: float,
) -> Callable[[], InferenceRequest | None]:
    def _source() -> InferenceRequest | None:
        frame = latest.take()
        if frame is None:
            return None
        height, width = frame.shape[:2]
        return InferenceRequest(
            input_tensor=preprocess(frame, input_size),
            canvas_width=width,
            canvas_height=height,
            threshold=threshold,
        )

    return _source


def _log_periodic_metrics(runner: DetectionRunner, frame_count: int) -> None:
    metrics = runner.perf_tracker.get_metrics()
    logger.info(
        "Frames: {} | Results: {:.1f} FPS | Inference: {:.1f}ms | "
        "Detections: {} | Discarded: {} | Failed: {}",
        frame_count,
        metrics.results_fps,
        metrics.inference_ms,
        len(runner.snapshot()),
        metrics.discarded,
        metrics.failures,
    )


def switch_camera(
    cap: cv2.VideoCapture,
    camera: int,
    session: DetectionSession,
    latest: LatestFrame,
) -> tuple[cv2.VideoCapture, int]:
    """Move to the next camera index, wrapping to 0 when it cannot be opened.

    Detections and pending frames from the old camera are dropped, and any
    inference already in flight is discarded when it finishes.
    """
    session.switch_source()
    latest.take()
    cap.release()

    next_camera = camera + 1
    new_cap = cv2.VideoCapture(next_camera)
    if not new_cap.isOpened() and next_camera != 0:
        logger.warning("Camera {} unavailable; wrapping to camera 0", next_camera)
        new_cap.release()
        next_camera = 0
        new_cap = cv2.VideoCapture(next_camera)

    logger.info("Switched from camera {} to camera {}", camera, next_camera)
    return new_cap, next_camera


def run_monitor(args: argparse.Namespace) -> int:
    """Run detection on a live camera until 'q', Ctrl+C or ``--max-frames``.

    Pressing 'c' in the display window switches to the next camera.
    """
    configure_logging(args.log_level, log_dir=args.log_dir, json_logs=args.json_logs)

    try:
        engine = OnnxEngine(args.model)
    except Exception as exc:
        logger.error("Failed to load model {}: {}", args.model, exc)
        return 1

    class_names = load_class_names(args.classes, args.model)
    config = DetectorConfig(
        confidence_threshold=args.conf,
        model_input_size=engine.input_size,
        class_names=tuple(class_names),
    )

    camera = args.camera
    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        logger.error("Cannot open camera {}", args.camera)
        return 1

    session = DetectionSession(config)
    runner = DetectionRunner(session, engine, max_retries=args.retries)
    latest = LatestFrame()
    runner.start(_make_source(latest, engine.input_size, args.conf))

    frame_count = 0
    last_log_time = time.perf_counter()
    try:
        while args.max_frames is None or frame_count < args.max_frames:
            ret, frame = cap.read()
            if not ret or frame is None:
                logger.warning("Failed to grab frame")
                continue
            latest.put(frame)
            frame_count += 1

            now = time.perf_counter()
            if now - last_log_time >= 2.0:
                _log_periodic_metrics(runner, frame_count)
                last_log_time = now

            if args.no_display:
                continue
            shown = draw_detections(
                frame.copy(), runner.snapshot(), mirror=args.mirror
            )
            cv2.imshow("DetectFlow", shown)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                logger.info("Quit requested by user")
                break
            if key == ord("c"):
                cap, camera = switch_camera(cap, camera, session, latest)
                if not cap.isOpened():
                    logger.error("No camera available after switching")
                    break
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        runner.stop()
        cap.release()
        if not args.no_display:
            cv2.destroyAllWindows()
        _log_periodic_metrics(runner, frame_count)
        logger.success("Cleanup complete.")

    return 0
