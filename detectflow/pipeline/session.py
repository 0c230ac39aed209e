"""Per-session detection state and the per-frame decode pipeline."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from loguru import logger

from detectflow.pipeline.config import DetectorConfig
from detectflow.pipeline.tracking.temporal import TemporalTracker
from detectflow.yolo.core.decode import decode_output
from detectflow.yolo.core.formats import FormatDetector
from detectflow.yolo.core.postprocess import filter_by_confidence, non_max_suppression


if TYPE_CHECKING:
    from detectflow.pipeline.types import (
        Candidate,
        ModelInfo,
        RawTensor,
        TrackedDetection,
    )


class DetectionSession:
    """Own the state that outlives a single frame.

    The record layout is detected once per session. The tracked snapshot is
    replaced by reference, so readers never need the lock; the lock only
    serializes lifecycle changes against publishing.
    """

    def __init__(self, config: DetectorConfig | None = None) -> None:
        """Create an inactive session for one loaded model."""
        self.config = config or DetectorConfig()
        self.format_detector = FormatDetector(self.config.num_classes_hint)
        self.tracker = TemporalTracker(
            max_missed_frames=self.config.max_missed_frames
        )
        self._lock = threading.Lock()
        self._active = False
        self._generation = 0
        self._snapshot: tuple[TrackedDetection, ...] = ()

    @property
    def model_info(self) -> ModelInfo | None:
        """Layout detected for this session, if any."""
        return self.format_detector.info

    @property
    def active(self) -> bool:
        """Whether results are currently accepted."""
        return self._active

    @property
    def snapshot(self) -> tuple[TrackedDetection, ...]:
        """Latest tracked detections for the render loop."""
        return self._snapshot

    def start(self) -> None:
        """Mark the session active so results can be published."""
        with self._lock:
            self._active = True
        logger.info("Detection session started")

    def stop(self) -> None:
        """Deactivate and forget detections; outstanding results become stale."""
        with self._lock:
            self._active = False
            self._reset_locked()
        logger.info("Detection session stopped")

    def switch_source(self) -> None:
        """Drop detections from the previous source and invalidate in-flight work."""
        with self._lock:
            self._reset_locked()
        logger.info("Source switched; cleared tracked detections")

    def _reset_locked(self) -> None:
        self._generation += 1
        self.tracker.clear()
        self._snapshot = ()

    def begin(self) -> int:
        """Return the generation token an inference must present when publishing."""
        return self._generation

    def is_current(self, token: int) -> bool:
        """Whether a result started with ``token`` may still be published."""
        return self._active and token == self._generation

    def decode(
        self,
        tensor: RawTensor | None,
        *,
        canvas_width: float,
        canvas_height: float,
        threshold: float | None = None,
    ) -> list[Candidate]:
        """Run detection, decoding, thresholding and NMS for one output."""
        if tensor is None:
            return []
        if tensor.rank != 3:
            logger.warning("Skipping output with rank {} (shape {})", tensor.rank, tensor.shape)
            return []

        info = self.format_detector.detect(tensor.shape)
        decoded = decode_output(
            tensor,
            info,
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            class_names=self.config.class_names,
            model_input_size=self.config.model_input_size,
            min_box_size=self.config.min_box_size,
        )
        if threshold is None:
            threshold = self.config.confidence_threshold
        kept = filter_by_confidence(decoded, threshold)
        return non_max_suppression(kept, self.config.iou_threshold)

    def process(
        self,
        tensor: RawTensor | None,
        *,
        canvas_width: float,
        canvas_height: float,
        threshold: float | None = None,
    ) -> tuple[TrackedDetection, ...]:
        """Decode one output and fold it into the tracked snapshot.

        ``None`` stands for a failed inference and ages the tracked set like
        an empty frame.
        """
        candidates = self.decode(
            tensor,
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            threshold=threshold,
        )
        tracked = self.tracker.update(candidates)
        self._snapshot = tracked
        return tracked

    def publish(
        self,
        token: int,
        tensor: RawTensor | None,
        *,
        canvas_width: float,
        canvas_height: float,
        threshold: float | None = None,
    ) -> tuple[TrackedDetection, ...] | None:
        """Process ``tensor`` if ``token`` is still current, else discard it."""
        with self._lock:
            if not self.is_current(token):
                logger.debug(
                    "Discarding stale result (token {}, generation {}, active={})",
                    token,
                    self._generation,
                    self._active,
                )
                return None
            return self.process(
                tensor,
                canvas_width=canvas_width,
                canvas_height=canvas_height,
                threshold=threshold,
            )
