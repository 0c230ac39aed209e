"""Single-slot inference scheduling around a detection session."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from loguru import logger

from detectflow.pipeline.metrics.performance import PerformanceTracker
from detectflow.pipeline.types import RawTensor


if TYPE_CHECKING:
    import numpy as np

    from detectflow.pipeline.session import DetectionSession
    from detectflow.pipeline.types import TrackedDetection


@dataclass(frozen=True)
class InferenceRequest:
    """One prepared model input plus the canvas it will be drawn on."""

    input_tensor: np.ndarray
    canvas_width: int
    canvas_height: int
    threshold: float | None = None


class DetectionRunner:
    """Run the opaque engine with at most one inference in flight.

    ``submit`` never blocks on a busy slot; it reports the request as
    deferred and the caller polls again. Results are published through the
    session, which drops them if it was stopped or switched meanwhile.
    """

    def __init__(
        self,
        session: DetectionSession,
        engine: Callable[[np.ndarray], object],
        *,
        perf_tracker: PerformanceTracker | None = None,
        max_retries: int = 3,
        retry_delay_s: float = 0.005,
        poll_interval_s: float = 0.001,
    ) -> None:
        """Bind a session to an engine callable."""
        self.session = session
        self.engine = engine
        self.perf_tracker = perf_tracker or PerformanceTracker()
        self.max_retries = max(0, int(max_retries))
        self.retry_delay_s = float(retry_delay_s)
        self.poll_interval_s = float(poll_interval_s)

        self._slot = threading.Lock()
        self._running = False
        self._worker: threading.Thread | None = None

    @property
    def busy(self) -> bool:
        """Whether an inference currently holds the slot."""
        return self._slot.locked()

    @property
    def running(self) -> bool:
        """Whether the worker loop is scheduling requests."""
        return self._running

    def snapshot(self) -> tuple[TrackedDetection, ...]:
        """Latest published detections for the render loop."""
        return self.session.snapshot

    def _run_engine(self, input_tensor: np.ndarray) -> RawTensor | None:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            start = time.perf_counter()
            try:
                output = self.engine(input_tensor)
            except Exception as exc:
                logger.warning(
                    "Inference failed (attempt {}/{}): {}", attempt, attempts, exc
                )
                if attempt < attempts:
                    time.sleep(self.retry_delay_s)
                continue
            self.perf_tracker.add_inference_time((time.perf_counter() - start) * 1000)
            if isinstance(output, RawTensor):
                return output
            return RawTensor.from_array(output)

        self.perf_tracker.tick_failure()
        return None

    def submit(self, request: InferenceRequest) -> bool:
        """Run one inference if the slot is free.

        Returns False when another inference is in flight and the request
        was deferred.
        """
        if not self._slot.acquire(blocking=False):
            return False
        try:
            token = self.session.begin()
            try:
                output = self._run_engine(request.input_tensor)
                published = self.session.publish(
                    token,
                    output,
                    canvas_width=request.canvas_width,
                    canvas_height=request.canvas_height,
                    threshold=request.threshold,
                )
            except Exception:
                logger.exception("Inference cycle failed; treating it as an empty frame")
                self.perf_tracker.tick_failure()
                published = self.session.publish(
                    token,
                    None,
                    canvas_width=request.canvas_width,
                    canvas_height=request.canvas_height,
                )
            if published is None:
                self.perf_tracker.tick_discarded()
            else:
                self.perf_tracker.tick_result()
            return True
        finally:
            self._slot.release()

    def _loop(self, source: Callable[[], InferenceRequest | None]) -> None:
        while self._running:
            try:
                request = source()
            except Exception:
                logger.exception("Frame source failed")
                request = None
            if request is None or not self.submit(request):
                time.sleep(self.poll_interval_s)

    def start(self, source: Callable[[], InferenceRequest | None]) -> None:
        """Activate the session and run the inference loop on a worker thread."""
        if self._running:
            return
        self.session.start()
        self._running = True
        self._worker = threading.Thread(
            target=self._loop,
            args=(source,),
            name="detectflow-inference",
            daemon=True,
        )
        self._worker.start()
        logger.info("Inference loop started")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop scheduling; an in-flight inference finishes and is discarded."""
        self._running = False
        self.session.stop()
        if self._worker is not None:
            self._worker.join(timeout=timeout)
            self._worker = None
        logger.info("Inference loop stopped")
