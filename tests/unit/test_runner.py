"""Unit tests for DetectionRunner scheduling."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import numpy as np
import pytest

from detectflow.pipeline.config import DetectorConfig
from detectflow.pipeline.runner import DetectionRunner, InferenceRequest
from detectflow.pipeline.session import DetectionSession


if TYPE_CHECKING:
    from collections.abc import Callable


OUTPUT = np.array([[[320.0, 320.0, 100.0, 100.0, 0.9, 0.1, 0.1]]], dtype=np.float32)


def _request() -> InferenceRequest:
    return InferenceRequest(
        input_tensor=np.zeros((1, 3, 640, 640), dtype=np.float32),
        canvas_width=640,
        canvas_height=640,
    )


def _failing_decode(tensor: object, **_kwargs: object) -> list:
    if tensor is None:
        return []
    message = "operands could not be broadcast together"
    raise ValueError(message)


def _wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        time.sleep(0.01)
    return condition()


@pytest.fixture
def session() -> DetectionSession:
    session = DetectionSession(
        DetectorConfig(confidence_threshold=0.5, class_names=("a", "b", "c"))
    )
    session.start()
    return session


class TestSubmit:
    """Tests for DetectionRunner.submit."""

    def test_publishes_engine_output(self, session: DetectionSession) -> None:
        engine = MagicMock(return_value=OUTPUT)
        runner = DetectionRunner(session, engine)

        assert runner.submit(_request()) is True

        (det,) = runner.snapshot()
        assert det.class_name == "a"
        assert runner.perf_tracker.published == 1
        assert len(runner.perf_tracker.inference_times) == 1
        engine.assert_called_once()

    def test_retries_transient_failures(self, session: DetectionSession) -> None:
        engine = MagicMock(side_effect=[RuntimeError("busy"), RuntimeError("busy"), OUTPUT])
        runner = DetectionRunner(session, engine, max_retries=3, retry_delay_s=0.0)

        runner.submit(_request())

        assert engine.call_count == 3
        assert len(runner.snapshot()) == 1
        assert runner.perf_tracker.failures == 0

    def test_exhausted_retries_age_tracked_set(self, session: DetectionSession) -> None:
        """A cycle with no output counts as an empty frame."""
        engine = MagicMock(return_value=OUTPUT)
        runner = DetectionRunner(session, engine, max_retries=1, retry_delay_s=0.0)
        runner.submit(_request())

        engine.side_effect = RuntimeError("device lost")
        assert runner.submit(_request()) is True

        (det,) = runner.snapshot()
        assert det.missed_frames == 1
        assert engine.call_count == 3
        assert runner.perf_tracker.failures == 1

    def test_busy_slot_defers_request(self, session: DetectionSession) -> None:
        """Only one inference runs at a time; extra requests are deferred."""
        release = threading.Event()
        entered = threading.Event()

        def slow_engine(_tensor: np.ndarray) -> np.ndarray:
            entered.set()
            release.wait(timeout=5)
            return OUTPUT

        runner = DetectionRunner(session, slow_engine)
        worker = threading.Thread(target=runner.submit, args=(_request(),))
        worker.start()
        assert entered.wait(timeout=5)

        assert runner.busy is True
        assert runner.submit(_request()) is False

        release.set()
        worker.join(timeout=5)
        assert runner.busy is False
        assert runner.perf_tracker.published == 1

    def test_processing_error_counts_as_empty_frame(
        self, session: DetectionSession, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An error after inference ages the tracked set instead of escaping."""
        runner = DetectionRunner(session, MagicMock(return_value=OUTPUT))
        runner.submit(_request())
        monkeypatch.setattr(session, "decode", _failing_decode)

        assert runner.submit(_request()) is True

        (det,) = runner.snapshot()
        assert det.missed_frames == 1
        assert runner.perf_tracker.failures == 1
        assert runner.busy is False

    def test_result_after_stop_is_discarded(self, session: DetectionSession) -> None:
        """Teardown during inference drops the late result."""

        def engine(_tensor: np.ndarray) -> np.ndarray:
            session.stop()
            return OUTPUT

        runner = DetectionRunner(session, engine)

        assert runner.submit(_request()) is True
        assert runner.snapshot() == ()
        assert runner.perf_tracker.discarded == 1
        assert runner.perf_tracker.published == 0


class TestLoop:
    """Tests for the background inference loop."""

    def test_start_and_stop(self) -> None:
        session = DetectionSession(
            DetectorConfig(confidence_threshold=0.5, class_names=("a", "b", "c"))
        )
        runner = DetectionRunner(session, MagicMock(return_value=OUTPUT))
        requests = [_request()]

        def source() -> InferenceRequest | None:
            return requests.pop() if requests else None

        runner.start(source)
        deadline = time.monotonic() + 5
        while runner.perf_tracker.published == 0 and time.monotonic() < deadline:
            time.sleep(0.01)

        assert runner.running is True
        assert session.active is True
        assert runner.perf_tracker.published == 1

        runner.stop()

        assert runner.running is False
        assert session.active is False
        assert runner.snapshot() == ()

    def test_worker_survives_unusable_output(self) -> None:
        """An output too short to hold boxes keeps the loop running."""
        session = DetectionSession(DetectorConfig(confidence_threshold=0.5))
        engine = MagicMock(return_value=np.ones((1, 3, 100), dtype=np.float32))
        runner = DetectionRunner(session, engine)

        runner.start(_request)
        try:
            assert _wait_for(lambda: runner.perf_tracker.published >= 3)
            assert runner._worker is not None
            assert runner._worker.is_alive()
            assert runner.snapshot() == ()
        finally:
            runner.stop()

    def test_worker_survives_processing_errors(
        self, session: DetectionSession, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(session, "decode", _failing_decode)
        runner = DetectionRunner(session, MagicMock(return_value=OUTPUT))

        runner.start(_request)
        try:
            assert _wait_for(lambda: runner.perf_tracker.failures >= 2)
            assert runner._worker is not None
            assert runner._worker.is_alive()
        finally:
            runner.stop()

    def test_worker_survives_source_errors(self, session: DetectionSession) -> None:
        calls = []

        def source() -> InferenceRequest | None:
            calls.append(None)
            if len(calls) == 1:
                message = "camera frame unavailable"
                raise RuntimeError(message)
            return _request()

        runner = DetectionRunner(session, MagicMock(return_value=OUTPUT))
        runner.start(source)
        try:
            assert _wait_for(lambda: runner.perf_tracker.published >= 1)
            assert len(runner.snapshot()) == 1
        finally:
            runner.stop()
