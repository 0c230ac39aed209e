"""Unit tests for DetectionSession."""

from __future__ import annotations

import numpy as np
import pytest

from detectflow.pipeline.config import DetectorConfig
from detectflow.pipeline.session import DetectionSession
from detectflow.pipeline.types import BoundingBox, Candidate, RawTensor, RecordFormat
from detectflow.yolo.core.formats import FormatDetector


def _no_objectness_output(*scores: float) -> RawTensor:
    """One centered 100x100 box with the given class scores, shape [1, 1, 4+C]."""
    record = np.array([[[320.0, 320.0, 100.0, 100.0, *scores]]], dtype=np.float32)
    return RawTensor.from_array(record)


@pytest.fixture
def session() -> DetectionSession:
    config = DetectorConfig(
        confidence_threshold=0.5, class_names=("cat", "dog", "bird")
    )
    return DetectionSession(config)


class TestDecode:
    """Tests for the per-frame decode pipeline."""

    def test_uses_registry_names(self, session: DetectionSession) -> None:
        (cand,) = session.decode(
            _no_objectness_output(0.1, 0.9, 0.2), canvas_width=640, canvas_height=640
        )

        assert cand.class_name == "dog"
        assert session.model_info is not None
        assert session.model_info.record_format is RecordFormat.NO_OBJECTNESS_CENTER

    def test_threshold_override(self, session: DetectionSession) -> None:
        """A per-frame threshold replaces the configured one."""
        tensor = _no_objectness_output(0.6, 0.0, 0.0)

        assert len(session.decode(tensor, canvas_width=640, canvas_height=640)) == 1
        assert (
            session.decode(tensor, canvas_width=640, canvas_height=640, threshold=0.7)
            == []
        )

    def test_none_output_decodes_to_nothing(self, session: DetectionSession) -> None:
        assert session.decode(None, canvas_width=640, canvas_height=640) == []
        assert session.model_info is None

    def test_layout_is_detected_once(self, session: DetectionSession) -> None:
        """The first rank-3 shape fixes the layout for the session."""
        session.decode(
            _no_objectness_output(0.9, 0.0, 0.0), canvas_width=640, canvas_height=640
        )
        first = session.model_info

        post_processed = RawTensor.from_array(np.zeros((1, 300, 6), dtype=np.float32))
        session.decode(post_processed, canvas_width=640, canvas_height=640)

        assert session.model_info is first


class TestProcess:
    """Tests for folding outputs into the tracked snapshot."""

    def test_wrong_rank_ages_tracked_set(
        self, session: DetectionSession, warnings_logged: list[str]
    ) -> None:
        """A rank-2 output is skipped and counts as an empty frame."""
        session.process(
            _no_objectness_output(0.9, 0.0, 0.0), canvas_width=640, canvas_height=640
        )

        flat = RawTensor.from_array(np.zeros((10, 7), dtype=np.float32))
        (det,) = session.process(flat, canvas_width=640, canvas_height=640)

        assert det.missed_frames == 1
        assert session.model_info is not None
        assert any("rank 2" in msg for msg in warnings_logged)

    def test_short_records_age_tracked_set(self) -> None:
        """A layout too short to hold boxes never fails a frame."""
        session = DetectionSession(DetectorConfig(confidence_threshold=0.5))
        session.tracker.update(
            [Candidate(BoundingBox(10.0, 20.0, 100.0, 200.0), 1, 0.9, "person")]
        )
        short = RawTensor.from_array(np.ones((1, 3, 100), dtype=np.float32))

        for missed in (1, 2):
            (det,) = session.process(short, canvas_width=640, canvas_height=640)
            assert det.missed_frames == missed
        assert session.model_info is not None
        assert session.model_info.detection_length == 3

    def test_failed_inference_ages_tracked_set(self, session: DetectionSession) -> None:
        session.process(
            _no_objectness_output(0.9, 0.0, 0.0), canvas_width=640, canvas_height=640
        )

        (det,) = session.process(None, canvas_width=640, canvas_height=640)

        assert det.missed_frames == 1
        assert session.snapshot == (det,)


class TestLifecycle:
    """Tests for start/stop/switch and stale results."""

    def test_inactive_session_discards(self, session: DetectionSession) -> None:
        token = session.begin()

        result = session.publish(
            token,
            _no_objectness_output(0.9, 0.0, 0.0),
            canvas_width=640,
            canvas_height=640,
        )

        assert result is None
        assert session.snapshot == ()

    def test_current_token_publishes(self, session: DetectionSession) -> None:
        session.start()
        token = session.begin()

        result = session.publish(
            token,
            _no_objectness_output(0.9, 0.0, 0.0),
            canvas_width=640,
            canvas_height=640,
        )

        assert result is not None
        assert session.snapshot == result
        assert session.active is True

    def test_switch_invalidates_in_flight_results(
        self, session: DetectionSession
    ) -> None:
        """Results started before a source switch never appear."""
        session.start()
        session.process(
            _no_objectness_output(0.9, 0.0, 0.0), canvas_width=640, canvas_height=640
        )
        token = session.begin()

        session.switch_source()
        result = session.publish(
            token,
            _no_objectness_output(0.0, 0.9, 0.0),
            canvas_width=640,
            canvas_height=640,
        )

        assert result is None
        assert session.snapshot == ()
        assert session.tracker.tracked == ()
        assert session.is_current(session.begin())

    def test_stop_clears_and_deactivates(self, session: DetectionSession) -> None:
        session.start()
        token = session.begin()
        session.process(
            _no_objectness_output(0.9, 0.0, 0.0), canvas_width=640, canvas_height=640
        )

        session.stop()

        assert session.active is False
        assert session.snapshot == ()
        assert not session.is_current(token)
        assert not session.is_current(session.begin())


class TestPublicDocs:
    """Public state accessors carry docstrings."""

    @pytest.mark.parametrize(
        "member",
        [
            FormatDetector.detected,
            FormatDetector.info,
            DetectionSession.model_info,
            DetectionSession.active,
            DetectionSession.is_current,
            RawTensor.rank,
        ],
    )
    def test_documented(self, member: object) -> None:
        assert member.__doc__
