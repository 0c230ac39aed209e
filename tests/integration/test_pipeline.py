"""End-to-end tests from raw output tensors to tracked detections."""

from __future__ import annotations

import numpy as np
import pytest

from detectflow import DetectionSession, DetectorConfig, RawTensor
from detectflow.pipeline.types import RecordFormat


NUM_CLASSES = 80


def _coco_output(
    rows: list[tuple[float, float, float, float, int, float]],
    *,
    num_detections: int = 8400,
    transposed: bool = True,
) -> RawTensor:
    """Build a no-objectness output with ``rows`` of (cx, cy, w, h, class, score)."""
    records = np.zeros((num_detections, 4 + NUM_CLASSES), dtype=np.float32)
    for i, (cx, cy, w, h, class_index, score) in enumerate(rows):
        records[i, :4] = (cx, cy, w, h)
        records[i, 4 + class_index] = score
    if transposed:
        return RawTensor.from_array(records.T[np.newaxis, ...])
    return RawTensor.from_array(records[np.newaxis, ...])


@pytest.fixture
def session() -> DetectionSession:
    return DetectionSession(DetectorConfig(confidence_threshold=0.5))


class TestPipeline:
    """Frame-by-frame behavior of the whole decode chain."""

    def test_overlapping_same_class_keeps_strongest(
        self, session: DetectionSession
    ) -> None:
        """Two overlapping person boxes at 0.9 and 0.95 collapse to one."""
        tensor = _coco_output(
            [
                (320.0, 320.0, 100.0, 100.0, 0, 0.9),
                (325.0, 322.0, 100.0, 100.0, 0, 0.95),
            ]
        )

        (det,) = session.process(tensor, canvas_width=640, canvas_height=640)

        assert session.model_info is not None
        assert session.model_info.is_transposed is True
        assert session.model_info.record_format is RecordFormat.NO_OBJECTNESS_CENTER
        assert det.confidence == pytest.approx(0.95)
        assert det.bbox.x == pytest.approx(275.0)
        assert det.class_name == "class_0"

    def test_normalized_box_on_wide_canvas(self, session: DetectionSession) -> None:
        tensor = _coco_output([(0.5, 0.5, 0.2, 0.2, 2, 0.8)], transposed=False)

        (det,) = session.process(tensor, canvas_width=1000, canvas_height=800)

        assert (det.bbox.x, det.bbox.y) == (
            pytest.approx(400.0),
            pytest.approx(320.0),
        )
        assert (det.bbox.width, det.bbox.height) == (
            pytest.approx(200.0),
            pytest.approx(160.0),
        )
        assert det.class_index == 2

    def test_flicker_is_smoothed(self, session: DetectionSession) -> None:
        """Detections persist through three empty frames, then disappear."""
        hit = _coco_output([(320.0, 320.0, 100.0, 100.0, 0, 0.9)])
        empty = _coco_output([])

        session.process(hit, canvas_width=640, canvas_height=640)
        missed = [
            session.process(empty, canvas_width=640, canvas_height=640)
            for _ in range(4)
        ]

        assert [len(frame) for frame in missed] == [1, 1, 1, 0]
        assert [frame[0].missed_frames for frame in missed[:3]] == [1, 2, 3]

    def test_classes_do_not_suppress_each_other(
        self, session: DetectionSession
    ) -> None:
        tensor = _coco_output(
            [
                (320.0, 320.0, 100.0, 100.0, 0, 0.9),
                (320.0, 320.0, 100.0, 100.0, 16, 0.8),
            ]
        )

        tracked = session.process(tensor, canvas_width=640, canvas_height=640)

        assert [det.class_index for det in tracked] == [0, 16]
