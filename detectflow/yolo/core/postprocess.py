"""Post-processing of decoded candidates: thresholding and NMS."""

from __future__ import annotations

from typing import TYPE_CHECKING

from detectflow.yolo.core.constants import NMS_IOU_THRESHOLD
from detectflow.yolo.core.geometry import calculate_iou


if TYPE_CHECKING:
    from collections.abc import Iterable

    from detectflow.pipeline.types import Candidate


def filter_by_confidence(
    candidates: Iterable[Candidate], threshold: float
) -> list[Candidate]:
    """Keep candidates whose confidence is strictly above ``threshold``."""
    return [cand for cand in candidates if cand.confidence > threshold]


def non_max_suppression(
    candidates: Iterable[Candidate],
    iou_threshold: float = NMS_IOU_THRESHOLD,
) -> list[Candidate]:
    """Greedy per-class non-maximum suppression.

    Candidates are visited by descending confidence; ties keep their input
    order because the sort is stable. Each accepted candidate removes the
    remaining candidates of the same class that overlap it by more than
    ``iou_threshold``. Different classes never suppress each other.
    """
    remaining = sorted(candidates, key=lambda cand: cand.confidence, reverse=True)
    selected: list[Candidate] = []

    while remaining:
        current = remaining.pop(0)
        selected.append(current)
        remaining = [
            cand
            for cand in remaining
            if cand.class_index != current.class_index
            or calculate_iou(current.bbox, cand.bbox) <= iou_threshold
        ]

    return selected
