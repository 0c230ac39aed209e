"""Missed-frame smoothing of detection flicker."""

from __future__ import annotations

from typing import TYPE_CHECKING

from detectflow.pipeline.types import TrackedDetection
from detectflow.yolo.core.constants import MAX_MISSED_FRAMES


if TYPE_CHECKING:
    from collections.abc import Sequence

    from detectflow.pipeline.types import Candidate


class TemporalTracker:
    """Hold the last detections for a few empty frames.

    There is no identity association: any non-empty frame replaces the whole
    set, and an empty frame ages every entry until it exceeds
    ``max_missed_frames``.
    """

    def __init__(self, *, max_missed_frames: int = MAX_MISSED_FRAMES) -> None:
        """Initialize the tracker with the missed-frame cap."""
        self._max_missed_frames = int(max_missed_frames)
        self._tracked: tuple[TrackedDetection, ...] = ()

    @property
    def tracked(self) -> tuple[TrackedDetection, ...]:
        """Current tracked detections."""
        return self._tracked

    def update(self, candidates: Sequence[Candidate]) -> tuple[TrackedDetection, ...]:
        """Fold the current frame's suppressed candidates into the tracked set."""
        if candidates:
            self._tracked = tuple(TrackedDetection(cand) for cand in candidates)
        else:
            self._tracked = tuple(
                aged
                for aged in (det.aged() for det in self._tracked)
                if aged.missed_frames <= self._max_missed_frames
            )
        return self._tracked

    def clear(self) -> None:
        """Forget all tracked detections."""
        self._tracked = ()
