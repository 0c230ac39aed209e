"""Tracking helpers for pipelines."""

from __future__ import annotations

from detectflow.pipeline.tracking.temporal import TemporalTracker


__all__ = [
    "TemporalTracker",
]
