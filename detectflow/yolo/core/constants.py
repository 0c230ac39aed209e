"""Defaults shared by the YOLO decoding stages."""

from __future__ import annotations


# (height, width) of the square input the exported models expect.
MODEL_INPUT_SIZE: tuple[int, int] = (640, 640)

# COCO class count, assumed when no class registry is supplied.
DEFAULT_NUM_CLASSES = 80

NMS_IOU_THRESHOLD = 0.3
MAX_MISSED_FRAMES = 3
MIN_BOX_SIZE = 5.0
DEFAULT_CONFIDENCE_THRESHOLD = 0.68

# Record length of exports with built-in NMS: x1, y1, x2, y2, conf, class_id.
POST_PROCESSED_LENGTH = 6
