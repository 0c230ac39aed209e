"""Loading of class-name registries for exported models."""

from __future__ import annotations

import json
import re
from pathlib import Path

from loguru import logger


_NAMES_KEY = b"names"
_CLASS_ENTRY = re.compile(r"(\d+):\s*'([^']+)'")


def load_class_names_json(path: str | Path) -> list[str]:
    """Read a JSON list of class names; raise on malformed content."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list) or not all(isinstance(n, str) for n in data):
        message = f"{path} must contain a JSON list of strings"
        raise ValueError(message)
    return data


def _matching_brace(blob: bytes, start: int) -> int:
    depth = 0
    for pos in range(start, len(blob)):
        if blob[pos] == ord("{"):
            depth += 1
        elif blob[pos] == ord("}"):
            depth -= 1
            if depth == 0:
                return pos
    return -1


def extract_class_names(model_bytes: bytes) -> list[str]:
    """Scan serialized model metadata for a ``names`` dict like ``{0: 'cat'}``.

    Ultralytics exports store the class map as a Python-literal string in
    the ONNX metadata. The model is never parsed; the first ``{...}`` after
    each ``names`` key is tried until one yields entries.
    """
    search_from = 0
    while True:
        key_pos = model_bytes.find(_NAMES_KEY, search_from)
        if key_pos < 0:
            return []
        search_from = key_pos + len(_NAMES_KEY)

        brace = model_bytes.find(b"{", search_from)
        if brace < 0:
            return []
        end = _matching_brace(model_bytes, brace)
        if end < 0:
            continue

        text = model_bytes[brace : end + 1].decode("utf-8", errors="ignore")
        if ":" not in text or "'" not in text:
            continue
        class_map = {int(idx): name for idx, name in _CLASS_ENTRY.findall(text)}
        if class_map:
            return [class_map[idx] for idx in sorted(class_map)]


def load_class_names(
    classes_json: str | Path | None = None,
    model_path: str | Path | None = None,
) -> list[str]:
    """Load class names from a JSON file, falling back to model metadata.

    Returns an empty list if neither source yields names; decoding then
    uses placeholder labels.
    """
    if classes_json is not None:
        try:
            names = load_class_names_json(classes_json)
        except (OSError, ValueError) as exc:
            logger.info("Could not read class list {}: {}", classes_json, exc)
        else:
            logger.success("Loaded {} class names from {}", len(names), classes_json)
            return names

    if model_path is not None:
        try:
            model_bytes = Path(model_path).read_bytes()
        except OSError as exc:
            logger.warning("Could not read model file {}: {}", model_path, exc)
            return []
        names = extract_class_names(model_bytes)
        if names:
            logger.success(
                "Extracted {} class names from model metadata", len(names)
            )
            return names

    logger.warning("No class names found; using placeholder labels")
    return []
