"""Logging helpers for detection pipelines."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TextIO

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {process}:{thread} | "
    "{name}:{function}:{line} | {message}"
)


def configure_logging(
    log_level: str = "INFO",
    log_dir: str | Path | None = "logs",
    *,
    json_logs: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure loguru sinks for console and rotating file output.

    ``DETECTFLOW_LOG_LEVEL`` overrides ``log_level``. Passing ``log_dir=None``
    keeps console output only; ``stream`` defaults to stdout.
    """
    log_level = os.getenv("DETECTFLOW_LOG_LEVEL", log_level).upper()

    logger.remove()
    logger.add(sink=stream or sys.stdout, format=CONSOLE_FORMAT, level=log_level)

    if log_dir is None:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_path / "detectflow_{time:YYYY-MM-DD}.log"),
        rotation="10 MB",
        retention="7 days",
        level=log_level,
        format=FILE_FORMAT,
    )
    if json_logs:
        logger.add(
            str(log_path / "detectflow_{time:YYYY-MM-DD}.jsonl"),
            rotation="10 MB",
            retention="7 days",
            level=log_level,
            serialize=True,
        )
