"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import pytest
from loguru import logger


if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _reset_loguru() -> Iterator[None]:
    """Restore the default loguru sink after tests that reconfigure logging."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def warnings_logged() -> Iterator[list[str]]:
    """Collect messages logged at WARNING or above."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="WARNING",
    )
    yield messages
    logger.remove(handler_id)
