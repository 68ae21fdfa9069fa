"""
Shared pytest fixtures for shardreader tests.
"""

import logging

import pytest

from shardreader.core.clock import ManualClock
from shardreader.core.temporal import Instant

# Arbitrary wall-clock origin so processing times look like real epoch millis.
T0_MS = 1_700_000_000_000


@pytest.fixture
def clock() -> ManualClock:
    """A manual processing-time clock starting at T0_MS."""
    return ManualClock(Instant.from_millis(T0_MS))


@pytest.fixture(autouse=True)
def reset_shardreader_logging():
    """Reset logging state before each test.

    Leaves only the library's NullHandler attached and the level inherited,
    so one test's logging setup cannot leak into another.
    """
    logger = logging.getLogger("shardreader")

    def _reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()
