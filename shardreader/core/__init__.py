"""Time primitives shared across the reader."""

from shardreader.core.clock import Clock, ManualClock, SystemClock
from shardreader.core.temporal import Duration, Instant

__all__ = [
    "Clock",
    "Duration",
    "Instant",
    "ManualClock",
    "SystemClock",
]
